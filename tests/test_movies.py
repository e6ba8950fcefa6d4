import pytest

from neoflix.errors import InvalidParameterError, NotFoundError
from neoflix.movies import FIND_MOVIE_QUERY, MovieService, movie_listing_query
from neoflix.params import Order, Params, Sort

USER = "u1"
TOY_STORY = {"tmdbId": "862", "title": "Toy Story", "imdbRating": 8.3}
GOODFELLAS = {"tmdbId": "769", "title": "Goodfellas", "imdbRating": 8.7}


def _listing(graph, rows):
    graph.respond("RETURN m { .* } AS movie", [{"movie": row} for row in rows])


def _favorites(graph, ids):
    graph.respond("RETURN m.tmdbId AS id", [{"id": i} for i in ids])


def test_listing_query_splices_only_validated_sort():
    query = movie_listing_query("MATCH (m:Movie)", "imdbRating", "DESC")

    assert "WHERE m.`imdbRating` IS NOT NULL" in query
    assert "ORDER BY m.`imdbRating` DESC" in query
    assert "SKIP $skip" in query and "LIMIT $limit" in query


def test_all_annotates_favorites_in_one_read_transaction(graph, store):
    _favorites(graph, ["769"])
    _listing(graph, [GOODFELLAS, TOY_STORY])

    movies = MovieService(store).all(Params(limit=2), USER)

    assert [m["favorite"] for m in movies] == [True, False]
    assert graph.transactions == ["read"]
    assert len(graph.sessions) == 1
    favorites_call, listing_call = graph.calls
    assert "HAS_FAVORITE" in favorites_call.query
    assert listing_call.params == {"skip": 0, "limit": 2}


def test_all_for_anonymous_user_flags_nothing(graph, store):
    _listing(graph, [GOODFELLAS, TOY_STORY])

    movies = MovieService(store).all(Params(), None)

    assert [m["favorite"] for m in movies] == [False, False]
    assert len(graph.calls) == 1


def test_all_uses_requested_sort_and_order(graph, store):
    MovieService(store).all(Params(sort=Sort.RELEASED, order=Order.DESC, limit=5, skip=10))

    call = graph.calls[-1]
    assert "ORDER BY m.`released` DESC" in call.query
    assert call.params == {"skip": 10, "limit": 5}


def test_invalid_sort_rejected_before_transaction(graph, store):
    with pytest.raises(InvalidParameterError):
        MovieService(store).all(Params(sort=Sort.TIMESTAMP), USER)

    assert graph.sessions == []


def test_empty_listing_is_not_an_error(graph, store):
    assert MovieService(store).all(Params(), USER) == []


@pytest.mark.parametrize(
    "method, arg, pattern, binding",
    [
        ("by_genre", "Comedy", "-[:IN_GENRE]->(:Genre {name: $name})", "name"),
        ("for_actor", "31", "(:Person {tmdbId: $id})-[:ACTED_IN]->(m:Movie)", "id"),
        ("for_director", "1776", "(:Person {tmdbId: $id})-[:DIRECTED]->(m:Movie)", "id"),
    ],
)
def test_filtered_listings_share_the_listing_contract(graph, store, method, arg, pattern, binding):
    _favorites(graph, ["862"])
    _listing(graph, [TOY_STORY])

    movies = getattr(MovieService(store), method)(arg, Params(order=Order.DESC, limit=3), USER)

    assert movies == [{**TOY_STORY, "favorite": True}]
    call = graph.calls[-1]
    assert pattern in call.query
    assert "ORDER BY m.`title` DESC" in call.query
    assert call.params == {binding: arg, "skip": 0, "limit": 3}


def test_find_by_id_returns_details_with_favorite(graph, store):
    details = {
        **TOY_STORY,
        "actors": [{"name": "Tom Hanks", "role": "Woody (voice)"}],
        "directors": [{"name": "John Lasseter"}],
        "genres": [{"name": "Animation"}],
        "ratingCount": 2,
    }
    _favorites(graph, ["862"])
    graph.respond("actors: [", [{"movie": details}])

    movie = MovieService(store).find_by_id("862", USER)

    assert movie["favorite"] is True
    assert movie["actors"][0]["role"] == "Woody (voice)"
    assert graph.calls[-1].params == {"id": "862"}


def test_find_by_id_query_collects_related_entities():
    assert "a { .*, role: r.role }" in FIND_MOVIE_QUERY
    assert "(d:Person)-[:DIRECTED]->(m)" in FIND_MOVIE_QUERY
    assert "(m)-[:IN_GENRE]->(g:Genre)" in FIND_MOVIE_QUERY


def test_find_by_id_missing_raises_not_found(graph, store):
    with pytest.raises(NotFoundError) as excinfo:
        MovieService(store).find_by_id("nonexistent-id", None)

    assert excinfo.value.key == "nonexistent-id"


def test_similar_binds_source_and_annotates(graph, store):
    _favorites(graph, ["769"])
    graph.respond("AS movie", [{"movie": {**GOODFELLAS, "score": 17.4}}])

    movies = MovieService(store).similar("238", Params(limit=4, skip=0), USER)

    assert movies == [{**GOODFELLAS, "score": 17.4, "favorite": True}]
    call = graph.calls[-1]
    assert call.params == {"id": "238", "skip": 0, "limit": 4}
    assert "ORDER BY score DESC" in call.query


def test_similar_rejects_sort_and_order(graph, store):
    with pytest.raises(InvalidParameterError) as excinfo:
        MovieService(store).similar("238", Params(sort=Sort.NAME))

    assert excinfo.value.parameter == "sort"

    with pytest.raises(InvalidParameterError):
        MovieService(store).similar("238", Params(order=Order.ASC))

    assert graph.calls == []
