import logging

from .database import GraphStore, GraphTransaction
from .errors import NotFoundError
from .favorites import annotate, resolve_favorites
from .params import MOVIE_SORTS, Params, Sort
from .similarity import SIMILAR_MOVIES

logger = logging.getLogger(__name__)

FIND_MOVIE_QUERY = """
    MATCH (m:Movie {tmdbId: $id})
    RETURN m {
        .*,
        actors: [ (a:Person)-[r:ACTED_IN]->(m) | a { .*, role: r.role } ],
        directors: [ (d:Person)-[:DIRECTED]->(m) | d { .* } ],
        genres: [ (m)-[:IN_GENRE]->(g:Genre) | g { .name } ],
        ratingCount: COUNT { (m)<-[:RATED]-(:User) }
    } AS movie
    LIMIT 1
"""

# Traversals that select which movies a listing covers; each binds `m`
ALL_MOVIES = "MATCH (m:Movie)"
MOVIES_IN_GENRE = "MATCH (m:Movie)-[:IN_GENRE]->(:Genre {name: $name})"
MOVIES_FOR_ACTOR = "MATCH (:Person {tmdbId: $id})-[:ACTED_IN]->(m:Movie)"
MOVIES_FOR_DIRECTOR = "MATCH (:Person {tmdbId: $id})-[:DIRECTED]->(m:Movie)"


def movie_listing_query(match: str, field: str, direction: str) -> str:
    """
    Sorted, paginated movie listing over ``match``.

    ``field`` and ``direction`` must come from ``Params.sort_field`` and
    ``Params.direction``; they are the only values spliced into the text.
    """
    return f"""
        {match}
        WHERE m.`{field}` IS NOT NULL
        RETURN m {{ .* }} AS movie
        ORDER BY m.`{field}` {direction}
        SKIP $skip
        LIMIT $limit
    """


class MovieService:
    """
    Read operations over Movie nodes.

    Every operation runs in one read transaction that first resolves the
    caller's favorites and then runs the listing, so the ``favorite`` flags
    and the rows come from the same snapshot.
    """

    def __init__(self, store: GraphStore):
        self.store = store

    def _list(self, match: str, params: Params, user_id: str | None, **bindings) -> list[dict]:
        # Validate before any transaction is opened
        query = movie_listing_query(
            match, params.sort_field(MOVIE_SORTS, Sort.TITLE), params.direction()
        )

        def work(tx: GraphTransaction) -> list[dict]:
            favorites = resolve_favorites(tx, user_id)
            rows = tx.rows(query, **bindings, **params.bounds())
            return [annotate(row["movie"], favorites) for row in rows]

        return self.store.read(work)

    def all(self, params: Params, user_id: str | None = None) -> list[dict]:
        """Every movie with a value for the sort field, ordered and paginated."""
        return self._list(ALL_MOVIES, params, user_id)

    def by_genre(self, name: str, params: Params, user_id: str | None = None) -> list[dict]:
        return self._list(MOVIES_IN_GENRE, params, user_id, name=name)

    def for_actor(self, actor_id: str, params: Params, user_id: str | None = None) -> list[dict]:
        return self._list(MOVIES_FOR_ACTOR, params, user_id, id=actor_id)

    def for_director(self, director_id: str, params: Params, user_id: str | None = None) -> list[dict]:
        return self._list(MOVIES_FOR_DIRECTOR, params, user_id, id=director_id)

    def find_by_id(self, movie_id: str, user_id: str | None = None) -> dict:
        """
        A single movie with its actors (each carrying ``role``), directors,
        genre names and ``ratingCount``.

        Raises:
            NotFoundError: no movie has ``movie_id``
        """
        def work(tx: GraphTransaction) -> dict | None:
            favorites = resolve_favorites(tx, user_id)
            row = tx.single(FIND_MOVIE_QUERY, id=movie_id)
            return annotate(row["movie"], favorites) if row else None

        movie = self.store.read(work)
        if movie is None:
            logger.warning(f"Movie {movie_id} not found")
            raise NotFoundError(f"Could not find a Movie with tmdbId {movie_id}", movie_id)
        return movie

    def similar(self, movie_id: str, params: Params, user_id: str | None = None) -> list[dict]:
        """
        Movies sharing genres, actors or directors with ``movie_id``, best
        ``score`` first.  An unknown id yields an empty list.

        Raises:
            InvalidParameterError: ``params`` carries a sort key or order
        """
        params.require_unsorted()
        query = SIMILAR_MOVIES.query()

        def work(tx: GraphTransaction) -> list[dict]:
            favorites = resolve_favorites(tx, user_id)
            rows = tx.rows(query, id=movie_id, **params.bounds())
            return [annotate(row["movie"], favorites) for row in rows]

        return self.store.read(work)
