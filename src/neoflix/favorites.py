"""
Per-user "My Favorites" state.

``resolve_favorites`` is the shared resolver every movie listing calls inside
its own read transaction; ``FavoriteService`` owns the HAS_FAVORITE mutations.
"""
import logging

from .database import GraphStore, GraphTransaction
from .errors import ValidationError
from .params import MOVIE_SORTS, Params, Sort

logger = logging.getLogger(__name__)

FAVORITE_IDS_QUERY = """
    MATCH (:User {userId: $userId})-[:HAS_FAVORITE]->(m:Movie)
    RETURN m.tmdbId AS id
"""

ADD_FAVORITE_QUERY = """
    MATCH (u:User {userId: $userId})
    MATCH (m:Movie {tmdbId: $movieId})
    MERGE (u)-[r:HAS_FAVORITE]->(m)
    ON CREATE SET r.createdAt = datetime()
    RETURN m { .* } AS movie
"""

REMOVE_FAVORITE_QUERY = """
    MATCH (:User {userId: $userId})-[r:HAS_FAVORITE]->(m:Movie {tmdbId: $movieId})
    DELETE r
    RETURN m { .* } AS movie
"""


def resolve_favorites(tx: GraphTransaction, user_id: str | None) -> frozenset[str]:
    """
    Ids of the movies ``user_id`` has favorited, read through ``tx``.

    Anonymous callers get an empty set without a round trip.
    """
    if not user_id:
        return frozenset()
    return frozenset(row["id"] for row in tx.rows(FAVORITE_IDS_QUERY, userId=user_id))


def annotate(movie: dict, favorites: frozenset[str]) -> dict:
    """Copy of ``movie`` with its ``favorite`` flag set from ``favorites``."""
    return {**movie, "favorite": movie.get("tmdbId") in favorites}


class FavoriteService:
    def __init__(self, store: GraphStore):
        self.store = store

    def all(self, user_id: str, params: Params) -> list[dict]:
        """The user's favorite movies, sorted and paginated."""
        field = params.sort_field(MOVIE_SORTS, Sort.TITLE)
        query = f"""
            MATCH (:User {{userId: $userId}})-[:HAS_FAVORITE]->(m:Movie)
            WHERE m.`{field}` IS NOT NULL
            RETURN m {{ .* }} AS movie
            ORDER BY m.`{field}` {params.direction()}
            SKIP $skip
            LIMIT $limit
        """
        rows = self.store.run_read(query, userId=user_id, **params.bounds())
        return [{**row["movie"], "favorite": True} for row in rows]

    def add(self, user_id: str, movie_id: str) -> dict:
        """
        Mark a movie as a favorite of the user.

        Re-adding an existing favorite leaves the original relationship (and
        its ``createdAt``) untouched.

        Raises:
            ValidationError: the user or the movie does not exist
        """
        row = self.store.write(
            lambda tx: tx.single(ADD_FAVORITE_QUERY, userId=user_id, movieId=movie_id)
        )
        if row is None:
            logger.warning(f"Favorite not created: user={user_id} movie={movie_id}")
            raise ValidationError(
                "Couldn't create a favorite relationship for user",
                {"movieId": movie_id, "userId": user_id},
            )
        logger.info(f"User {user_id} favorited movie {movie_id}")
        return {**row["movie"], "favorite": True}

    def remove(self, user_id: str, movie_id: str) -> dict:
        """
        Remove a movie from the user's favorites.

        Raises:
            ValidationError: there is no such favorite relationship
        """
        row = self.store.write(
            lambda tx: tx.single(REMOVE_FAVORITE_QUERY, userId=user_id, movieId=movie_id)
        )
        if row is None:
            logger.warning(f"No favorite to remove: user={user_id} movie={movie_id}")
            raise ValidationError(
                "Could not find the favorite relationship",
                {"movieId": movie_id, "userId": user_id},
            )
        logger.info(f"User {user_id} unfavorited movie {movie_id}")
        return {**row["movie"], "favorite": False}
