import logging

from .database import GraphStore
from .errors import ValidationError
from .params import RATING_SORTS, Order, Params, Sort

logger = logging.getLogger(__name__)

# MERGE keeps a single RATED edge per (user, movie); SET overwrites it
ADD_RATING_QUERY = """
    MATCH (u:User {userId: $userId})
    MATCH (m:Movie {tmdbId: $movieId})
    MERGE (u)-[r:RATED]->(m)
    SET r.rating = $rating, r.timestamp = timestamp()
    RETURN m { .*, rating: r.rating } AS movie
"""


class RatingService:
    def __init__(self, store: GraphStore):
        self.store = store

    def for_movie(self, movie_id: str, params: Params) -> list[dict]:
        """
        Reviews of a movie, newest first unless another order is requested.

        Each row holds ``rating``, ``timestamp`` and the reviewer as
        ``user: {userId, name}``.
        """
        field = params.sort_field(RATING_SORTS, Sort.TIMESTAMP)
        query = f"""
            MATCH (u:User)-[r:RATED]->(:Movie {{tmdbId: $id}})
            RETURN r {{
                .rating,
                .timestamp,
                user: u {{ .userId, .name }}
            }} AS review
            ORDER BY r.`{field}` {params.direction(Order.DESC)}
            SKIP $skip
            LIMIT $limit
        """
        rows = self.store.run_read(query, id=movie_id, **params.bounds())
        return [row["review"] for row in rows]

    def add(self, user_id: str, movie_id: str, rating: int) -> dict:
        """
        Create or replace the user's rating of a movie.

        ``rating`` is expected to be validated (1-5) by the caller.

        Raises:
            ValidationError: the user or the movie does not exist
        """
        row = self.store.write(
            lambda tx: tx.single(ADD_RATING_QUERY, userId=user_id, movieId=movie_id, rating=int(rating))
        )
        if row is None:
            logger.warning(f"Rating not saved: user={user_id} movie={movie_id}")
            raise ValidationError(
                "Movie or user not found to add rating",
                {"movieId": movie_id, "userId": user_id},
            )
        logger.info(f"User {user_id} rated movie {movie_id}: {rating}")
        return row["movie"]
