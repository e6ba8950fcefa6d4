import logging

from .config import NO_GENRE_SENTINEL
from .database import GraphStore
from .errors import NotFoundError

logger = logging.getLogger(__name__)

# Poster of the best rated movie in the genre, plus the movie count
_GENRE_PROJECTION = """
    CALL {
        WITH g
        OPTIONAL MATCH (g)<-[:IN_GENRE]-(m:Movie)
        WHERE m.imdbRating IS NOT NULL AND m.poster IS NOT NULL
        RETURN m.poster AS poster
        ORDER BY m.imdbRating DESC
        LIMIT 1
    }
    RETURN g {
        .*,
        movies: COUNT { (g)<-[:IN_GENRE]-(:Movie) },
        poster: poster
    } AS genre
"""

ALL_GENRES_QUERY = f"""
    MATCH (g:Genre)
    WHERE g.name <> $excluded
    {_GENRE_PROJECTION}
    ORDER BY g.name ASC
"""

FIND_GENRE_QUERY = f"""
    MATCH (g:Genre {{name: $name}})
    {_GENRE_PROJECTION}
    LIMIT 1
"""


class GenreService:
    def __init__(self, store: GraphStore):
        self.store = store

    def all(self) -> list[dict]:
        """Every real genre with ``movies`` count and a background ``poster``, by name."""
        rows = self.store.run_read(ALL_GENRES_QUERY, excluded=NO_GENRE_SENTINEL)
        return [row["genre"] for row in rows]

    def find(self, name: str) -> dict:
        """
        Raises:
            NotFoundError: no genre is called exactly ``name``
        """
        row = self.store.read(lambda tx: tx.single(FIND_GENRE_QUERY, name=name))
        if row is None:
            logger.warning(f"Genre '{name}' not found")
            raise NotFoundError(f"Genre {name} not found", name)
        return row["genre"]
