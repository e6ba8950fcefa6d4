import logging

from .database import GraphStore
from .errors import NotFoundError
from .params import PERSON_SORTS, Params, Sort
from .similarity import SIMILAR_PEOPLE

logger = logging.getLogger(__name__)

FIND_PERSON_QUERY = """
    MATCH (p:Person {tmdbId: $id})
    RETURN p {
        .*,
        actedCount: COUNT { (p)-[:ACTED_IN]->(:Movie) },
        directedCount: COUNT { (p)-[:DIRECTED]->(:Movie) }
    } AS person
    LIMIT 1
"""


class PeopleService:
    """Actors and directors. People are not favoritable, so rows carry no flag."""

    def __init__(self, store: GraphStore):
        self.store = store

    def all(self, params: Params) -> list[dict]:
        """
        People ordered by name, optionally filtered to names containing
        ``params.query`` (case-sensitive).
        """
        field = params.sort_field(PERSON_SORTS, Sort.NAME)
        query = f"""
            MATCH (p:Person)
            WHERE $q IS NULL OR p.name CONTAINS $q
            RETURN p {{ .* }} AS person
            ORDER BY p.`{field}` {params.direction()}
            SKIP $skip
            LIMIT $limit
        """
        rows = self.store.run_read(query, q=params.query, **params.bounds())
        return [row["person"] for row in rows]

    def find_by_id(self, person_id: str) -> dict:
        """
        Raises:
            NotFoundError: no person has ``person_id``
        """
        row = self.store.read(lambda tx: tx.single(FIND_PERSON_QUERY, id=person_id))
        if row is None:
            logger.warning(f"Person {person_id} not found")
            raise NotFoundError(f"Could not find a Person with tmdbId {person_id}", person_id)
        return row["person"]

    def similar(self, person_id: str, params: Params) -> list[dict]:
        """People who worked on the most of the same movies, with what they share."""
        params.require_unsorted()
        rows = self.store.run_read(SIMILAR_PEOPLE.query(), id=person_id, **params.bounds())
        return [row["person"] for row in rows]
