import logging
import threading
from typing import Any, Callable, TypeVar

from neo4j import GraphDatabase

from .config import (
    NEO4J_URI, NEO4J_USERNAME, NEO4J_PASSWORD, NEO4J_DATABASE,
    MAX_CONNECTION_POOL_SIZE, CONNECTION_TIMEOUT,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _first_line(query: str) -> str:
    return next((line.strip() for line in query.splitlines() if line.strip()), "")


class GraphTransaction:
    """
    Thin view over a driver transaction that hands rows back as plain dicts.

    Records are materialized before returning so no result cursor outlives the
    transaction function.
    """

    def __init__(self, tx):
        self._tx = tx

    def rows(self, query: str, **params) -> list[dict[str, Any]]:
        """Run a query and return every row as an ordered field -> value mapping."""
        logger.debug(f"Running query: {_first_line(query)} params={sorted(params)}")
        result = self._tx.run(query, params)
        return [record.data() for record in result]

    def single(self, query: str, **params) -> dict[str, Any] | None:
        """
        Run a query expected to match at most one row.

        Returns None when nothing matched; callers decide whether absence is
        an error.
        """
        rows = self.rows(query, **params)
        if len(rows) > 1:
            logger.warning(f"Expected at most one row, got {len(rows)}: {_first_line(query)}")
        return rows[0] if rows else None


class GraphStore:
    """
    Transactional access to the Neo4j catalog graph.

    Every call to ``read``/``write`` opens one session and one managed
    transaction; the session is always closed and the transaction is
    committed on success or rolled back if ``work`` raises.  All sessions share
    one bookmark manager so a read issued after a committed write sees it.
    """

    def __init__(self, driver, database: str | None = None, bookmark_manager=None):
        self._driver = driver
        self._database = database
        self._bookmarks = bookmark_manager or GraphDatabase.bookmark_manager()

    def _session(self):
        return self._driver.session(database=self._database, bookmark_manager=self._bookmarks)

    def read(self, work: Callable[..., T], *args, **kwargs) -> T:
        """Run ``work(tx, *args, **kwargs)`` inside a single read transaction."""
        with self._session() as session:
            return session.execute_read(lambda tx: work(GraphTransaction(tx), *args, **kwargs))

    def write(self, work: Callable[..., T], *args, **kwargs) -> T:
        """Run ``work(tx, *args, **kwargs)`` inside a single write transaction."""
        with self._session() as session:
            return session.execute_write(lambda tx: work(GraphTransaction(tx), *args, **kwargs))

    def run_read(self, query: str, **params) -> list[dict[str, Any]]:
        return self.read(lambda tx: tx.rows(query, **params))

    def run_write(self, query: str, **params) -> list[dict[str, Any]]:
        return self.write(lambda tx: tx.rows(query, **params))

    def close(self) -> None:
        self._driver.close()


def init_driver(uri: str = None, username: str = None, password: str = None):
    """Create a driver from configuration and fail fast if the server is unreachable."""
    driver = GraphDatabase.driver(
        uri or NEO4J_URI,
        auth=(username or NEO4J_USERNAME, password if password is not None else NEO4J_PASSWORD),
        max_connection_pool_size=MAX_CONNECTION_POOL_SIZE,
        connection_acquisition_timeout=CONNECTION_TIMEOUT,
    )
    driver.verify_connectivity()
    logger.info(f"Connected to Neo4j at {uri or NEO4J_URI}")
    return driver


# Global store instance
_store: GraphStore | None = None
_store_lock = threading.Lock()


def get_store() -> GraphStore:
    """Get or create the process-wide graph store."""
    global _store
    if _store is None:
        with _store_lock:
            if _store is None:
                _store = GraphStore(init_driver(), database=NEO4J_DATABASE)
    return _store


def set_store(store: GraphStore | None) -> None:
    """Install a pre-built store (tests, embedding applications)."""
    global _store
    with _store_lock:
        _store = store


def close_store() -> None:
    """Close the global store. Call on application shutdown."""
    global _store
    with _store_lock:
        if _store is not None:
            _store.close()
            _store = None
            logger.info("Neo4j driver closed")
