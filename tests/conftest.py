import importlib
import os
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@dataclass
class Call:
    query: str
    params: dict
    mode: str


class FakeRecord:
    def __init__(self, row):
        self._row = dict(row)

    def data(self):
        return dict(self._row)


class FakeTransaction:
    def __init__(self, graph, mode):
        self.graph = graph
        self.mode = mode

    def run(self, query, parameters=None, **kwargs):
        params = dict(parameters or {}, **kwargs)
        return [FakeRecord(row) for row in self.graph.dispatch(query, params, self.mode)]


class FakeSession:
    def __init__(self, graph, **config):
        self.graph = graph
        self.config = config
        self.closed = False

    def __enter__(self):
        self.graph.sessions.append(self)
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def execute_read(self, work, *args, **kwargs):
        return self._execute("read", work, *args, **kwargs)

    def execute_write(self, work, *args, **kwargs):
        return self._execute("write", work, *args, **kwargs)

    def _execute(self, mode, work, *args, **kwargs):
        self.graph.transactions.append(mode)
        try:
            result = work(FakeTransaction(self.graph, mode), *args, **kwargs)
        except Exception:
            self.graph.rollbacks += 1
            raise
        self.graph.commits += 1
        return result


class FakeDriver:
    def __init__(self, graph):
        self.graph = graph
        self.closed = False

    def session(self, **config):
        return FakeSession(self.graph, **config)

    def verify_connectivity(self):
        return None

    def close(self):
        self.closed = True


class FakeGraph:
    """
    Scripted stand-in for a Neo4j server.

    Tests register responders keyed by a fragment of query text; the most
    recently registered matching responder answers.  A responder is either a
    list of rows or a callable taking the bound parameters.  Every query is
    recorded in ``calls``.
    """

    def __init__(self):
        self.calls: list[Call] = []
        self.transactions: list[str] = []
        self.sessions: list[FakeSession] = []
        self.commits = 0
        self.rollbacks = 0
        self._responders = []
        self.driver = FakeDriver(self)

    def respond(self, fragment, rows):
        self._responders.append((fragment, rows))

    def dispatch(self, query, params, mode):
        self.calls.append(Call(query, params, mode))
        for fragment, rows in reversed(self._responders):
            if fragment in query:
                return list(rows(params) if callable(rows) else rows)
        return []

    def queries(self, fragment):
        return [call for call in self.calls if fragment in call.query]


@pytest.fixture
def graph():
    return FakeGraph()


@pytest.fixture
def store(graph):
    from neoflix.database import GraphStore

    return GraphStore(graph.driver)


@pytest.fixture
def fresh_config(monkeypatch):
    """
    Reload config so environment overrides set by the test take effect.
    """
    import neoflix.config as config

    yield lambda: importlib.reload(config)
    monkeypatch.undo()
    importlib.reload(config)


@pytest.fixture(scope="session")
def neo4j_driver():
    """
    Driver for a disposable Neo4j server.

    Connects to NEOFLIX_TEST_NEO4J_URI when it is set (that database is wiped
    by the tests), otherwise starts a Neo4j 5 container.  Skips when neither
    is available.
    """
    from neo4j import GraphDatabase
    from neo4j.exceptions import DriverError, Neo4jError

    uri = os.environ.get("NEOFLIX_TEST_NEO4J_URI")
    if uri:
        driver = GraphDatabase.driver(uri, auth=(
            os.environ.get("NEOFLIX_TEST_NEO4J_USERNAME", "neo4j"),
            os.environ.get("NEOFLIX_TEST_NEO4J_PASSWORD", ""),
        ))
        try:
            driver.verify_connectivity()
        except (DriverError, Neo4jError) as e:
            driver.close()
            pytest.skip(f"Neo4j at {uri} unavailable: {e}")
        yield driver
        driver.close()
        return

    containers = pytest.importorskip("testcontainers.neo4j")
    docker_errors = pytest.importorskip("docker.errors")
    try:
        container = containers.Neo4jContainer("neo4j:5")
        container.start()
    except docker_errors.DockerException as e:
        pytest.skip(f"Docker unavailable for a Neo4j container: {e}")
    try:
        driver = container.get_driver()
        yield driver
        driver.close()
    finally:
        container.stop()


@pytest.fixture
def seeded_store(neo4j_driver):
    """Empty the live graph, load the bundled fixtures and return a store on it."""
    from neoflix import fixtures
    from neoflix.database import GraphStore

    store = GraphStore(neo4j_driver)
    store.run_write("MATCH (n) DETACH DELETE n")
    fixtures.clear_cache()
    fixtures.seed(store, progress=False)
    return store
