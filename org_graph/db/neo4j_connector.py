import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from neo4j import Driver, GraphDatabase

logger = logging.getLogger(__name__)

Statement = Tuple[str, Dict[str, Any]]

_driver = None


class GraphExecutor(Protocol):
    """What the graph services need from a graph store.

    - execute_read runs a read-only query and returns rows as dicts.
    - execute_batch runs (query, parameters) pairs in order as ONE atomic unit;
      either every statement is committed or none is.
    """

    def execute_read(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        ...

    def execute_batch(self, statements: Iterable[Statement]) -> None:
        ...


class Neo4jExecutor:
    """GraphExecutor backed by a neo4j driver."""

    def __init__(self, driver: Driver, database: Optional[str] = None):
        self.driver = driver
        self.database = database

    def _session(self):
        if self.database:
            return self.driver.session(database=self.database)
        return self.driver.session()

    def execute_read(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        with self._session() as session:
            result = session.run(query, parameters or {})
            return [record.data() for record in result]

    def execute_batch(self, statements: Iterable[Statement]) -> None:
        """Run all statements inside a single explicit transaction.

        The transaction is rolled back when any statement fails and the
        driver error is re-raised unchanged.
        """
        batch = [_as_pair(s) for s in statements]
        if not batch:
            return
        with self._session() as session:
            tx = session.begin_transaction()
            try:
                for query, parameters in batch:
                    tx.run(query, parameters).consume()
                tx.commit()
            except Exception:
                logger.exception("Batch of %d statements failed, rolling back", len(batch))
                if not tx.closed():
                    tx.rollback()
                raise
            finally:
                tx.close()


def _as_pair(statement) -> Statement:
    # Accept plain (query, params) tuples or objects exposing .query/.parameters
    if isinstance(statement, tuple):
        query, parameters = statement
    else:
        query, parameters = statement.query, statement.parameters
    return query, dict(parameters or {})


def get_driver():
    """Return the shared Neo4j driver, creating it from configuration on first use."""
    global _driver
    if _driver is None:
        uri, user, pwd = _get_neo4j_config()
        try:
            _driver = GraphDatabase.driver(uri, auth=(user, pwd))
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create Neo4j driver for URI '{uri}'. Check that the database is running and the credentials are correct.\nError: {exc}"
            ) from exc
    return _driver


def close_driver():
    global _driver
    if _driver is not None:
        _driver.close()
        _driver = None


def default_executor() -> Neo4jExecutor:
    return Neo4jExecutor(get_driver(), database=os.getenv("NEO4J_DATABASE") or None)


def _load_env_from_file():
    """Load environment variables from a .env file at the project root if present.

    Only sets variables that aren't already present in the process environment.
    """
    root_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
    env_path = os.path.join(root_dir, ".env")
    if not os.path.isfile(env_path):
        return
    try:
        with open(env_path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except OSError as exc:
        logger.warning("Could not read %s: %s", env_path, exc)
        return
    for line in lines:
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        if "=" not in s:
            continue
        key, val = s.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        # Allow space around '=' like KEY = value
        if key and (key not in os.environ or not os.environ[key]):
            os.environ[key] = val


def _get_neo4j_config():
    """Get Neo4j URI, user, and password, loading .env if necessary and applying defaults.

    Returns (uri, user, password). Raises a helpful RuntimeError when required values are missing.
    """
    _load_env_from_file()

    uri = os.getenv("NEO4J_URI") or "bolt://localhost:7687"
    user = os.getenv("NEO4J_USER") or "neo4j"
    pwd = os.getenv("NEO4J_PASSWORD")

    if not pwd:
        raise RuntimeError(
            "One or more Neo4j settings are missing: NEO4J_PASSWORD\n"
            "Define them in your environment or in a .env file at the project root.\n"
            "Example: export NEO4J_URI=bolt://localhost:7687 NEO4J_USER=neo4j NEO4J_PASSWORD=your_password"
        )

    return uri, user, pwd
