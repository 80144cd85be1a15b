# tests/conftest.py
"""
Shared fixtures: an in-memory stand-in for the Neo4j driver.

FakeGraphStore executes exactly the Cypher shapes produced by
neogm.core.queries, so entity and repository behavior can be tested without
a database. FakeGraphEngine is a real GraphEngine whose sessions come from
that store; every session records its queries and has an AsyncMock `close`.
"""

import copy
import re
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

from neogm.core.metadata import MetadataRegistry
from neogm.orm.engine import GraphEngine


# =============================================================================
# FAKE DRIVER VALUES
# =============================================================================

class FakeNode(dict):
    """Node value: a mapping of properties plus element_id and labels."""

    def __init__(self, element_id: str, labels: Tuple[str, ...], properties: Dict[str, Any]):
        super().__init__(properties)
        self.element_id = element_id
        self.labels = frozenset(labels)


class FakeResult:
    """Async-iterable result, like neo4j.AsyncResult."""

    def __init__(self, records: List[Dict[str, Any]]):
        self._records = records

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for record in self._records:
            yield record


_LABEL = r"`(?P<label>(?:[^`]|``)+)`"
CREATE_RE = re.compile(rf"^CREATE \(n:{_LABEL}(?: \{{(?P<props>.*)\}})?\) RETURN n$")
MATCH_RE = re.compile(
    rf"^MATCH \(n:{_LABEL}\)"
    r"(?: WHERE (?P<where>.+?))?"
    r" (?P<action>SET n \+= \$props RETURN n|DELETE n RETURN count\(n\) AS deleted"
    r"|RETURN count\(n\) AS total|RETURN n)"
    r"(?: ORDER BY n\.(?P<order>\w+)(?P<desc> DESC)?)?"
    r"(?: SKIP (?P<skip>\d+))?"
    r"(?: LIMIT (?P<limit>\d+))?$"
)
PREDICATE_RE = re.compile(r"^n\.(?P<key>\w+) = \$(?P<param>\w+)$")


class FakeGraphStore:
    """In-memory nodes keyed by element id."""

    def __init__(self):
        self.nodes: Dict[str, Dict[str, Any]] = {}
        self._counter = 0

    def add(self, label: str, **properties: Any) -> str:
        self._counter += 1
        element_id = f"4:fake:{self._counter}"
        self.nodes[element_id] = {
            "label": label,
            "properties": {k: v for k, v in properties.items() if v is not None},
        }
        return element_id

    def node(self, element_id: str) -> FakeNode:
        data = self.nodes[element_id]
        return FakeNode(element_id, (data["label"],), dict(data["properties"]))

    def execute(self, query: str, parameters: Dict[str, Any]) -> List[Dict[str, Any]]:
        if query == "MATCH (n) DETACH DELETE n":
            self.nodes.clear()
            return []

        created = CREATE_RE.match(query)
        if created:
            label = created.group("label").replace("``", "`")
            properties = {}
            if created.group("props"):
                for assignment in created.group("props").split(", "):
                    key, param = assignment.split(": $")
                    properties[key] = parameters[param]
            return [{"n": self.node(self.add(label, **properties))}]

        matched = MATCH_RE.match(query)
        if not matched:
            raise AssertionError(f"FakeGraphStore cannot execute: {query}")

        label = matched.group("label").replace("``", "`")
        ids = [
            element_id for element_id, data in self.nodes.items()
            if data["label"] == label and self._matches(element_id, matched.group("where"), parameters)
        ]

        order = matched.group("order")
        if order:
            present = [i for i in ids if order in self.nodes[i]["properties"]]
            missing = [i for i in ids if order not in self.nodes[i]["properties"]]
            present.sort(
                key=lambda i: self.nodes[i]["properties"][order],
                reverse=bool(matched.group("desc")),
            )
            ids = present + missing
        if matched.group("skip"):
            ids = ids[int(matched.group("skip")):]
        if matched.group("limit"):
            ids = ids[:int(matched.group("limit"))]

        action = matched.group("action")
        if action.startswith("SET"):
            for element_id in ids:
                stored = self.nodes[element_id]["properties"]
                for key, value in parameters["props"].items():
                    if value is None:
                        stored.pop(key, None)
                    else:
                        stored[key] = value
            return [{"n": self.node(i)} for i in ids]
        if action.startswith("DELETE"):
            for element_id in ids:
                del self.nodes[element_id]
            return [{"deleted": len(ids)}]
        if "count" in action:
            return [{"total": len(ids)}]
        return [{"n": self.node(i)} for i in ids]

    def _matches(self, element_id: str, where: Optional[str], parameters: Dict[str, Any]) -> bool:
        if not where:
            return True
        properties = self.nodes[element_id]["properties"]
        for predicate in where.split(" AND "):
            if predicate == "elementId(n) = $id":
                if element_id != parameters["id"]:
                    return False
                continue
            equality = PREDICATE_RE.match(predicate)
            if not equality:
                raise AssertionError(f"Unsupported predicate: {predicate}")
            if properties.get(equality.group("key")) != parameters[equality.group("param")]:
                return False
        return True


# =============================================================================
# FAKE SESSION AND ENGINE
# =============================================================================

class FakeSession:
    def __init__(self, store: FakeGraphStore, fail_with: Optional[Exception] = None):
        self.store = store
        self.fail_with = fail_with
        self.queries: List[Tuple[str, Dict[str, Any]]] = []
        self.close = AsyncMock()

    async def run(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> FakeResult:
        parameters = parameters or {}
        self.queries.append((query, parameters))
        if self.fail_with is not None:
            raise self.fail_with
        return FakeResult(self.store.execute(query, parameters))

    async def execute_write(self, fn, *args, **kwargs):
        """Managed transaction: the session doubles as `tx`; failures roll the store back."""
        snapshot = copy.deepcopy(self.store.nodes)
        try:
            return await fn(self, *args, **kwargs)
        except Exception:
            self.store.nodes = snapshot
            raise


class FakeGraphEngine(GraphEngine):
    """GraphEngine whose sessions run against a FakeGraphStore."""

    def __init__(self, store: Optional[FakeGraphStore] = None):
        super().__init__(uri="bolt://fakehost:7687", auth=("neo4j", "test"))
        self.store = store or FakeGraphStore()
        self.sessions: List[FakeSession] = []
        self.fail_with: Optional[Exception] = None

    def get_session(self, database: Optional[str] = None) -> FakeSession:
        session = FakeSession(self.store, self.fail_with)
        self.sessions.append(session)
        return session

    @property
    def queries(self) -> List[Tuple[str, Dict[str, Any]]]:
        return [query for session in self.sessions for query in session.queries]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def registry() -> MetadataRegistry:
    """A fresh, empty metadata registry."""
    return MetadataRegistry()


@pytest.fixture
def store() -> FakeGraphStore:
    return FakeGraphStore()


@pytest.fixture
def fake_engine(store: FakeGraphStore) -> FakeGraphEngine:
    return FakeGraphEngine(store)
