# src/neogm/orm/mapper.py
"""
NeoGM facade

NeoGM ties one GraphEngine to the repositories built on it and carries the
database-wide conveniences: raw Cypher, managed transactions and clearing
the database.
"""

from typing import (
    Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar, Union,
)

from neogm.config import NeoGMSettings
from neogm.core.queries import clear_all
from neogm.orm.engine import GraphEngine
from neogm.orm.entities import NodeEntity
from neogm.orm.repository import Repository


EntityType = TypeVar("EntityType", bound=NodeEntity)
T = TypeVar("T")


def flatten_value(value: Any) -> Any:
    """Turn graph values (nodes, relationships) into property dicts carrying their `id`."""
    if hasattr(value, "element_id") and hasattr(value, "items"):
        return {**dict(value.items()), "id": value.element_id}
    if isinstance(value, list):
        return [flatten_value(item) for item in value]
    return value


def flatten_record(record: Any) -> Dict[str, Any]:
    return {key: flatten_value(value) for key, value in record.items()}


RawStatement = Union[Mapping[str, Any], Sequence[Any]]


def _as_statement(item: RawStatement) -> Tuple[str, Dict[str, Any]]:
    if isinstance(item, Mapping):
        return item["query"], dict(item.get("parameters") or {})
    query, parameters = item
    return query, dict(parameters or {})


class NeoGM:
    """
    Application entry point.

    Example:
        ```python
        neogm = NeoGM(create_graph_engine("bolt://localhost:7687", ("neo4j", "secret")))
        await neogm.connect()

        people = neogm.get_repository(Person)
        alice = await people.create({"name": "Alice"})
        await alice.save()

        rows = await neogm.raw_query(
            "MATCH (p:Person)-[:WORKS_FOR]->(c:Company) RETURN p, c.name AS company"
        )
        await neogm.disconnect()
        ```
    """

    def __init__(self, engine: Optional[GraphEngine] = None, *, settings: Optional[NeoGMSettings] = None):
        self.engine = engine or GraphEngine.from_settings(settings)
        self._repositories: Dict[type, Repository] = {}

    async def connect(self) -> None:
        await self.engine.connect()

    async def disconnect(self) -> None:
        await self.engine.close()

    def is_connected(self) -> bool:
        return self.engine.connected

    def get_repository(self, entity_class: Type[EntityType]) -> Repository[EntityType]:
        """Get the repository for `entity_class`, created once and cached."""
        repository = self._repositories.get(entity_class)
        if repository is None:
            repository = Repository(entity_class, self.engine)
            self._repositories[entity_class] = repository
        return repository

    def create_entity(
        self,
        entity_class: Type[EntityType],
        data: Optional[Mapping[str, Any]] = None,
        **values: Any
    ) -> EntityType:
        """Build an unsaved entity bound to this engine."""
        entity = entity_class(engine=self.engine)
        entity.set_values({**(data or {}), **values})
        return entity

    async def raw_query(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Run arbitrary Cypher and return one dict per record.

        Node and relationship values are flattened to their properties plus `id`.
        """
        records = await self.engine.run(query, parameters)
        return [flatten_record(record) for record in records]

    async def raw_queries_in_transaction(
        self,
        queries: Iterable[RawStatement],
        callback: Optional[Callable[[List[List[Dict[str, Any]]]], T]] = None,
    ) -> Any:
        """
        Run several Cypher statements, in order, in one write transaction.

        Each statement is a `{"query": ..., "parameters": ...}` mapping or a
        `(query, parameters)` pair such as a CypherQuery. Either all statements
        commit or none do.

        Returns:
            One list of flattened records per statement, or `callback(results)`
            when a callback is given
        """
        statements = [_as_statement(item) for item in queries]

        async def run_all(tx: Any) -> List[List[Dict[str, Any]]]:
            results: List[List[Dict[str, Any]]] = []
            for query, parameters in statements:
                result = await tx.run(query, parameters)
                results.append([flatten_record(record) async for record in result])
            return results

        results = await self.engine.execute_write(run_all)
        return callback(results) if callback is not None else results

    async def execute_in_transaction(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run `fn(tx, ...)` in a managed write transaction."""
        return await self.engine.execute_write(fn, *args, **kwargs)

    async def execute_read_transaction(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run `fn(tx, ...)` in a managed read transaction."""
        return await self.engine.execute_read(fn, *args, **kwargs)

    async def clear_database(self) -> None:
        """Delete every node and relationship in the default database."""
        query = clear_all()
        await self.engine.run(query.text, query.parameters)

    async def __aenter__(self) -> "NeoGM":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()
