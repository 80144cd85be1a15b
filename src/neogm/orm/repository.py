# src/neogm/orm/repository.py
"""
NeoGM Repository - collection-level queries for one entity class

A Repository binds an entity class to a GraphEngine. Lookups translate flat
equality filters into parameterized Cypher and hydrate the returned nodes
into typed, loaded instances that share the repository's engine.
"""

from __future__ import annotations

from typing import Any, Generic, List, Mapping, Optional, Type, TypeVar

from neogm.core.metadata import EntityClassDescriptor
from neogm.core.queries import count_nodes, find_nodes, match_by_id
from neogm.orm.engine import GraphEngine
from neogm.orm.entities import NODE_KEY, NodeEntity


EntityType = TypeVar("EntityType", bound=NodeEntity)


class Repository(Generic[EntityType]):
    """
    Query and persistence surface for one entity class.

    Example:
        ```python
        people = Repository(Person, engine)
        alice = await people.create({"name": "Alice", "age": 30})
        await alice.save()

        thirty = await people.find(where={"age": 30}, order_by="-name", limit=10)
        total = await people.count({"age": 30})
        ```
    """

    def __init__(self, entity_class: Type[EntityType], engine: GraphEngine):
        self.entity_class = entity_class
        self.engine = engine

    def _get_metadata(self) -> EntityClassDescriptor:
        return self.entity_class.__registry__.require_descriptor(self.entity_class)

    def _from_node(self, node_value: Any) -> EntityType:
        return self.entity_class._from_node(node_value, engine=self.engine)

    # =============================================================================
    # QUERIES
    # =============================================================================

    async def find_by_id(self, entity_id: Any) -> Optional[EntityType]:
        """
        Get entity by identity.

        Returns:
            Entity instance or None if not found
        """
        query = match_by_id(self._get_metadata().label, entity_id)
        records = await self.engine.run(query.text, query.parameters)
        if not records:
            return None
        return self._from_node(records[0][NODE_KEY])

    async def find_one(self, where: Mapping[str, Any]) -> Optional[EntityType]:
        """Get the first entity matching `where`, or None."""
        results = await self.find(where=where, limit=1)
        return results[0] if results else None

    async def find(
        self,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        skip: Optional[int] = None,
    ) -> List[EntityType]:
        """
        Find entities by flat equality filters.

        Args:
            where: Property/value pairs, all of which must match
            order_by: Property to sort by, prefix with '-' for descending
            limit: Maximum number of results
            skip: Number of results to skip

        Returns:
            Hydrated entities in the order returned by the database
        """
        query = find_nodes(
            self._get_metadata().label,
            where=where,
            order_by=order_by,
            limit=limit,
            skip=skip,
        )
        records = await self.engine.run(query.text, query.parameters)
        return [self._from_node(record[NODE_KEY]) for record in records]

    async def count(self, where: Optional[Mapping[str, Any]] = None) -> int:
        """Count entities matching `where` (all entities when omitted)."""
        query = count_nodes(self._get_metadata().label, where)
        records = await self.engine.run(query.text, query.parameters)
        if not records:
            return 0
        return int(records[0]["total"] or 0)

    async def exists(self, where: Mapping[str, Any]) -> bool:
        """Check if any entity matches `where`."""
        return await self.count(where) > 0

    # =============================================================================
    # PERSISTENCE
    # =============================================================================

    async def create(self, data: Optional[Mapping[str, Any]] = None, **values: Any) -> EntityType:
        """
        Build a new, unsaved entity bound to this repository's engine.

        No validation happens here; it runs when the entity is saved.
        """
        entity = self.entity_class(engine=self.engine)
        entity.set_values({**(data or {}), **values})
        return entity

    async def save(self, entity: EntityType) -> EntityType:
        if not entity.has_engine():
            entity.set_engine(self.engine)
        return await entity.save()

    async def delete(self, entity: EntityType) -> bool:
        if not entity.has_engine():
            entity.set_engine(self.engine)
        return await entity.delete()

    def __repr__(self) -> str:
        return f"Repository({self.entity_class.__name__})"
