# src/neogm/__init__.py
r"""
NeoGM - Object-Graph Mapping for Neo4j

Declare entity classes with typed properties and relationship pointers, then
persist and query them through generated, parameterized Cypher:

Example:
    ```python
    from datetime import datetime
    from neogm import NeoGM, NodeEntity, Property, Relationship, node, create_graph_engine

    @node("Company")
    class Company(NodeEntity):
        name = Property("string", required=True, unique=True)
        founded = Property("integer", validator=lambda year: 1800 <= year <= 2100)

    @node("Person")
    class Person(NodeEntity):
        name = Property("string", required=True)
        age = Property("integer")
        joined = Property(
            "datetime",
            transformer={"to": datetime.isoformat, "from": datetime.fromisoformat},
        )
        employer = Relationship("WORKS_FOR", lambda: Company)

    async with NeoGM(create_graph_engine("bolt://localhost:7687", ("neo4j", "secret"))) as neogm:
        people = neogm.get_repository(Person)

        alice = await people.create({"name": "Alice", "age": 30, "joined": datetime.now()})
        await alice.save()

        alice.age = 31
        await alice.save()

        thirty_somethings = await people.find(where={"age": 31}, order_by="name")
        assert await people.exists({"name": "Alice"})
    ```
"""

from neogm.core.metadata import (
    Direction,
    EntityClassDescriptor,
    MetadataRegistry,
    PropertyDescriptor,
    PropertyKind,
    RelationshipDescriptor,
    Transformer,
    metadata_registry,
)
from neogm.config import NeoGMSettings, get_settings
from neogm.exceptions import (
    InvalidStateError,
    MissingMetadataError,
    NeoGMError,
    NotFoundError,
    UnsupportedKeyError,
    ValidationError,
)
from neogm.orm.engine import GraphEngine, create_graph_engine
from neogm.orm.entities import NodeEntity
from neogm.orm.fields import (
    Property,
    Relationship,
    declare_entity,
    declare_property,
    declare_relationship,
    node,
    register_entity,
)
from neogm.orm.mapper import NeoGM
from neogm.orm.repository import Repository

__version__ = "0.1.0"

__all__ = [
    # Metadata
    "Direction",
    "EntityClassDescriptor",
    "MetadataRegistry",
    "PropertyDescriptor",
    "PropertyKind",
    "RelationshipDescriptor",
    "Transformer",
    "metadata_registry",

    # Declarations
    "Property",
    "Relationship",
    "node",
    "declare_entity",
    "declare_property",
    "declare_relationship",
    "register_entity",

    # Entities and queries
    "NodeEntity",
    "Repository",
    "NeoGM",

    # Engine and configuration
    "GraphEngine",
    "create_graph_engine",
    "NeoGMSettings",
    "get_settings",

    # Errors
    "NeoGMError",
    "MissingMetadataError",
    "UnsupportedKeyError",
    "ValidationError",
    "InvalidStateError",
    "NotFoundError",

    "__version__",
]
