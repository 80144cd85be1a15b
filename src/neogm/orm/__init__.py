"""
NeoGM ORM Module

Entity declarations, instance persistence, repositories and the engine that
connects them to Neo4j.
"""

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

__all__ = [
    # Declarations
    "Property",
    "Relationship",
    "node",
    "declare_entity",
    "declare_property",
    "declare_relationship",
    "register_entity",

    # Persistence
    "NodeEntity",
    "Repository",
    "NeoGM",

    # Engine
    "GraphEngine",
    "create_graph_engine",
]
