"""
NeoGM Core Module

Metadata descriptors and the pure Cypher translation they drive. Nothing in
this package talks to the database.
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
from neogm.core.queries import CypherQuery

__all__ = [
    "CypherQuery",
    "Direction",
    "EntityClassDescriptor",
    "MetadataRegistry",
    "PropertyDescriptor",
    "PropertyKind",
    "RelationshipDescriptor",
    "Transformer",
    "metadata_registry",
]
