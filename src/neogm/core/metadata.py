# src/neogm/core/metadata.py
"""
NeoGM Metadata Registry

Descriptors capture the declared shape of every entity class: its node label,
its persisted properties and its relationship pointers. The registry maps a
class object to its descriptor and is consulted by the entity and repository
layers every time they build a query or hydrate a record.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type
import threading

from pydantic import BaseModel, ConfigDict, Field

from neogm.exceptions import MissingMetadataError


class PropertyKind(str, Enum):
    """Declared storage kind of a property. Informational only, never coerced."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DATE = "date"
    LIST = "list"
    MAP = "map"
    ANY = "any"


class Direction(str, Enum):
    """Direction of a relationship as seen from the declaring entity."""

    OUT = "out"
    IN = "in"
    BOTH = "both"


class Transformer(BaseModel):
    """
    Symmetric value conversion between domain and storage form.

    `to` runs on the write path (domain -> storage), `from_` runs on the read
    path (storage -> domain). `from_` may also be supplied under the key
    ``"from"``, e.g. ``Transformer.model_validate({"to": f, "from": g})``.
    """

    to: Optional[Callable[[Any], Any]] = None
    from_: Optional[Callable[[Any], Any]] = Field(default=None, alias="from")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_storage(self, value: Any) -> Any:
        return self.to(value) if self.to is not None else value

    def from_storage(self, value: Any) -> Any:
        return self.from_(value) if self.from_ is not None else value


class PropertyDescriptor(BaseModel):
    """Metadata for one persisted field."""

    key: str = Field(..., min_length=1)
    kind: PropertyKind
    required: bool = False
    unique: bool = False  # advisory, not enforced here
    indexed: bool = False  # advisory, not enforced here
    validator: Optional[Callable[[Any], bool]] = None
    transformer: Optional[Transformer] = None

    model_config = ConfigDict(frozen=True)

    def to_storage(self, value: Any) -> Any:
        """Apply the write-side transform, if any."""
        if self.transformer is None:
            return value
        return self.transformer.to_storage(value)

    def from_storage(self, value: Any) -> Any:
        """Apply the read-side transform, if any."""
        if self.transformer is None:
            return value
        return self.transformer.from_storage(value)


class RelationshipDescriptor(BaseModel):
    """
    Metadata for one relationship pointer.

    The target is resolved lazily so that entity classes may reference each
    other regardless of declaration order.
    """

    key: str = Field(..., min_length=1)
    relation_type: str = Field(..., min_length=1)
    target: Callable[[], Any]
    direction: Direction = Direction.OUT
    multiple: bool = False
    required: bool = False

    model_config = ConfigDict(frozen=True)

    def resolve_target(self) -> Type:
        """Return the target entity class."""
        if isinstance(self.target, type):
            return self.target
        return self.target()


class EntityClassDescriptor(BaseModel):
    """Declared shape of one entity class."""

    label: str = Field(..., min_length=1)
    properties: Dict[str, PropertyDescriptor] = Field(default_factory=dict)
    relationships: Dict[str, RelationshipDescriptor] = Field(default_factory=dict)


class MetadataRegistry:
    """
    Maps entity classes to their EntityClassDescriptor.

    Declarations are expected to happen once, at import time, before any
    entity traffic. Writes are serialized; reads take no lock.
    """

    def __init__(self) -> None:
        self._descriptors: Dict[type, EntityClassDescriptor] = {}
        self._lock = threading.RLock()

    def get_or_create_descriptor(self, entity_class: type) -> EntityClassDescriptor:
        descriptor = self._descriptors.get(entity_class)
        if descriptor is not None:
            return descriptor
        with self._lock:
            descriptor = self._descriptors.get(entity_class)
            if descriptor is None:
                descriptor = EntityClassDescriptor(label=entity_class.__name__)
                self._descriptors[entity_class] = descriptor
            return descriptor

    def set_label(self, entity_class: type, label: str) -> None:
        with self._lock:
            self.get_or_create_descriptor(entity_class).label = label

    def add_property(self, entity_class: type, descriptor: PropertyDescriptor) -> None:
        with self._lock:
            self.get_or_create_descriptor(entity_class).properties[descriptor.key] = descriptor

    def add_relationship(self, entity_class: type, descriptor: RelationshipDescriptor) -> None:
        with self._lock:
            self.get_or_create_descriptor(entity_class).relationships[descriptor.key] = descriptor

    def get_descriptor(self, entity_class: type) -> Optional[EntityClassDescriptor]:
        return self._descriptors.get(entity_class)

    def require_descriptor(self, entity_class: type) -> EntityClassDescriptor:
        """
        Return the descriptor for `entity_class`.

        Raises:
            MissingMetadataError: If the class was never declared.
        """
        descriptor = self._descriptors.get(entity_class)
        if descriptor is None:
            raise MissingMetadataError(entity_class)
        return descriptor

    def list_property_keys(self, entity_class: type) -> List[str]:
        descriptor = self._descriptors.get(entity_class)
        return list(descriptor.properties) if descriptor else []

    def list_relationship_keys(self, entity_class: type) -> List[str]:
        descriptor = self._descriptors.get(entity_class)
        return list(descriptor.relationships) if descriptor else []

    def registered_classes(self) -> List[type]:
        return list(self._descriptors)

    def get_class_by_label(self, label: str) -> Optional[type]:
        """Get the first registered class using `label`."""
        for entity_class, descriptor in self._descriptors.items():
            if descriptor.label == label:
                return entity_class
        return None

    def __contains__(self, entity_class: object) -> bool:
        return entity_class in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)


# Process-wide default registry used when no registry is passed explicitly.
metadata_registry = MetadataRegistry()
