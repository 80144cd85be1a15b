# src/neogm/orm/fields.py
"""
NeoGM Field Declarations

Property and Relationship are class-body descriptors. They hold the options
a field was declared with and store per-instance values in the instance
``__dict__``. Declaring a NodeEntity subclass registers every field found on
the class with the metadata registry; `node` sets the class label.

Example:
    ```python
    @node("Person")
    class Person(NodeEntity):
        name = Property("string", required=True)
        age = Property("integer", validator=lambda v: v >= 0)
        company = Relationship("WORKS_FOR", lambda: Company)
        friends = Relationship("FRIEND_OF", lambda: Person, direction="both", multiple=True)
    ```
"""
import copy
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Type, Union

from neogm.core.metadata import (
    Direction,
    MetadataRegistry,
    PropertyDescriptor,
    PropertyKind,
    RelationshipDescriptor,
    Transformer,
    metadata_registry,
)
from neogm.exceptions import UnsupportedKeyError


TransformerLike = Union[Transformer, Mapping[str, Callable[[Any], Any]]]


def _as_transformer(transformer: Optional[TransformerLike]) -> Optional[Transformer]:
    if transformer is None or isinstance(transformer, Transformer):
        return transformer
    return Transformer.model_validate(dict(transformer))


class _FieldBase:
    """Shared descriptor plumbing: values live in the instance __dict__."""

    def __init__(self) -> None:
        self.key: Optional[str] = None  # Set by __set_name__

    def __set_name__(self, owner: Type, name: str) -> None:
        self.key = name

    def __get__(self, instance: Any, owner: Type) -> Any:
        if instance is None:
            return self
        return instance.__dict__.get(self.key)

    def __set__(self, instance: Any, value: Any) -> None:
        instance.__dict__[self.key] = value

    def __delete__(self, instance: Any) -> None:
        instance.__dict__.pop(self.key, None)


class Property(_FieldBase):
    """
    A persisted node property.

    Args:
        kind: Declared storage kind ("string", "integer", ..., or "any"). Required;
            informational only, values are never coerced.
        required: The value must be present and not None when saving.
        unique: Advisory uniqueness marker, not enforced.
        indexed: Advisory index marker, not enforced.
        validator: Predicate run on the storage value before saving.
        transformer: `Transformer` or mapping with "to"/"from" callables.
        default: Initial value for new instances. A callable is called per instance,
            any other value is deep-copied per instance.
    """

    def __init__(
        self,
        kind: Union[PropertyKind, str],
        *,
        required: bool = False,
        unique: bool = False,
        indexed: bool = False,
        validator: Optional[Callable[[Any], bool]] = None,
        transformer: Optional[TransformerLike] = None,
        default: Any = None,
    ):
        super().__init__()
        self.kind = PropertyKind(kind)
        self.required = required
        self.unique = unique
        self.indexed = indexed
        self.validator = validator
        self.transformer = _as_transformer(transformer)
        self.default = default

    def initial_value(self) -> Any:
        if callable(self.default):
            return self.default()
        return copy.deepcopy(self.default)

    def to_descriptor(self, key: str) -> PropertyDescriptor:
        return PropertyDescriptor(
            key=key,
            kind=self.kind,
            required=self.required,
            unique=self.unique,
            indexed=self.indexed,
            validator=self.validator,
            transformer=self.transformer,
        )

    def __repr__(self) -> str:
        return f"Property(key={self.key!r}, kind={self.kind.value!r}, required={self.required})"


class Relationship(_FieldBase):
    """
    A relationship pointer to another entity class.

    Relationships are declared for introspection only; saving an entity never
    writes its relationships.

    Args:
        relation_type: Edge type, e.g. "WORKS_FOR".
        target: Zero-argument callable returning the target class (or the class itself).
        direction: "out" (default), "in" or "both".
        multiple: The field holds a collection of targets.
        required: Advisory marker.
    """

    def __init__(
        self,
        relation_type: str,
        target: Callable[[], Any],
        *,
        direction: Union[Direction, str] = Direction.OUT,
        multiple: bool = False,
        required: bool = False,
    ):
        super().__init__()
        self.relation_type = relation_type
        self.target = target
        self.direction = Direction(direction)
        self.multiple = multiple
        self.required = required

    def to_descriptor(self, key: str) -> RelationshipDescriptor:
        return RelationshipDescriptor(
            key=key,
            relation_type=self.relation_type,
            target=self.target,
            direction=self.direction,
            multiple=self.multiple,
            required=self.required,
        )

    def __repr__(self) -> str:
        return (
            f"Relationship(key={self.key!r}, type={self.relation_type!r}, "
            f"direction={self.direction.value!r}, multiple={self.multiple})"
        )


# =============================================================================
# REGISTRATION
# =============================================================================

def _resolve_registry(entity_class: Type, registry: Optional[MetadataRegistry]) -> MetadataRegistry:
    if registry is not None:
        return registry
    class_registry = getattr(entity_class, "__registry__", None)
    return class_registry if class_registry is not None else metadata_registry


def _check_field_key(key: Any, owner: Type) -> str:
    if not isinstance(key, str) or not key.isidentifier() or key.startswith("_"):
        raise UnsupportedKeyError(key, owner)
    return key


def declare_entity(
    entity_class: Type,
    label: Optional[str] = None,
    *,
    registry: Optional[MetadataRegistry] = None,
) -> None:
    """Set the node label of `entity_class`, keeping any fields already declared."""
    _resolve_registry(entity_class, registry).set_label(entity_class, label or entity_class.__name__)


def declare_property(
    entity_class: Type,
    key: Any,
    kind: Union[PropertyKind, str],
    *,
    required: bool = False,
    unique: bool = False,
    indexed: bool = False,
    validator: Optional[Callable[[Any], bool]] = None,
    transformer: Optional[TransformerLike] = None,
    registry: Optional[MetadataRegistry] = None,
) -> PropertyDescriptor:
    """
    Register a persisted property on `entity_class`.

    Raises:
        UnsupportedKeyError: If `key` is not a public identifier string.
    """
    key = _check_field_key(key, entity_class)
    descriptor = PropertyDescriptor(
        key=key,
        kind=PropertyKind(kind),
        required=required,
        unique=unique,
        indexed=indexed,
        validator=validator,
        transformer=_as_transformer(transformer),
    )
    _resolve_registry(entity_class, registry).add_property(entity_class, descriptor)
    return descriptor


def declare_relationship(
    entity_class: Type,
    key: Any,
    relation_type: str,
    target: Callable[[], Any],
    *,
    direction: Union[Direction, str] = Direction.OUT,
    multiple: bool = False,
    required: bool = False,
    registry: Optional[MetadataRegistry] = None,
) -> RelationshipDescriptor:
    """
    Register a relationship pointer on `entity_class`.

    Raises:
        UnsupportedKeyError: If `key` is not a public identifier string.
    """
    key = _check_field_key(key, entity_class)
    descriptor = RelationshipDescriptor(
        key=key,
        relation_type=relation_type,
        target=target,
        direction=Direction(direction),
        multiple=multiple,
        required=required,
    )
    _resolve_registry(entity_class, registry).add_relationship(entity_class, descriptor)
    return descriptor


def register_entity(
    entity_class: Type,
    *,
    label: Optional[str] = None,
    properties: Iterable[PropertyDescriptor] = (),
    relationships: Iterable[RelationshipDescriptor] = (),
    registry: Optional[MetadataRegistry] = None,
) -> None:
    """Register a whole entity shape in one call, for explicit startup wiring."""
    registry = _resolve_registry(entity_class, registry)
    for descriptor in properties:
        _check_field_key(descriptor.key, entity_class)
        registry.add_property(entity_class, descriptor)
    for descriptor in relationships:
        _check_field_key(descriptor.key, entity_class)
        registry.add_relationship(entity_class, descriptor)
    declare_entity(entity_class, label, registry=registry)


def get_fields(entity_class: Type) -> Dict[str, _FieldBase]:
    """Get Property/Relationship descriptors of a class, base classes first."""
    fields: Dict[str, _FieldBase] = {}
    for base in reversed(entity_class.__mro__):
        for name, attr in vars(base).items():
            if isinstance(attr, _FieldBase):
                fields[name] = attr
            elif name in fields:
                # Overridden by a plain attribute further down the hierarchy
                del fields[name]
    return fields


def register_fields(entity_class: Type, registry: Optional[MetadataRegistry] = None) -> None:
    """Register every Property/Relationship found on `entity_class`."""
    registry = _resolve_registry(entity_class, registry)
    for name, field in get_fields(entity_class).items():
        key = _check_field_key(name, entity_class)
        registry_method = (
            registry.add_property if isinstance(field, Property) else registry.add_relationship
        )
        registry_method(entity_class, field.to_descriptor(key))


# =============================================================================
# DECORATOR FUNCTION
# =============================================================================

def node(
    label_or_cls: Union[str, Mapping[str, Any], Type, None] = None,
    *,
    label: Optional[str] = None,
    registry: Optional[MetadataRegistry] = None,
) -> Any:
    """
    Declare an entity class and its node label.

    The label is taken from an explicit string argument, else from the
    `label` option (keyword or a mapping's "label" key), else the class name.

    Example:
        ```python
        @node
        class Company(NodeEntity): ...

        @node("Person")
        class User(NodeEntity): ...

        @node(label="Project")
        class Project(NodeEntity): ...
        ```
    """
    if isinstance(label_or_cls, str):
        effective_label: Optional[str] = label_or_cls
    elif isinstance(label_or_cls, Mapping):
        effective_label = label_or_cls.get("label") or label
    else:
        effective_label = label

    def decorator(target_cls: Type) -> Type:
        declare_entity(target_cls, effective_label, registry=registry)
        return target_cls

    if isinstance(label_or_cls, type):
        return decorator(label_or_cls)
    return decorator
