# src/neogm/orm/entities.py
"""
NeoGM NodeEntity - metadata-driven persistence for single entities

A NodeEntity subclass declares its persisted properties and relationship
pointers as class-body fields. Every instance operation (save, delete,
reload, serialize) looks the class up in its metadata registry and builds
the matching Cypher from the declared shape.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Mapping, Optional, Type, TypeVar

from neogm.core.metadata import EntityClassDescriptor, MetadataRegistry, metadata_registry
from neogm.core.queries import create_node, delete_by_id, match_by_id, update_node
from neogm.exceptions import InvalidStateError, NotFoundError, ValidationError
from neogm.orm.engine import GraphEngine
from neogm.orm.fields import Property, get_fields, register_fields


EntityType = TypeVar("EntityType", bound="NodeEntity")

# Alias under which generated queries return the matched node
NODE_KEY = "n"


def node_identity(node_value: Any) -> Any:
    """Identity of a driver node value."""
    return node_value.element_id


def node_properties(node_value: Any) -> Dict[str, Any]:
    """Stored properties of a driver node value."""
    return dict(node_value.items())


class NodeEntity:
    """
    Base class for mapped entities.

    Lifecycle: a new instance is transient (`get_id()` is None). The first
    successful `save()` creates the node and assigns its identity; later saves
    update it. `delete()` makes the instance transient again.

    Subclasses are registered as a side effect of their definition. Pass
    `registry=` in the class statement to use a registry other than the
    process-wide default:

        ```python
        @node("Person")
        class Person(NodeEntity, registry=my_registry):
            name = Property("string", required=True)
        ```
    """

    __registry__: ClassVar[MetadataRegistry] = metadata_registry

    def __init_subclass__(cls, registry: Optional[MetadataRegistry] = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if registry is not None:
            cls.__registry__ = registry
        if get_fields(cls):
            register_fields(cls)

    def __init__(self, engine: Optional[GraphEngine] = None, **values: Any) -> None:
        self._id: Any = None
        self._engine: Optional[GraphEngine] = engine
        self._is_loaded: bool = False

        for name, field in get_fields(type(self)).items():
            if isinstance(field, Property) and field.default is not None:
                self.__dict__[name] = field.initial_value()

        self.set_values(values)

    def set_values(self, values: Mapping[str, Any]) -> None:
        """Assign attribute values; an "id" key sets the identity."""
        for key, value in values.items():
            if key == "id":
                self.set_id(value)
            else:
                setattr(self, key, value)

    # =============================================================================
    # IDENTITY AND STATE
    # =============================================================================

    def get_id(self) -> Any:
        return self._id

    def set_id(self, entity_id: Any) -> None:
        self._id = entity_id

    @property
    def id(self) -> Any:
        """Database identity, None while transient."""
        return self._id

    def is_loaded(self) -> bool:
        return self._is_loaded

    def mark_as_loaded(self) -> None:
        self._is_loaded = True

    @property
    def is_persisted(self) -> bool:
        return self._id is not None

    def set_engine(self, engine: GraphEngine) -> None:
        self._engine = engine

    def has_engine(self) -> bool:
        return self._engine is not None

    def get_engine(self) -> GraphEngine:
        if self._engine is None:
            raise InvalidStateError(
                f"{type(self).__name__} has no GraphEngine. Create it through a Repository "
                "or pass one with set_engine()."
            )
        return self._engine

    # =============================================================================
    # CRUD OPERATIONS
    # =============================================================================

    async def save(self: EntityType) -> EntityType:
        """
        Create the node if transient, otherwise update it by identity.

        All declared properties are validated before any query is issued.

        Returns:
            Self for method chaining

        Raises:
            MissingMetadataError: If the class was never declared.
            ValidationError: If a required property is missing or a validator fails.
        """
        descriptor = self._get_metadata()
        await self._pre_save()

        properties = self._get_properties(descriptor)
        self._validate_properties(descriptor, properties)

        if self._id is None:
            query = create_node(descriptor.label, properties)
        else:
            query = update_node(descriptor.label, self._id, properties)

        records = await self.get_engine().run(query.text, query.parameters)

        if records:
            node_value = records[0][NODE_KEY]
            self._id = node_identity(node_value)
            self._set_properties_from_database(descriptor, node_properties(node_value))
            self._is_loaded = True

        await self._post_save()
        return self

    async def delete(self) -> bool:
        """
        Delete the node by identity.

        Returns:
            True if a node was deleted, False if none matched

        Raises:
            InvalidStateError: If the entity has no identity.
        """
        if self._id is None:
            raise InvalidStateError("cannot delete without identity")

        descriptor = self._get_metadata()
        await self._pre_delete()

        query = delete_by_id(descriptor.label, self._id)
        records = await self.get_engine().run(query.text, query.parameters)

        deleted = bool(records) and (records[0]["deleted"] or 0) > 0
        if deleted:
            self._id = None
            self._is_loaded = False
            await self._post_delete()
        return deleted

    async def reload(self: EntityType) -> EntityType:
        """
        Re-read every declared property from the database.

        Raises:
            InvalidStateError: If the entity has no identity.
            NotFoundError: If the node no longer exists.
        """
        if self._id is None:
            raise InvalidStateError("cannot reload without identity")

        descriptor = self._get_metadata()
        query = match_by_id(descriptor.label, self._id)
        records = await self.get_engine().run(query.text, query.parameters)

        if not records:
            raise NotFoundError(descriptor.label, self._id)

        self._set_properties_from_database(descriptor, node_properties(records[0][NODE_KEY]))
        self._is_loaded = True
        return self

    def serialize(self) -> Dict[str, Any]:
        """
        Plain mapping of identity, label and current in-memory property values.

        Values are domain values; write-side transformers are not applied.
        """
        descriptor = self._get_metadata()
        result: Dict[str, Any] = {"id": self._id, "label": descriptor.label}
        for key in descriptor.properties:
            result[key] = self.__dict__.get(key)
        return result

    to_dict = serialize

    # =============================================================================
    # LIFECYCLE HOOKS
    # =============================================================================

    async def _pre_save(self) -> None:
        """Hook called before saving entity. Override in subclasses."""
        pass

    async def _post_save(self) -> None:
        """Hook called after saving entity. Override in subclasses."""
        pass

    async def _pre_delete(self) -> None:
        """Hook called before deleting entity. Override in subclasses."""
        pass

    async def _post_delete(self) -> None:
        """Hook called after deleting entity. Override in subclasses."""
        pass

    # =============================================================================
    # METADATA PLUMBING
    # =============================================================================

    @classmethod
    def _get_class_metadata(cls) -> EntityClassDescriptor:
        return cls.__registry__.require_descriptor(cls)

    def _get_metadata(self) -> EntityClassDescriptor:
        return self._get_class_metadata()

    def _get_properties(self, descriptor: EntityClassDescriptor) -> Dict[str, Any]:
        """Storage values of every declared property assigned on this instance."""
        properties: Dict[str, Any] = {}
        for key, prop in descriptor.properties.items():
            if key not in self.__dict__:
                continue
            value = self.__dict__[key]
            properties[key] = prop.to_storage(value) if value is not None else None
        return properties

    def _set_properties_from_database(
        self,
        descriptor: EntityClassDescriptor,
        stored: Mapping[str, Any],
    ) -> None:
        for key, prop in descriptor.properties.items():
            if key not in stored:
                continue
            value = stored[key]
            self.__dict__[key] = prop.from_storage(value) if value is not None else None

    @staticmethod
    def _validate_properties(descriptor: EntityClassDescriptor, properties: Mapping[str, Any]) -> None:
        """Check every declared property, not only the ones being changed."""
        for key, prop in descriptor.properties.items():
            value = properties.get(key)
            if prop.required and value is None:
                raise ValidationError(key, f"{key} is required")
            if value is not None and prop.validator is not None and not prop.validator(value):
                raise ValidationError(key, f"{key} failed validation")

    @classmethod
    def _from_node(cls: Type[EntityType], node_value: Any, engine: Optional[GraphEngine] = None) -> EntityType:
        """Hydrate a new instance from a driver node value."""
        descriptor = cls._get_class_metadata()
        entity = cls(engine=engine)
        for key in descriptor.properties:
            entity.__dict__.pop(key, None)
        entity._id = node_identity(node_value)
        entity._set_properties_from_database(descriptor, node_properties(node_value))
        entity._is_loaded = True
        return entity

    def __repr__(self) -> str:
        status = "persisted" if self._id is not None else "new"
        return f"{type(self).__name__}(id={self._id!r} ({status}))"
