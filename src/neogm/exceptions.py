# src/neogm/exceptions.py
"""
NeoGM Exceptions

Every failure raised by the mapping layer derives from NeoGMError. Errors
raised by the Neo4j driver itself are never wrapped and reach the caller
unchanged.
"""

from typing import Any, Optional


class NeoGMError(Exception):
    """Base class for all NeoGM errors."""


class MissingMetadataError(NeoGMError):
    """An entity class was used without any declared metadata."""

    def __init__(self, entity_class: Any):
        self.entity_class = entity_class
        name = getattr(entity_class, "__name__", repr(entity_class))
        super().__init__(
            f"No metadata found for {name}. "
            "Did you forget to decorate it with @node or declare its properties?"
        )


class UnsupportedKeyError(NeoGMError):
    """A property or relationship was declared on a non-string or private key."""

    def __init__(self, key: Any, owner: Optional[Any] = None):
        self.key = key
        self.owner = owner
        where = f" on {owner.__name__}" if owner is not None and hasattr(owner, "__name__") else ""
        super().__init__(
            f"Unsupported field key {key!r}{where}: only public string keys are supported"
        )


class ValidationError(NeoGMError, ValueError):
    """A required property is missing or a custom validator rejected a value."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(message)


class InvalidStateError(NeoGMError):
    """The entity is not in a state that allows the requested operation."""


class NotFoundError(NeoGMError):
    """A known identity is no longer present in the database."""

    def __init__(self, label: str, entity_id: Any):
        self.label = label
        self.entity_id = entity_id
        super().__init__(f"{label} with id {entity_id!r} not found")
