"""
Error types for the entmodel schema compiler.

This module defines every exception raised while declaring or compiling
a schema:
- EntModelError: Base exception
- SchemaError: Base of all compile-time schema errors
- TypeMismatchError: Default value does not match the scalar type
- DuplicatePropertyError: Property name declared twice on one entity
- DuplicateEntityError: Entity name declared twice in one schema
- UnknownDestinationEntityError: Relationship points at a missing entity
- UnknownInverseRelationshipError: Inverse name missing on the destination
- ConflictingInverseError: Relationship already linked to another inverse
- UnknownUniqueAttributeError: Uniqueness constraint names no attribute
- SchemaFormatError: Malformed schema document

Invariants:
    - All errors inherit from EntModelError
    - Errors carry entity/relationship context in ``details``
    - Error messages name the offending entity and property
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class EntModelError(Exception):
    """Base exception for all entmodel errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "ENTMODEL_ERROR"
        self.details = details or {}


class SchemaError(EntModelError):
    """Schema declaration or compilation failed.

    Raised directly for consistency failures in strict mode; the
    subclasses below cover each specific failure.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code or "SCHEMA_ERROR", details=details)


class TypeMismatchError(SchemaError):
    """Default value does not match the attribute's scalar type.

    Attributes:
        attribute_name: The attribute being declared
        scalar_type: Declared type tag
        value_type: Python type name of the offending default
    """

    def __init__(
        self,
        attribute_name: str,
        scalar_type: str,
        value: Any,
        reason: Optional[str] = None,
    ) -> None:
        value_type = type(value).__name__
        msg = (
            f"Default value for attribute '{attribute_name}' does not match "
            f"type '{scalar_type}': got {value_type}"
        )
        if reason:
            msg += f" ({reason})"
        super().__init__(
            msg,
            code="TYPE_MISMATCH",
            details={
                "attribute": attribute_name,
                "scalar_type": scalar_type,
                "value_type": value_type,
            },
        )
        self.attribute_name = attribute_name
        self.scalar_type = scalar_type
        self.value_type = value_type


class DuplicatePropertyError(SchemaError):
    """Two properties of one entity share a name.

    Attributes and relationships share a single namespace.
    """

    def __init__(self, entity_name: str, property_name: str) -> None:
        super().__init__(
            f"Duplicate property '{property_name}' in entity '{entity_name}'",
            code="DUPLICATE_PROPERTY",
            details={"entity": entity_name, "property": property_name},
        )
        self.entity_name = entity_name
        self.property_name = property_name


class DuplicateEntityError(SchemaError):
    """Two entities of one schema share a name."""

    def __init__(self, entity_name: str) -> None:
        super().__init__(
            f"Duplicate entity '{entity_name}'",
            code="DUPLICATE_ENTITY",
            details={"entity": entity_name},
        )
        self.entity_name = entity_name


class UnknownDestinationEntityError(SchemaError):
    """A relationship names a destination entity absent from the schema."""

    def __init__(
        self,
        entity_name: str,
        relationship_name: str,
        destination_name: str,
    ) -> None:
        super().__init__(
            f"Relationship '{entity_name}.{relationship_name}' references "
            f"unknown destination entity '{destination_name}'",
            code="UNKNOWN_DESTINATION_ENTITY",
            details={
                "entity": entity_name,
                "relationship": relationship_name,
                "destination": destination_name,
            },
        )
        self.entity_name = entity_name
        self.relationship_name = relationship_name
        self.destination_name = destination_name


class UnknownInverseRelationshipError(SchemaError):
    """A relationship names an inverse the destination entity does not have."""

    def __init__(
        self,
        entity_name: str,
        relationship_name: str,
        inverse_name: str,
        destination_name: Optional[str] = None,
    ) -> None:
        msg = (
            f"Relationship '{entity_name}.{relationship_name}' references "
            f"unknown inverse relationship '{inverse_name}'"
        )
        if destination_name:
            msg += f" on entity '{destination_name}'"
        super().__init__(
            msg,
            code="UNKNOWN_INVERSE_RELATIONSHIP",
            details={
                "entity": entity_name,
                "relationship": relationship_name,
                "inverse": inverse_name,
                "destination": destination_name,
            },
        )
        self.entity_name = entity_name
        self.relationship_name = relationship_name
        self.inverse_name = inverse_name
        self.destination_name = destination_name


class ConflictingInverseError(SchemaError):
    """A relationship is claimed as inverse by two different relationships.

    Attributes:
        entity_name: Entity owning the relationship being linked
        relationship_name: Relationship being linked
        existing: "Entity.relationship" already linked as its inverse
        requested: "Entity.relationship" that tried to claim it
    """

    def __init__(
        self,
        entity_name: str,
        relationship_name: str,
        existing: Optional[str] = None,
        requested: Optional[str] = None,
    ) -> None:
        msg = f"Conflicting inverse for relationship '{entity_name}.{relationship_name}'"
        if existing and requested:
            msg += f": already linked to '{existing}', cannot link to '{requested}'"
        super().__init__(
            msg,
            code="CONFLICTING_INVERSE",
            details={
                "entity": entity_name,
                "relationship": relationship_name,
                "existing": existing,
                "requested": requested,
            },
        )
        self.entity_name = entity_name
        self.relationship_name = relationship_name
        self.existing = existing
        self.requested = requested


class UnknownUniqueAttributeError(SchemaError):
    """A uniqueness constraint names something that is not an attribute."""

    def __init__(self, entity_name: str, attribute_name: str) -> None:
        super().__init__(
            f"Uniqueness constraint on entity '{entity_name}' references "
            f"unknown attribute '{attribute_name}'",
            code="UNKNOWN_UNIQUE_ATTRIBUTE",
            details={"entity": entity_name, "attribute": attribute_name},
        )
        self.entity_name = entity_name
        self.attribute_name = attribute_name


class SchemaFormatError(EntModelError):
    """Schema document could not be parsed.

    Attributes:
        path: Location inside the document (e.g. "entities[1].properties[0]")
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        if path:
            message = f"{path}: {message}"
        super().__init__(
            message,
            code="SCHEMA_FORMAT",
            details={"path": path},
        )
        self.path = path
