"""
Core declaration types for the entmodel schema system.

This module defines the value types a caller uses to describe a schema:
- AttributeSpec: A scalar field of an entity
- RelationshipSpec: A named edge to another entity (by name)
- EntitySpec: An entity with its attributes and relationships

All three are pure, immutable declarations. Relationships refer to their
destination and inverse by name only; nothing is resolved until the
declarations are handed to the SchemaCompiler.

Invariants:
    - Specs are frozen once constructed
    - A default value always matches its attribute's scalar type
    - Attribute and relationship names share one namespace per entity
    - Declaration order of attributes and relationships is preserved

Example:
    >>> from entmodel.schema.types import AttributeSpec, EntitySpec, ScalarType
    >>> Person = EntitySpec(
    ...     name="Person",
    ...     attributes=(
    ...         AttributeSpec("name", ScalarType.STRING, is_optional=False),
    ...         AttributeSpec("age", ScalarType.INT16, default_value=0),
    ...     ),
    ... )
"""

from __future__ import annotations

import base64
import datetime
import json
import uuid
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .errors import DuplicatePropertyError, TypeMismatchError


class ScalarType(Enum):
    """Supported attribute types.

    These map one-to-one onto the attribute types of the consuming
    persistence runtime.
    """

    STRING = "string"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    DECIMAL = "decimal"
    DOUBLE = "double"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    BINARY = "binary"
    TRANSFORMABLE = "transformable"
    UUID = "uuid"
    URI = "uri"
    OBJECT_REFERENCE = "object_reference"

    @classmethod
    def from_str(cls, value: str) -> ScalarType:
        """Convert string representation to ScalarType.

        Args:
            value: String tag of the scalar type

        Returns:
            Corresponding ScalarType enum value

        Raises:
            ValueError: If value is not a valid scalar type
        """
        for kind in cls:
            if kind.value == value:
                return kind
        valid = [k.value for k in cls]
        raise ValueError(f"Invalid scalar type '{value}'. Valid types: {valid}")


class DeleteRule(Enum):
    """Action applied to related records when the owning record is deleted."""

    NULLIFY = "nullify"
    CASCADE = "cascade"
    DENY = "deny"
    NO_ACTION = "no_action"

    @classmethod
    def from_str(cls, value: str) -> DeleteRule:
        """Convert string representation to DeleteRule."""
        for rule in cls:
            if rule.value == value:
                return rule
        valid = [r.value for r in cls]
        raise ValueError(f"Invalid delete rule '{value}'. Valid rules: {valid}")


_INT_BITS = {
    ScalarType.INT16: 16,
    ScalarType.INT32: 32,
    ScalarType.INT64: 64,
}


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


_VALIDATORS = {
    ScalarType.STRING: lambda v: isinstance(v, str),
    ScalarType.INT16: _is_int,
    ScalarType.INT32: _is_int,
    ScalarType.INT64: _is_int,
    ScalarType.DECIMAL: lambda v: isinstance(v, Decimal) or _is_int(v),
    ScalarType.DOUBLE: lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    ScalarType.FLOAT: lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    ScalarType.BOOLEAN: lambda v: isinstance(v, bool),
    ScalarType.DATE: lambda v: isinstance(v, datetime.date),
    ScalarType.BINARY: lambda v: isinstance(v, (bytes, bytearray)),
    ScalarType.TRANSFORMABLE: lambda _: True,
    ScalarType.UUID: lambda v: isinstance(v, uuid.UUID),
    ScalarType.URI: lambda v: isinstance(v, str),
    ScalarType.OBJECT_REFERENCE: lambda _: True,
}


def check_default_value(name: str, scalar_type: ScalarType, value: Any) -> None:
    """Check that a default value matches the declared scalar type.

    Integer defaults must also fit the signed range of their width.

    Raises:
        TypeMismatchError: If the value does not match
    """
    if value is None:
        return
    if not _VALIDATORS[scalar_type](value):
        raise TypeMismatchError(name, scalar_type.value, value)
    bits = _INT_BITS.get(scalar_type)
    if bits is not None:
        low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
        if not low <= value <= high:
            raise TypeMismatchError(
                name, scalar_type.value, value, reason=f"{value} outside [{low}, {high}]"
            )


def encode_value(scalar_type: ScalarType, value: Any) -> Any:
    """Convert a typed default value to its JSON-safe document form.

    Dates become ISO-8601 strings, UUIDs and decimals become strings and
    binary data becomes base64. Other values pass through unchanged.
    """
    if value is None:
        return None
    if scalar_type == ScalarType.DATE:
        return value.isoformat()
    if scalar_type == ScalarType.BINARY:
        return base64.b64encode(bytes(value)).decode("ascii")
    if scalar_type in (ScalarType.UUID, ScalarType.DECIMAL):
        return str(value)
    return value


_OPAQUE_TYPES = (ScalarType.TRANSFORMABLE, ScalarType.OBJECT_REFERENCE)


def is_opaque(scalar_type: ScalarType) -> bool:
    """Whether defaults of this type are stored without type checks."""
    return scalar_type in _OPAQUE_TYPES


def _canonical_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    return f"{type(key).__name__}:{key!r}"


def _sort_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def canonical_value(value: Any) -> Any:
    """Convert an opaque default to a deterministic JSON-safe structure.

    Mappings get string keys (non-string keys are tagged with their type
    name), sets become sorted lists and anything else that JSON cannot
    hold becomes its repr.

    Raises:
        RecursionError: If the value contains itself
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, dict):
        return {_canonical_key(k): canonical_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [canonical_value(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((canonical_value(v) for v in value), key=_sort_key)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return repr(value)


def decode_value(scalar_type: ScalarType, value: Any) -> Any:
    """Inverse of encode_value for values read from a schema document.

    Values already in their typed form are returned unchanged.

    Raises:
        ValueError: If a string cannot be decoded for the scalar type
    """
    if scalar_type == ScalarType.DECIMAL and isinstance(value, float):
        return Decimal(str(value))
    if value is None or not isinstance(value, str):
        return value
    try:
        if scalar_type == ScalarType.DATE:
            # Date-only strings stay dates
            if len(value) == 10:
                return datetime.date.fromisoformat(value)
            return datetime.datetime.fromisoformat(value)
        if scalar_type == ScalarType.BINARY:
            return base64.b64decode(value, validate=True)
        if scalar_type == ScalarType.UUID:
            return uuid.UUID(value)
        if scalar_type == ScalarType.DECIMAL:
            return Decimal(value)
    except (ValueError, InvalidOperation) as e:
        raise ValueError(f"Cannot decode '{value}' as {scalar_type.value}: {e}") from e
    return value


@dataclass(frozen=True)
class AttributeSpec:
    """Declaration of a single scalar attribute.

    Attributes:
        name: Property name, unique within the owning entity
        scalar_type: The data type of the attribute
        is_optional: Whether a record may leave the attribute unset
        default_value: Default value, typed to match scalar_type
        allows_external_storage: Store large values outside the record
        preserves_on_delete: Keep the value in history after deletion

    Invariants:
        - default_value matches scalar_type (checked on construction)
        - Storage hints are present on every attribute, but are only
          meaningful for binary-like types

    Example:
        >>> photo = AttributeSpec(
        ...     name="photo",
        ...     scalar_type=ScalarType.BINARY,
        ...     allows_external_storage=True,
        ... )
    """

    name: str
    scalar_type: ScalarType
    is_optional: bool = True
    default_value: Any = None
    allows_external_storage: bool = False
    preserves_on_delete: bool = False

    def __post_init__(self) -> None:
        """Validate attribute declaration."""
        if not self.name:
            raise ValueError("Attribute name cannot be empty")
        check_default_value(self.name, self.scalar_type, self.default_value)


@dataclass(frozen=True)
class RelationshipSpec:
    """Declaration of a relationship to another entity.

    The destination and inverse are plain names. They may refer to
    entities declared later, or to the owning entity itself.

    Attributes:
        name: Property name, unique within the owning entity
        destination_name: Name of the destination entity
        is_to_many: Whether the relationship holds many records
        is_optional: Whether the relationship may be empty
        delete_rule: What happens to related records on delete
        inverse_name: Name of the reverse relationship on the destination

    Example:
        >>> items = RelationshipSpec(
        ...     name="items",
        ...     destination_name="ShoppingListItem",
        ...     is_to_many=True,
        ...     delete_rule=DeleteRule.CASCADE,
        ...     inverse_name="shoppingList",
        ... )
    """

    name: str
    destination_name: str
    is_to_many: bool = False
    is_optional: bool = True
    delete_rule: DeleteRule = DeleteRule.NULLIFY
    inverse_name: str | None = None

    def __post_init__(self) -> None:
        """Validate relationship declaration."""
        if not self.name:
            raise ValueError("Relationship name cannot be empty")
        if not self.destination_name:
            raise ValueError(f"Relationship '{self.name}' has no destination")


@dataclass(frozen=True)
class EntitySpec:
    """Declaration of an entity.

    Attributes:
        name: Entity name, unique within the schema
        attributes: Ordered attribute declarations
        relationships: Ordered relationship declarations
        is_abstract: Whether the entity can be instantiated
        bound_type_name: Runtime type used for records of this entity;
            DEFAULT_BOUND_TYPE_NAME applies when None
        unique_constraints: Attribute names whose values must be unique

    Invariants:
        - Attribute and relationship names are unique together
        - Property order is attributes first, then relationships, each in
          declaration order

    Example:
        >>> ShoppingList = EntitySpec(
        ...     name="ShoppingList",
        ...     attributes=(AttributeSpec("name", ScalarType.STRING),),
        ...     relationships=(
        ...         RelationshipSpec("items", "ShoppingListItem", is_to_many=True),
        ...     ),
        ... )
    """

    name: str
    attributes: tuple[AttributeSpec, ...] = dataclass_field(default_factory=tuple)
    relationships: tuple[RelationshipSpec, ...] = dataclass_field(default_factory=tuple)
    is_abstract: bool = False
    bound_type_name: str | None = None
    unique_constraints: tuple[str, ...] = dataclass_field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate entity declaration."""
        if not self.name:
            raise ValueError("Entity name cannot be empty")

        seen: set[str] = set()
        for name in self.property_names():
            if name in seen:
                raise DuplicatePropertyError(self.name, name)
            seen.add(name)

    def property_names(self) -> list[str]:
        """Get all property names in declaration order."""
        return [a.name for a in self.attributes] + [r.name for r in self.relationships]

    def get_attribute(self, name: str) -> AttributeSpec | None:
        """Get an attribute declaration by name."""
        for a in self.attributes:
            if a.name == name:
                return a
        return None

    def get_relationship(self, name: str) -> RelationshipSpec | None:
        """Get a relationship declaration by name."""
        for r in self.relationships:
            if r.name == name:
                return r
        return None
