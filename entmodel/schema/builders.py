"""
Convenience constructors for schema declarations.

These are the preferred way to write a schema in Python code:

    >>> from entmodel.schema import builders as m
    >>> Person = m.entity(
    ...     "Person",
    ...     m.string("name", optional=False),
    ...     m.integer16("age", default=0),
    ...     m.relationship("address", "Address", inverse="person"),
    ... )

Attributes and relationships may be passed to entity() in any mix; they
are split into the two ordered sequences of EntitySpec.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any, Iterable
from uuid import UUID

from .types import AttributeSpec, DeleteRule, EntitySpec, RelationshipSpec, ScalarType


def attribute(
    name: str,
    scalar_type: str | ScalarType,
    *,
    optional: bool = True,
    default: Any = None,
    external_storage: bool = False,
    preserve_on_delete: bool = False,
) -> AttributeSpec:
    """Create an AttributeSpec from a type tag or ScalarType.

    Args:
        name: Attribute name
        scalar_type: Type tag (e.g. "int32") or ScalarType
        optional: Whether the attribute is optional
        default: Default value matching the type
        external_storage: Allow external large-object storage
        preserve_on_delete: Preserve value in history on deletion

    Returns:
        AttributeSpec instance

    Example:
        >>> count = attribute("count", "int32", optional=False, default=0)
    """
    if isinstance(scalar_type, str):
        scalar_type = ScalarType.from_str(scalar_type)
    return AttributeSpec(
        name=name,
        scalar_type=scalar_type,
        is_optional=optional,
        default_value=default,
        allows_external_storage=external_storage,
        preserves_on_delete=preserve_on_delete,
    )


def string(name: str, *, optional: bool = True, default: str | None = None) -> AttributeSpec:
    """Create a string attribute."""
    return attribute(name, ScalarType.STRING, optional=optional, default=default)


def integer16(name: str, *, optional: bool = True, default: int | None = None) -> AttributeSpec:
    """Create a 16-bit integer attribute."""
    return attribute(name, ScalarType.INT16, optional=optional, default=default)


def integer32(name: str, *, optional: bool = True, default: int | None = None) -> AttributeSpec:
    """Create a 32-bit integer attribute."""
    return attribute(name, ScalarType.INT32, optional=optional, default=default)


def integer64(name: str, *, optional: bool = True, default: int | None = None) -> AttributeSpec:
    """Create a 64-bit integer attribute."""
    return attribute(name, ScalarType.INT64, optional=optional, default=default)


def decimal(name: str, *, optional: bool = True, default: Decimal | None = None) -> AttributeSpec:
    """Create a decimal attribute."""
    return attribute(name, ScalarType.DECIMAL, optional=optional, default=default)


def double(name: str, *, optional: bool = True, default: float | None = None) -> AttributeSpec:
    """Create a double attribute."""
    return attribute(name, ScalarType.DOUBLE, optional=optional, default=default)


def float_(name: str, *, optional: bool = True, default: float | None = None) -> AttributeSpec:
    """Create a float attribute."""
    return attribute(name, ScalarType.FLOAT, optional=optional, default=default)


def boolean(name: str, *, optional: bool = True, default: bool | None = None) -> AttributeSpec:
    """Create a boolean attribute."""
    return attribute(name, ScalarType.BOOLEAN, optional=optional, default=default)


def date(
    name: str, *, optional: bool = True, default: datetime.date | None = None
) -> AttributeSpec:
    """Create a date attribute."""
    return attribute(name, ScalarType.DATE, optional=optional, default=default)


def binary(
    name: str,
    *,
    optional: bool = True,
    default: bytes | None = None,
    external_storage: bool = False,
    preserve_on_delete: bool = False,
) -> AttributeSpec:
    """Create a binary attribute.

    Binary attributes are the ones the storage hints are meant for.
    """
    return attribute(
        name,
        ScalarType.BINARY,
        optional=optional,
        default=default,
        external_storage=external_storage,
        preserve_on_delete=preserve_on_delete,
    )


def transformable(name: str, *, optional: bool = True, default: Any = None) -> AttributeSpec:
    """Create a transformable attribute. Any default value is accepted."""
    return attribute(name, ScalarType.TRANSFORMABLE, optional=optional, default=default)


def uuid(name: str, *, optional: bool = True, default: UUID | None = None) -> AttributeSpec:
    """Create a UUID attribute."""
    return attribute(name, ScalarType.UUID, optional=optional, default=default)


def uri(name: str, *, optional: bool = True, default: str | None = None) -> AttributeSpec:
    """Create a URI attribute."""
    return attribute(name, ScalarType.URI, optional=optional, default=default)


def object_reference(name: str, *, optional: bool = True, default: Any = None) -> AttributeSpec:
    """Create an object reference attribute."""
    return attribute(name, ScalarType.OBJECT_REFERENCE, optional=optional, default=default)


def relationship(
    name: str,
    destination: str,
    *,
    to_many: bool = False,
    optional: bool = True,
    delete_rule: str | DeleteRule = DeleteRule.NULLIFY,
    inverse: str | None = None,
) -> RelationshipSpec:
    """Create a RelationshipSpec.

    Args:
        name: Relationship name
        destination: Destination entity name
        to_many: Whether the relationship is to-many
        optional: Whether the relationship is optional
        delete_rule: Delete rule tag (e.g. "cascade") or DeleteRule
        inverse: Name of the inverse relationship on the destination

    Returns:
        RelationshipSpec instance

    Example:
        >>> items = relationship("items", "Item", to_many=True, delete_rule="cascade")
    """
    if isinstance(delete_rule, str):
        delete_rule = DeleteRule.from_str(delete_rule)
    return RelationshipSpec(
        name=name,
        destination_name=destination,
        is_to_many=to_many,
        is_optional=optional,
        delete_rule=delete_rule,
        inverse_name=inverse,
    )


def bound_type_name_of(bound_type: str | type) -> str:
    """Name a runtime type the way the persistence runtime looks it up."""
    if isinstance(bound_type, str):
        return bound_type
    return f"{bound_type.__module__}.{bound_type.__qualname__}"


def entity(
    name: str,
    *components: AttributeSpec | RelationshipSpec,
    abstract: bool = False,
    bound_type: str | type | None = None,
    unique: Iterable[str] = (),
) -> EntitySpec:
    """Create an EntitySpec from a mix of attributes and relationships.

    Args:
        name: Entity name
        *components: AttributeSpec and RelationshipSpec values, in order
        abstract: Whether the entity is abstract
        bound_type: Runtime type name, or a class whose qualified name is used
        unique: Attribute names that must hold unique values

    Returns:
        EntitySpec instance

    Raises:
        TypeError: If a component is neither an attribute nor a relationship
        DuplicatePropertyError: If two components share a name
    """
    attributes: list[AttributeSpec] = []
    relationships: list[RelationshipSpec] = []
    for component in components:
        if isinstance(component, AttributeSpec):
            attributes.append(component)
        elif isinstance(component, RelationshipSpec):
            relationships.append(component)
        else:
            raise TypeError(
                f"Entity '{name}' component must be an attribute or relationship, "
                f"got {type(component).__name__}"
            )

    return EntitySpec(
        name=name,
        attributes=tuple(attributes),
        relationships=tuple(relationships),
        is_abstract=abstract,
        bound_type_name=bound_type_name_of(bound_type) if bound_type is not None else None,
        unique_constraints=tuple(unique),
    )
