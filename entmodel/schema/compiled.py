"""
Compiled schema graph.

This module defines the read-only output of the SchemaCompiler:
- RelationshipKey: (entity name, relationship name) handle
- ResolvedAttribute: An attribute bound to its owning entity
- ResolvedRelationship: A relationship with resolved destination/inverse
- ResolvedEntity: An entity with its properties in declaration order
- CompiledSchema: Name-indexed arena of resolved entities

Entities never hold each other. A relationship stores its destination as
an entity name and its inverse as a RelationshipKey; CompiledSchema
turns those keys back into objects. Cycles (self-relationships, mutual
to-many pairs) are therefore plain data.

Invariants:
    - Every destination_entity names an entity in the schema
    - Inverse links are symmetric: inverse_of(inverse_of(r)) is r
    - Nothing in this module exposes a mutator

Example:
    >>> schema = compile_schema([...])
    >>> items = schema.entity("ShoppingList").relationship("items")
    >>> schema.destination_of(items).name
    'ShoppingListItem'
    >>> schema.inverse_of(items).name
    'shoppingList'
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from types import MappingProxyType
from typing import Any, Iterable, Iterator, NamedTuple, Optional, Union

from .types import DeleteRule, ScalarType, canonical_value, encode_value, is_opaque


class RelationshipKey(NamedTuple):
    """Stable handle of a relationship inside a compiled schema."""

    entity_name: str
    relationship_name: str

    def __str__(self) -> str:
        return f"{self.entity_name}.{self.relationship_name}"


@dataclass(frozen=True)
class ResolvedAttribute:
    """Attribute of a compiled entity.

    Attributes carry no cross-references, so they are copied from their
    AttributeSpec. Opaque defaults (transformable, object_reference) are
    deep copies and appear in to_dict() in canonical form.
    """

    entity_name: str
    name: str
    scalar_type: ScalarType
    is_optional: bool = True
    default_value: Any = None
    allows_external_storage: bool = False
    preserves_on_delete: bool = False

    kind = "attribute"

    def _encoded_default(self) -> Any:
        if is_opaque(self.scalar_type):
            return canonical_value(self.default_value)
        return encode_value(self.scalar_type, self.default_value)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the tagged property form handed to the runtime."""
        return {
            "kind": self.kind,
            "name": self.name,
            "scalar_type": self.scalar_type.value,
            "is_optional": self.is_optional,
            "default_value": self._encoded_default(),
            "allows_external_storage": self.allows_external_storage,
            "preserves_on_delete": self.preserves_on_delete,
        }


@dataclass(frozen=True)
class ResolvedRelationship:
    """Relationship of a compiled entity.

    Attributes:
        entity_name: Owning entity
        name: Relationship name
        destination_entity: Name of the resolved destination entity
        is_to_many: Whether the relationship holds many records
        is_optional: Whether the relationship may be empty
        delete_rule: Delete rule
        inverse_name: Inverse name as declared on this side (may be None
            even when an inverse was linked from the other side)
        inverse_relationship: Key of the linked inverse, if any
    """

    entity_name: str
    name: str
    destination_entity: str
    is_to_many: bool = False
    is_optional: bool = True
    delete_rule: DeleteRule = DeleteRule.NULLIFY
    inverse_name: Optional[str] = None
    inverse_relationship: Optional[RelationshipKey] = None

    kind = "relationship"

    @property
    def key(self) -> RelationshipKey:
        """Key of this relationship."""
        return RelationshipKey(self.entity_name, self.name)

    @property
    def destination_name(self) -> str:
        """Destination entity name as declared."""
        return self.destination_entity

    @property
    def max_count(self) -> int:
        """0 (unlimited) for to-many, 1 for to-one."""
        return 0 if self.is_to_many else 1

    @property
    def min_count(self) -> int:
        """0 when optional, 1 when required."""
        return 0 if self.is_optional else 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to the tagged property form handed to the runtime."""
        result: dict[str, Any] = {
            "kind": self.kind,
            "name": self.name,
            "destination_entity": self.destination_entity,
            "max_count": self.max_count,
            "min_count": self.min_count,
            "delete_rule": self.delete_rule.value,
        }
        if self.inverse_relationship is not None:
            result["inverse_relationship"] = self.inverse_relationship.relationship_name
        return result


ResolvedProperty = Union[ResolvedAttribute, ResolvedRelationship]


@dataclass(frozen=True)
class ResolvedEntity:
    """Entity of a compiled schema.

    Attributes:
        name: Entity name
        is_abstract: Whether the entity is abstract
        bound_type_name: Runtime type name, with the default applied
        declared_bound_type_name: Runtime type name as declared, or None
        properties: Attributes then relationships, in declaration order
        unique_constraints: Attribute names with unique values
    """

    name: str
    is_abstract: bool
    bound_type_name: str
    declared_bound_type_name: Optional[str] = None
    properties: tuple[ResolvedProperty, ...] = dataclass_field(default_factory=tuple)
    unique_constraints: tuple[str, ...] = dataclass_field(default_factory=tuple)

    @property
    def attributes(self) -> tuple[ResolvedAttribute, ...]:
        """Attributes in declaration order."""
        return tuple(p for p in self.properties if isinstance(p, ResolvedAttribute))

    @property
    def relationships(self) -> tuple[ResolvedRelationship, ...]:
        """Relationships in declaration order."""
        return tuple(p for p in self.properties if isinstance(p, ResolvedRelationship))

    def attribute(self, name: str) -> ResolvedAttribute | None:
        """Get an attribute by name."""
        for p in self.properties:
            if isinstance(p, ResolvedAttribute) and p.name == name:
                return p
        return None

    def relationship(self, name: str) -> ResolvedRelationship | None:
        """Get a relationship by name."""
        for p in self.properties:
            if isinstance(p, ResolvedRelationship) and p.name == name:
                return p
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the entity description handed to the runtime."""
        result: dict[str, Any] = {
            "name": self.name,
            "is_abstract": self.is_abstract,
            "bound_type_name": self.bound_type_name,
            "properties": [p.to_dict() for p in self.properties],
        }
        if self.unique_constraints:
            result["unique_constraints"] = list(self.unique_constraints)
        return result


class CompiledSchema:
    """Resolved, read-only schema graph.

    Built only by the SchemaCompiler. Entities are indexed by name and
    iterate in declaration order. Instances expose no mutators and can be
    shared between threads without locking.

    Attributes:
        name: Model name
        version: Model version
        fingerprint: SHA-256 fingerprint of the canonical representation

    Example:
        >>> schema.entity("Person").attribute("name").scalar_type
        <ScalarType.STRING: 'string'>
        >>> [e.name for e in schema.entities()]
        ['Person', 'Address']
    """

    def __init__(
        self,
        entities: Iterable[ResolvedEntity],
        name: str = "Model",
        version: int = 1,
    ) -> None:
        self._name = name
        self._version = version
        self._entities = MappingProxyType({e.name: e for e in entities})
        self._fingerprint = self._compute_fingerprint()

    @property
    def name(self) -> str:
        """Model name."""
        return self._name

    @property
    def version(self) -> int:
        """Model version."""
        return self._version

    @property
    def fingerprint(self) -> str:
        """Schema fingerprint ('sha256:<hex>')."""
        return self._fingerprint

    @property
    def entities_by_name(self) -> MappingProxyType:
        """Read-only mapping of entity name to ResolvedEntity."""
        return self._entities

    def entity(self, name: str) -> ResolvedEntity | None:
        """Get an entity by name."""
        return self._entities.get(name)

    def entities(self) -> Iterator[ResolvedEntity]:
        """Iterate over all entities in declaration order."""
        yield from self._entities.values()

    def entity_names(self) -> list[str]:
        """Get entity names in declaration order."""
        return list(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, name: object) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[ResolvedEntity]:
        return self.entities()

    def __repr__(self) -> str:
        return (
            f"CompiledSchema(name={self._name!r}, version={self._version}, "
            f"entities={list(self._entities)!r})"
        )

    def relationship_at(self, key: RelationshipKey) -> ResolvedRelationship | None:
        """Get a relationship by its (entity, relationship) key."""
        entity = self._entities.get(key.entity_name)
        if entity is None:
            return None
        return entity.relationship(key.relationship_name)

    def destination_of(self, relationship: ResolvedRelationship) -> ResolvedEntity:
        """Get the destination entity of a relationship."""
        return self._entities[relationship.destination_entity]

    def inverse_of(self, relationship: ResolvedRelationship) -> ResolvedRelationship | None:
        """Get the inverse of a relationship, if it has one."""
        if relationship.inverse_relationship is None:
            return None
        return self.relationship_at(relationship.inverse_relationship)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation.

        Returns:
            Dictionary with model 'name', 'version' and the 'entities' list
            in declaration order.
        """
        return {
            "name": self._name,
            "version": self._version,
            "entities": [e.to_dict() for e in self._entities.values()],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def _compute_fingerprint(self) -> str:
        """Compute SHA-256 fingerprint over canonical JSON of to_dict()."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        hash_bytes = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return f"sha256:{hash_bytes}"

    def validate_all(self) -> list[str]:
        """Check inverse pairs for consistency beyond symmetric linkage.

        Reports:
            - an inverse whose own destination is not the owning entity
            - to-many pairs pointing at each other with no inverse on
              either side

        Returns:
            List of findings (empty if consistent)
        """
        findings: list[str] = []
        seen: set[RelationshipKey] = set()

        for entity in self._entities.values():
            for rel in entity.relationships:
                inverse = self.inverse_of(rel)
                if inverse is not None:
                    if rel.key in seen:
                        continue
                    seen.add(inverse.key)
                    if inverse.destination_entity != rel.entity_name:
                        findings.append(
                            f"Relationship '{rel.key}' has inverse '{inverse.key}' whose "
                            f"destination is '{inverse.destination_entity}', "
                            f"not '{rel.entity_name}'"
                        )
                    continue

                if not rel.is_to_many:
                    continue
                for other in self.destination_of(rel).relationships:
                    if (
                        other.key != rel.key
                        and other.key not in seen
                        and other.is_to_many
                        and other.inverse_relationship is None
                        and other.destination_entity == rel.entity_name
                    ):
                        seen.add(rel.key)
                        findings.append(
                            f"To-many relationships '{rel.key}' and '{other.key}' point at "
                            f"each other but neither declares an inverse"
                        )
                        break

        return findings
