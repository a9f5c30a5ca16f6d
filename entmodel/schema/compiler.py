"""
Schema compiler for entmodel.

The SchemaCompiler turns an ordered list of EntitySpec declarations, which
refer to each other only by name, into a CompiledSchema in which every
relationship knows its destination entity and its inverse.

Resolution runs in two passes because any entity may reference entities
and relationships declared after it, including itself:

1. Skeleton: every entity is registered by name with its attributes
   resolved and its relationships as unlinked drafts.
2. Linking: each relationship, in declaration order, looks up its
   destination and (if declared) its inverse, and links the inverse pair
   in both directions.

Invariants:
    - Compilation is all-or-nothing; a failure raises before any
      CompiledSchema is built
    - Drafts are private to one compile() call and are frozen into
      immutable resolved types only after linking succeeds
    - Declaring the inverse on one side links both sides
    - A relationship is linked to at most one inverse

How to change safely:
    - Keep error order tied to declaration order (entities, then
      relationships within an entity)
    - Never hand out drafts; build resolved types from them at the end

Example:
    >>> from entmodel.schema import builders as m
    >>> schema = compile_schema([
    ...     m.entity("ShoppingList",
    ...         m.relationship("items", "ShoppingListItem", to_many=True,
    ...                        inverse="shoppingList")),
    ...     m.entity("ShoppingListItem",
    ...         m.relationship("shoppingList", "ShoppingList")),
    ... ])
    >>> schema.entity("ShoppingListItem").relationship("shoppingList").inverse_relationship
    RelationshipKey(entity_name='ShoppingList', relationship_name='items')
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from ..config import CompilerConfig
from .compiled import (
    CompiledSchema,
    RelationshipKey,
    ResolvedAttribute,
    ResolvedEntity,
    ResolvedProperty,
    ResolvedRelationship,
)
from .errors import (
    ConflictingInverseError,
    DuplicateEntityError,
    SchemaError,
    UnknownDestinationEntityError,
    UnknownInverseRelationshipError,
    UnknownUniqueAttributeError,
)
from .types import AttributeSpec, EntitySpec, RelationshipSpec, is_opaque

logger = logging.getLogger(__name__)


@dataclass
class _RelationshipDraft:
    """Relationship whose references are not linked yet."""

    entity_name: str
    spec: RelationshipSpec
    destination_entity: Optional[str] = None
    inverse_relationship: Optional[RelationshipKey] = None

    @property
    def key(self) -> RelationshipKey:
        return RelationshipKey(self.entity_name, self.spec.name)

    def freeze(self) -> ResolvedRelationship:
        if self.destination_entity is None:
            raise SchemaError(
                f"Relationship '{self.key}' was not resolved",
                code="UNRESOLVED_RELATIONSHIP",
                details={"entity": self.entity_name, "relationship": self.spec.name},
            )
        return ResolvedRelationship(
            entity_name=self.entity_name,
            name=self.spec.name,
            destination_entity=self.destination_entity,
            is_to_many=self.spec.is_to_many,
            is_optional=self.spec.is_optional,
            delete_rule=self.spec.delete_rule,
            inverse_name=self.spec.inverse_name,
            inverse_relationship=self.inverse_relationship,
        )


@dataclass
class _EntityDraft:
    spec: EntitySpec
    attributes: List[ResolvedAttribute]
    relationships: Dict[str, _RelationshipDraft]


class SchemaCompiler:
    """Compiles entity declarations into a CompiledSchema.

    A compiler holds only configuration, so one instance can compile any
    number of schemas, from any number of threads.

    Attributes:
        config: Compiler configuration

    Example:
        >>> compiler = SchemaCompiler()
        >>> schema = compiler.compile([Person, Address])
        >>> len(schema)
        2
    """

    def __init__(self, config: CompilerConfig | None = None) -> None:
        """Initialize the compiler.

        Args:
            config: Optional compiler configuration (defaults if not provided)
        """
        self.config = config or CompilerConfig()

    def compile(
        self,
        entity_specs: Iterable[EntitySpec],
        name: str = "Model",
        version: int = 1,
    ) -> CompiledSchema:
        """Compile entity declarations into a resolved schema.

        Args:
            entity_specs: Entity declarations, in declaration order
            name: Model name recorded on the compiled schema
            version: Model version recorded on the compiled schema

        Returns:
            CompiledSchema with every reference resolved

        Raises:
            DuplicateEntityError: If two entities share a name
            UnknownUniqueAttributeError: If a uniqueness constraint names
                no attribute
            UnknownDestinationEntityError: If a destination is undeclared
            UnknownInverseRelationshipError: If an inverse is undeclared
            ConflictingInverseError: If a relationship gets two inverses
            SchemaError: If an opaque default cannot be copied or
                serialized, or if strict consistency is enabled and
                CompiledSchema.validate_all() reports findings
        """
        specs = list(entity_specs)
        self._check_unique_entities(specs)

        registry = self._build_skeleton(specs)
        logger.debug(f"Built skeleton for {len(registry)} entities")

        self._link(registry)

        entities = [self._freeze(draft) for draft in registry.values()]
        try:
            schema = CompiledSchema(entities, name=name, version=version)
        except (TypeError, ValueError, RecursionError) as e:
            raise SchemaError(
                f"Schema '{name}' cannot be serialized: {e}",
                code="UNSERIALIZABLE_SCHEMA",
            ) from e

        findings = schema.validate_all()
        for finding in findings:
            logger.warning(f"Schema '{name}': {finding}")
        if findings and self.config.strict_consistency:
            raise SchemaError(
                f"Schema '{name}' failed consistency checks: {'; '.join(findings)}",
                code="INCONSISTENT_SCHEMA",
                details={"findings": findings},
            )

        logger.info(
            f"Compiled schema '{name}' v{version} with {len(schema)} entities, "
            f"fingerprint={schema.fingerprint}"
        )
        return schema

    def _check_unique_entities(self, specs: List[EntitySpec]) -> None:
        seen: set[str] = set()
        for spec in specs:
            if spec.name in seen:
                raise DuplicateEntityError(spec.name)
            seen.add(spec.name)

    def _build_skeleton(self, specs: List[EntitySpec]) -> Dict[str, _EntityDraft]:
        """Pass 1: register every entity with unlinked relationships."""
        registry: Dict[str, _EntityDraft] = {}

        for spec in specs:
            attributes = [
                ResolvedAttribute(
                    entity_name=spec.name,
                    name=a.name,
                    scalar_type=a.scalar_type,
                    is_optional=a.is_optional,
                    default_value=self._copy_default(spec.name, a),
                    allows_external_storage=a.allows_external_storage,
                    preserves_on_delete=a.preserves_on_delete,
                )
                for a in spec.attributes
            ]

            attribute_names = {a.name for a in spec.attributes}
            for unique_name in spec.unique_constraints:
                if unique_name not in attribute_names:
                    raise UnknownUniqueAttributeError(spec.name, unique_name)

            relationships = {
                r.name: _RelationshipDraft(entity_name=spec.name, spec=r)
                for r in spec.relationships
            }
            registry[spec.name] = _EntityDraft(spec, attributes, relationships)

        return registry

    def _copy_default(self, entity_name: str, attr: AttributeSpec) -> Any:
        """Detach opaque defaults from the caller's declaration."""
        if not is_opaque(attr.scalar_type):
            return attr.default_value
        try:
            return copy.deepcopy(attr.default_value)
        except (TypeError, copy.Error) as e:
            raise SchemaError(
                f"Default value for attribute '{entity_name}.{attr.name}' "
                f"cannot be copied: {e}",
                code="UNCOPYABLE_DEFAULT",
                details={"entity": entity_name, "attribute": attr.name},
            ) from e

    def _link(self, registry: Dict[str, _EntityDraft]) -> None:
        """Pass 2: resolve destinations and link inverse pairs."""
        for entity_name, draft in registry.items():
            for rel in draft.relationships.values():
                destination = registry.get(rel.spec.destination_name)
                if destination is None:
                    raise UnknownDestinationEntityError(
                        entity_name, rel.spec.name, rel.spec.destination_name
                    )
                rel.destination_entity = rel.spec.destination_name

                inverse_name = rel.spec.inverse_name
                if inverse_name is None:
                    logger.debug(f"Resolved {rel.key} -> {rel.destination_entity}")
                    continue

                inverse = destination.relationships.get(inverse_name)
                if inverse is None:
                    raise UnknownInverseRelationshipError(
                        entity_name,
                        rel.spec.name,
                        inverse_name,
                        destination_name=rel.spec.destination_name,
                    )

                self._link_pair(rel, inverse)
                logger.debug(
                    f"Resolved {rel.key} -> {rel.destination_entity} "
                    f"(inverse {inverse.key})"
                )

    def _link_pair(self, rel: _RelationshipDraft, inverse: _RelationshipDraft) -> None:
        """Link rel and inverse to each other, refusing to relink either."""
        if rel.inverse_relationship not in (None, inverse.key):
            raise ConflictingInverseError(
                rel.entity_name,
                rel.spec.name,
                existing=str(rel.inverse_relationship),
                requested=str(inverse.key),
            )
        if inverse.inverse_relationship not in (None, rel.key):
            raise ConflictingInverseError(
                inverse.entity_name,
                inverse.spec.name,
                existing=str(inverse.inverse_relationship),
                requested=str(rel.key),
            )
        rel.inverse_relationship = inverse.key
        inverse.inverse_relationship = rel.key

    def _freeze(self, draft: _EntityDraft) -> ResolvedEntity:
        spec = draft.spec
        properties: List[ResolvedProperty] = list(draft.attributes)
        properties.extend(r.freeze() for r in draft.relationships.values())
        return ResolvedEntity(
            name=spec.name,
            is_abstract=spec.is_abstract,
            bound_type_name=spec.bound_type_name or self.config.default_bound_type_name,
            declared_bound_type_name=spec.bound_type_name,
            properties=tuple(properties),
            unique_constraints=spec.unique_constraints,
        )


def compile_schema(
    entity_specs: Iterable[EntitySpec],
    name: str = "Model",
    version: int = 1,
    config: CompilerConfig | None = None,
) -> CompiledSchema:
    """Compile entity declarations with a one-off SchemaCompiler.

    See SchemaCompiler.compile for arguments and errors.
    """
    return SchemaCompiler(config).compile(entity_specs, name=name, version=version)
