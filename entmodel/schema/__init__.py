"""
Schema module for entmodel.

This module provides the declaration types, the compiler, and the
compiled schema graph:
- Declarations (EntitySpec, AttributeSpec, RelationshipSpec)
- SchemaCompiler for two-pass name resolution
- CompiledSchema, the read-only resolved graph

Invariants:
    - Declarations and compiled schemas are immutable
    - Compilation either returns a fully linked schema or raises
    - Inverse relationships are always linked in both directions
"""

from ..config import DEFAULT_BOUND_TYPE_NAME
from .compiled import (
    CompiledSchema,
    RelationshipKey,
    ResolvedAttribute,
    ResolvedEntity,
    ResolvedRelationship,
)
from .compiler import SchemaCompiler, compile_schema
from .errors import (
    ConflictingInverseError,
    DuplicateEntityError,
    DuplicatePropertyError,
    EntModelError,
    SchemaError,
    SchemaFormatError,
    TypeMismatchError,
    UnknownDestinationEntityError,
    UnknownInverseRelationshipError,
    UnknownUniqueAttributeError,
)
from .types import (
    AttributeSpec,
    DeleteRule,
    EntitySpec,
    RelationshipSpec,
    ScalarType,
)

__all__ = [
    # Declarations
    "AttributeSpec",
    "RelationshipSpec",
    "EntitySpec",
    "ScalarType",
    "DeleteRule",
    "DEFAULT_BOUND_TYPE_NAME",
    # Compiler
    "SchemaCompiler",
    "compile_schema",
    # Compiled graph
    "CompiledSchema",
    "ResolvedEntity",
    "ResolvedAttribute",
    "ResolvedRelationship",
    "RelationshipKey",
    # Errors
    "EntModelError",
    "SchemaError",
    "TypeMismatchError",
    "DuplicatePropertyError",
    "DuplicateEntityError",
    "UnknownDestinationEntityError",
    "UnknownInverseRelationshipError",
    "ConflictingInverseError",
    "UnknownUniqueAttributeError",
    "SchemaFormatError",
]
