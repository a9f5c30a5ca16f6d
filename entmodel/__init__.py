"""
entmodel - declarative entity schema builder.

This package compiles declarative entity descriptions into a resolved
schema graph for a persistence runtime:
- Entities with typed attributes and relationships
- Relationships referring to entities by name, forward and self
  references included
- A two-pass compiler that links destinations and inverse pairs
- An immutable, cross-referenced CompiledSchema

Architecture:
    ┌──────────────┐     ┌────────────────┐     ┌────────────────┐
    │ EntitySpec[] │────▶│ SchemaCompiler │────▶│ CompiledSchema │────▶ runtime
    │ (DataModel)  │     │ pass 1: build  │     │ (read-only)    │
    └──────────────┘     │ pass 2: link   │     └────────────────┘
           ▲             └────────────────┘
           │
    ┌──────────────┐
    │ YAML / JSON  │
    │  documents   │
    └──────────────┘

Invariants:
    - Compilation is all-or-nothing
    - Inverse relationships are linked symmetrically
    - Compiled schemas are immutable and safe to share between threads

Example:
    >>> from entmodel import DataModel, builders as m
    >>> model = DataModel(
    ...     m.entity("Student", m.relationship("courses", "Course", to_many=True,
    ...                                        inverse="students")),
    ...     m.entity("Course", m.relationship("students", "Student", to_many=True)),
    ... )
    >>> schema = model.compile()
"""

from ._version import __version__
from .config import DEFAULT_BOUND_TYPE_NAME, AppConfig, CompilerConfig
from .model import DataModel
from .schema import builders
from .schema.compiled import CompiledSchema, RelationshipKey
from .schema.compiler import SchemaCompiler, compile_schema
from .schema.errors import EntModelError, SchemaError
from .schema.types import AttributeSpec, DeleteRule, EntitySpec, RelationshipSpec, ScalarType

__all__ = [
    "__version__",
    "DEFAULT_BOUND_TYPE_NAME",
    "AppConfig",
    "CompilerConfig",
    "DataModel",
    "builders",
    "AttributeSpec",
    "RelationshipSpec",
    "EntitySpec",
    "ScalarType",
    "DeleteRule",
    "SchemaCompiler",
    "compile_schema",
    "CompiledSchema",
    "RelationshipKey",
    "EntModelError",
    "SchemaError",
]
