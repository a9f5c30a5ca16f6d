"""
Top-level data model declaration.

A DataModel is a named, versioned, ordered collection of entity
declarations. It is what a caller builds and hands around; compiling it
produces the CompiledSchema the persistence runtime consumes.

Example:
    >>> from entmodel import DataModel
    >>> from entmodel.schema import builders as m
    >>> model = DataModel(
    ...     m.entity("Person", m.string("name")),
    ...     m.entity("Address", m.string("street")),
    ...     version=2,
    ... )
    >>> schema = model.compile()
    >>> schema.version
    2
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from .config import CompilerConfig
from .schema.compiled import CompiledSchema
from .schema.compiler import SchemaCompiler
from .schema.types import EntitySpec

logger = logging.getLogger(__name__)


class DataModel:
    """Ordered collection of entity declarations.

    Attributes:
        name: Model name
        version: Model version (positive integer)
        entities: Entity declarations in declaration order
    """

    def __init__(self, *entities: EntitySpec, name: str = "Model", version: int = 1) -> None:
        if version <= 0:
            raise ValueError(f"version must be positive, got {version}")
        for e in entities:
            if not isinstance(e, EntitySpec):
                raise TypeError(f"DataModel entries must be EntitySpec, got {type(e).__name__}")
        self.name = name
        self.version = version
        self.entities: tuple[EntitySpec, ...] = tuple(entities)

    @classmethod
    def from_entities(
        cls,
        entities: Iterable[EntitySpec],
        name: str = "Model",
        version: int = 1,
    ) -> DataModel:
        """Create a model from any iterable of entity declarations."""
        return cls(*entities, name=name, version=version)

    def __iter__(self) -> Iterator[EntitySpec]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    def __repr__(self) -> str:
        names = [e.name for e in self.entities]
        return f"DataModel(name={self.name!r}, version={self.version}, entities={names!r})"

    def get_entity(self, name: str) -> EntitySpec | None:
        """Get an entity declaration by name (first match)."""
        for e in self.entities:
            if e.name == name:
                return e
        return None

    def compile(self, config: CompilerConfig | None = None) -> CompiledSchema:
        """Compile this model.

        Args:
            config: Optional compiler configuration

        Returns:
            CompiledSchema carrying this model's name and version

        Raises:
            SchemaError: If the declarations do not resolve
        """
        logger.debug(f"Compiling model '{self.name}' v{self.version}")
        return SchemaCompiler(config).compile(self.entities, name=self.name, version=self.version)
