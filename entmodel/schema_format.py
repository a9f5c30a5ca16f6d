"""
YAML/JSON document format for entmodel schemas.

This module parses schema documents into a DataModel and writes a
DataModel back out. Parsing only builds declarations; references are
checked when the model is compiled.

Example document:
    name: Shopping
    version: 1
    entities:
      - name: ShoppingList
        bound_type: app.models.ShoppingList
        unique: [name]
        properties:
          - attribute: {name: name, type: string, optional: false}
          - relationship:
              name: items
              destination: ShoppingListItem
              to_many: true
              delete_rule: cascade
              inverse: shoppingList

      - name: ShoppingListItem
        properties:
          - attribute: {name: title, type: string}
          - relationship: {name: shoppingList, destination: ShoppingList}

Typed defaults use their JSON-safe form: ISO-8601 strings for dates,
strings for UUIDs and decimals, base64 for binary data.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from .model import DataModel
from .schema.errors import SchemaFormatError
from .schema.types import (
    AttributeSpec,
    DeleteRule,
    EntitySpec,
    RelationshipSpec,
    ScalarType,
    decode_value,
    encode_value,
)


def _require(data: dict[str, Any], key: str, path: str) -> Any:
    value = data.get(key)
    if value in (None, ""):
        raise SchemaFormatError(f"'{key}' is required", path=path)
    return value


def _expect_mapping(data: Any, path: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise SchemaFormatError(f"expected a mapping, got {type(data).__name__}", path=path)
    return data


def _bool(data: dict[str, Any], key: str, default: bool, path: str) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise SchemaFormatError(f"'{key}' must be true or false, got {value!r}", path=path)
    return value


def parse_attribute(data: dict[str, Any], path: str = "attribute") -> AttributeSpec:
    """Parse an attribute from dict."""
    data = _expect_mapping(data, path)
    name = _require(data, "name", path)
    try:
        scalar_type = ScalarType.from_str(_require(data, "type", path))
        default = decode_value(scalar_type, data.get("default"))
    except ValueError as e:
        raise SchemaFormatError(str(e), path=path) from e
    return AttributeSpec(
        name=name,
        scalar_type=scalar_type,
        is_optional=_bool(data, "optional", True, path),
        default_value=default,
        allows_external_storage=_bool(data, "external_storage", False, path),
        preserves_on_delete=_bool(data, "preserve_on_delete", False, path),
    )


def parse_relationship(data: dict[str, Any], path: str = "relationship") -> RelationshipSpec:
    """Parse a relationship from dict."""
    data = _expect_mapping(data, path)
    try:
        delete_rule = DeleteRule.from_str(data.get("delete_rule", "nullify"))
    except ValueError as e:
        raise SchemaFormatError(str(e), path=path) from e
    return RelationshipSpec(
        name=_require(data, "name", path),
        destination_name=_require(data, "destination", path),
        is_to_many=_bool(data, "to_many", False, path),
        is_optional=_bool(data, "optional", True, path),
        delete_rule=delete_rule,
        inverse_name=data.get("inverse"),
    )


def parse_entity(data: dict[str, Any], path: str = "entity") -> EntitySpec:
    """Parse an entity from dict.

    Each entry of 'properties' holds exactly one 'attribute' or
    'relationship' key.
    """
    data = _expect_mapping(data, path)
    name = _require(data, "name", path)

    attributes: list[AttributeSpec] = []
    relationships: list[RelationshipSpec] = []
    for i, prop in enumerate(data.get("properties") or []):
        prop_path = f"{path}.properties[{i}]"
        prop = _expect_mapping(prop, prop_path)
        if set(prop) == {"attribute"}:
            attributes.append(parse_attribute(prop["attribute"], f"{prop_path}.attribute"))
        elif set(prop) == {"relationship"}:
            relationships.append(
                parse_relationship(prop["relationship"], f"{prop_path}.relationship")
            )
        else:
            raise SchemaFormatError(
                "property must hold exactly one of 'attribute' or 'relationship'",
                path=prop_path,
            )

    return EntitySpec(
        name=name,
        attributes=tuple(attributes),
        relationships=tuple(relationships),
        is_abstract=_bool(data, "abstract", False, path),
        bound_type_name=data.get("bound_type"),
        unique_constraints=tuple(data.get("unique") or ()),
    )


def parse_schema(data: dict[str, Any]) -> DataModel:
    """Parse a complete schema document from dict.

    Raises:
        SchemaFormatError: If the document is malformed
        DuplicatePropertyError: If an entity declares a name twice
        TypeMismatchError: If a default does not match its type
    """
    data = _expect_mapping(data, "schema")
    entities = [
        parse_entity(e, f"entities[{i}]") for i, e in enumerate(data.get("entities") or [])
    ]
    version = data.get("version", 1)
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise SchemaFormatError(f"version must be a positive integer, got {version!r}")
    return DataModel(*entities, name=data.get("name", "Model"), version=version)


def parse_yaml(yaml_str: str) -> DataModel:
    """Parse schema from YAML string."""
    try:
        data = yaml.safe_load(yaml_str)
    except yaml.YAMLError as e:
        raise SchemaFormatError(f"invalid YAML: {e}") from e
    return parse_schema(data or {})


def parse_json(json_str: str) -> DataModel:
    """Parse schema from JSON string."""
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise SchemaFormatError(f"invalid JSON: {e}") from e
    return parse_schema(data or {})


def load_schema_file(path: str | Path) -> DataModel:
    """Load a schema document, choosing the parser by file suffix.

    Args:
        path: Path to a .yaml, .yml or .json file

    Returns:
        Parsed DataModel
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SchemaFormatError(f"file is not valid UTF-8: {e}", path=str(path)) from e
    if path.suffix in (".yaml", ".yml"):
        return parse_yaml(text)
    if path.suffix == ".json":
        return parse_json(text)
    raise SchemaFormatError(f"unsupported schema file type '{path.suffix}'", path=str(path))


def dump_attribute(attr: AttributeSpec) -> dict[str, Any]:
    """Convert an attribute to its document form."""
    d: dict[str, Any] = {"name": attr.name, "type": attr.scalar_type.value}
    if not attr.is_optional:
        d["optional"] = False
    if attr.default_value is not None:
        d["default"] = encode_value(attr.scalar_type, attr.default_value)
    if attr.allows_external_storage:
        d["external_storage"] = True
    if attr.preserves_on_delete:
        d["preserve_on_delete"] = True
    return d


def dump_relationship(rel: RelationshipSpec) -> dict[str, Any]:
    """Convert a relationship to its document form."""
    d: dict[str, Any] = {"name": rel.name, "destination": rel.destination_name}
    if rel.is_to_many:
        d["to_many"] = True
    if not rel.is_optional:
        d["optional"] = False
    if rel.delete_rule != DeleteRule.NULLIFY:
        d["delete_rule"] = rel.delete_rule.value
    if rel.inverse_name:
        d["inverse"] = rel.inverse_name
    return d


def dump_entity(entity: EntitySpec) -> dict[str, Any]:
    """Convert an entity to its document form."""
    d: dict[str, Any] = {"name": entity.name}
    if entity.is_abstract:
        d["abstract"] = True
    if entity.bound_type_name:
        d["bound_type"] = entity.bound_type_name
    if entity.unique_constraints:
        d["unique"] = list(entity.unique_constraints)
    d["properties"] = [{"attribute": dump_attribute(a)} for a in entity.attributes] + [
        {"relationship": dump_relationship(r)} for r in entity.relationships
    ]
    return d


def dump_schema(model: DataModel) -> dict[str, Any]:
    """Convert a DataModel to its document form."""
    return {
        "name": model.name,
        "version": model.version,
        "entities": [dump_entity(e) for e in model.entities],
    }


def to_yaml(model: DataModel) -> str:
    """Convert a DataModel to a YAML string."""
    return yaml.dump(dump_schema(model), default_flow_style=False, sort_keys=False)


def to_json(model: DataModel) -> str:
    """Convert a DataModel to a JSON string."""
    return json.dumps(dump_schema(model), indent=2, default=str)
