"""
Unit tests for the YAML/JSON schema document format.

Tests cover:
- Parsing entities, attributes and relationships
- Typed default decoding
- Malformed document errors
- Writing documents back out
- Loading files by suffix
"""

import datetime
import json
import uuid
from decimal import Decimal

import pytest

from entmodel import DataModel
from entmodel.schema import builders as m
from entmodel.schema.errors import (
    DuplicatePropertyError,
    SchemaFormatError,
    TypeMismatchError,
)
from entmodel.schema.types import DeleteRule, ScalarType
from entmodel.schema_format import (
    dump_schema,
    load_schema_file,
    parse_json,
    parse_schema,
    parse_yaml,
    to_json,
    to_yaml,
)

SHOPPING_YAML = """
name: Shopping
version: 2
entities:
  - name: ShoppingList
    bound_type: app.models.ShoppingList
    unique: [name]
    properties:
      - attribute: {name: name, type: string, optional: false}
      - attribute: {name: created, type: date, default: 2024-01-02}
      - relationship:
          name: items
          destination: ShoppingListItem
          to_many: true
          delete_rule: cascade
          inverse: shoppingList

  - name: ShoppingListItem
    properties:
      - attribute: {name: title, type: string}
      - attribute: {name: price, type: decimal, default: "9.99"}
      - attribute: {name: photo, type: binary, external_storage: true}
      - relationship: {name: shoppingList, destination: ShoppingList}
"""


class TestParse:
    """Tests for parsing schema documents."""

    def test_parse_yaml(self):
        """YAML document parses into a DataModel."""
        model = parse_yaml(SHOPPING_YAML)

        assert isinstance(model, DataModel)
        assert model.name == "Shopping"
        assert model.version == 2
        assert [e.name for e in model] == ["ShoppingList", "ShoppingListItem"]

        shopping_list = model.get_entity("ShoppingList")
        assert shopping_list.bound_type_name == "app.models.ShoppingList"
        assert shopping_list.unique_constraints == ("name",)
        assert shopping_list.get_attribute("name").is_optional is False
        assert shopping_list.get_attribute("created").default_value == datetime.date(2024, 1, 2)

        items = shopping_list.get_relationship("items")
        assert items.destination_name == "ShoppingListItem"
        assert items.is_to_many is True
        assert items.delete_rule == DeleteRule.CASCADE
        assert items.inverse_name == "shoppingList"

        item = model.get_entity("ShoppingListItem")
        assert item.get_attribute("price").default_value == Decimal("9.99")
        assert item.get_attribute("photo").allows_external_storage is True

    def test_parsed_model_compiles(self):
        """Parsed model compiles with linked inverses."""
        schema = parse_yaml(SHOPPING_YAML).compile()

        items = schema.entity("ShoppingList").relationship("items")
        shopping_list = schema.entity("ShoppingListItem").relationship("shoppingList")
        assert items.inverse_relationship == shopping_list.key
        assert shopping_list.inverse_relationship == items.key

    def test_parse_json(self):
        """JSON document parses into a DataModel."""
        doc = {
            "entities": [
                {
                    "name": "Token",
                    "abstract": True,
                    "properties": [
                        {
                            "attribute": {
                                "name": "id",
                                "type": "uuid",
                                "default": "00000000-0000-0000-0000-000000000007",
                            }
                        },
                        {"attribute": {"name": "blob", "type": "binary", "default": "aGk="}},
                    ],
                }
            ]
        }

        model = parse_json(json.dumps(doc))

        assert model.name == "Model"
        assert model.version == 1
        token = model.get_entity("Token")
        assert token.is_abstract is True
        assert token.get_attribute("id").default_value == uuid.UUID(int=7)
        assert token.get_attribute("blob").default_value == b"hi"

    def test_empty_document(self):
        """An empty document is an empty model."""
        model = parse_yaml("")
        assert len(model) == 0


class TestParseErrors:
    """Tests for malformed documents."""

    def test_missing_entity_name(self):
        """Entity without a name is rejected with its path."""
        with pytest.raises(SchemaFormatError, match=r"entities\[0\]: 'name' is required"):
            parse_schema({"entities": [{"properties": []}]})

    def test_unknown_type(self):
        """Unknown type tag is rejected."""
        doc = {"entities": [{"name": "A", "properties": [{"attribute": {"name": "x", "type": "text"}}]}]}
        with pytest.raises(SchemaFormatError, match="Invalid scalar type 'text'") as exc_info:
            parse_schema(doc)
        assert exc_info.value.path == "entities[0].properties[0].attribute"

    def test_unknown_delete_rule(self):
        """Unknown delete rule is rejected."""
        doc = {
            "entities": [
                {
                    "name": "A",
                    "properties": [
                        {"relationship": {"name": "b", "destination": "B", "delete_rule": "drop"}}
                    ],
                }
            ]
        }
        with pytest.raises(SchemaFormatError, match="Invalid delete rule"):
            parse_schema(doc)

    def test_missing_destination(self):
        """Relationship without a destination is rejected."""
        doc = {"entities": [{"name": "A", "properties": [{"relationship": {"name": "b"}}]}]}
        with pytest.raises(SchemaFormatError, match="'destination' is required"):
            parse_schema(doc)

    def test_ambiguous_property(self):
        """A property entry must be exactly one kind."""
        doc = {
            "entities": [
                {
                    "name": "A",
                    "properties": [
                        {
                            "attribute": {"name": "x", "type": "string"},
                            "relationship": {"name": "y", "destination": "A"},
                        }
                    ],
                }
            ]
        }
        with pytest.raises(SchemaFormatError, match="exactly one of"):
            parse_schema(doc)

    def test_undecodable_default(self):
        """A default that cannot be decoded is rejected."""
        doc = {
            "entities": [
                {"name": "A", "properties": [{"attribute": {"name": "id", "type": "uuid", "default": "nope"}}]}
            ]
        }
        with pytest.raises(SchemaFormatError, match="Cannot decode"):
            parse_schema(doc)

    def test_type_mismatch_propagates(self):
        """Mismatched defaults raise TypeMismatchError."""
        doc = {
            "entities": [
                {"name": "A", "properties": [{"attribute": {"name": "n", "type": "int16", "default": "x"}}]}
            ]
        }
        with pytest.raises(TypeMismatchError):
            parse_schema(doc)

    def test_duplicate_property_propagates(self):
        """Duplicate property names raise DuplicatePropertyError."""
        doc = {
            "entities": [
                {
                    "name": "A",
                    "properties": [
                        {"attribute": {"name": "name", "type": "string"}},
                        {"attribute": {"name": "name", "type": "string"}},
                    ],
                }
            ]
        }
        with pytest.raises(DuplicatePropertyError):
            parse_schema(doc)

    @pytest.mark.parametrize(
        "kind,key",
        [
            ("attribute", "optional"),
            ("attribute", "external_storage"),
            ("attribute", "preserve_on_delete"),
            ("relationship", "to_many"),
            ("relationship", "optional"),
        ],
    )
    def test_property_flags_must_be_booleans(self, kind, key):
        """Property flags reject non-boolean values."""
        if kind == "attribute":
            body = {"name": "x", "type": "binary"}
        else:
            body = {"name": "x", "destination": "A"}
        body[key] = "no"
        doc = {"entities": [{"name": "A", "properties": [{kind: body}]}]}

        message = f"'{key}' must be true or false, got 'no'"
        with pytest.raises(SchemaFormatError, match=message) as exc_info:
            parse_schema(doc)
        assert exc_info.value.path == f"entities[0].properties[0].{kind}"

    def test_abstract_must_be_boolean(self):
        """Entity abstract flag rejects non-boolean values."""
        with pytest.raises(SchemaFormatError, match="'abstract' must be true or false"):
            parse_schema({"entities": [{"name": "A", "abstract": 1}]})

    def test_invalid_version(self):
        """Version must be a positive integer."""
        with pytest.raises(SchemaFormatError, match="version must be a positive integer"):
            parse_schema({"version": "two"})

    def test_invalid_yaml(self):
        """Unparseable YAML is a SchemaFormatError."""
        with pytest.raises(SchemaFormatError, match="invalid YAML"):
            parse_yaml("entities: [")

    def test_invalid_json(self):
        """Unparseable JSON is a SchemaFormatError."""
        with pytest.raises(SchemaFormatError, match="invalid JSON"):
            parse_json("{")

    def test_document_must_be_mapping(self):
        """Top-level document must be a mapping."""
        with pytest.raises(SchemaFormatError, match="expected a mapping"):
            parse_yaml("- just\n- a list\n")


class TestDump:
    """Tests for writing documents."""

    def test_dump_schema(self):
        """Model writes out with only non-default settings."""
        model = DataModel(
            m.entity(
                "Person",
                m.string("name", optional=False),
                m.integer32("age"),
                m.relationship("pets", "Pet", to_many=True, delete_rule="deny", inverse="owner"),
                bound_type="app.Person",
                unique=["name"],
            ),
            m.entity("Pet", m.relationship("owner", "Person")),
            name="Zoo",
        )

        doc = dump_schema(model)

        assert doc["name"] == "Zoo"
        person = doc["entities"][0]
        assert person["bound_type"] == "app.Person"
        assert person["unique"] == ["name"]
        assert person["properties"] == [
            {"attribute": {"name": "name", "type": "string", "optional": False}},
            {"attribute": {"name": "age", "type": "int32"}},
            {
                "relationship": {
                    "name": "pets",
                    "destination": "Pet",
                    "to_many": True,
                    "delete_rule": "deny",
                    "inverse": "owner",
                }
            },
        ]

    def test_yaml_output_parses_back(self):
        """YAML output parses to an equal model."""
        model = parse_yaml(SHOPPING_YAML)
        again = parse_yaml(to_yaml(model))
        assert again.entities == model.entities
        assert again.version == model.version

    def test_json_output_parses_back(self):
        """JSON output parses to an equal model."""
        model = parse_yaml(SHOPPING_YAML)
        again = parse_json(to_json(model))
        assert again.entities == model.entities


class TestLoadFile:
    """Tests for loading schema files."""

    def test_load_yaml_file(self, tmp_path):
        """A .yaml file is parsed as YAML."""
        path = tmp_path / "shopping.yaml"
        path.write_text(SHOPPING_YAML)

        model = load_schema_file(path)
        assert model.name == "Shopping"

    def test_load_json_file(self, tmp_path):
        """A .json file is parsed as JSON."""
        path = tmp_path / "schema.json"
        path.write_text(json.dumps({"entities": [{"name": "A"}]}))

        model = load_schema_file(str(path))
        assert [e.name for e in model] == ["A"]

    def test_file_not_utf8(self, tmp_path):
        """Undecodable bytes are a SchemaFormatError naming the file."""
        path = tmp_path / "schema.yaml"
        path.write_bytes(b"name: \xff\xfe\n")

        with pytest.raises(SchemaFormatError, match="not valid UTF-8") as exc_info:
            load_schema_file(path)
        assert exc_info.value.path == str(path)

    def test_unsupported_suffix(self, tmp_path):
        """Other suffixes are rejected."""
        path = tmp_path / "schema.toml"
        path.write_text("")
        with pytest.raises(SchemaFormatError, match="unsupported schema file type"):
            load_schema_file(path)

    def test_scalar_types_cover_document_tags(self):
        """Every scalar type tag is accepted in documents."""
        props = [{"attribute": {"name": t.value, "type": t.value}} for t in ScalarType]
        model = parse_schema({"entities": [{"name": "All", "properties": props}]})
        assert len(model.get_entity("All").attributes) == len(ScalarType)
