"""
Unit tests for DataModel.

Tests cover:
- Model construction and validation
- Compiling through the model
"""

import pytest

from entmodel import DataModel
from entmodel.config import CompilerConfig
from entmodel.schema import builders as m
from entmodel.schema.errors import UnknownDestinationEntityError


class TestDataModel:
    """Tests for DataModel."""

    def test_create_model(self):
        """Model keeps entities in declaration order."""
        model = DataModel(m.entity("Person"), m.entity("Address"), name="People", version=2)

        assert len(model) == 2
        assert [e.name for e in model] == ["Person", "Address"]
        assert model.get_entity("Address").name == "Address"
        assert model.get_entity("Nobody") is None
        assert "People" in repr(model)

    def test_version_must_be_positive(self):
        """Version must be positive."""
        with pytest.raises(ValueError, match="version must be positive"):
            DataModel(version=0)

    def test_entries_must_be_entities(self):
        """Only EntitySpec values are accepted."""
        with pytest.raises(TypeError, match="must be EntitySpec"):
            DataModel(m.string("name"))

    def test_from_entities(self):
        """Model can be built from any iterable."""
        model = DataModel.from_entities((m.entity(n) for n in ["A", "B"]), version=3)
        assert model.version == 3
        assert len(model) == 2

    def test_compile(self):
        """Compiled schema carries the model name and version."""
        model = DataModel(
            m.entity("Department", m.relationship("employees", "Employee", to_many=True, inverse="department")),
            m.entity("Employee", m.relationship("department", "Department")),
            name="Company",
            version=4,
        )

        schema = model.compile()

        assert schema.name == "Company"
        assert schema.version == 4
        employees = schema.entity("Department").relationship("employees")
        assert schema.inverse_of(employees).name == "department"

    def test_compile_with_config(self):
        """Compiler config is passed through."""
        model = DataModel(m.entity("Person"))
        schema = model.compile(CompilerConfig(default_bound_type_name="app.Base"))
        assert schema.entity("Person").bound_type_name == "app.Base"

    def test_compile_error_propagates(self):
        """Compile errors reach the caller."""
        model = DataModel(m.entity("Person", m.relationship("address", "Address")))
        with pytest.raises(UnknownDestinationEntityError):
            model.compile()
