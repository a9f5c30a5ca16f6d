"""
Unit tests for the entmodel CLI.

Tests cover:
- validate, describe and fingerprint commands
- Exit codes for invalid schemas
- Logging setup
"""

import json
import logging

import json_log_formatter
import pytest

from entmodel import cli
from entmodel.cli import SchemaCLI, main, setup_logging
from entmodel.config import AppConfig, CompilerConfig, ObservabilityConfig

VALID_YAML = """
name: School
entities:
  - name: Student
    properties:
      - attribute: {name: name, type: string}
      - relationship: {name: courses, destination: Course, to_many: true, inverse: students}
  - name: Course
    properties:
      - attribute: {name: title, type: string}
      - relationship: {name: students, destination: Student, to_many: true}
"""

DANGLING_YAML = """
entities:
  - name: Student
    properties:
      - relationship: {name: courses, destination: Course, to_many: true}
"""

UNLINKED_YAML = """
entities:
  - name: Student
    properties:
      - relationship: {name: courses, destination: Course, to_many: true}
  - name: Course
    properties:
      - relationship: {name: students, destination: Student, to_many: true}
"""


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from replacing the test logging handlers."""
    monkeypatch.setattr(cli, "setup_logging", lambda config: None)


@pytest.fixture
def write_schema(tmp_path):
    def _write(content, name="schema.yaml"):
        path = tmp_path / name
        path.write_text(content)
        return str(path)

    return _write


class TestValidateCommand:
    """Tests for 'entmodel validate'."""

    def test_valid_schema(self, write_schema, capsys):
        """A valid schema exits 0."""
        path = write_schema(VALID_YAML)

        with pytest.raises(SystemExit) as exc_info:
            main(["validate", path])

        assert exc_info.value.code == 0
        assert "Schema is valid" in capsys.readouterr().out

    def test_dangling_reference(self, write_schema, capsys):
        """An unknown destination exits 1 and names it."""
        path = write_schema(DANGLING_YAML)

        with pytest.raises(SystemExit) as exc_info:
            main(["validate", path])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Schema validation failed" in out
        assert "unknown destination entity 'Course'" in out

    def test_findings_are_warnings(self, write_schema, capsys):
        """Consistency findings are printed as warnings."""
        path = write_schema(UNLINKED_YAML)

        with pytest.raises(SystemExit) as exc_info:
            main(["validate", path])

        assert exc_info.value.code == 0
        assert "warning: To-many relationships" in capsys.readouterr().out

    def test_strict_findings_fail(self, write_schema, monkeypatch, capsys):
        """Strict consistency turns findings into failures."""
        monkeypatch.setenv("ENTMODEL_STRICT_CONSISTENCY", "true")
        path = write_schema(UNLINKED_YAML)

        with pytest.raises(SystemExit) as exc_info:
            main(["validate", path])

        assert exc_info.value.code == 1
        assert "failed consistency checks" in capsys.readouterr().out

    def test_file_not_utf8(self, tmp_path, capsys):
        """A file that is not UTF-8 is reported as invalid."""
        path = tmp_path / "schema.yaml"
        path.write_bytes(b"name: \xff\xfe\n")

        with pytest.raises(SystemExit) as exc_info:
            main(["validate", str(path)])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Schema validation failed" in out
        assert "not valid UTF-8" in out

    def test_missing_file(self, tmp_path, capsys):
        """A missing file is reported as invalid."""
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 1
        assert "Cannot read" in capsys.readouterr().out


class TestDescribeCommand:
    """Tests for 'entmodel describe' and 'entmodel fingerprint'."""

    def test_describe_text(self, write_schema, capsys):
        """Text output lists entities and linked relationships."""
        main(["describe", write_schema(VALID_YAML)])

        out = capsys.readouterr().out
        assert "School v1" in out
        assert "  Student [ManagedObject]" in out
        assert "    name: string?" in out
        assert "courses ->> Course min=0 max=0 delete=nullify inverse=Course.students" in out

    def test_describe_json(self, write_schema, capsys):
        """JSON output holds the fingerprint and compiled schema."""
        main(["describe", write_schema(VALID_YAML), "--format", "json"])

        data = json.loads(capsys.readouterr().out)
        assert data["fingerprint"].startswith("sha256:")
        assert [e["name"] for e in data["schema"]["entities"]] == ["Student", "Course"]

    def test_describe_invalid_exits(self, write_schema, capsys):
        """Describe exits 1 on schema errors."""
        with pytest.raises(SystemExit) as exc_info:
            main(["describe", write_schema(DANGLING_YAML)])

        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_fingerprint(self, write_schema, capsys):
        """Fingerprint matches the compiled schema."""
        path = write_schema(VALID_YAML)
        main(["fingerprint", path])

        expected = SchemaCLI().compile_file(path).fingerprint
        assert capsys.readouterr().out.strip() == expected


class TestSchemaCLI:
    """Tests for SchemaCLI directly."""

    def test_compile_file_uses_config(self, write_schema):
        """Compiler config applies to compiled files."""
        config = AppConfig(compiler=CompilerConfig(default_bound_type_name="app.Row"))
        schema = SchemaCLI(config).compile_file(write_schema(VALID_YAML))
        assert schema.entity("Student").bound_type_name == "app.Row"

    def test_describe_shows_defaults(self, write_schema):
        """Attribute defaults appear in text output."""
        path = write_schema(
            "entities:\n  - name: A\n    properties:\n"
            "      - attribute: {name: n, type: int16, default: 3, optional: false}\n"
        )
        cli_ = SchemaCLI()
        text = cli_.describe(cli_.compile_file(path))
        assert "    n: int16 = 3" in text


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_levels_and_text_format(self):
        """Root logger takes the configured level and one text handler."""
        root = logging.getLogger()
        saved_level, saved_handlers = root.level, root.handlers[:]
        try:
            setup_logging(ObservabilityConfig(log_level="debug", log_format="text"))
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert root.handlers[0].formatter._fmt.startswith("%(asctime)s")
        finally:
            root.setLevel(saved_level)
            root.handlers = saved_handlers

    def test_json_lines_parse(self):
        """JSON log lines stay valid with quotes and newlines in the message."""
        root = logging.getLogger()
        saved_level, saved_handlers = root.level, root.handlers[:]
        try:
            setup_logging(ObservabilityConfig(log_level="info", log_format="json"))
            handler = root.handlers[0]
            assert isinstance(handler.formatter, json_log_formatter.JSONFormatter)

            message = 'entity "Person" is\nbroken'
            record = logging.LogRecord(
                "entmodel.schema.compiler", logging.WARNING, __file__, 1, message, None, None
            )
            data = json.loads(handler.format(record))

            assert data["message"] == message
            assert "time" in data
        finally:
            root.setLevel(saved_level)
            root.handlers = saved_handlers
