"""
Command line tool for entmodel schema documents.

Commands:
- validate: Compile a schema document and report problems
- describe: Print the compiled schema graph
- fingerprint: Print the compiled schema fingerprint

Usage:
    entmodel validate schema.yaml
    entmodel describe schema.yaml --format json
    entmodel fingerprint schema.yaml

Invariants:
    - Any schema error exits with status 1
    - JSON output is deterministic for the same document

Configuration comes from environment variables, see config.py.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence

import json_log_formatter

from .config import AppConfig, ObservabilityConfig
from .schema.compiled import CompiledSchema, ResolvedRelationship
from .schema.errors import EntModelError
from .schema_format import load_schema_file

logger = logging.getLogger(__name__)


def setup_logging(config: ObservabilityConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Observability configuration
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]


class SchemaCLI:
    """CLI operations on schema documents.

    Example:
        >>> cli = SchemaCLI(AppConfig())
        >>> schema = cli.compile_file("schema.yaml")
        >>> print(cli.describe(schema))
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()

    def compile_file(self, path: str) -> CompiledSchema:
        """Load and compile a schema document."""
        model = load_schema_file(path)
        return model.compile(self.config.compiler)

    def validate(self, path: str) -> tuple[bool, list[str]]:
        """Compile a document and collect problems.

        Returns:
            Tuple of (is_valid, list_of_messages). Consistency findings
            are reported without making the schema invalid unless strict
            consistency is configured.
        """
        try:
            schema = self.compile_file(path)
        except EntModelError as e:
            return False, [e.message]
        except OSError as e:
            return False, [f"Cannot read {path}: {e}"]
        return True, schema.validate_all()

    def describe(self, schema: CompiledSchema) -> str:
        """Render a compiled schema as indented text."""
        lines = [f"{schema.name} v{schema.version} ({schema.fingerprint})"]
        for entity in schema.entities():
            flags = " abstract" if entity.is_abstract else ""
            lines.append(f"  {entity.name} [{entity.bound_type_name}]{flags}")
            for prop in entity.properties:
                if isinstance(prop, ResolvedRelationship):
                    arrow = "->>" if prop.is_to_many else "->"
                    line = (
                        f"    {prop.name} {arrow} {prop.destination_entity} "
                        f"min={prop.min_count} max={prop.max_count} "
                        f"delete={prop.delete_rule.value}"
                    )
                    if prop.inverse_relationship is not None:
                        line += f" inverse={prop.inverse_relationship}"
                else:
                    optional = "?" if prop.is_optional else ""
                    line = f"    {prop.name}: {prop.scalar_type.value}{optional}"
                    if prop.default_value is not None:
                        line += f" = {prop.default_value!r}"
                lines.append(line)
        return "\n".join(lines)

    def describe_json(self, schema: CompiledSchema) -> dict[str, Any]:
        """Compiled schema as a dictionary, with its fingerprint."""
        return {"fingerprint": schema.fingerprint, "schema": schema.to_dict()}


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="entmodel schema tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate", help="Compile and validate a schema")
    validate_parser.add_argument("file", help="Schema document (.yaml, .yml or .json)")

    describe_parser = subparsers.add_parser("describe", help="Print the compiled schema")
    describe_parser.add_argument("file", help="Schema document (.yaml, .yml or .json)")
    describe_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    fingerprint_parser = subparsers.add_parser("fingerprint", help="Print schema fingerprint")
    fingerprint_parser.add_argument("file", help="Schema document (.yaml, .yml or .json)")

    args = parser.parse_args(argv)
    config = AppConfig.from_env()
    setup_logging(config.observability)
    cli = SchemaCLI(config)

    if args.command == "validate":
        is_valid, messages = cli.validate(args.file)
        if is_valid:
            print("Schema is valid")
            for message in messages:
                print(f"  warning: {message}")
            sys.exit(0)
        else:
            print("Schema validation failed:")
            for message in messages:
                print(f"  - {message}")
            sys.exit(1)

    try:
        schema = cli.compile_file(args.file)
    except EntModelError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "describe":
        if args.format == "json":
            print(json.dumps(cli.describe_json(schema), indent=2, default=str))
        else:
            print(cli.describe(schema))
    elif args.command == "fingerprint":
        print(schema.fingerprint)


if __name__ == "__main__":
    main()
