# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""YAML and JSON workflow loader with environment variable resolution.

This module handles loading workflow definition sources, resolving
environment variables, checking the structural rules and parsing the
result into typed Pydantic models.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from stepflow.config.schema import WorkflowDefinition
from stepflow.config.validator import validate_definition
from stepflow.exceptions import LoadError

logger = logging.getLogger(__name__)

SourceFormat = Literal["yaml", "json"]

# Pattern to match ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

FORMAT_BY_EXTENSION: dict[str, SourceFormat] = {
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
}


def resolve_env_vars(value: str, max_depth: int = 10) -> str:
    """Resolve ${ENV:-default} patterns in strings.

    Supports recursive resolution where environment variable values
    may themselves contain environment variable references.

    Args:
        value: The string potentially containing env var references.
        max_depth: Maximum recursion depth to prevent infinite loops.

    Returns:
        The string with all environment variables resolved.

    Raises:
        LoadError: If a required environment variable is missing
            (no default provided) or recursion limit is exceeded.
    """
    if max_depth <= 0:
        raise LoadError(
            f"Maximum recursion depth exceeded while resolving environment variables in: {value}",
            suggestion="Check for circular references in your environment variables.",
        )

    def replace_env_var(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2)

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value
        elif default_value is not None:
            return default_value
        else:
            raise LoadError(
                f"Required environment variable '{var_name}' is not set",
                suggestion=f"Set the environment variable '{var_name}' or provide a default "
                f"value using the syntax: ${{{var_name}:-default_value}}",
            )

    result = ENV_VAR_PATTERN.sub(replace_env_var, value)

    if ENV_VAR_PATTERN.search(result):
        return resolve_env_vars(result, max_depth - 1)

    return result


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve environment variables in a data structure.

    Args:
        data: The data structure (dict, list, or scalar) to process.

    Returns:
        The data structure with all string values having env vars resolved.
    """
    if isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    else:
        return data


def detect_format(content: str) -> SourceFormat:
    """Guess the serialization of a definition source.

    JSON documents start with an object; everything else is parsed as YAML.
    """
    return "json" if content.lstrip().startswith("{") else "yaml"


class WorkflowLoader:
    """Loads and validates workflow definitions from YAML or JSON sources.

    This class handles:
    - YAML and JSON parsing with line numbers in error messages
    - Environment variable resolution
    - Structural rule checks with rule-specific messages
    - Pydantic schema validation

    Attributes:
        warnings: Non-fatal issues found by the most recent load.
    """

    def __init__(self) -> None:
        """Initialize the loader with a ruamel.yaml safe parser."""
        self._yaml = YAML(typ="safe", pure=True)
        self.warnings: list[str] = []

    def load_file(self, path: str | Path) -> WorkflowDefinition:
        """Load a workflow definition from a file.

        The serialization is chosen from the file extension.

        Args:
            path: Path to a .yaml, .yml or .json file.

        Returns:
            A validated WorkflowDefinition.

        Raises:
            LoadError: If the file cannot be read, has an unsupported
                extension, or its content fails to load.
        """
        path = Path(path)

        if not path.exists():
            raise LoadError(
                f"Workflow file not found: {path}",
                suggestion="Check that the file path is correct and the file exists.",
                source=str(path),
            )

        if not path.is_file():
            raise LoadError(
                f"Path is not a file: {path}",
                suggestion="Provide a path to a workflow file, not a directory.",
                source=str(path),
            )

        source_format = FORMAT_BY_EXTENSION.get(path.suffix.lower())
        if source_format is None:
            raise LoadError(
                f"Unsupported file type: {path.suffix or '<none>'}",
                suggestion="Workflow files must end in .yaml, .yml or .json",
                source=str(path),
            )

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise LoadError(
                f"Failed to read workflow file '{path}': {e}",
                suggestion="Check file permissions and ensure the file is readable.",
                source=str(path),
            ) from e

        return self.load_string(content, format=source_format, source_path=path)

    def load_string(
        self,
        content: str,
        format: SourceFormat | None = None,
        source_path: str | Path | None = None,
    ) -> WorkflowDefinition:
        """Load a workflow definition from a string.

        Args:
            content: The YAML or JSON text.
            format: The serialization; detected from the content when None.
            source_path: Optional path recorded on the definition and used in
                error messages.

        Returns:
            A validated WorkflowDefinition.

        Raises:
            LoadError: If the content is invalid or fails validation.
        """
        source = str(source_path) if source_path else "<string>"
        data = self.parse(content, format=format, source=source)
        return self.load_dict(data, source_path=source_path)

    def load_dict(
        self,
        data: dict[str, Any],
        source_path: str | Path | None = None,
    ) -> WorkflowDefinition:
        """Load a workflow definition from already-parsed data.

        Args:
            data: The definition as a mapping.
            source_path: Optional path recorded on the definition.

        Returns:
            A validated WorkflowDefinition.

        Raises:
            LoadError: If the data fails validation.
        """
        source = str(source_path) if source_path else "<string>"
        if not isinstance(data, dict):
            raise LoadError(
                f"Workflow definition must be a mapping, got {type(data).__name__}",
                source=source,
                rule="structure",
            )
        data = dict(data)

        try:
            data = _resolve_env_vars_recursive(data)
        except LoadError as e:
            e.source = source
            raise

        self.warnings = validate_definition(data, source=source)
        for warning in self.warnings:
            logger.warning(f"{source}: {warning}")

        if source_path is not None:
            data["source_path"] = str(source_path)
        return self._validate(data, source)

    def parse(
        self,
        content: str,
        format: SourceFormat | None = None,
        source: str = "<string>",
    ) -> dict[str, Any]:
        """Parse definition text into plain dicts and lists.

        Args:
            content: The YAML or JSON text.
            format: The serialization; detected from the content when None.
            source: Source label for error messages.

        Returns:
            The parsed top-level mapping.

        Raises:
            LoadError: On syntax errors, empty documents or non-mapping documents.
        """
        source_format = format or detect_format(content)

        if source_format == "json":
            try:
                data = json.loads(content) if content.strip() else None
            except json.JSONDecodeError as e:
                raise LoadError(
                    f"Invalid JSON syntax in '{source}' at line {e.lineno}, "
                    f"column {e.colno}: {e.msg}",
                    source=source,
                    rule="syntax",
                ) from e
        else:
            try:
                data = self._yaml.load(content)
            except YAMLError as e:
                line_info = ""
                if hasattr(e, "problem_mark") and e.problem_mark is not None:
                    mark = e.problem_mark
                    line_info = f" at line {mark.line + 1}, column {mark.column + 1}"  # type: ignore[union-attr]

                raise LoadError(
                    f"Invalid YAML syntax in '{source}'{line_info}: {e}",
                    source=source,
                    rule="syntax",
                ) from e

        if data is None:
            raise LoadError(
                f"Empty workflow definition: {source}",
                suggestion="Add a workflow definition with a name and steps.",
                source=source,
            )

        if not isinstance(data, dict):
            raise LoadError(
                f"Invalid workflow format in '{source}': "
                f"expected a mapping, got {type(data).__name__}",
                suggestion="Ensure the document is a mapping with 'name' and 'steps' keys.",
                source=source,
            )

        return data

    def _validate(self, data: dict[str, Any], source: str) -> WorkflowDefinition:
        """Validate definition data against the Pydantic schema.

        Args:
            data: The parsed and env-var-resolved definition data.
            source: The source label for error messages.

        Returns:
            A validated WorkflowDefinition.

        Raises:
            LoadError: If the data fails schema validation.
        """
        try:
            return WorkflowDefinition.model_validate(data)
        except PydanticValidationError as e:
            formatted_errors: list[str] = []
            for err in e.errors():
                loc = ".".join(str(x) for x in err.get("loc", []))
                msg = err.get("msg", "Unknown error")
                formatted_errors.append(f"  - {loc}: {msg}" if loc else f"  - {msg}")

            raise LoadError(
                f"Workflow validation failed in '{source}':\n" + "\n".join(formatted_errors),
                suggestion="Check the workflow definition against the schema. "
                "Ensure all fields have valid values.",
                source=source,
                rule="schema",
            ) from e


def load_workflow_file(path: str | Path) -> WorkflowDefinition:
    """Convenience function to load a workflow definition from a file.

    Args:
        path: Path to the workflow file.

    Returns:
        A validated WorkflowDefinition.

    Raises:
        LoadError: If loading or validation fails.
    """
    return WorkflowLoader().load_file(path)


def load_workflow_string(
    content: str,
    format: SourceFormat | None = None,
    source_path: str | Path | None = None,
) -> WorkflowDefinition:
    """Convenience function to load a workflow definition from a string.

    Args:
        content: The YAML or JSON text.
        format: The serialization; detected from the content when None.
        source_path: Optional path for error messages.

    Returns:
        A validated WorkflowDefinition.

    Raises:
        LoadError: If loading or validation fails.
    """
    return WorkflowLoader().load_string(content, format=format, source_path=source_path)
