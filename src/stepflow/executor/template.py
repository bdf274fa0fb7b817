# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Sandboxed Jinja2 rendering for template steps.

Template sources come from workflow definitions only. Values from the
execution scope are passed to Jinja2 as data and are never compiled, and
the sandbox blocks access to private and internal attributes, so neither a
definition nor a caller's input can reach Python internals.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from jinja2 import StrictUndefined, Template, TemplateSyntaxError, UndefinedError
from jinja2.exceptions import SecurityError
from jinja2.sandbox import SandboxedEnvironment

from stepflow.exceptions import TemplateError


def to_json(value: Any, indent: int | None = None) -> str:
    """Jinja2 ``json`` filter; unknown types are written with str()."""
    return json.dumps(value, indent=indent, default=str)


def or_default(value: Any, fallback: Any = "") -> Any:
    """Jinja2 ``default`` filter that also replaces None."""
    return fallback if value is None else value


class TemplateRenderer:
    """Renders template step bodies in a Jinja2 sandbox.

    Missing variables raise instead of rendering empty text. Compiled
    templates are cached per source string, since the same step body is
    rendered once per execution.

    Example:
        >>> renderer = TemplateRenderer()
        >>> renderer.render("Hello {{ inputs.name }}!", {"inputs": {"name": "Ada"}})
        'Hello Ada!'
    """

    def __init__(self, filters: Mapping[str, Callable[..., Any]] | None = None) -> None:
        """Initialize the renderer.

        Args:
            filters: Extra Jinja2 filters, added after the built-in
                ``json`` and ``default`` filters.
        """
        self.env = SandboxedEnvironment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.filters["json"] = to_json
        self.env.filters["default"] = or_default
        self.env.filters.update(filters or {})
        self._compiled: dict[str, Template] = {}

    def compile(self, source: str) -> Template:
        """Compile a template source, reusing an earlier compilation.

        Raises:
            TemplateError: If the source is not valid Jinja2.
        """
        template = self._compiled.get(source)
        if template is None:
            try:
                template = self.env.from_string(source)
            except TemplateSyntaxError as e:
                raise TemplateError(f"Template syntax error at line {e.lineno}: {e.message}") from e
            self._compiled[source] = template
        return template

    def render(self, source: str, variables: Mapping[str, Any]) -> str:
        """Render a template source against a scope.

        Args:
            source: The Jinja2 template text from the step definition.
            variables: Names visible to the template.

        Returns:
            The rendered text.

        Raises:
            TemplateError: On syntax errors, undefined variables, blocked
                attribute access or any other rendering failure.
        """
        template = self.compile(source)
        try:
            return template.render(dict(variables))
        except SecurityError as e:
            raise TemplateError(
                f"Template accessed a restricted attribute: {e}",
                suggestion="Templates may only read values from the execution scope",
            ) from e
        except UndefinedError as e:
            raise TemplateError(
                f"Undefined variable in template: {e}",
                undefined_variable=_undefined_name(str(e)),
            ) from e
        except Exception as e:
            raise TemplateError(f"Template rendering failed: {type(e).__name__}: {e}") from e


def _undefined_name(message: str) -> str:
    # "'ghost' is undefined" / "'dict object' has no attribute 'total'"
    quoted = message.split("'")[1::2]
    return quoted[-1] if quoted else "unknown"
