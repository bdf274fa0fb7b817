# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Variable resolution for step configuration.

This module substitutes ``{{ path }}`` tokens in step configuration with
values from the execution context. Unlike Jinja2 templates, resolution
never fails: a path that does not resolve leaves the token text in place
so missing values stay visible in the output.
"""

from __future__ import annotations

import json
import re
import uuid
from collections.abc import Callable, Container, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

TOKEN_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

_MISSING = object()


# String literals are matched first so tokens inside quotes stay with them.
_EXPRESSION_PART = re.compile(r"""'[^']*'|"[^"]*"|\{\{(?P<path>[^}]+)\}\}""")


@dataclass
class BoundExpression:
    """An expression whose {{ path }} tokens were replaced by names.

    Attributes:
        text: The rewritten expression.
        values: Bound name to resolved value.
        missing: Token paths that did not resolve.
    """

    text: str
    values: dict[str, Any] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _uuid() -> str:
    return str(uuid.uuid4())


# Evaluated on every occurrence: two {{now}} tokens in one config may differ.
SPECIAL_TOKENS: dict[str, Callable[[], Any]] = {
    "now": _now,
    "uuid": _uuid,
}


def lookup_path(scope: Any, path: str) -> Any:
    """Walk a dot-separated path through nested data.

    Mappings are indexed by key, lists and tuples by integer position and
    other objects by public attribute.

    Args:
        scope: The data to walk.
        path: A dot-separated path such as ``steps.fetch.output.items.0``.

    Returns:
        The value at the path, or the module's missing sentinel.
    """
    current = scope
    for key in path.split("."):
        if current is None:
            return _MISSING
        if isinstance(current, Mapping):
            if key not in current:
                return _MISSING
            current = current[key]
        elif isinstance(current, list | tuple):
            if not key.isdigit() or int(key) >= len(current):
                return _MISSING
            current = current[int(key)]
        else:
            if key.startswith("_"):
                return _MISSING
            current = getattr(current, key, _MISSING)
            if current is _MISSING:
                return _MISSING
    return current


def is_missing(value: Any) -> bool:
    """Return True if a lookup_path result means the path did not resolve."""
    return value is _MISSING


def stringify(value: Any) -> str:
    """Convert a resolved value for embedding in surrounding text.

    Strings are inserted as-is; containers, booleans and None are written
    as JSON; anything else uses ``str()``.
    """
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, bool | dict | list | tuple):
        return json.dumps(value, default=str)
    return str(value)


class VariableResolver:
    """Resolves {{ path }} tokens against an execution context scope.

    Resolution rules:
    - A string that is exactly one token resolves to the raw value, so
      ``"{{ inputs.count }}"`` yields the number, not its text.
    - Tokens embedded in other text are replaced by their text form.
    - ``now`` and ``uuid`` produce a fresh timestamp or identifier for each
      occurrence.
    - A token whose path does not resolve is left verbatim.
    - Lists, tuples and dicts are resolved element by element; other
      scalars pass through unchanged.

    Example:
        >>> resolver = VariableResolver()
        >>> resolver.resolve("{{ inputs.x }}", {"inputs": {"x": 5}})
        5
        >>> resolver.resolve("x={{ inputs.x }}", {"inputs": {"x": 5}})
        'x=5'
        >>> resolver.resolve("{{ inputs.missing }}", {"inputs": {}})
        '{{ inputs.missing }}'
    """

    def resolve(self, value: Any, scope: Mapping[str, Any]) -> Any:
        """Resolve every token inside a value.

        Args:
            value: A scalar, list, tuple or dict, possibly nested.
            scope: The context scope to resolve paths against.

        Returns:
            A new value with resolvable tokens substituted.
        """
        if isinstance(value, str):
            return self._resolve_string(value, scope)
        if isinstance(value, list | tuple):
            return [self.resolve(item, scope) for item in value]
        if isinstance(value, dict):
            return {key: self.resolve(item, scope) for key, item in value.items()}
        return value

    def lookup(self, path: str, scope: Mapping[str, Any]) -> Any:
        """Resolve a single path, including the special tokens.

        Returns:
            The value, or the missing sentinel (see ``is_missing``).
        """
        path = path.strip()
        special = SPECIAL_TOKENS.get(path)
        if special is not None:
            return special()
        return lookup_path(scope, path)

    def _resolve_string(self, text: str, scope: Mapping[str, Any]) -> Any:
        match = TOKEN_PATTERN.fullmatch(text)
        if match is not None:
            value = self.lookup(match.group(1), scope)
            return text if is_missing(value) else value

        def replace(token: re.Match[str]) -> str:
            value = self.lookup(token.group(1), scope)
            if is_missing(value):
                return token.group(0)
            return stringify(value)

        return TOKEN_PATTERN.sub(replace, text)

    def bind(
        self, text: str, scope: Mapping[str, Any], reserved: Container[str] = ()
    ) -> BoundExpression:
        """Replace the tokens of an expression with bound names.

        A bare token becomes a name bound to the resolved value. A quoted
        string literal containing tokens becomes a name bound to the
        literal's resolved text. Resolved values are therefore data to the
        expression and are never parsed as part of its source.

        Args:
            text: The expression text.
            scope: The context scope to resolve paths against.
            reserved: Names the bound names must not shadow.

        Returns:
            The rewritten expression, its bound values and the token paths
            that did not resolve.
        """
        bound = BoundExpression(text=text)

        def bind_value(value: Any) -> str:
            name = f"token_{len(bound.values)}"
            while name in reserved or name in bound.values:
                name += "_"
            bound.values[name] = value
            return name

        def resolve_token(path: str) -> Any:
            value = self.lookup(path, scope)
            if is_missing(value):
                bound.missing.append(path.strip())
            return value

        def literal_text(token: re.Match[str]) -> str:
            value = resolve_token(token.group(1))
            return token.group(0) if is_missing(value) else stringify(value)

        def replace(match: re.Match[str]) -> str:
            if match.group("path") is not None:
                value = resolve_token(match.group("path"))
                return match.group(0) if is_missing(value) else bind_value(value)
            literal = match.group(0)
            if TOKEN_PATTERN.search(literal) is None:
                return literal
            return bind_value(TOKEN_PATTERN.sub(literal_text, literal[1:-1]))

        bound.text = _EXPRESSION_PART.sub(replace, text)
        return bound


def find_unresolved(value: Any) -> list[str]:
    """List the tokens still present in a resolved value.

    Useful for reporting configuration that referenced missing context.

    Args:
        value: A resolved scalar, list or dict.

    Returns:
        The token paths in the order they appear.
    """
    found: list[str] = []
    if isinstance(value, str):
        found.extend(m.group(1).strip() for m in TOKEN_PATTERN.finditer(value))
    elif isinstance(value, list | tuple):
        for item in value:
            found.extend(find_unresolved(item))
    elif isinstance(value, dict):
        for item in value.values():
            found.extend(find_unresolved(item))
    return found
