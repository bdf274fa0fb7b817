# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Structural validation for workflow definitions.

This module checks the rules a definition must satisfy before it is
handed to the Pydantic schema: a name, a non-empty steps list, an id and a
type on every step, unique step ids and a condition on every conditional
step. Each failed rule produces its own message so authors know exactly
what to fix.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from stepflow.config.schema import CONDITIONAL_STEP_TYPE
from stepflow.exceptions import LoadError

BRANCH_KEYS = ("if_true", "if_false")


def validate_definition(data: dict[str, Any], source: str | None = None) -> list[str]:
    """Check the structural rules of a parsed workflow definition.

    Rules are checked in order and the first failure is raised. Branch
    sub-steps follow the same id/type/condition rules as top-level steps;
    their ids only need to be unique within their own branch.

    Args:
        data: The parsed definition as plain dicts and lists.
        source: Optional source label for error messages.

    Returns:
        A list of warning messages (non-fatal issues).

    Raises:
        LoadError: If a rule is violated.
    """
    if not data.get("name"):
        raise LoadError("Workflow must have a name", source=source, rule="name")

    steps = data.get("steps")
    if steps is None or not isinstance(steps, list):
        raise LoadError("Workflow must have steps array", source=source, rule="steps")
    if not steps:
        raise LoadError(
            "Workflow must have at least one step",
            suggestion="Add at least one step to the 'steps' list",
            source=source,
            rule="steps",
        )

    warnings: list[str] = []
    _validate_step_list(steps, source, warnings, path="steps")
    return warnings


def _validate_step_list(
    steps: list[Any],
    source: str | None,
    warnings: list[str],
    path: str,
) -> None:
    """Validate one ordered list of steps and recurse into branches.

    Args:
        steps: The step list to validate.
        source: Optional source label for error messages.
        warnings: Accumulator for non-fatal issues.
        path: Location of the list inside the definition, for warnings.
    """
    for step in steps:
        if not isinstance(step, dict) or not step.get("id"):
            raise LoadError("Each step must have an id", source=source, rule="step_id")
        if not step.get("type"):
            raise LoadError(
                f"Step '{step['id']}' must have a type", source=source, rule="step_type"
            )

    duplicates = _find_duplicates([str(step["id"]) for step in steps])
    if duplicates:
        raise LoadError(
            f"Duplicate step IDs found: {', '.join(duplicates)}",
            source=source,
            rule="duplicate_ids",
        )

    for step in steps:
        step_id = step["id"]
        is_conditional = step["type"] == CONDITIONAL_STEP_TYPE

        if is_conditional and step.get("condition") in (None, ""):
            raise LoadError(
                f"Conditional step '{step_id}' must have a condition",
                source=source,
                rule="condition",
            )

        for key in BRANCH_KEYS:
            branch = step.get(key)
            if branch is None:
                continue
            if not is_conditional:
                warnings.append(
                    f"Step '{step_id}' at {path} declares '{key}' but is not a "
                    f"'{CONDITIONAL_STEP_TYPE}' step; the branch is ignored"
                )
                continue
            if not isinstance(branch, list):
                raise LoadError(
                    f"Step '{step_id}' {key} must be a list of steps",
                    source=source,
                    rule="branch",
                )
            _validate_step_list(branch, source, warnings, path=f"{path}.{step_id}.{key}")

        if step.get("retry") is not None and step.get("on_error", "stop") != "retry":
            warnings.append(
                f"Step '{step_id}' has a 'retry' block but on_error is "
                f"'{step.get('on_error', 'stop')}'; the retry settings are unused"
            )


def _find_duplicates(ids: list[str]) -> list[str]:
    """Return the ids that appear more than once, in first-seen order."""
    counts = Counter(ids)
    seen: list[str] = []
    for step_id in ids:
        if counts[step_id] > 1 and step_id not in seen:
            seen.append(step_id)
    return seen
