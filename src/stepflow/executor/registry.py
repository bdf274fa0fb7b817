# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Executor registry mapping step types to executors.

This module provides the ExecutorRegistry class, the single place where
step type names are bound to executor implementations, and a helper for
importing executors from ``module:attribute`` references.
"""

from __future__ import annotations

import importlib
import logging

from stepflow.exceptions import StepflowError, UnknownStepTypeError
from stepflow.executor.base import Executor, ExecutorFunction, as_executor

logger = logging.getLogger(__name__)


class ExecutorRegistry:
    """Maps step type names to executors.

    New step types are introduced by registering an executor; the engine
    itself never changes. Registration is an administrative operation:
    call ``freeze()`` once setup is complete to make the map read-only
    while executions are running.

    Example:
        >>> registry = ExecutorRegistry()
        >>> registry.register("echo", lambda step, config, context: config)
        >>> "echo" in registry
        True
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._executors: dict[str, Executor] = {}
        self._frozen = False

    def register(self, step_type: str, executor: Executor | ExecutorFunction) -> None:
        """Register an executor for a step type.

        Registering an existing type replaces its executor.

        Args:
            step_type: The step type name used in workflow definitions.
            executor: An Executor instance or a callable taking
                ``(step, config, context)``.

        Raises:
            StepflowError: If the registry is frozen or the type name is empty.
            TypeError: If the executor is neither an Executor nor callable.
        """
        if self._frozen:
            raise StepflowError(
                f"Cannot register step type '{step_type}': the executor registry is frozen",
                suggestion="Register all step types before freezing the registry",
            )
        if not step_type or not step_type.strip():
            raise StepflowError("Step type name must not be empty")

        wrapped = as_executor(executor)
        if step_type in self._executors:
            logger.info(f"Replacing executor for step type '{step_type}'")
        else:
            logger.debug(f"Registered executor for step type '{step_type}': {wrapped!r}")
        self._executors[step_type] = wrapped

    def unregister(self, step_type: str) -> bool:
        """Remove a step type.

        Returns:
            True if the type was registered.

        Raises:
            StepflowError: If the registry is frozen.
        """
        if self._frozen:
            raise StepflowError(
                f"Cannot unregister step type '{step_type}': the executor registry is frozen"
            )
        return self._executors.pop(step_type, None) is not None

    def get(self, step_type: str, step_id: str | None = None) -> Executor:
        """Look up the executor for a step type.

        Args:
            step_type: The step type name.
            step_id: Optional id of the step, for the error message.

        Returns:
            The registered executor.

        Raises:
            UnknownStepTypeError: If no executor is registered for the type.
        """
        executor = self._executors.get(step_type)
        if executor is None:
            raise UnknownStepTypeError(step_type, step_id=step_id)
        return executor

    def types(self) -> list[str]:
        """Return the registered step type names, sorted."""
        return sorted(self._executors)

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        """Return whether the registry is read-only."""
        return self._frozen

    def __contains__(self, step_type: object) -> bool:
        return step_type in self._executors

    def __len__(self) -> int:
        return len(self._executors)


def load_executor(reference: str) -> Executor:
    """Import an executor from a ``module:attribute`` reference.

    The attribute may be an Executor instance, an Executor subclass (it is
    instantiated without arguments) or a callable.

    Args:
        reference: The reference, e.g. ``"myapp.nodes:send_email"``.

    Returns:
        The imported executor.

    Raises:
        StepflowError: If the reference is malformed or cannot be imported.
    """
    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise StepflowError(
            f"Invalid executor reference: '{reference}'",
            suggestion="Use the format 'package.module:attribute'",
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise StepflowError(
            f"Could not import executor module '{module_name}': {e}",
            suggestion="Check that the module is installed and on the Python path",
        ) from e

    target = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise StepflowError(
                f"Module '{module_name}' has no attribute '{attribute}'"
            ) from e

    if isinstance(target, type) and issubclass(target, Executor):
        target = target()

    try:
        return as_executor(target)
    except TypeError as e:
        raise StepflowError(f"Executor reference '{reference}' is not usable: {e}") from e
