"""Error types for hookwrap."""

from __future__ import annotations

from typing import Any


class HookwrapError(Exception):
    """Base exception for all hookwrap errors."""


class HookError(HookwrapError):
    """Raised in place of a non-exception error value.

    Callback-style hooks may complete with any error value (a string, a dict).
    When such a value has to be raised, it is carried on this exception.
    """

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Hook failed with non-exception error: {value!r}")


class ConventionError(HookwrapError):
    """Raised when a step cannot run under its calling convention."""


class InvalidTransition(HookwrapError):
    """Raised when an invocation is moved to a phase it cannot reach."""

    def __init__(self, name: str, current: Any, target: Any) -> None:
        self.name = name
        self.current = current
        self.target = target
        super().__init__(f"Invocation of '{name}' cannot move from {current.name} to {target.name}")


class HookLoadError(HookwrapError):
    """Raised when a configured hook cannot be imported."""

    def __init__(self, hook_path: str, cause: Exception) -> None:
        self.hook_path = hook_path
        self.cause = cause
        super().__init__(f"Failed to load hook {hook_path}: {cause.__class__.__name__}: {cause}")


def as_exception(error: Any) -> BaseException:
    """Return ``error`` as something that can be raised."""
    if isinstance(error, BaseException):
        return error
    return HookError(error)
