"""Per-invocation options for wrapped calls."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hookwrap.pipeline.convention import Convention, infer_convention


class WrapOptions(BaseModel):
    """Options controlling how a wrapped callable and its hooks are run."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    use_error_handlers: bool = False
    """Route pre hook and wrapped callable errors into the post hooks"""

    num_callback_params: int | None = Field(default=None, ge=0)
    """Number of result values taken from the wrapped callable (None = all)"""

    convention: Convention | None = None
    """Declared convention of the wrapped callable (None = infer)"""

    force_wrap: bool = False
    """Treat the wrapped callable as awaitable when no convention is declared"""

    context_parameter: bool = True
    """Pass a non-None context as the first positional argument of every step"""

    null_result_by_default: bool = False
    """A wrapped callable that completes with no values yields a single None"""

    wrapper_convention: Convention = Convention.AWAITABLE
    """How the callable returned by make_wrapper is called"""

    def resolve_convention(self, fn: Callable[..., Any], num_args: int) -> Convention:
        """Get the convention of the wrapped callable for ``num_args`` arguments."""
        if self.convention is not None:
            return self.convention
        if self.force_wrap:
            return Convention.AWAITABLE
        return infer_convention(fn, num_args)

    @property
    def declared(self) -> bool:
        """Whether the wrapped callable's convention bypasses inference."""
        return self.convention is not None or self.force_wrap

    def shape_results(self, values: tuple[Any, ...]) -> tuple[Any, ...]:
        """Trim or pad ``values`` to the configured number of results.

        Args:
            values: Values a step completed with

        Returns:
            Result values forwarded to post hooks and the caller
        """
        if self.num_callback_params is not None:
            count = self.num_callback_params
            return tuple(values[:count]) + (None,) * (count - len(values))
        if not values and self.null_result_by_default:
            return (None,)
        return tuple(values)

    def merged(self, **overrides: Any) -> WrapOptions:
        """Copy with ``overrides`` applied."""
        if not overrides:
            return self
        return type(self).model_validate({**self.model_dump(), **overrides})
