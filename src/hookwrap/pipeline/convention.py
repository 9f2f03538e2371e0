"""Calling convention adapter.

Every step of a pipeline (pre hook, wrapped callable, post hook) may signal
completion in one of three ways:

- SYNC: return a value or raise
- CALLBACK: call a completion callable, passed as the last positional
  argument, as ``done(error=None, *values)``
- AWAITABLE: return an awaitable that resolves or raises

This module turns all three into a single protocol: ``on_complete(error, values)``
is called exactly once, with ``values`` a tuple.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from hookwrap.errors import ConventionError

logger = logging.getLogger(__name__)

# Type aliases
OnComplete = Callable[[Any, tuple[Any, ...]], None]

# Strong references to scheduled awaitables until they settle
_pending: set[asyncio.Future[Any]] = set()


class Convention(Enum):
    """How a callable signals completion."""

    SYNC = "sync"
    CALLBACK = "callback"
    AWAITABLE = "awaitable"


class SkipWrapped:
    """Result of a pre hook that skips the wrapped callable.

    The values become the pipeline's result, as if the wrapped callable had
    produced them. Post hooks still run against them.

    Example:
        def cached(key):
            if key in cache:
                return SkipWrapped(cache[key])
    """

    __slots__ = ("values",)

    def __init__(self, *values: Any) -> None:
        self.values = values

    def __repr__(self) -> str:
        return f"SkipWrapped{self.values!r}"


class OverwriteResult:
    """Result of a post hook that replaces the pipeline's result values."""

    __slots__ = ("values",)

    def __init__(self, *values: Any) -> None:
        self.values = values

    def __repr__(self) -> str:
        return f"OverwriteResult{self.values!r}"


@dataclass(frozen=True)
class Continue:
    """Pre hook finished; run the next step."""


@dataclass(frozen=True)
class ShortCircuit:
    """Pre hook supplied the result; skip the wrapped callable."""

    values: tuple[Any, ...]


@dataclass(frozen=True)
class Failed:
    """Step failed with ``error``."""

    error: Any


PreOutcome = Continue | ShortCircuit | Failed

CONTINUE = Continue()

# Parameter names that mark a completion callback taken after fewer arguments
COMPLETION_NAMES = frozenset({"done", "next", "callback", "cb"})


class Completion:
    """Completion callable handed to callback-style steps.

    Only the first call is reported. Later calls are a bug in the step and
    are dropped.

    Attributes:
        called: Whether the completion has been reported
        raised: Exception raised by the rest of the pipeline while reporting
    """

    __slots__ = ("_on_complete", "label", "called", "raised")

    def __init__(self, on_complete: OnComplete, label: str = "") -> None:
        self._on_complete = on_complete
        self.label = label
        self.called = False
        self.raised: BaseException | None = None

    def __call__(self, error: Any = None, *values: Any) -> None:
        if self.called:
            logger.debug("Ignoring repeated completion of %s", self.label or "step")
            return
        self.called = True
        try:
            self._on_complete(error, values)
        except Exception as e:
            self.raised = e
            raise


def _positional_params(fn: Callable[..., Any]) -> list[inspect.Parameter] | None:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return None

    params = []
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            params.append(param)
    return params


def required_positional(fn: Callable[..., Any]) -> list[str] | None:
    """Get the names of the required positional parameters of ``fn``.

    Parameters with a default value are left out, so ``def hook(doc,
    verbose=False)`` takes one argument.

    Returns:
        Parameter names in order, or None if ``fn`` takes ``*args`` or has no
        introspectable signature
    """
    params = _positional_params(fn)
    if params is None:
        return None
    return [param.name for param in params if param.default is inspect.Parameter.empty]


def is_async_callable(fn: Any) -> bool:
    """Check if calling ``fn`` produces a coroutine."""
    if inspect.iscoroutinefunction(fn):
        return True
    call = getattr(fn, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


def infer_convention(
    fn: Callable[..., Any],
    num_args: int,
    declared: Convention | None = None,
) -> Convention:
    """Pick the calling convention of ``fn`` for a call with ``num_args`` arguments.

    An explicit declaration always wins. Otherwise ``fn`` takes a completion
    callback when it has exactly one required positional parameter more than
    the arguments it will receive, or when it takes no more parameters than
    there are arguments and its last one is named like a completion
    (``done``, ``next``, ``callback``, ``cb``). Failing both, a coroutine
    function is awaitable and anything else is synchronous (and may still be
    promoted to awaitable by its return value).

    Args:
        fn: Callable to classify
        num_args: Number of positional arguments the step will be called with
        declared: Explicit convention, if any

    Returns:
        Calling convention
    """
    if declared is not None:
        return declared

    required = required_positional(fn)
    if required is not None:
        if len(required) == num_args + 1:
            return Convention.CALLBACK
        if required and len(required) <= num_args and required[-1] in COMPLETION_NAMES:
            return Convention.CALLBACK
    if is_async_callable(fn):
        return Convention.AWAITABLE
    return Convention.SYNC


def settle(awaitable: Any, on_complete: OnComplete) -> None:
    """Schedule ``awaitable`` on the running loop and report its outcome.

    Args:
        awaitable: Coroutine, task, future or other awaitable
        on_complete: Called with ``(error, (result,))`` once it settles
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop is None:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        on_complete(ConventionError("Awaitable step requires a running event loop"), ())
        return

    future = asyncio.ensure_future(awaitable)
    _pending.add(future)

    def _settled(fut: asyncio.Future[Any]) -> None:
        _pending.discard(fut)
        if fut.cancelled():
            on_complete(asyncio.CancelledError(), ())
            return
        error = fut.exception()
        if error is not None:
            on_complete(error, ())
        else:
            on_complete(None, (fut.result(),))

    future.add_done_callback(_settled)


def invoke(
    fn: Callable[..., Any],
    args: Sequence[Any],
    convention: Convention,
    on_complete: OnComplete,
    *,
    probe: bool = True,
    label: str = "",
) -> None:
    """Run ``fn(*args)`` under ``convention`` and report completion once.

    Args:
        fn: Step to run
        args: Positional arguments (the completion callback is appended for
              CALLBACK steps, after as many arguments as ``fn`` has room for)
        convention: How ``fn`` signals completion
        on_complete: Receives ``(error, values)`` exactly once
        probe: Treat an awaitable returned by a SYNC step as AWAITABLE
        label: Step description used in log records
    """
    done = Completion(on_complete, label)

    if convention is Convention.CALLBACK:
        _invoke_callback(fn, args, done)
        return

    try:
        returned = fn(*args)
    except Exception as e:
        done(e)
        return

    if convention is Convention.AWAITABLE or (probe and inspect.isawaitable(returned)):
        if not inspect.isawaitable(returned):
            # Declared awaitable but returned a plain value
            done(None, returned)
            return
        settle(returned, lambda error, values: done(error, *values))
        return

    done(None, returned)


def _invoke_callback(fn: Callable[..., Any], args: Sequence[Any], done: Completion) -> None:
    params = _positional_params(fn)
    if params is not None and len(params) <= len(args):
        # Leading arguments only; the completion is always the last parameter
        args = tuple(args)[: max(len(params) - 1, 0)]

    try:
        returned = fn(*args, done)
    except Exception as e:
        if done.called:
            if e is done.raised:
                raise
            logger.debug("Ignoring exception from %s after completion: %r", done.label or "step", e)
            return
        done(e)
        return

    if inspect.isawaitable(returned):
        # async def with a completion parameter: the callback decides, the
        # coroutine can only fail
        def _settled(error: Any, values: tuple[Any, ...]) -> None:
            if error is not None:
                done(error)

        settle(returned, _settled)


def invoke_pre(
    fn: Callable[..., Any],
    args: Sequence[Any],
    convention: Convention,
    on_outcome: Callable[[PreOutcome], None],
    *,
    probe: bool = True,
    label: str = "",
) -> None:
    """Run a pre hook and classify its completion.

    - an error fails the pipeline
    - ``SkipWrapped(*values)`` (returned, resolved or passed to the callback)
      short-circuits with ``values``
    - a callback completion ``done(None, value, ...)`` whose first value is
      not None short-circuits with all values
    - anything else continues

    Args:
        fn: Pre hook
        args: Positional arguments
        convention: How ``fn`` signals completion
        on_outcome: Receives the outcome exactly once
        probe: Treat an awaitable returned by a SYNC hook as AWAITABLE
        label: Step description used in log records
    """

    def _classify(error: Any, values: tuple[Any, ...]) -> None:
        if error is not None:
            on_outcome(Failed(error))
            return
        if values and isinstance(values[0], SkipWrapped):
            on_outcome(ShortCircuit(values[0].values))
            return
        if convention is Convention.CALLBACK and values and values[0] is not None:
            on_outcome(ShortCircuit(values))
            return
        on_outcome(CONTINUE)

    invoke(fn, args, convention, _classify, probe=probe, label=label)
