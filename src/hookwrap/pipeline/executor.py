"""Pipeline executor.

Runs ``pre* -> fn -> post*`` for one hook name, one step at a time, and
reports a single final ``(error, *values)`` to the caller.

Without error handlers, the first pre hook or wrapped callable error is
reported immediately and no post hook runs. With error handlers, that error
is handed to the post hooks instead, each called as
``handler(error, [context], *results)``.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from hookwrap.errors import ConventionError, as_exception
from hookwrap.pipeline.convention import (
    CONTINUE,
    Continue,
    Convention,
    Failed,
    OverwriteResult,
    PreOutcome,
    ShortCircuit,
    invoke,
    invoke_pre,
)
from hookwrap.pipeline.options import WrapOptions
from hookwrap.pipeline.state import Invocation, Phase

if TYPE_CHECKING:
    from hookwrap.pipeline.hook import HookRegistry, HookSpec

logger = logging.getLogger(__name__)

# Type aliases
CompletionFn = Callable[..., Any]
PostDone = Callable[[Any, tuple[Any, ...]], None]


def unwrap_values(values: Sequence[Any]) -> Any:
    """Collapse result values into a single return value.

    No values gives None, one value gives that value, several give a tuple.
    """
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    return tuple(values)


class PipelineExecutor:
    """Runs wrapped callables with the hooks registered for a name.

    Attributes:
        registry: Source of pre and post hooks
        default_options: Options used when a call passes none
    """

    def __init__(self, registry: HookRegistry, default_options: WrapOptions | None = None) -> None:
        self.registry = registry
        self.default_options = default_options or WrapOptions()

    def run_wrapped(
        self,
        name: str,
        fn: Callable[..., Any],
        context: Any = None,
        args: Sequence[Any] = (),
        options: WrapOptions | None = None,
        completion: CompletionFn | None = None,
    ) -> Invocation:
        """Run ``fn`` with the pre and post hooks registered for ``name``.

        Args:
            name: Hook name
            fn: Wrapped callable (sync, callback-terminated or awaitable)
            context: Shared object passed to every step
            args: Arguments for ``fn``, without a completion callback
            options: Invocation options
            completion: Called once with ``(error, *values)``; if omitted the
                        final error is only visible to error handler post hooks

        Returns:
            Invocation state; finished on return unless a step suspended
        """
        options = options or self.default_options
        state = Invocation(name=name, context=context, args=tuple(args))
        state.transition(Phase.RUNNING_PRE)

        def _after_pre(outcome: PreOutcome) -> None:
            if isinstance(outcome, Failed):
                logger.debug("Pre hook for '%s' failed: %r", name, outcome.error)
                self._fail(state, outcome.error, options, completion)
            elif isinstance(outcome, ShortCircuit):
                logger.debug("Pre hook for '%s' supplied the result, skipping wrapped function", name)
                state.short_circuited = True
                state.results = options.shape_results(outcome.values)
                self._enter_post(state, options, completion)
            else:
                self._run_main(state, fn, options, completion)

        self._run_pre(
            self.registry.get_pre_hooks(name),
            self._step_args(context, state.args, options),
            _after_pre,
        )
        return state

    def _step_args(self, context: Any, args: Sequence[Any], options: WrapOptions) -> tuple[Any, ...]:
        if options.context_parameter and context is not None:
            return (context, *args)
        return tuple(args)

    def _run_pre(
        self,
        hooks: list[HookSpec],
        step_args: tuple[Any, ...],
        on_outcome: Callable[[PreOutcome], None],
    ) -> None:
        def step(index: int) -> None:
            if index >= len(hooks):
                on_outcome(CONTINUE)
                return
            spec = hooks[index]

            def _outcome(outcome: PreOutcome) -> None:
                if isinstance(outcome, Continue):
                    step(index + 1)
                else:
                    on_outcome(outcome)

            invoke_pre(
                spec.fn,
                step_args,
                spec.resolve_convention(len(step_args)),
                _outcome,
                probe=spec.convention is None,
                label=spec.label,
            )

        step(0)

    def _run_main(
        self,
        state: Invocation,
        fn: Callable[..., Any],
        options: WrapOptions,
        completion: CompletionFn | None,
    ) -> None:
        state.transition(Phase.RUNNING_MAIN)
        step_args = self._step_args(state.context, state.args, options)

        def _after_main(error: Any, values: tuple[Any, ...]) -> None:
            if error is not None:
                logger.debug("Wrapped function for '%s' failed: %r", state.name, error)
                self._fail(state, error, options, completion)
                return
            state.results = options.shape_results(values)
            self._enter_post(state, options, completion)

        invoke(
            fn,
            step_args,
            options.resolve_convention(fn, len(step_args)),
            _after_main,
            probe=not options.declared,
            label=f"{state.name}:{getattr(fn, '__qualname__', repr(fn))}",
        )

    def _fail(
        self,
        state: Invocation,
        error: Any,
        options: WrapOptions,
        completion: CompletionFn | None,
    ) -> None:
        state.error = error
        state.results = options.shape_results(())
        if options.use_error_handlers:
            self._enter_post(state, options, completion)
            return

        state.results = ()
        state.transition(Phase.ABORTED)
        state.complete(completion)

    def _enter_post(self, state: Invocation, options: WrapOptions, completion: CompletionFn | None) -> None:
        state.transition(Phase.RUNNING_POST)

        def _after_post(error: Any, results: tuple[Any, ...]) -> None:
            state.error = error
            state.results = results
            state.transition(Phase.DONE)
            state.complete(completion)

        self._run_post(
            self.registry.get_post_hooks(state.name),
            state.context,
            state.error,
            state.results,
            options,
            _after_post,
        )

    def _run_post(
        self,
        hooks: list[HookSpec],
        context: Any,
        error: Any,
        results: tuple[Any, ...],
        options: WrapOptions,
        on_done: PostDone,
    ) -> None:
        error_handlers = options.use_error_handlers
        prefix = self._step_args(context, (), options)

        def step(index: int, error: Any, results: tuple[Any, ...]) -> None:
            if index >= len(hooks):
                on_done(error, results)
                return
            spec = hooks[index]

            if error_handlers:
                step_args = (error, *prefix, *results)

                def _handled(new_error: Any, values: tuple[Any, ...]) -> None:
                    if values and isinstance(values[0], OverwriteResult):
                        values = values[0].values
                    # The handler owns the final value, cleared error or not
                    step(index + 1, new_error, options.shape_results(values))

                on_complete = _handled
            elif error is not None:
                # Plain post hooks never see an error
                on_done(error, results)
                return
            else:
                step_args = (*prefix, *results)

                def _ran(new_error: Any, values: tuple[Any, ...]) -> None:
                    if new_error is not None:
                        logger.debug("Post hook for '%s' failed: %r", spec.name, new_error)
                        on_done(new_error, ())
                        return
                    if values and isinstance(values[0], OverwriteResult):
                        step(index + 1, None, values[0].values)
                    else:
                        step(index + 1, None, results)

                on_complete = _ran

            invoke(
                spec.fn,
                step_args,
                spec.resolve_convention(len(step_args)),
                on_complete,
                probe=spec.convention is None,
                label=spec.label,
            )

        step(0, error, tuple(results))

    def exec_pre(
        self,
        name: str,
        context: Any,
        args: Sequence[Any],
        callback: Callable[[PreOutcome], None],
        options: WrapOptions | None = None,
    ) -> None:
        """Run only the pre hooks for ``name``.

        Args:
            name: Hook name
            context: Shared object passed to every hook
            args: Arguments for the hooks
            callback: Receives the outcome (Continue, ShortCircuit or Failed) once
            options: Invocation options
        """
        options = options or self.default_options
        self._run_pre(self.registry.get_pre_hooks(name), self._step_args(context, args, options), callback)

    def exec_post(
        self,
        name: str,
        context: Any,
        results: Sequence[Any],
        callback: CompletionFn,
        error: Any = None,
        options: WrapOptions | None = None,
    ) -> None:
        """Run only the post hooks for ``name``.

        Args:
            name: Hook name
            context: Shared object passed to every hook
            results: Result values for the hooks
            callback: Called once with ``(error, *values)``
            error: Pending error, for error handlers
            options: Invocation options
        """
        options = options or self.default_options
        self._run_post(
            self.registry.get_post_hooks(name),
            context,
            error,
            tuple(results),
            options,
            lambda error, values: callback(error, *values),
        )

    def exec_pre_sync(
        self,
        name: str,
        context: Any = None,
        args: Sequence[Any] = (),
        options: WrapOptions | None = None,
    ) -> PreOutcome:
        """Run the pre hooks for ``name``, all of which must complete synchronously.

        Returns:
            Continue or ShortCircuit

        Raises:
            The first pre hook error
            ConventionError: If a hook suspended
        """
        outcomes: list[PreOutcome] = []
        self.exec_pre(name, context, args, outcomes.append, options)
        if not outcomes:
            raise ConventionError(f"Pre hooks for '{name}' did not complete synchronously")
        outcome = outcomes[0]
        if isinstance(outcome, Failed):
            raise as_exception(outcome.error)
        return outcome

    def exec_post_sync(
        self,
        name: str,
        context: Any = None,
        results: Sequence[Any] = (),
        options: WrapOptions | None = None,
    ) -> tuple[Any, ...]:
        """Run the post hooks for ``name``, all of which must complete synchronously.

        Returns:
            Result values after the post hooks

        Raises:
            The first post hook error
            ConventionError: If a hook suspended
        """
        finished: list[tuple[Any, tuple[Any, ...]]] = []
        self.exec_post(name, context, results, lambda error, *values: finished.append((error, values)), options=options)
        if not finished:
            raise ConventionError(f"Post hooks for '{name}' did not complete synchronously")
        error, values = finished[0]
        if error is not None:
            raise as_exception(error)
        return values

    def make_wrapper(
        self,
        name: str,
        fn: Callable[..., Any],
        context: Any = None,
        options: WrapOptions | None = None,
    ) -> Callable[..., Any]:
        """Create a reusable invoker of ``fn`` with the hooks for ``name`` applied.

        The shape of the returned callable follows ``options.wrapper_convention``:

        - AWAITABLE: ``await wrapper(*args)`` returns the final value or raises
        - CALLBACK: ``wrapper(*args, callback)``; without a trailing callable
          the call is fire-and-forget
        - SYNC: ``wrapper(*args)`` returns the final value or raises; every
          step has to complete synchronously

        Hooks are looked up on every call, so hooks registered after the
        wrapper is created still apply.
        """
        options = options or self.default_options
        style = options.wrapper_convention

        if style is Convention.SYNC:

            @functools.wraps(fn)
            def sync_wrapper(*args: Any) -> Any:
                finished: list[tuple[Any, tuple[Any, ...]]] = []
                self.run_wrapped(
                    name,
                    fn,
                    context,
                    args,
                    options,
                    lambda error, *values: finished.append((error, values)),
                )
                if not finished:
                    raise ConventionError(f"Hooks for '{name}' did not complete synchronously")
                error, values = finished[0]
                if error is not None:
                    raise as_exception(error)
                return unwrap_values(values)

            return sync_wrapper

        if style is Convention.CALLBACK:

            @functools.wraps(fn)
            def callback_wrapper(*args: Any) -> None:
                completion = None
                if args and callable(args[-1]):
                    completion = args[-1]
                    args = args[:-1]
                self.run_wrapped(name, fn, context, args, options, completion)

            return callback_wrapper

        @functools.wraps(fn)
        async def async_wrapper(*args: Any) -> Any:
            future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

            def _resolve(error: Any, *values: Any) -> None:
                if future.done():
                    return
                if error is not None:
                    future.set_exception(as_exception(error))
                else:
                    future.set_result(unwrap_values(values))

            self.run_wrapped(name, fn, context, args, options, _resolve)
            return await future

        return async_wrapper

    def make_wrapper_sync(
        self,
        name: str,
        fn: Callable[..., Any],
        context: Any = None,
        options: WrapOptions | None = None,
    ) -> Callable[..., Any]:
        """Shorthand for :meth:`make_wrapper` with a synchronous wrapper."""
        options = (options or self.default_options).merged(wrapper_convention=Convention.SYNC)
        return self.make_wrapper(name, fn, context, options)
