"""Hooks facade: a registry and an executor behind one object.

Example:
    hooks = Hooks()

    @hooks.pre("save")
    def validate(doc):
        if not doc.get("id"):
            raise ValueError("missing id")

    @hooks.post("save")
    def audit(result):
        log.append(result)

    save = hooks.create_wrapper_sync("save", store_document)
    save({"id": 1})
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from hookwrap.pipeline.convention import Convention, PreOutcome
from hookwrap.pipeline.executor import CompletionFn, PipelineExecutor
from hookwrap.pipeline.hook import HookFn, HookRegistry
from hookwrap.pipeline.options import WrapOptions
from hookwrap.pipeline.state import Invocation

if TYPE_CHECKING:
    from hookwrap.config import HookwrapConfig

logger = logging.getLogger(__name__)


class Hooks:
    """Register hooks by name and run callables wrapped with them.

    Attributes:
        registry: Registered pre and post hooks
        executor: Runs the pipelines
    """

    def __init__(self, registry: HookRegistry | None = None, defaults: WrapOptions | None = None) -> None:
        self.registry = registry or HookRegistry()
        self.executor = PipelineExecutor(self.registry, defaults)

    @classmethod
    def from_config(cls, config: HookwrapConfig | None = None, *, strict: bool = False) -> Hooks:
        """Create hooks populated from configuration.

        Args:
            config: Configuration (defaults to the global instance)
            strict: Raise on hooks that cannot be imported instead of skipping them

        Returns:
            Hooks with the configured registrations and default options
        """
        if config is None:
            from hookwrap.config import get_config

            config = get_config()

        hooks = cls(defaults=config.defaults)
        loaded = config.load_hooks(hooks.registry, strict=strict)
        logger.debug("Loaded %d configured hook(s)", loaded)
        return hooks

    @property
    def defaults(self) -> WrapOptions:
        return self.executor.default_options

    def _options(self, options: WrapOptions | None, overrides: dict[str, Any]) -> WrapOptions:
        return (options or self.defaults).merged(**overrides)

    def pre(
        self,
        name: str,
        fn: HookFn | None = None,
        *,
        convention: Convention | None = None,
    ) -> Any:
        """Register a pre hook; usable directly or as a decorator."""
        if fn is None:
            return self.registry.pre(name, convention=convention)
        self.registry.add_pre(name, fn, convention=convention)
        return self

    def post(
        self,
        name: str,
        fn: HookFn | None = None,
        *,
        convention: Convention | None = None,
    ) -> Any:
        """Register a post hook; usable directly or as a decorator."""
        if fn is None:
            return self.registry.post(name, convention=convention)
        self.registry.add_post(name, fn, convention=convention)
        return self

    def has_hooks(self, name: str) -> bool:
        return self.registry.has_hooks(name)

    def wrap(
        self,
        name: str,
        fn: Callable[..., Any],
        context: Any = None,
        args: Sequence[Any] = (),
        options: WrapOptions | None = None,
        completion: CompletionFn | None = None,
        **overrides: Any,
    ) -> Invocation:
        """Run ``fn`` once with the hooks for ``name``.

        Keyword overrides are applied on top of ``options`` (for example
        ``use_error_handlers=True``).
        """
        return self.executor.run_wrapped(name, fn, context, args, self._options(options, overrides), completion)

    def create_wrapper(
        self,
        name: str,
        fn: Callable[..., Any],
        context: Any = None,
        options: WrapOptions | None = None,
        **overrides: Any,
    ) -> Callable[..., Any]:
        """Create a reusable wrapper; awaitable unless ``wrapper_convention`` says otherwise."""
        return self.executor.make_wrapper(name, fn, context, self._options(options, overrides))

    def create_wrapper_sync(
        self,
        name: str,
        fn: Callable[..., Any],
        context: Any = None,
        options: WrapOptions | None = None,
        **overrides: Any,
    ) -> Callable[..., Any]:
        """Create a reusable synchronous wrapper."""
        return self.executor.make_wrapper_sync(name, fn, context, self._options(options, overrides))

    def exec_pre(
        self,
        name: str,
        context: Any,
        args: Sequence[Any],
        callback: Callable[[PreOutcome], None],
        **overrides: Any,
    ) -> None:
        self.executor.exec_pre(name, context, args, callback, self._options(None, overrides))

    def exec_post(
        self,
        name: str,
        context: Any,
        results: Sequence[Any],
        callback: CompletionFn,
        error: Any = None,
        **overrides: Any,
    ) -> None:
        self.executor.exec_post(name, context, results, callback, error, self._options(None, overrides))

    def exec_pre_sync(self, name: str, context: Any = None, args: Sequence[Any] = (), **overrides: Any) -> PreOutcome:
        return self.executor.exec_pre_sync(name, context, args, self._options(None, overrides))

    def exec_post_sync(
        self,
        name: str,
        context: Any = None,
        results: Sequence[Any] = (),
        **overrides: Any,
    ) -> tuple[Any, ...]:
        return self.executor.exec_post_sync(name, context, results, self._options(None, overrides))
