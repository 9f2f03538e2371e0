"""Hook specification and registry.

Hooks are registered under a name, each name holding an ordered list of pre
hooks and an ordered list of post hooks. The executor only reads from the
registry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from hookwrap.pipeline.convention import Convention, infer_convention

logger = logging.getLogger(__name__)

# Type aliases
HookFn = Callable[..., Any]


@dataclass(frozen=True)
class HookSpec:
    """Specification for a registered hook function.

    Attributes:
        name: Hook name the function is registered under
        fn: The hook function
        convention: Declared calling convention (None = infer per call)
    """

    name: str
    fn: HookFn
    convention: Convention | None = None

    def resolve_convention(self, num_args: int) -> Convention:
        """Get the calling convention for a call with ``num_args`` arguments."""
        return infer_convention(self.fn, num_args, self.convention)

    @property
    def label(self) -> str:
        return f"{self.name}:{getattr(self.fn, '__qualname__', repr(self.fn))}"


@dataclass
class _HookList:
    pre: list[HookSpec] = field(default_factory=list)
    post: list[HookSpec] = field(default_factory=list)


class HookRegistry:
    """Append-only registry of pre and post hooks by name."""

    def __init__(self) -> None:
        self._hooks: dict[str, _HookList] = {}

    def add_pre(self, name: str, fn: HookFn, *, convention: Convention | None = None) -> HookRegistry:
        """Register a pre hook for ``name``.

        Args:
            name: Hook name
            fn: Hook function
            convention: Declared calling convention (None = infer)

        Returns:
            The registry, for chaining
        """
        self._hooks.setdefault(name, _HookList()).pre.append(HookSpec(name, fn, convention))
        logger.debug("Registered pre hook for '%s': %s", name, getattr(fn, "__qualname__", fn))
        return self

    def add_post(self, name: str, fn: HookFn, *, convention: Convention | None = None) -> HookRegistry:
        """Register a post hook for ``name``.

        Args:
            name: Hook name
            fn: Hook function
            convention: Declared calling convention (None = infer)

        Returns:
            The registry, for chaining
        """
        self._hooks.setdefault(name, _HookList()).post.append(HookSpec(name, fn, convention))
        logger.debug("Registered post hook for '%s': %s", name, getattr(fn, "__qualname__", fn))
        return self

    def pre(self, name: str, *, convention: Convention | None = None) -> Callable[[HookFn], HookFn]:
        """Decorator form of :meth:`add_pre`.

        Example:
            @registry.pre("save")
            def validate(doc):
                ...
        """

        def decorator(fn: HookFn) -> HookFn:
            self.add_pre(name, fn, convention=convention)
            return fn

        return decorator

    def post(self, name: str, *, convention: Convention | None = None) -> Callable[[HookFn], HookFn]:
        """Decorator form of :meth:`add_post`."""

        def decorator(fn: HookFn) -> HookFn:
            self.add_post(name, fn, convention=convention)
            return fn

        return decorator

    def get_pre_hooks(self, name: str) -> list[HookSpec]:
        """Get the pre hooks for ``name`` in registration order."""
        hooks = self._hooks.get(name)
        return list(hooks.pre) if hooks else []

    def get_post_hooks(self, name: str) -> list[HookSpec]:
        """Get the post hooks for ``name`` in registration order."""
        hooks = self._hooks.get(name)
        return list(hooks.post) if hooks else []

    def has_hooks(self, name: str) -> bool:
        """Check if any pre or post hook is registered for ``name``."""
        hooks = self._hooks.get(name)
        return bool(hooks and (hooks.pre or hooks.post))

    def names(self) -> list[str]:
        """Get all hook names in registration order."""
        return list(self._hooks)

    def clear(self) -> None:
        """Remove all registered hooks (for testing)."""
        self._hooks.clear()
