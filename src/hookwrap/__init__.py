"""hookwrap - pre/post hooks around sync, callback and awaitable callables."""

from hookwrap.errors import ConventionError, HookError, HookLoadError, HookwrapError
from hookwrap.hooks import Hooks
from hookwrap.pipeline import (
    Convention,
    HookRegistry,
    OverwriteResult,
    PipelineExecutor,
    SkipWrapped,
    WrapOptions,
)

__all__ = [
    "ConventionError",
    "Convention",
    "HookError",
    "HookLoadError",
    "HookRegistry",
    "Hooks",
    "HookwrapError",
    "OverwriteResult",
    "PipelineExecutor",
    "SkipWrapped",
    "WrapOptions",
]
