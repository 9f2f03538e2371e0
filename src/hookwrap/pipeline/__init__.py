"""Hook execution pipeline.

Wraps a callable with ordered pre and post hooks:

    pre hooks -> wrapped callable -> post hooks

Each step may be synchronous, callback-terminated or awaitable. A pre hook
may fail the pipeline, continue it, or short-circuit it by supplying the
result itself.
"""

from hookwrap.pipeline.convention import (
    Continue,
    Convention,
    Failed,
    OverwriteResult,
    ShortCircuit,
    SkipWrapped,
    infer_convention,
)
from hookwrap.pipeline.executor import PipelineExecutor, unwrap_values
from hookwrap.pipeline.hook import HookRegistry, HookSpec
from hookwrap.pipeline.options import WrapOptions
from hookwrap.pipeline.state import Invocation, Phase

__all__ = [
    "Continue",
    "Convention",
    "Failed",
    "HookRegistry",
    "HookSpec",
    "Invocation",
    "OverwriteResult",
    "Phase",
    "PipelineExecutor",
    "ShortCircuit",
    "SkipWrapped",
    "WrapOptions",
    "infer_convention",
    "unwrap_values",
]
