"""Per-invocation pipeline state."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from hookwrap.errors import InvalidTransition

logger = logging.getLogger(__name__)

# Type aliases
CompletionFn = Callable[..., Any]


class Phase(Enum):
    """Phase of a single invocation."""

    START = "start"
    RUNNING_PRE = "running_pre"
    RUNNING_MAIN = "running_main"
    RUNNING_POST = "running_post"
    DONE = "done"
    ABORTED = "aborted"


_TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.START: frozenset({Phase.RUNNING_PRE}),
    Phase.RUNNING_PRE: frozenset({Phase.RUNNING_MAIN, Phase.RUNNING_POST, Phase.ABORTED}),
    Phase.RUNNING_MAIN: frozenset({Phase.RUNNING_POST, Phase.ABORTED}),
    Phase.RUNNING_POST: frozenset({Phase.DONE}),
    Phase.DONE: frozenset(),
    Phase.ABORTED: frozenset(),
}


@dataclass
class Invocation:
    """State of one run of a wrapped callable.

    Attributes:
        name: Hook name being run
        context: Caller-supplied context object (shared with every step)
        args: Caller arguments, without any completion callback
        error: Current error (None if none)
        results: Current result values
        phase: Current phase
        completed: Whether the caller's completion has been reported
        short_circuited: Whether a pre hook supplied the result
    """

    name: str
    context: Any = None
    args: tuple[Any, ...] = ()
    error: Any = None
    results: tuple[Any, ...] = ()
    phase: Phase = Phase.START
    completed: bool = False
    short_circuited: bool = False

    def transition(self, target: Phase) -> None:
        """Move to ``target``.

        Raises:
            InvalidTransition: If ``target`` is not reachable from the current phase
        """
        if target not in _TRANSITIONS[self.phase]:
            raise InvalidTransition(self.name, self.phase, target)
        logger.debug("Hook '%s': %s -> %s", self.name, self.phase.name, target.name)
        self.phase = target

    @property
    def finished(self) -> bool:
        return self.phase in (Phase.DONE, Phase.ABORTED)

    def complete(self, completion: CompletionFn | None) -> bool:
        """Report ``(error, *results)`` to ``completion`` once.

        Returns:
            True if this call reported, False if the invocation had already completed
        """
        if self.completed:
            logger.debug("Hook '%s' already completed, ignoring", self.name)
            return False
        self.completed = True

        if completion is None:
            if self.error is not None:
                logger.debug("Unobserved error in '%s' pipeline: %r", self.name, self.error)
            return True

        completion(self.error, *self.results)
        return True
