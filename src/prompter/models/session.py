"""Run models — the contract between the engine and its callers.

A run moves through four states:

    running ──► done            (acquisition finished)
       │          ▲
       ▼          │ save partial
    paused ───────┤
                  │ discard / second interrupt
                  ▼
              terminated

``RunResult`` is what :meth:`TraversalEngine.run` returns.  Its ``answers``
is the exported store when the run reached ``done`` and ``None`` when it was
``terminated``.
"""

import enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from prompter.errors import DiagnosticKind


class RunState(str, enum.Enum):
    """Lifecycle states of a prompting run.

    Transitions:
        running -> done        (normal completion)
        running -> paused      (interrupt while waiting for input)
        paused -> done         (operator saves partial results)
        paused -> terminated   (operator discards, or a second interrupt)
    """

    RUNNING = "running"
    PAUSED = "paused"
    DONE = "done"
    TERMINATED = "terminated"


# Allowed state transitions; anything else is a programming error.
TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.RUNNING: {RunState.DONE, RunState.PAUSED},
    RunState.PAUSED: {RunState.DONE, RunState.TERMINATED},
    RunState.DONE: set(),
    RunState.TERMINATED: set(),
}


class ArrayScope(str, enum.Enum):
    """How array elements are committed while they are being acquired.

    - live: each element is placed in the array slot before its children
      are asked, so expressions see earlier elements (and the element's
      own siblings) through ``answers``.
    - deferred: elements are collected off-store and the array slot is
      replaced once every repetition is done; element children see their
      siblings only through ``item``.
    """

    LIVE = "live"
    DEFERRED = "deferred"


class Diagnostic(BaseModel):
    """A non-fatal problem reported to the operator during a run."""

    kind: DiagnosticKind
    path: str
    message: str


class RunResult(BaseModel):
    """Outcome of a run: final state, the artifact (if any), and diagnostics."""

    state: RunState
    answers: Optional[dict[str, Any]] = None
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def saved(self) -> bool:
        """True when the run produced an artifact (complete or partial)."""
        return self.state == RunState.DONE and self.answers is not None
