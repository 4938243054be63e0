"""Error kinds raised and reported by the prompting engine.

Only schema loading raises to the caller (a run cannot start without a
schema).  Everything that goes wrong *during* acquisition is caught close
to where it happens, degraded according to the policy below, and recorded
as a :class:`~prompter.models.session.Diagnostic`:

    SchemaError      malformed node          → permissive default
    ExpressionError  expression failure      → per-slot fallback
    SourceError      option source failure   → empty option list
    HandlerError     handler failure         → empty option list

Interrupts are not errors; they drive the run's state machine.
"""

import enum


class DiagnosticKind(str, enum.Enum):
    """Category of a recorded, non-fatal problem."""

    SCHEMA = "SchemaError"
    EXPRESSION = "ExpressionError"
    SOURCE = "SourceError"
    HANDLER = "HandlerError"


class PrompterError(Exception):
    """Base class for all prompter errors."""


class SchemaError(PrompterError):
    """The schema document cannot be used at all (e.g. not a mapping)."""


class ExpressionError(PrompterError):
    """An expression failed to compile or raised while being evaluated."""


class SourceError(PrompterError):
    """An option source could not be read or is malformed."""


class HandlerError(PrompterError):
    """A handler is missing, has the wrong signature, or failed."""


class InterruptSignal(PrompterError):
    """Cancellation requested while the engine was blocked on input."""
