"""Diagnostics — collects non-fatal problems and logs them for the operator."""

from __future__ import annotations

import logging
from typing import Sequence

from prompter.answers import format_path
from prompter.errors import DiagnosticKind
from prompter.models.session import Diagnostic

logger = logging.getLogger(__name__)


class Diagnostics:
    """Append-only list of :class:`Diagnostic` records for one run.

    Every report is also logged at WARNING so it reaches the terminal
    even when the caller never inspects ``RunResult.diagnostics``.
    """

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def report(
        self,
        kind: DiagnosticKind,
        path: Sequence[str | int] | str,
        message: str,
    ) -> Diagnostic:
        where = path if isinstance(path, str) else format_path(path)
        diag = Diagnostic(kind=kind, path=where, message=message)
        self._items.append(diag)
        logger.warning("%s at %s: %s", kind.value, where, message)
        return diag

    @property
    def items(self) -> list[Diagnostic]:
        return list(self._items)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self._items if d.kind == kind]

    def __len__(self) -> int:
        return len(self._items)
