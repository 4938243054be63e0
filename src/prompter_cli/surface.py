"""RichPromptSurface — terminal implementation of :class:`PromptSurface`.

Built on ``rich.prompt``: ``Prompt`` for text and choices, ``Confirm`` for
yes/no.  Choice lists are printed as numbered rows and answered by number
(several comma-separated numbers for multi-select, where a blank answer
picks nothing and ``d`` keeps the pre-selected defaults).

Ctrl+C raises ``KeyboardInterrupt`` out of the blocking ``ask`` call,
which the engine turns into its paused / terminated states.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence, TextIO

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.text import Text

from prompter.interfaces import PromptSurface

logger = logging.getLogger(__name__)

# Multi-select answer that keeps the pre-selected defaults
KEEP_DEFAULTS = "d"


class RichPromptSurface(PromptSurface):
    """Prompts on a rich ``Console``.

    Args:
        console: console to render on (default: a new stdout console)
        stream: optional input stream; defaults to the terminal
    """

    def __init__(self, console: Console | None = None, stream: TextIO | None = None) -> None:
        self._console = console or Console()
        self._stream = stream

    # ------------------------------------------------------------------
    # PromptSurface
    # ------------------------------------------------------------------

    def ask_text(
        self,
        prompt: str,
        default: Optional[str] = None,
        required: bool = False,
        validator: Optional[Callable[[str], bool]] = None,
    ) -> Optional[str]:
        while True:
            answer = self._ask(prompt, default=default)
            if not answer.strip():
                if required:
                    self._error("A value is required")
                    continue
                return None
            if validator is not None and not validator(answer):
                self._error("Invalid format")
                continue
            return answer

    def ask_yes_no(self, prompt: str, default: Optional[bool] = None) -> bool:
        kwargs: dict[str, Any] = {"console": self._console, "stream": self._stream}
        if default is not None:
            kwargs["default"] = default
        return Confirm.ask(Text(prompt), **kwargs)

    def select_one(self, prompt: str, options: Sequence[Any], default: Any = None) -> Any:
        self._print_options(prompt, options)
        choices = [str(i) for i in range(1, len(options) + 1)]
        kwargs: dict[str, Any] = {
            "console": self._console,
            "stream": self._stream,
            "choices": choices,
        }
        if default in options:
            kwargs["default"] = str(list(options).index(default) + 1)
        answer = Prompt.ask("Choose", **kwargs)
        return options[int(answer) - 1]

    def select_many(
        self, prompt: str, options: Sequence[Any], defaults: Sequence[Any] = ()
    ) -> list:
        self._print_options(prompt, options)
        preset = ",".join(str(i + 1) for i, opt in enumerate(options) if opt in defaults)
        label = "Choose (comma-separated numbers, blank for none"
        if preset:
            label += f", '{KEEP_DEFAULTS}' to keep {preset}"
        label += ")"
        while True:
            answer = self._ask(label)
            if preset and answer.strip().lower() == KEEP_DEFAULTS:
                answer = preset
            picked = _parse_indexes(answer, len(options))
            if picked is None:
                self._error(f"Enter numbers between 1 and {len(options)}")
                continue
            return [opt for i, opt in enumerate(options) if i in picked]

    def notify(self, message: str) -> None:
        self._console.print(message, markup=False, highlight=False)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ask(self, prompt: str, default: Optional[str] = None) -> str:
        kwargs: dict[str, Any] = {"console": self._console, "stream": self._stream}
        if default is not None:
            kwargs["default"] = default
        answer = Prompt.ask(Text(prompt), **kwargs)
        answer = "" if answer is None else str(answer)
        # Streams hand back the bare newline, which rich does not map to the default
        if not answer.strip() and default is not None:
            return default
        return answer

    def _print_options(self, prompt: str, options: Sequence[Any]) -> None:
        self._console.print(Text(prompt, style="bold"))
        for i, opt in enumerate(options, 1):
            self._console.print(f"  {i:2d}. {opt}", markup=False, highlight=False)

    def _error(self, message: str) -> None:
        self._console.print(f"[red]{message}[/red]")


def _parse_indexes(answer: str, count: int) -> set[int] | None:
    """Parse ``"1, 3"`` into zero-based indexes; None if anything is invalid."""
    picked: set[int] = set()
    for part in answer.replace(" ", "").split(","):
        if not part:
            continue
        if not part.isdigit():
            return None
        number = int(part)
        if not 1 <= number <= count:
            return None
        picked.add(number - 1)
    return picked
