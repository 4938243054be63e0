"""Abstract interface for the terminal layer the engine prompts through.

The engine never renders anything itself; it calls a ``PromptSurface``.
``prompter_cli.surface.RichPromptSurface`` is the terminal implementation;
tests use a scripted fake.

Every method blocks until the operator answers.  An operator interrupt
(Ctrl+C) must surface as ``KeyboardInterrupt`` from the blocking call; the
engine turns it into the paused / terminated transitions.

Typical integration flow::

    surface = RichPromptSurface()
    engine = TraversalEngine(schema, surface)
    result = engine.run()
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Sequence


class PromptSurface(ABC):
    """Interface for the four blocking capture widgets."""

    @abstractmethod
    def ask_text(
        self,
        prompt: str,
        default: Optional[str] = None,
        required: bool = False,
        validator: Optional[Callable[[str], bool]] = None,
    ) -> Optional[str]:
        """Ask for free text.

        Parameters
        ----------
        prompt:
            Label shown to the operator.
        default:
            Value used when the operator just presses enter.
        required:
            Re-ask while the answer is empty.
        validator:
            Re-ask while it returns False for the answer.

        Returns
        -------
        str or None
            The answer; ``None`` when nothing was entered and nothing is
            required.
        """
        ...

    @abstractmethod
    def ask_yes_no(self, prompt: str, default: Optional[bool] = None) -> bool:
        """Ask a yes/no question."""
        ...

    @abstractmethod
    def select_one(self, prompt: str, options: Sequence[Any], default: Any = None) -> Any:
        """Pick exactly one of ``options``; returns the chosen option."""
        ...

    @abstractmethod
    def select_many(
        self, prompt: str, options: Sequence[Any], defaults: Sequence[Any] = ()
    ) -> list:
        """Pick any number of ``options``; returns them in option order."""
        ...

    def notify(self, message: str) -> None:
        """Show a non-interactive line (help text, section headings).

        Optional: the default implementation shows nothing.
        """
        return None
