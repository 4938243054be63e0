"""PostProcessor — transform → convert → confirm, applied after each capture.

1. **transform**: the node's transform expression, applied to the raw
   value.  Failures leave the value unchanged without a diagnostic.
2. **convert**: ``int`` or ``float``.  Input the capture surface let
   through but that does not convert is passed on unchanged.
3. **confirm**: a yes/no check on the final value.  A rejection tells the
   engine to restart acquisition of the same node from the top.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from prompter.evaluator import ConditionEvaluator
from prompter.interfaces import PromptSurface
from prompter.models.schema import SchemaNode

logger = logging.getLogger(__name__)


def convert_value(value: Any, convert: str | None) -> Any:
    """Apply a numeric ``convert`` rule; unconvertible values pass through."""
    if convert is None or value is None:
        return value
    try:
        if convert == "int":
            try:
                return int(value)
            except ValueError:
                return int(float(value))
        if convert == "float":
            return float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        logger.debug("convert=%s left %r unchanged: %s", convert, value, exc)
        return value
    return value


class PostProcessor:
    """Runs the fixed post-capture pipeline for one node."""

    def __init__(self, evaluator: ConditionEvaluator) -> None:
        self._evaluator = evaluator

    def process(
        self,
        node: SchemaNode,
        raw: Any,
        answers: Mapping[str, Any],
        scope: Mapping[str, Any] | None = None,
    ) -> Any:
        """Transform, then convert, the captured value."""
        value = self._evaluator.apply_transform(node, raw, answers, scope)
        return convert_value(value, node.convert)

    def confirm(self, node: SchemaNode, value: Any, surface: PromptSurface) -> bool:
        """Ask the operator to accept ``value``; True when not requested."""
        if not node.confirm:
            return True
        accepted = surface.ask_yes_no(f"Confirm '{_display(value)}'?", default=True)
        if not accepted:
            logger.debug("Value for %s rejected; asking again", node.key)
        return bool(accepted)


def _display(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)
