"""ConditionEvaluator — evaluates a node's expression slots against the answers.

Four slots, one evaluator, four failure policies:

  - **skip_if**: truthy → the field is not asked.  Any failure is
    fail-open: the field is asked and an ExpressionError is reported.
  - **length** (arrays): integer literal or expression.  Failure, a
    negative or a non-integer result → 0, reported.
  - **transform**: applied to the captured value.  Failure → value
    unchanged, silently (debug log only).
  - **validate**: ``/regex/`` literal or expression returning a bool.
    Expression failure → treated as valid.

The engine calls :meth:`should_ask` immediately before visiting a node, so
the predicate always sees exactly the answers committed before it.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Mapping, Sequence

from prompter.constants import MAX_ARRAY_LENGTH
from prompter.diagnostics import Diagnostics
from prompter.errors import DiagnosticKind, ExpressionError
from prompter.expressions import compile_expression
from prompter.models.schema import SchemaNode

logger = logging.getLogger(__name__)

Validator = Callable[[str], bool]


class ConditionEvaluator:
    """Evaluates skip/length/transform/validate expressions for schema nodes.

    Args:
        diagnostics: collector for reported (non-silent) failures
    """

    def __init__(self, diagnostics: Diagnostics | None = None) -> None:
        self._diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    # ------------------------------------------------------------------
    # skip_if
    # ------------------------------------------------------------------

    def should_ask(
        self,
        node: SchemaNode,
        answers: Mapping[str, Any],
        path: Sequence[str | int] = (),
        scope: Mapping[str, Any] | None = None,
    ) -> bool:
        """Return False only when the node's ``skip_if`` evaluates truthy."""
        if not node.skip_if:
            return True
        try:
            skip = compile_expression(node.skip_if).evaluate(answers, scope=scope)
        except ExpressionError as exc:
            self._diagnostics.report(
                DiagnosticKind.EXPRESSION, path, f"skip_if failed, asking anyway: {exc}"
            )
            return True
        if skip:
            logger.debug("Skipping %s (skip_if=%r)", node.key, node.skip_if)
        return not skip

    # ------------------------------------------------------------------
    # length
    # ------------------------------------------------------------------

    def resolve_length(
        self,
        node: SchemaNode,
        answers: Mapping[str, Any],
        path: Sequence[str | int] = (),
        scope: Mapping[str, Any] | None = None,
    ) -> int:
        """Resolve an array's repetition count at the moment of traversal."""
        raw = node.length
        if raw is None:
            return 0
        if node.static_length is not None:
            return min(node.static_length, MAX_ARRAY_LENGTH)

        try:
            result = compile_expression(str(raw)).evaluate(answers, scope=scope)
        except ExpressionError as exc:
            self._diagnostics.report(
                DiagnosticKind.EXPRESSION, path, f"length failed, using 0: {exc}"
            )
            return 0

        if isinstance(result, bool) or not isinstance(result, (int, float)):
            self._diagnostics.report(
                DiagnosticKind.EXPRESSION,
                path,
                f"length {raw!r} returned {type(result).__name__}, using 0",
            )
            return 0
        if isinstance(result, float) and not result.is_integer():
            self._diagnostics.report(
                DiagnosticKind.EXPRESSION, path, f"length {raw!r} returned {result}, using 0"
            )
            return 0

        length = int(result)
        if length < 0:
            self._diagnostics.report(
                DiagnosticKind.EXPRESSION, path, f"length {raw!r} returned {length}, using 0"
            )
            return 0
        if length > MAX_ARRAY_LENGTH:
            self._diagnostics.report(
                DiagnosticKind.EXPRESSION,
                path,
                f"length {length} exceeds the limit, using {MAX_ARRAY_LENGTH}",
            )
            return MAX_ARRAY_LENGTH
        return length

    # ------------------------------------------------------------------
    # transform
    # ------------------------------------------------------------------

    def apply_transform(
        self,
        node: SchemaNode,
        value: Any,
        answers: Mapping[str, Any],
        scope: Mapping[str, Any] | None = None,
    ) -> Any:
        """Apply ``transform`` to ``value``; any failure leaves it unchanged."""
        if not node.transform:
            return value
        try:
            return compile_expression(node.transform).evaluate(answers, value=value, scope=scope)
        except ExpressionError as exc:
            logger.debug("transform on %s ignored: %s", node.key, exc)
            return value

    # ------------------------------------------------------------------
    # validate
    # ------------------------------------------------------------------

    def build_validator(
        self,
        node: SchemaNode,
        answers: Mapping[str, Any],
        path: Sequence[str | int] = (),
        scope: Mapping[str, Any] | None = None,
    ) -> Validator | None:
        """Turn the node's ``validate`` rule into a ``str -> bool`` callable.

        Returns None when the node has no rule or the rule cannot be used.
        """
        rule = node.validate_rule
        if not rule:
            return None

        rule = rule.strip()
        if len(rule) >= 2 and rule.startswith("/") and rule.endswith("/"):
            try:
                pattern = re.compile(rule[1:-1])
            except re.error as exc:
                self._diagnostics.report(
                    DiagnosticKind.EXPRESSION, path, f"invalid validate regex {rule!r}: {exc}"
                )
                return None
            return lambda text: pattern.search(str(text)) is not None

        try:
            expr = compile_expression(rule)
        except ExpressionError as exc:
            self._diagnostics.report(
                DiagnosticKind.EXPRESSION, path, f"validate rule ignored: {exc}"
            )
            return None

        def _validate(text: str) -> bool:
            try:
                return bool(expr.evaluate(answers, value=text, scope=scope))
            except ExpressionError as exc:
                logger.debug("validate on %s treated as valid: %s", node.key, exc)
                return True

        return _validate
