"""Sandboxed expressions for ``skip_if``, ``transform``, ``validate`` and ``length``.

Schema authors write small Python-flavoured expressions::

    skip_if:   enable_database == false
    skip_if:   answers.pre_checks.allow_destructive != 'yes'
    transform: value.strip().lower()
    validate:  lambda v: len(v) >= 3
    length:    count(items)

Expressions are parsed with :mod:`ast` and interpreted by a whitelist
walker; nothing is ever passed to ``eval``.  What is allowed:

  - literals, lists, tuples, dicts
  - ``and`` / ``or`` / ``not``, comparisons (incl. ``in``, ``is``),
    ``+ - * / // %``, unary ``-``, ``x if c else y``
  - attribute and subscript access on answer data (``a.b``, ``a['b']``,
    ``a[0]``); a missing step yields ABSENT instead of raising
  - calls to the functions in :data:`FUNCTIONS` and a short list of
    string / list / dict methods
  - an optional top-level ``lambda x: ...`` whose parameter binds to the
    slot input (the captured value for transform/validate, else answers)

Names resolve in this order: bound names (``answers``, ``value``,
``item``, ``index``, the lambda parameter), the literals ``true``,
``false``, ``null`` (and Python's spellings), then top-level answer keys.
Unknown names are ABSENT.  Private names (leading underscore) are rejected.

Every failure surfaces as :class:`~prompter.errors.ExpressionError`; the
evaluator decides what that means for each slot.
"""

from __future__ import annotations

import ast
import functools
import logging
import operator
import re
from typing import Any, Callable, Mapping

from prompter.answers import ABSENT, dig
from prompter.constants import MAX_EXPRESSION_LENGTH, MAX_SEQUENCE_REPEAT
from prompter.errors import ExpressionError

logger = logging.getLogger(__name__)

# Sentinel for "no captured value bound" (ABSENT is a legitimate value).
_UNBOUND = object()


# ---------------------------------------------------------------------------
# Callable whitelist
# ---------------------------------------------------------------------------

def _is_nullish(obj: Any) -> bool:
    return obj is ABSENT or obj is None


def _count(obj: Any = ABSENT) -> int:
    """len() that treats ABSENT/None as empty."""
    if _is_nullish(obj):
        return 0
    return len(obj)


def _blank(obj: Any) -> bool:
    """True for ABSENT, None, whitespace-only strings and empty collections."""
    if _is_nullish(obj):
        return True
    if isinstance(obj, str):
        return not obj.strip()
    if isinstance(obj, (list, tuple, dict, set)):
        return len(obj) == 0
    return False


def _matches(value: Any, pattern: str) -> bool:
    if _is_nullish(value):
        return False
    return re.search(pattern, str(value)) is not None


FUNCTIONS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "all": all,
    "any": any,
    "blank": _blank,
    "bool": bool,
    "count": _count,
    "dig": dig,
    "float": float,
    "int": int,
    "len": _count,
    "lower": lambda s: str(s).lower(),
    "matches": _matches,
    "max": max,
    "min": min,
    "present": lambda obj: not _blank(obj),
    "round": round,
    "sorted": sorted,
    "str": str,
    "strip": lambda s: str(s).strip(),
    "sum": sum,
    "upper": lambda s: str(s).upper(),
}

_STR_METHODS = frozenset({
    "capitalize", "endswith", "isalnum", "isalpha", "isdigit", "lower",
    "lstrip", "replace", "rstrip", "split", "startswith", "strip", "title",
    "upper", "zfill",
})
_LIST_METHODS = frozenset({"count", "index"})
_DICT_METHODS = frozenset({"get", "items", "keys", "values"})

_CONSTANT_NAMES: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "nil": None,
    "none": None,
    "True": True,
    "False": False,
    "None": None,
}

_BIN_OPS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_ALLOWED_NODES: tuple[type, ...] = (
    ast.Expression, ast.Lambda, ast.arguments, ast.arg,
    ast.BoolOp, ast.And, ast.Or,
    ast.UnaryOp, ast.Not, ast.USub, ast.UAdd,
    ast.BinOp, *_BIN_OPS.keys(),
    ast.Compare, ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE,
    ast.In, ast.NotIn, ast.Is, ast.IsNot,
    ast.IfExp, ast.Constant, ast.Name, ast.Load,
    ast.Attribute, ast.Subscript, ast.Slice,
    ast.List, ast.Tuple, ast.Dict,
    ast.Call, ast.keyword,
)


# ---------------------------------------------------------------------------
# Compiled expression
# ---------------------------------------------------------------------------

class Expression:
    """A parsed, validated expression ready to be evaluated repeatedly."""

    def __init__(self, source: str, body: ast.AST, param: str | None) -> None:
        self.source = source
        self._body = body
        self.param = param

    def evaluate(
        self,
        answers: Mapping[str, Any],
        *,
        value: Any = _UNBOUND,
        scope: Mapping[str, Any] | None = None,
    ) -> Any:
        """Evaluate against the answer snapshot.

        Args:
            answers: the live answer root (read only)
            value: the captured value, for transform/validate slots
            scope: extra bindings, e.g. ``item``/``index`` inside arrays

        Raises:
            ExpressionError: on any failure while evaluating.
        """
        env: dict[str, Any] = {"answers": answers}
        if value is not _UNBOUND:
            env["value"] = value
        if scope:
            env.update(scope)
        if self.param is not None:
            env[self.param] = answers if value is _UNBOUND else value

        try:
            return _Interpreter(env, answers).visit(self._body)
        except ExpressionError:
            raise
        except Exception as exc:
            raise ExpressionError(f"{self.source!r}: {type(exc).__name__}: {exc}") from exc

    def __repr__(self) -> str:
        return f"Expression({self.source!r})"


@functools.lru_cache(maxsize=512)
def compile_expression(source: str) -> Expression:
    """Parse and validate ``source``; results are cached by source text.

    Raises:
        ExpressionError: if the text is empty, too long, not a valid
            expression, or uses a construct outside the whitelist.
    """
    text = " ".join(str(source).strip().splitlines())
    if not text:
        raise ExpressionError("empty expression")
    if len(text) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError(f"expression longer than {MAX_EXPRESSION_LENGTH} characters")

    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as exc:
        raise ExpressionError(f"{text!r}: invalid syntax ({exc.msg})") from exc

    body: ast.AST = tree.body
    param: str | None = None
    if isinstance(body, ast.Lambda):
        args = body.args
        if (
            len(args.args) != 1
            or args.posonlyargs or args.kwonlyargs or args.vararg
            or args.kwarg or args.defaults
        ):
            raise ExpressionError(f"{text!r}: lambda must take exactly one argument")
        param = args.args[0].arg
        body = body.body

    _check_whitelist(body, text)
    return Expression(text, body, param)


def _check_whitelist(body: ast.AST, text: str) -> None:
    for node in ast.walk(body):
        if isinstance(node, ast.Lambda):
            raise ExpressionError(f"{text!r}: nested lambda is not allowed")
        if not isinstance(node, _ALLOWED_NODES):
            raise ExpressionError(f"{text!r}: {type(node).__name__} is not allowed")
        if isinstance(node, ast.Name) and node.id.startswith("_"):
            raise ExpressionError(f"{text!r}: private name {node.id!r}")
        if isinstance(node, ast.Attribute) and node.attr.startswith("_"):
            raise ExpressionError(f"{text!r}: private attribute {node.attr!r}")


# ---------------------------------------------------------------------------
# Interpreter
# ---------------------------------------------------------------------------

class _Interpreter(ast.NodeVisitor):
    """Walks a whitelisted AST against a fixed environment."""

    def __init__(self, env: dict[str, Any], answers: Mapping[str, Any]) -> None:
        self._env = env
        self._answers = answers

    def generic_visit(self, node: ast.AST) -> Any:
        raise ExpressionError(f"{type(node).__name__} is not allowed")

    # --- Leaves ---

    def visit_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        name = node.id
        if name in self._env:
            return self._env[name]
        if name in _CONSTANT_NAMES:
            return _CONSTANT_NAMES[name]
        if isinstance(self._answers, Mapping) and name in self._answers:
            return self._answers[name]
        return ABSENT

    def visit_List(self, node: ast.List) -> list:
        return [self.visit(elt) for elt in node.elts]

    def visit_Tuple(self, node: ast.Tuple) -> tuple:
        return tuple(self.visit(elt) for elt in node.elts)

    def visit_Dict(self, node: ast.Dict) -> dict:
        if any(k is None for k in node.keys):
            raise ExpressionError("dict unpacking is not allowed")
        return {self.visit(k): self.visit(v) for k, v in zip(node.keys, node.values)}

    # --- Operators ---

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        result: Any = None
        if isinstance(node.op, ast.And):
            for value in node.values:
                result = self.visit(value)
                if not result:
                    return result
            return result
        for value in node.values:
            result = self.visit(value)
            if result:
                return result
        return result

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, ast.Not):
            return not operand
        if isinstance(node.op, ast.USub):
            return -operand
        return +operand

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        left = self.visit(node.left)
        right = self.visit(node.right)
        if isinstance(node.op, ast.Mult):
            # Bound string/list repetition
            for seq, times in ((left, right), (right, left)):
                if isinstance(seq, (str, list, tuple)) and isinstance(times, int):
                    if len(seq) * times > MAX_SEQUENCE_REPEAT:
                        raise ExpressionError("sequence repetition too large")
        return _BIN_OPS[type(node.op)](left, right)

    def visit_Compare(self, node: ast.Compare) -> bool:
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.visit(comparator)
            if not _compare(op, left, right):
                return False
            left = right
        return True

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        if self.visit(node.test):
            return self.visit(node.body)
        return self.visit(node.orelse)

    # --- Access ---

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        receiver = self.visit(node.value)
        if _is_nullish(receiver):
            return ABSENT
        if isinstance(receiver, Mapping):
            return dig(receiver, node.attr)
        raise ExpressionError(
            f"attribute {node.attr!r} is not available on {type(receiver).__name__}"
        )

    def visit_Subscript(self, node: ast.Subscript) -> Any:
        receiver = self.visit(node.value)
        if _is_nullish(receiver):
            return ABSENT
        if isinstance(node.slice, ast.Slice):
            lower = self.visit(node.slice.lower) if node.slice.lower else None
            upper = self.visit(node.slice.upper) if node.slice.upper else None
            step = self.visit(node.slice.step) if node.slice.step else None
            return receiver[lower:upper:step]
        key = self.visit(node.slice)
        if isinstance(receiver, (Mapping, list)):
            return dig(receiver, key)
        try:
            return receiver[key]
        except (IndexError, KeyError):
            return ABSENT

    def visit_Call(self, node: ast.Call) -> Any:
        args = []
        for arg in node.args:
            if isinstance(arg, ast.Starred):
                raise ExpressionError("star arguments are not allowed")
            args.append(self.visit(arg))
        kwargs = {}
        for kw in node.keywords:
            if kw.arg is None:
                raise ExpressionError("keyword unpacking is not allowed")
            kwargs[kw.arg] = self.visit(kw.value)

        func = node.func
        if isinstance(func, ast.Name):
            fn = FUNCTIONS.get(func.id)
            if fn is None:
                raise ExpressionError(f"unknown function {func.id!r}")
            return fn(*args, **kwargs)

        if isinstance(func, ast.Attribute):
            receiver = self.visit(func.value)
            if _is_nullish(receiver):
                return ABSENT
            return _call_method(receiver, func.attr, args, kwargs)

        raise ExpressionError("only named functions and methods can be called")


def _compare(op: ast.cmpop, left: Any, right: Any) -> bool:
    if isinstance(op, ast.Eq):
        return left == right
    if isinstance(op, ast.NotEq):
        return left != right
    if isinstance(op, (ast.Is, ast.IsNot)):
        same = (_is_nullish(left) and _is_nullish(right)) or left is right
        return same if isinstance(op, ast.Is) else not same
    if isinstance(op, (ast.In, ast.NotIn)):
        found = False if _is_nullish(right) else left in right
        return found if isinstance(op, ast.In) else not found
    if isinstance(op, ast.Lt):
        return left < right
    if isinstance(op, ast.LtE):
        return left <= right
    if isinstance(op, ast.Gt):
        return left > right
    if isinstance(op, ast.GtE):
        return left >= right
    raise ExpressionError(f"unsupported comparison {type(op).__name__}")


def _call_method(receiver: Any, name: str, args: list, kwargs: dict) -> Any:
    if name == "dig" and isinstance(receiver, (Mapping, list)):
        return dig(receiver, *args)
    if isinstance(receiver, str) and name in _STR_METHODS:
        return getattr(receiver, name)(*args, **kwargs)
    if isinstance(receiver, (list, tuple)) and name in _LIST_METHODS:
        return getattr(receiver, name)(*args, **kwargs)
    if isinstance(receiver, Mapping) and name in _DICT_METHODS:
        result = getattr(receiver, name)(*args, **kwargs)
        return list(result) if name in ("keys", "values", "items") else result
    raise ExpressionError(f"method {name!r} is not available on {type(receiver).__name__}")
