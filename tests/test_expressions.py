"""Sandboxed expression tests — name resolution, helpers and the whitelist.

Each group checks what schema authors can write and, just as important,
what the sandbox refuses.
"""

import pytest

from prompter.answers import ABSENT
from prompter.errors import ExpressionError
from prompter.expressions import compile_expression


def _eval(source, answers=None, **kwargs):
    """Shorthand: compile and evaluate against ``answers``."""
    return compile_expression(source).evaluate(answers or {}, **kwargs)


# =====================================================================
# Name resolution
# =====================================================================


class TestNames:

    def test_top_level_answer_keys(self):
        assert _eval("enable_db == false", {"enable_db": False}) is True

    def test_answers_binding(self):
        answers = {"pre_checks": {"allow_destructive": "yes"}}
        assert _eval("answers.pre_checks.allow_destructive != 'yes'", answers) is False

    def test_unknown_name_is_absent(self):
        assert _eval("nothing_here") is ABSENT
        assert _eval("nothing_here == null") is True

    def test_missing_attribute_chain_is_absent(self):
        assert _eval("answers.db.port.number", {"db": {}}) is ABSENT

    def test_constants(self):
        assert _eval("[true, false, null, nil]") == [True, False, None, None]

    def test_scope_bindings(self):
        assert _eval("item.name + str(index)", scope={"item": {"name": "n"}, "index": 2}) == "n2"

    def test_value_binding(self):
        assert _eval("value * 2", value=21) == 42


# =====================================================================
# Lambdas
# =====================================================================


class TestLambda:

    def test_param_binds_value(self):
        assert _eval("lambda v: len(v) >= 3", value="abcd") is True

    def test_param_binds_answers_without_value(self):
        assert _eval("lambda a: a['count'] > 1", {"count": 2}) is True

    def test_multiple_params_rejected(self):
        with pytest.raises(ExpressionError):
            compile_expression("lambda a, b: a")

    def test_nested_lambda_rejected(self):
        with pytest.raises(ExpressionError):
            compile_expression("lambda v: (lambda w: w)")


# =====================================================================
# Helpers and methods
# =====================================================================


class TestFunctions:

    def test_count_treats_absent_as_empty(self):
        assert _eval("count(items)", {"items": ["a", "b", "c"]}) == 3
        assert _eval("count(items)") == 0

    def test_blank_and_present(self):
        assert _eval("blank(name)", {"name": "  "}) is True
        assert _eval("present(name)", {"name": "x"}) is True

    def test_matches(self):
        assert _eval("matches(host, '^db')", {"host": "db01"}) is True
        assert _eval("matches(missing, '^db')") is False

    def test_string_methods(self):
        assert _eval("value.strip().lower()", value="  MiXeD ") == "mixed"

    def test_dict_get_and_dig(self):
        answers = {"db": {"host": "h"}}
        assert _eval("db.get('port', 5432)", answers) == 5432
        assert _eval("answers.dig('db', 'host')", answers) == "h"

    def test_conditional_expression(self):
        assert _eval("'big' if size > 10 else 'small'", {"size": 11}) == "big"

    def test_in_absent_is_false(self):
        assert _eval("'x' in tags") is False


# =====================================================================
# Sandbox
# =====================================================================


class TestSandbox:
    """Anything outside the whitelist fails to compile or evaluate."""

    @pytest.mark.parametrize("source", [
        "__import__('os')",
        "value.__class__",
        "[x for x in items]",
        "open('/etc/passwd')",
        "(x := 1)",
        "",
    ])
    def test_rejected(self, source):
        with pytest.raises(ExpressionError):
            _eval(source, value="v")

    def test_unknown_method_rejected(self):
        with pytest.raises(ExpressionError):
            _eval("value.format(1)", value="{}")

    def test_attribute_on_scalar_rejected(self):
        with pytest.raises(ExpressionError):
            _eval("value.real", value=3)

    def test_runtime_errors_are_wrapped(self):
        with pytest.raises(ExpressionError):
            _eval("1 / 0")

    def test_large_repetition_rejected(self):
        with pytest.raises(ExpressionError):
            _eval("'x' * 10000000")

    def test_syntax_error(self):
        with pytest.raises(ExpressionError):
            compile_expression("a ==")
