"""TraversalEngine tests driven by a scripted prompt surface.

Every test builds a small inline schema, scripts the operator's answers
with ScriptedSurface, runs the engine and checks the resulting state,
answers and prompt sequence.

Script conventions (see helpers.surface):
  - plain values are returned from the next blocking call
  - INTERRUPT raises KeyboardInterrupt (Ctrl+C) from the call
  - DEFAULT returns the default the engine offered
  - Call(fn) runs fn() at prompt time
"""

import pytest

from helpers.surface import DEFAULT, INTERRUPT, Call, ScriptedSurface
from prompter.answers import ABSENT, AnswerStore
from prompter.constants import DISCARD_CHOICE, SAVE_CHOICE
from prompter.engine import CancellationToken, TraversalEngine
from prompter.errors import DiagnosticKind
from prompter.models.session import ArrayScope, RunState


def _run(schema, *answers, **kwargs):
    """Shorthand: run ``schema`` against scripted answers, return (result, surface)."""
    surface = ScriptedSurface(*answers)
    engine = TraversalEngine(schema, surface, **kwargs)
    return engine.run(), surface


SERVICE_SCHEMA = """
name:
  type: text
  default: app
db:
  type: hash
  children:
    host:
      type: text
      default: localhost
    port:
      type: integer
      default: 5432
servers:
  type: array
  length: 2
  children:
    host:
      type: text
"""


# =====================================================================
# Skeleton pass
# =====================================================================


class TestSkeleton:
    """The answer tree mirrors the schema before the first prompt."""

    def test_static_shape_matches_schema(self, schema_from):
        """Hashes nest, static arrays are pre-sized, scalars hold defaults."""
        store = AnswerStore.from_schema(schema_from(SERVICE_SCHEMA))
        assert store.to_dict() == {
            "name": "app",
            "db": {"host": "localhost", "port": 5432},
            "servers": [{"host": None}, {"host": None}],
        }
        assert store.get(("servers", 1, "host")) is ABSENT

    def test_computed_length_starts_empty(self, schema_from):
        """An expression length cannot be known yet, so the slot is []."""
        schema = schema_from("""
            items:
              type: array
              length: count(names)
              children:
                name: {type: text}
        """)
        assert AnswerStore.from_schema(schema).root == {"items": []}

    def test_interrupt_at_first_prompt_saves_skeleton(self, schema_from):
        """A partial save before any answer is exactly the skeleton."""
        schema = schema_from(SERVICE_SCHEMA)
        result, _ = _run(schema, INTERRUPT, SAVE_CHOICE)
        assert result.state == RunState.DONE
        assert result.answers == AnswerStore.from_schema(schema).to_dict()


# =====================================================================
# Acquisition pass
# =====================================================================


class TestAcquisition:
    """Declaration order, capture per type, and default handling."""

    def test_full_run_in_declaration_order(self, schema_from):
        """Fields are asked depth-first in document order."""
        result, surface = _run(
            schema_from(SERVICE_SCHEMA), "svc", "db.local", "6543", "a", "b",
        )
        assert surface.prompts == ["name", "host", "port", "host", "host"]
        assert result.state == RunState.DONE
        assert result.answers == {
            "name": "svc",
            "db": {"host": "db.local", "port": 6543},
            "servers": [{"host": "a"}, {"host": "b"}],
        }

    def test_defaults_are_offered(self, schema_from):
        """DEFAULT answers fall back to the declared defaults."""
        result, surface = _run(
            schema_from(SERVICE_SCHEMA), DEFAULT, DEFAULT, DEFAULT, "a", "b",
        )
        assert surface.defaults[:3] == ["app", "localhost", "5432"]
        assert result.answers["db"] == {"host": "localhost", "port": 5432}

    def test_empty_text_keeps_skeleton_value(self, schema_from):
        """Blank input on an optional text field commits nothing."""
        schema = schema_from("""
            name: {type: text, default: app}
            note: {type: text}
        """)
        result, _ = _run(schema, None, None)
        assert result.answers == {"name": "app", "note": None}

    def test_boolean_uses_yes_no(self, schema_from):
        schema = schema_from("""
            enabled: {type: boolean, default: true}
        """)
        result, surface = _run(schema, False)
        assert surface.calls == [("ask_yes_no", "enabled")]
        assert surface.defaults == [True]
        assert result.answers == {"enabled": False}

    def test_select_default_outside_options_is_dropped(self, schema_from):
        """Only a default that is one of the options is pre-selected."""
        schema = schema_from("""
            env: {type: select, options: [dev, prod], default: staging}
            tier: {type: select, options: [free, paid], default: paid}
        """)
        result, surface = _run(schema, "prod", DEFAULT)
        assert surface.defaults == [None, "paid"]
        assert result.answers == {"env": "prod", "tier": "paid"}

    def test_multi_select_defaults_filtered(self, schema_from):
        schema = schema_from("""
            langs:
              type: multi_select
              options: [py, rb, go]
              default: [rb, cobol]
        """)
        result, surface = _run(schema, ["py", "go"])
        assert surface.defaults == [["rb"]]
        assert result.answers == {"langs": ["py", "go"]}

    def test_integer_rejects_non_numbers(self, schema_from):
        """The integer capture re-asks until the input parses."""
        schema = schema_from("""
            port: {type: integer}
        """)
        result, surface = _run(schema, "eighty", "80")
        assert surface.rejected == ["eighty"]
        assert result.answers == {"port": 80}

    def test_integer_accepts_plain_digits_only(self, schema_from):
        """Literal forms such as 1_000 or 0x10 are not integers here."""
        schema = schema_from("""
            workers: {type: integer}
            offset: {type: integer}
        """)
        result, surface = _run(schema, "1_000", "0x10", "1000", " -5 ")
        assert surface.rejected == ["1_000", "0x10"]
        assert result.answers == {"workers": 1000, "offset": -5}

    def test_validate_regex_reasks(self, schema_from):
        schema = schema_from("""
            slug:
              type: text
              validate: /^[a-z]+$/
        """)
        result, surface = _run(schema, "Not Valid", "valid")
        assert surface.rejected == ["Not Valid"]
        assert result.answers == {"slug": "valid"}

    def test_transform_then_convert(self, schema_from):
        schema = schema_from("""
            workers:
              type: text
              transform: value.strip()
              convert: int
        """)
        result, _ = _run(schema, "  12 ")
        assert result.answers == {"workers": 12}

    def test_help_is_shown_before_the_prompt(self, schema_from):
        schema = schema_from("""
            token:
              type: text
              help: Paste the API token
        """)
        _, surface = _run(schema, "t0k")
        assert "Paste the API token" in surface.notices

    def test_engine_runs_once(self, schema_from):
        engine = TraversalEngine(schema_from("a: {type: text}"), ScriptedSurface("x"))
        engine.run()
        with pytest.raises(ValueError):
            engine.run()


# =====================================================================
# skip_if
# =====================================================================


class TestSkipIf:
    """Predicates see exactly the answers committed before them."""

    def test_skipped_hash_keeps_skeleton(self, schema_from):
        """A false toggle skips the whole hash; its defaults remain."""
        schema = schema_from("""
            enable_db: {type: boolean}
            db:
              type: hash
              skip_if: enable_db == false
              children:
                host: {type: text, default: localhost}
            after: {type: text}
        """)
        result, surface = _run(schema, False, "x")
        assert surface.prompts == ["enable_db", "after"]
        assert result.answers == {
            "enable_db": False,
            "db": {"host": "localhost"},
            "after": "x",
        }

    def test_enabled_hash_is_asked(self, schema_from):
        schema = schema_from("""
            enable_db: {type: boolean}
            db:
              type: hash
              skip_if: enable_db == false
              children:
                host: {type: text, default: localhost}
        """)
        result, _ = _run(schema, True, "db.internal")
        assert result.answers["db"] == {"host": "db.internal"}

    def test_siblings_visible_inside_hash(self, schema_from):
        """A later child sees an earlier child of the same hash."""
        schema = schema_from("""
            db:
              type: hash
              children:
                use_ssl: {type: boolean}
                cert: {type: text, skip_if: "not answers.db.use_ssl"}
                name: {type: text}
        """)
        result, surface = _run(schema, False, "main")
        assert surface.prompts == ["use_ssl", "name"]
        assert result.answers == {"db": {"use_ssl": False, "cert": None, "name": "main"}}

    def test_failing_predicate_asks_anyway(self, schema_from):
        """An expression error is fail-open and reported."""
        schema = schema_from("""
            a: {type: text, skip_if: "undefined_fn()"}
        """)
        result, surface = _run(schema, "x")
        assert surface.prompts == ["a"]
        assert result.answers == {"a": "x"}
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.EXPRESSION]


# =====================================================================
# Arrays
# =====================================================================


class TestArrays:
    """Lengths are resolved when the array is reached."""

    ITEMS_SCHEMA = """
        items: {type: multi_select, options: [a, b, c, d]}
        entries:
          type: array
          length: count(items)
          children:
            name:
              type: text
              transform: "value + '-' + str(index)"
    """

    def test_length_from_earlier_answer(self, schema_from):
        """count(items) with three picks yields three elements."""
        result, surface = _run(
            schema_from(self.ITEMS_SCHEMA), ["a", "b", "c"], "x", "y", "z",
        )
        assert result.answers["entries"] == [
            {"name": "x-0"}, {"name": "y-1"}, {"name": "z-2"},
        ]
        assert "entries [3/3]" in surface.notices

    def test_zero_length_asks_nothing(self, schema_from):
        result, surface = _run(schema_from(self.ITEMS_SCHEMA), [])
        assert surface.prompts == ["items"]
        assert result.answers["entries"] == []

    def test_bad_length_is_zero(self, schema_from):
        schema = schema_from("""
            entries:
              type: array
              length: "'three'"
              children:
                name: {type: text}
        """)
        result, surface = _run(schema)
        assert surface.calls == []
        assert result.answers == {"entries": []}
        assert result.diagnostics[0].kind == DiagnosticKind.EXPRESSION

    def test_nested_hash_in_static_element(self, schema_from):
        """A nested hash inside an element is filled in place."""
        schema = schema_from("""
            servers:
              type: array
              length: 1
              children:
                net:
                  type: hash
                  children:
                    host: {type: text}
        """)
        result, _ = _run(schema, "h0")
        assert result.answers == {"servers": [{"net": {"host": "h0"}}]}

    LOOKBACK_SCHEMA = """
        servers:
          type: array
          length: 2
          children:
            host: {type: text}
            note:
              type: text
              skip_if: "index > 0 and answers.servers[0].host == 'solo'"
    """

    def test_live_scope_sees_earlier_elements(self, schema_from):
        result, surface = _run(schema_from(self.LOOKBACK_SCHEMA), "solo", "n0", "h1")
        assert surface.prompts == ["host", "note", "host"]
        assert result.answers["servers"] == [
            {"host": "solo", "note": "n0"},
            {"host": "h1", "note": None},
        ]

    def test_deferred_scope_hides_earlier_elements(self, schema_from):
        """Deferred elements reach the store only after the last repetition."""
        result, surface = _run(
            schema_from(self.LOOKBACK_SCHEMA), "solo", "n0", "h1", "n1",
            array_scope=ArrayScope.DEFERRED,
        )
        assert surface.prompts == ["host", "note", "host", "note"]
        assert result.answers["servers"] == [
            {"host": "solo", "note": "n0"},
            {"host": "h1", "note": "n1"},
        ]

    def test_item_binding_in_deferred_scope(self, schema_from):
        """Element children still see their siblings through ``item``."""
        schema = schema_from("""
            users:
              type: array
              length: 2
              children:
                name: {type: text}
                admin: {type: boolean, skip_if: "item.name == 'guest'"}
        """)
        result, surface = _run(
            schema, "guest", "root", True, array_scope="deferred",
        )
        assert surface.methods("ask_yes_no") == ["admin"]
        assert result.answers["users"] == [
            {"name": "guest", "admin": None},
            {"name": "root", "admin": True},
        ]


# =====================================================================
# Option sources during a run
# =====================================================================


class TestOptionSources:
    """Handler failures degrade to an empty list and the run continues."""

    def test_unregistered_handler_does_not_abort(self, schema_from, registry):
        schema = schema_from("""
            flags:
              type: multi_select
              source:
                type: handler
                handler: missing
                method: list_flags
            next: {type: text}
        """)
        result, surface = _run(schema, "ok", registry=registry)
        assert surface.prompts == ["next"]
        assert result.state == RunState.DONE
        assert result.answers == {"flags": None, "next": "ok"}
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.HANDLER]
        assert result.diagnostics[0].path == "flags"

    def test_handler_sees_earlier_answers(self, schema_from, registry):
        seen = []

        @registry.register("envs.for_region")
        def for_region(answers, config):
            seen.append(answers["region"])
            return [f"{answers['region']}-{n}" for n in range(config["count"])]

        schema = schema_from("""
            region: {type: select, options: [eu, us]}
            env:
              type: select
              source: {type: handler, handler: envs, method: for_region, count: 2}
        """)
        result, _ = _run(schema, "eu", "eu-1", registry=registry)
        assert seen == ["eu"]
        assert result.answers == {"region": "eu", "env": "eu-1"}


# =====================================================================
# Confirmation loop
# =====================================================================


class TestConfirm:
    """A rejected value restarts acquisition of the same node."""

    def test_rejected_twice_then_accepted(self, schema_from, registry):
        """Three attempts; options are re-resolved on every attempt."""
        resolutions = []

        @registry.register("regions")
        def regions(answers, config):
            resolutions.append(1)
            return ["eu", "us"]

        schema = schema_from("""
            region:
              type: select
              confirm: true
              source: {type: handler, handler: regions}
        """)
        result, surface = _run(
            schema, "eu", False, "us", False, "eu", True, registry=registry,
        )
        assert len(resolutions) == 3
        assert surface.methods("select_one") == ["region"] * 3
        assert surface.methods("ask_yes_no") == [
            "Confirm 'eu'?", "Confirm 'us'?", "Confirm 'eu'?",
        ]
        assert result.answers == {"region": "eu"}

    def test_rejected_hash_is_reasked_from_scratch(self, schema_from):
        schema = schema_from("""
            owner:
              type: hash
              confirm: true
              children:
                name: {type: text}
        """)
        result, _ = _run(schema, "x", False, "y", True)
        assert result.answers == {"owner": {"name": "y"}}

    def test_confirm_shows_transformed_value(self, schema_from):
        schema = schema_from("""
            name:
              type: text
              confirm: true
              transform: value.upper()
        """)
        _, surface = _run(schema, "abc", True)
        assert surface.methods("ask_yes_no") == ["Confirm 'ABC'?"]


# =====================================================================
# Cancellation state machine
# =====================================================================


class TestCancellation:
    """RUNNING → PAUSED → DONE / TERMINATED."""

    SCHEMA = """
        a: {type: text}
        b: {type: text, default: bee}
        c: {type: text}
    """

    def test_interrupt_then_save_keeps_partial_answers(self, schema_from):
        result, surface = _run(schema_from(self.SCHEMA), "x", INTERRUPT, SAVE_CHOICE)
        assert result.state == RunState.DONE
        assert result.saved
        assert result.answers == {"a": "x", "b": "bee", "c": None}
        assert "Interrupted by user!" in surface.notices
        assert surface.methods("select_one") == ["What would you like to do?"]

    def test_interrupt_then_discard(self, schema_from):
        result, _ = _run(schema_from(self.SCHEMA), "x", INTERRUPT, DISCARD_CHOICE)
        assert result.state == RunState.TERMINATED
        assert result.answers is None
        assert not result.saved

    def test_second_interrupt_terminates(self, schema_from):
        result, _ = _run(schema_from(self.SCHEMA), "x", INTERRUPT, INTERRUPT)
        assert result.state == RunState.TERMINATED
        assert result.answers is None

    def test_pause_menu_defaults_to_save(self, schema_from):
        result, surface = _run(schema_from(self.SCHEMA), INTERRUPT, DEFAULT)
        assert surface.defaults[-1] == SAVE_CHOICE
        assert result.state == RunState.DONE

    def test_token_cancel_during_prompt(self, schema_from):
        """A cancel while blocked discards the in-flight answer."""
        token = CancellationToken()

        def answer_and_cancel():
            token.cancel()
            return "lost"

        result, _ = _run(
            schema_from(self.SCHEMA), "x", Call(answer_and_cancel), SAVE_CHOICE,
            token=token,
        )
        assert result.state == RunState.DONE
        assert result.answers == {"a": "x", "b": "bee", "c": None}
        assert not token.cancelled

    def test_token_cancelled_before_run(self, schema_from):
        token = CancellationToken()
        token.cancel()
        result, surface = _run(schema_from(self.SCHEMA), DISCARD_CHOICE, token=token)
        assert surface.prompts == ["What would you like to do?"]
        assert result.state == RunState.TERMINATED

    def test_engine_state_follows_result(self, schema_from):
        engine = TraversalEngine(schema_from(self.SCHEMA), ScriptedSurface(INTERRUPT, INTERRUPT))
        assert engine.state == RunState.RUNNING
        engine.run()
        assert engine.state == RunState.TERMINATED
