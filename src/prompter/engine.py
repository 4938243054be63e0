"""TraversalEngine — walks the schema and collects answers interactively.

Two passes:

    1. Skeleton     — :meth:`AnswerStore.from_schema` builds the full
                      default-valued shape before the first prompt.
    2. Acquisition  — depth-first, pre-order, in declaration order.  For
                      each node: skip_if → acquire → transform/convert →
                      confirm → commit.

Containers are never prompted themselves:

  - hash   — children are acquired into the hash's own slot, so siblings
             see each other's answers as soon as they are committed
  - array  — the length is resolved when the array is reached, then the
             children group is acquired that many times, one element per
             repetition (see :class:`ArrayScope` for how elements are
             committed)

Cancellation state machine::

    RUNNING ──► DONE
       │          ▲ save
       ▼          │
    PAUSED ───────┴──► TERMINATED   (discard, or a second interrupt)

An interrupt is a ``KeyboardInterrupt`` raised by the surface while the
engine waits for input, or a :class:`CancellationToken` request, which is
polled around every blocking call.

Usage::

    engine = TraversalEngine(schema, RichPromptSurface())
    result = engine.run()
    if result.saved:
        dump_answers(result.answers, "out.yml")
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from prompter.answers import ABSENT, AnswerStore, dig, skeleton_for, skeleton_for_children
from prompter.constants import DISCARD_CHOICE, SAVE_CHOICE
from prompter.diagnostics import Diagnostics
from prompter.errors import InterruptSignal
from prompter.evaluator import ConditionEvaluator, Validator
from prompter.handlers import HandlerRegistry
from prompter.interfaces import PromptSurface
from prompter.models.schema import SchemaNode
from prompter.models.session import TRANSITIONS, ArrayScope, RunResult, RunState
from prompter.postprocess import PostProcessor
from prompter.schema_loader import dumps_answers
from prompter.sources import OptionSource

logger = logging.getLogger(__name__)

# Integer input: optional sign, ASCII digits only
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


class CancellationToken:
    """Thread-safe cancellation request, polled at every blocking input.

    Each :meth:`cancel` is one signal delivery: the engine consumes it when
    it raises, so a second delivery is needed to escalate from paused to
    terminated.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            self._event.clear()
            raise InterruptSignal("cancellation requested")


@dataclass
class _Frame:
    """Where the children of one container are written.

    ``container`` is the dict the children's slots live in; ``path`` is its
    absolute path.  A detached frame belongs to a deferred array element that
    is not yet reachable from the store root.
    """

    container: dict
    path: tuple
    scope: dict | None = None
    detached: bool = False


class TraversalEngine:
    """Orchestrates one interactive run over a parsed schema.

    Args:
        schema: ``{key: SchemaNode}`` as returned by the schema loader
        surface: the terminal (or fake) to prompt through
        registry: handler registry for ``handler`` sources
            (default: the process-wide registry)
        array_scope: how array elements are committed while being acquired
        token: cancellation token; a fresh one is created if omitted
        diagnostics: shared collector; a fresh one is created if omitted
    """

    def __init__(
        self,
        schema: Mapping[str, SchemaNode],
        surface: PromptSurface,
        *,
        registry: HandlerRegistry | None = None,
        array_scope: ArrayScope | str = ArrayScope.LIVE,
        token: CancellationToken | None = None,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        self._schema = dict(schema)
        self._surface = surface
        self._array_scope = ArrayScope(array_scope)
        self._token = token if token is not None else CancellationToken()
        self._diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self._evaluator = ConditionEvaluator(self._diagnostics)
        self._sources = OptionSource(registry, self._diagnostics)
        self._post = PostProcessor(self._evaluator)
        self._state = RunState.RUNNING
        self._store: AnswerStore | None = None

    # ==================================================================
    # Public API
    # ==================================================================

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def token(self) -> CancellationToken:
        return self._token

    def run(self) -> RunResult:
        """Run both passes and return the outcome.

        An engine runs once; create a new one for another run.
        """
        if self._store is not None:
            raise ValueError("This engine has already run; create a new one")

        self._store = AnswerStore.from_schema(self._schema)
        logger.info("Run started: %d top-level fields", len(self._schema))

        root = _Frame(container=self._store.root, path=())
        try:
            self._visit_children(self._schema, root)
        except InterruptSignal:
            return self._handle_interrupt()

        self._transition(RunState.DONE)
        logger.info("Run completed")
        return self._result()

    # ==================================================================
    # Traversal
    # ==================================================================

    def _visit_children(self, children: Mapping[str, SchemaNode], frame: _Frame) -> None:
        for key, node in children.items():
            self._visit(node, key, frame)

    def _visit(self, node: SchemaNode, key: str, frame: _Frame) -> None:
        """Ask one node (and its subtree) unless its skip_if says otherwise."""
        path = (*frame.path, key)
        if not self._evaluator.should_ask(node, self._store.root, path, frame.scope):
            return

        if node.help:
            self._surface.notify(node.help)

        attempt = 0
        while True:
            attempt += 1
            if attempt > 1 and node.is_container:
                # Re-ask a rejected container from a clean skeleton
                self._commit(frame, key, skeleton_for(node))

            if node.type == "hash":
                value = self._acquire_hash(node, key, frame)
            elif node.type == "array":
                value = self._acquire_array(node, key, frame)
            else:
                value = self._acquire_scalar(node, path, frame.scope)

            if value is ABSENT:
                # Nothing captured; the slot keeps its skeleton value
                return

            value = self._post.process(node, value, self._store.root, frame.scope)
            if self._blocking(self._post.confirm, node, value, self._surface):
                self._commit(frame, key, value)
                return
            logger.debug("%s rejected on attempt %d", key, attempt)

    def _acquire_hash(self, node: SchemaNode, key: str, frame: _Frame) -> dict:
        """Acquire children into the hash's own slot."""
        self._surface.notify(f"{node.label}:")
        slot = dig(frame.container, key)
        if not isinstance(slot, dict):
            slot = skeleton_for(node)
            self._commit(frame, key, slot)

        child = _Frame(
            container=slot,
            path=(*frame.path, key),
            scope=frame.scope,
            detached=frame.detached,
        )
        self._visit_children(node.children, child)
        return slot

    def _acquire_array(self, node: SchemaNode, key: str, frame: _Frame) -> list:
        """Resolve the length now, then acquire one element per repetition."""
        path = (*frame.path, key)
        length = self._evaluator.resolve_length(node, self._store.root, path, frame.scope)
        logger.debug("Array %s: %d element(s)", key, length)

        if self._array_scope == ArrayScope.DEFERRED or frame.detached:
            elements: list = []
            for index in range(length):
                element = skeleton_for_children(node.children)
                self._acquire_element(node, element, index, length, path, frame, detached=True)
                elements.append(element)
            return elements

        slot = dig(frame.container, key)
        if not isinstance(slot, list):
            slot = []
            self._commit(frame, key, slot)

        for index in range(length):
            if index < len(slot) and isinstance(slot[index], dict):
                # Static-length skeleton element, filled in place
                element = slot[index]
            else:
                element = skeleton_for_children(node.children)
                if index < len(slot):
                    slot[index] = element
                else:
                    slot.append(element)
            self._acquire_element(node, element, index, length, path, frame, detached=False)
        del slot[length:]
        return slot

    def _acquire_element(
        self,
        node: SchemaNode,
        element: dict,
        index: int,
        length: int,
        path: tuple,
        frame: _Frame,
        *,
        detached: bool,
    ) -> None:
        self._surface.notify(f"{node.label} [{index + 1}/{length}]")
        scope = dict(frame.scope or {})
        scope.update(item=element, index=index)
        child = _Frame(container=element, path=(*path, index), scope=scope, detached=detached)
        self._visit_children(node.children, child)

    def _acquire_scalar(self, node: SchemaNode, path: tuple, scope: dict | None) -> Any:
        """Capture a single value; ABSENT when nothing should be committed."""
        label = node.label

        if node.type == "boolean":
            default = None if node.default is None else bool(node.default)
            return self._blocking(self._surface.ask_yes_no, label, default)

        if node.is_choice:
            options = self._sources.resolve(node, self._store, path)
            if not options:
                logger.warning("No options for %s; keeping its current value", label)
                return ABSENT
            if node.type == "select":
                default = node.default if node.default in options else None
                return self._blocking(self._surface.select_one, label, options, default)
            defaults = [d for d in _as_list(node.default) if d in options]
            return self._blocking(self._surface.select_many, label, options, defaults)

        validator = self._evaluator.build_validator(node, self._store.root, path, scope)
        default = None if node.default is None else str(node.default)

        if node.type == "integer":
            raw = self._blocking(
                self._surface.ask_text, label, default, node.required, _integer_validator(validator)
            )
            if raw is None or not str(raw).strip():
                return ABSENT
            try:
                return int(str(raw).strip())
            except ValueError:
                return raw

        raw = self._blocking(self._surface.ask_text, label, default, node.required, validator)
        return ABSENT if raw is None else raw

    def _commit(self, frame: _Frame, key: str, value: Any) -> None:
        """Write a slot: through the store when live, into the element when detached."""
        if frame.detached:
            frame.container[key] = value
        else:
            self._store.set((*frame.path, key), value)

    # ==================================================================
    # Blocking input and cancellation
    # ==================================================================

    def _blocking(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Call a blocking surface method, polling the token before and after."""
        self._token.raise_if_cancelled()
        try:
            result = fn(*args)
        except KeyboardInterrupt as exc:
            raise InterruptSignal("interrupted while waiting for input") from exc
        self._token.raise_if_cancelled()
        return result

    def _handle_interrupt(self) -> RunResult:
        """PAUSED: offer save-partial or discard; a second interrupt terminates."""
        self._transition(RunState.PAUSED)
        logger.warning("Run interrupted by operator")

        try:
            self._surface.notify("Interrupted by user!")
            self._surface.notify("Current answers:\n" + dumps_answers(self._store.root))
            choice = self._blocking(
                self._surface.select_one,
                "What would you like to do?",
                [SAVE_CHOICE, DISCARD_CHOICE],
                SAVE_CHOICE,
            )
        except (InterruptSignal, KeyboardInterrupt):
            logger.warning("Second interrupt; exiting without saving")
            self._transition(RunState.TERMINATED)
            return self._result()

        if choice == SAVE_CHOICE:
            logger.info("Saving partial results")
            self._transition(RunState.DONE)
        else:
            logger.info("Discarding results")
            self._transition(RunState.TERMINATED)
        return self._result()

    def _transition(self, new: RunState) -> None:
        if new not in TRANSITIONS[self._state]:
            raise ValueError(
                f"Invalid run state transition: {self._state.value} -> {new.value}"
            )
        logger.debug("Run state %s -> %s", self._state.value, new.value)
        self._state = new

    def _result(self) -> RunResult:
        answers = self._store.to_dict() if self._state == RunState.DONE else None
        return RunResult(
            state=self._state,
            answers=answers,
            diagnostics=self._diagnostics.items,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _integer_validator(inner: Validator | None) -> Validator:
    """Accept blank or integer text, then defer to the node's own rule."""

    def _validate(text: str) -> bool:
        text = str(text).strip()
        if text and not _INTEGER_RE.fullmatch(text):
            return False
        return inner(text) if inner is not None else True

    return _validate
