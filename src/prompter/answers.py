"""AnswerStore — the nested, path-addressable result of a prompting run.

The store mirrors the schema one-to-one.  It is built in a single skeleton
pass before any question is asked, so that every schema path already has
a slot holding either the node's default or the :data:`ABSENT` marker:

  - hash nodes    → nested dict
  - array nodes   → list pre-sized to a static integer ``length``
                    (computed lengths start empty and are resolved lazily)
  - scalar nodes  → declared default, or ``ABSENT``

The engine writes every captured value into the slot reachable from the
store root, never into a detached copy, so a later sibling's ``skip_if``
sees earlier answers as soon as they are committed.

Paths are tuples of segments: ``str`` keys for dicts, ``int`` indexes for
lists, e.g. ``("servers", 0, "host")``.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

Path = tuple[str | int, ...]


class _Absent:
    """Marker for a slot that has neither a default nor a captured value.

    Falsy, equal to ``None`` and to itself, so predicates such as
    ``answers.db.port == null`` behave the way schema authors expect.
    """

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __eq__(self, other: object) -> bool:
        return other is self or other is None

    def __hash__(self) -> int:
        return hash(None)

    def __repr__(self) -> str:
        return "ABSENT"

    def __copy__(self) -> "_Absent":
        return self

    def __deepcopy__(self, memo: dict) -> "_Absent":
        return self


ABSENT = _Absent()


def is_absent(value: Any) -> bool:
    """True for the ABSENT marker (but not for ``None``)."""
    return value is ABSENT


def format_path(path: Sequence[str | int]) -> str:
    """Render a path for logs and diagnostics: ``("a", 0, "b")`` → ``a[0].b``."""
    out = ""
    for seg in path:
        if isinstance(seg, int):
            out += f"[{seg}]"
        else:
            out += f".{seg}" if out else str(seg)
    return out or "<root>"


def dig(obj: Any, *keys: Any) -> Any:
    """Walk ``keys`` into nested dicts/lists; ABSENT on any missing step."""
    current = obj
    for key in keys:
        if isinstance(current, Mapping):
            if key not in current:
                return ABSENT
            current = current[key]
        elif isinstance(current, list) and isinstance(key, int) and not isinstance(key, bool):
            if not -len(current) <= key < len(current):
                return ABSENT
            current = current[key]
        else:
            return ABSENT
    return current


def export_value(value: Any) -> Any:
    """Deep-copy a slot value with ABSENT mapped to ``None``."""
    if value is ABSENT:
        return None
    if isinstance(value, Mapping):
        return {k: export_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [export_value(v) for v in value]
    return copy.deepcopy(value)


# ---------------------------------------------------------------------------
# Skeleton construction
# ---------------------------------------------------------------------------

def skeleton_for(node: Any) -> Any:
    """Return the default-valued slot for a single schema node."""
    if node.type == "hash":
        return skeleton_for_children(node.children)
    if node.type == "array":
        length = node.static_length
        if length is None:
            return []
        return [skeleton_for_children(node.children) for _ in range(length)]
    if node.default is None:
        return ABSENT
    return copy.deepcopy(node.default)


def skeleton_for_children(children: Mapping[str, Any]) -> dict[str, Any]:
    """Return a dict of skeleton slots for a map of schema nodes (declared order)."""
    return {key: skeleton_for(child) for key, child in children.items()}


# ---------------------------------------------------------------------------
# AnswerStore
# ---------------------------------------------------------------------------

class AnswerStore:
    """Nested answer container with ``dig``-style lookup and write-through set.

    Args:
        root: the initial nested dict; normally produced by
            :meth:`from_schema` rather than passed directly.
    """

    def __init__(self, root: dict[str, Any] | None = None) -> None:
        self._root: dict[str, Any] = root if root is not None else {}

    @classmethod
    def from_schema(cls, schema: Mapping[str, Any]) -> "AnswerStore":
        """Skeleton pass: one slot per schema path, before any interaction."""
        store = cls(skeleton_for_children(schema))
        logger.debug("Skeleton built for %d top-level fields", len(schema))
        return store

    @property
    def root(self) -> dict[str, Any]:
        """The live root dict.  Expressions read from this object directly."""
        return self._root

    def get(self, path: Iterable[str | int]) -> Any:
        """Multi-segment lookup; ABSENT if any segment is missing."""
        return dig(self._root, *tuple(path))

    def set(self, path: Iterable[str | int], value: Any) -> None:
        """Write ``value`` at ``path``, creating intermediate dicts if absent.

        Raises:
            ValueError: for an empty path.
            TypeError: if an intermediate segment resolves to a scalar.
        """
        path = tuple(path)
        if not path:
            raise ValueError("Cannot set the store root")

        container: Any = self._root
        for seg in path[:-1]:
            nxt = dig(container, seg)
            if nxt is ABSENT or nxt is None:
                if isinstance(container, list):
                    raise TypeError(
                        f"Cannot create list element {seg} at {format_path(path)}"
                    )
                nxt = {}
                container[seg] = nxt
            if not isinstance(nxt, (dict, list)):
                raise TypeError(
                    f"Cannot descend into {type(nxt).__name__} at {format_path(path)}"
                )
            container = nxt

        last = path[-1]
        if isinstance(container, list):
            if not isinstance(last, int):
                raise TypeError(f"List slot needs an int index at {format_path(path)}")
            if last == len(container):
                container.append(value)
            else:
                container[last] = value
        else:
            container[last] = value

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the current answers, safe to hand to external code."""
        return copy.deepcopy(self._root)

    def to_dict(self) -> dict[str, Any]:
        """Export the finished answers as plain data (ABSENT → ``None``)."""
        return export_value(self._root)

    def __repr__(self) -> str:
        return f"AnswerStore({self._root!r})"
