"""Schema loading and artifact writing.

Reads a YAML (or JSON, which YAML also parses) schema into typed
:class:`~prompter.models.schema.SchemaNode` trees, and writes finished
answers back out as YAML.

Loading is permissive: a malformed node is repaired with a sensible
default and a SchemaError diagnostic instead of aborting the run.

  - missing type            → text
  - unknown type            → text (reported)
  - ``type: string``        → text (and the other aliases in constants)
  - hash/array w/o children → empty children (reported)
  - bad option list, source, convert or length → dropped (reported)

Only a missing file or a top-level document that is not a mapping raises.

Usage::

    diagnostics = Diagnostics()
    schema = load_schema("config/prompts/schema.yml", diagnostics)
    ...
    dump_answers(result.answers, "config/generated.yml")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from prompter.answers import export_value
from prompter.constants import (
    CONVERTERS,
    FIELD_TYPES,
    SOURCE_ALIASES,
    SOURCE_KINDS,
    SOURCE_SELECTOR_KEYS,
    TYPE_ALIASES,
)
from prompter.diagnostics import Diagnostics
from prompter.errors import DiagnosticKind, SchemaError
from prompter.models.schema import Schema, SchemaNode, SourceSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# YAML helpers
# ---------------------------------------------------------------------------

def read_document(path: Path | str) -> Any:
    """Parse the YAML or JSON document at ``path`` (schemas, datasets, data files).

    Raises:
        FileNotFoundError: if nothing exists at ``path``.
        OSError: if it exists but cannot be read (e.g. a directory).
        yaml.YAMLError: if the text is not valid YAML.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"No such document: {path}")
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def dumps_answers(answers: Mapping[str, Any]) -> str:
    """Serialise answers as YAML, preserving schema (insertion) order."""
    return yaml.safe_dump(
        export_value(answers),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


def dump_answers(answers: Mapping[str, Any], path: Path | str) -> Path:
    """Write answers to ``path`` as YAML, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_answers(answers), encoding="utf-8")
    logger.info("Answers written to %s", path)
    return path


# ---------------------------------------------------------------------------
# Schema parsing
# ---------------------------------------------------------------------------

def load_schema(path: Path | str, diagnostics: Diagnostics | None = None) -> Schema:
    """Load and parse the schema file at ``path``.

    Raises:
        FileNotFoundError: if the file does not exist.
        SchemaError: if the document is not a mapping of fields.
    """
    try:
        raw = read_document(path)
    except yaml.YAMLError as exc:
        raise SchemaError(f"{path}: invalid YAML: {exc}") from exc
    schema = parse_schema(raw, diagnostics)
    logger.info("Schema loaded from %s: %d top-level fields", path, len(schema))
    return schema


def parse_schema(raw: Any, diagnostics: Diagnostics | None = None) -> Schema:
    """Parse an already-loaded schema document into ``{key: SchemaNode}``."""
    if diagnostics is None:
        diagnostics = Diagnostics()
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise SchemaError(
            f"Schema must be a mapping of field name to field, got {type(raw).__name__}"
        )
    return _parse_children(raw, diagnostics, ())


def _parse_children(
    raw: Mapping[Any, Any], diagnostics: Diagnostics, path: Sequence[str | int]
) -> dict[str, SchemaNode]:
    return {
        str(key): parse_node(str(key), value, diagnostics, (*path, str(key)))
        for key, value in raw.items()
    }


def parse_node(
    key: str,
    raw: Any,
    diagnostics: Diagnostics,
    path: Sequence[str | int] = (),
) -> SchemaNode:
    """Build one SchemaNode from its raw mapping, repairing what it can."""
    path = tuple(path) or (key,)

    if not isinstance(raw, Mapping):
        # A bare value is read as a text field with that default
        diagnostics.report(
            DiagnosticKind.SCHEMA, path, "field is not a mapping; treating it as text"
        )
        default = raw if isinstance(raw, (str, int, float, bool)) else None
        return SchemaNode(key=key, type="text", default=default)

    ftype = _parse_type(raw.get("type"), diagnostics, path)

    node: dict[str, Any] = {
        "key": key,
        "type": ftype,
        "prompt": _optional_str(raw.get("prompt")),
        "default": raw.get("default"),
        "help": _optional_str(raw.get("help")),
        "required": bool(raw.get("required", False)),
        "confirm": bool(raw.get("confirm", False)),
        "transform": _optional_str(raw.get("transform")),
        "skip_if": _optional_str(raw.get("skip_if")),
        "validate_rule": _optional_str(raw.get("validate")),
    }

    options = raw.get("options", raw.get("choices"))
    if options is not None:
        if isinstance(options, list):
            node["options"] = options
        else:
            diagnostics.report(
                DiagnosticKind.SCHEMA, path, f"options must be a list, got {type(options).__name__}"
            )

    if raw.get("source") is not None:
        node["source"] = parse_source(raw["source"], diagnostics, path)

    convert = raw.get("convert")
    if convert is not None:
        if str(convert) in CONVERTERS:
            node["convert"] = str(convert)
        else:
            diagnostics.report(DiagnosticKind.SCHEMA, path, f"unknown convert {convert!r} ignored")

    if ftype in ("hash", "array"):
        children = raw.get("children")
        if isinstance(children, Mapping):
            node["children"] = _parse_children(children, diagnostics, path)
        else:
            diagnostics.report(
                DiagnosticKind.SCHEMA, path, f"{ftype} without children; treating as empty"
            )

    if ftype == "array":
        node["length"] = _parse_length(raw.get("length"), diagnostics, path)

    return SchemaNode(**node)


def parse_source(
    raw: Any, diagnostics: Diagnostics, path: Sequence[str | int] = ()
) -> SourceSpec | None:
    """Build a SourceSpec; unknown kinds are reported and dropped."""
    if not isinstance(raw, Mapping):
        diagnostics.report(DiagnosticKind.SCHEMA, path, "source must be a mapping; ignored")
        return None

    kind = str(raw.get("type") or raw.get("kind") or "").lower()
    kind = SOURCE_ALIASES.get(kind, kind)
    if kind not in SOURCE_KINDS:
        diagnostics.report(DiagnosticKind.SCHEMA, path, f"unknown source type {kind!r} ignored")
        return None

    handler = raw.get("handler", raw.get("class"))
    params = {str(k): v for k, v in raw.items() if k not in SOURCE_SELECTOR_KEYS}
    options = raw.get("options")

    return SourceSpec(
        kind=kind,
        path=_optional_str(raw.get("path")),
        handler=_optional_str(handler),
        method=_optional_str(raw.get("method")),
        options=options if isinstance(options, list) else None,
        params=params,
    )


def _parse_type(raw_type: Any, diagnostics: Diagnostics, path: Sequence[str | int]) -> str:
    if raw_type is None:
        return "text"
    ftype = str(raw_type).strip().lower()
    ftype = TYPE_ALIASES.get(ftype, ftype)
    if ftype not in FIELD_TYPES:
        diagnostics.report(
            DiagnosticKind.SCHEMA, path, f"unknown type {raw_type!r}; treating as text"
        )
        return "text"
    return ftype


def _parse_length(raw: Any, diagnostics: Diagnostics, path: Sequence[str | int]) -> int | str | None:
    if raw is None:
        diagnostics.report(DiagnosticKind.SCHEMA, path, "array without length; no elements")
        return None
    if isinstance(raw, bool):
        diagnostics.report(DiagnosticKind.SCHEMA, path, f"invalid length {raw!r}; no elements")
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        return text
    diagnostics.report(DiagnosticKind.SCHEMA, path, f"invalid length {raw!r}; no elements")
    return None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
