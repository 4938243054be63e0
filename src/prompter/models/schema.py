"""Schema models — one ``SchemaNode`` per field of the YAML schema.

Field types and how they are captured:

  Scalar (one prompt each):
    - text: free text, optional ``validate`` rule
    - integer: free text checked and converted to ``int``
    - boolean: yes/no
    - select: pick one from ``options`` or a ``source``
    - multi_select: pick any number from ``options`` or a ``source``

  Containers (never prompted themselves):
    - hash: a fixed group of ``children``
    - array: ``length`` repetitions of the ``children`` group

Expression slots (``skip_if``, ``transform``, ``validate``, ``length``)
hold sandboxed expression strings; see :mod:`prompter.expressions`.

The loader in :mod:`prompter.schema_loader` normalises raw YAML before it
reaches these models, so the models themselves stay strict.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

FieldType = Literal["text", "integer", "boolean", "select", "multi_select", "hash", "array"]
SourceKind = Literal["static", "directory", "dataset", "handler"]


class SourceSpec(BaseModel):
    """Where a select/multi_select field gets its options.

    - static: ``options`` embedded in the source itself
    - directory: regular files directly under ``path``
    - dataset: keys (mapping) or items (list) of the YAML/JSON file at ``path``
    - handler: the registered callable ``handler`` (optionally ``handler.method``)

    ``params`` carries every source key except the kind and the handler
    selector; handlers receive it as their ``config`` argument.
    """

    kind: SourceKind
    path: Optional[str] = None
    handler: Optional[str] = None
    method: Optional[str] = None
    options: Optional[List[Any]] = None
    params: Dict[str, Any] = Field(default_factory=dict)

    @property
    def handler_name(self) -> Optional[str]:
        """Registry key: ``handler`` or ``handler.method``."""
        if self.handler is None:
            return None
        if self.method:
            return f"{self.handler}.{self.method}"
        return self.handler


class SchemaNode(BaseModel):
    """A single field of the schema tree."""

    key: str
    type: FieldType = "text"
    prompt: Optional[str] = None
    default: Any = None
    options: Optional[List[Any]] = None
    help: Optional[str] = None
    required: bool = False
    source: Optional[SourceSpec] = None
    confirm: bool = False
    validate_rule: Optional[str] = None
    convert: Optional[Literal["int", "float"]] = None
    transform: Optional[str] = None
    skip_if: Optional[str] = None
    children: Dict[str, "SchemaNode"] = Field(default_factory=dict)
    length: Optional[Union[int, str]] = None

    @property
    def label(self) -> str:
        """Prompt text shown to the operator; falls back to the key."""
        return self.prompt or self.key

    @property
    def is_container(self) -> bool:
        return self.type in ("hash", "array")

    @property
    def is_choice(self) -> bool:
        return self.type in ("select", "multi_select")

    @property
    def static_length(self) -> Optional[int]:
        """The array length if it is a literal integer, else None (computed lazily)."""
        if isinstance(self.length, bool):
            return None
        if isinstance(self.length, int):
            return max(self.length, 0)
        return None


SchemaNode.model_rebuild()

# Top-level schema: field name → node, in document order.
Schema = Dict[str, SchemaNode]
