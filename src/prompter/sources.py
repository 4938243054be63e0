"""OptionSource — resolves the candidate list for select / multi_select fields.

Four source kinds, all read-only:

  - static:    the node's own ``options`` (or ``options`` inside the source)
  - directory: names of regular files directly under ``path`` (sorted)
  - dataset:   a YAML/JSON file; a mapping yields its top-level keys, a
               list yields its items
  - handler:   a registered callable, invoked as ``handler(answers, config)``

Any failure (unreadable path, malformed dataset, unknown handler, handler
exception, non-list return) resolves to ``[]`` and is reported as a
SourceError / HandlerError diagnostic.  Nothing here aborts a run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from prompter.answers import AnswerStore
from prompter.diagnostics import Diagnostics
from prompter.errors import DiagnosticKind, HandlerError, SourceError
from prompter.handlers import HandlerRegistry, default_registry
from prompter.models.schema import SchemaNode, SourceSpec
from prompter.schema_loader import read_document

logger = logging.getLogger(__name__)


class OptionSource:
    """Resolves option lists for choice fields.

    Args:
        registry: handler registry used for ``handler`` sources
        diagnostics: collector for reported failures
    """

    def __init__(
        self,
        registry: HandlerRegistry | None = None,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        self._registry = registry if registry is not None else default_registry
        self._diagnostics = diagnostics if diagnostics is not None else Diagnostics()

    def resolve(
        self,
        node: SchemaNode,
        store: AnswerStore,
        path: Sequence[str | int] = (),
    ) -> list:
        """Return the options for ``node``; static options win over a source."""
        if node.options is not None:
            return list(node.options)
        if node.source is None:
            return []

        spec = node.source
        try:
            if spec.kind == "static":
                return list(spec.options or [])
            if spec.kind == "directory":
                return self._from_directory(spec)
            if spec.kind == "dataset":
                return self._from_dataset(spec)
            if spec.kind == "handler":
                return self._from_handler(spec, store)
        except SourceError as exc:
            self._diagnostics.report(DiagnosticKind.SOURCE, path, str(exc))
            return []
        except HandlerError as exc:
            self._diagnostics.report(DiagnosticKind.HANDLER, path, str(exc))
            return []

        self._diagnostics.report(DiagnosticKind.SOURCE, path, f"unknown source kind {spec.kind!r}")
        return []

    # ------------------------------------------------------------------
    # Kind-specific resolvers
    # ------------------------------------------------------------------

    def _from_directory(self, spec: SourceSpec) -> list[str]:
        """Non-recursive listing of regular files (subdirectories excluded)."""
        if not spec.path:
            raise SourceError("directory source has no path")
        base = Path(spec.path)
        try:
            return sorted(entry.name for entry in base.iterdir() if entry.is_file())
        except OSError as exc:
            raise SourceError(f"cannot list {base}: {exc}") from exc

    def _from_dataset(self, spec: SourceSpec) -> list:
        """Top-level keys of a mapping, or the items of a list."""
        if not spec.path:
            raise SourceError("dataset source has no path")
        try:
            data = read_document(spec.path)
        except (OSError, yaml.YAMLError) as exc:
            raise SourceError(f"cannot load dataset {spec.path}: {exc}") from exc

        if isinstance(data, Mapping):
            return list(data.keys())
        if isinstance(data, list):
            return list(data)
        raise SourceError(
            f"dataset {spec.path} must be a mapping or a list, got {type(data).__name__}"
        )

    def _from_handler(self, spec: SourceSpec, store: AnswerStore) -> list[str]:
        """Dispatch to a registered handler with a copy of the answers."""
        name = spec.handler_name
        if not name:
            raise HandlerError("handler source has no handler name")

        handler = self._registry.get(name)
        if handler is None:
            raise HandlerError(
                f"handler {name!r} is not registered (known: {', '.join(self._registry.names()) or 'none'})"
            )

        config = dict(spec.params)
        try:
            result = handler(store.snapshot(), config)
        except TypeError as exc:
            raise HandlerError(f"handler {name!r} has the wrong signature or failed: {exc}") from exc
        except Exception as exc:
            logger.debug("Handler %s raised", name, exc_info=True)
            raise HandlerError(f"handler {name!r} failed: {type(exc).__name__}: {exc}") from exc

        if result is None:
            return []
        if not isinstance(result, (list, tuple)):
            raise HandlerError(
                f"handler {name!r} must return a list, got {type(result).__name__}"
            )
        return [str(item) for item in result]
