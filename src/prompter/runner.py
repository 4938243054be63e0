"""Programmatic entry point: load a schema, run the engine, write the artifact.

Usage::

    from prompter import run

    result = run("config/prompts/schema.yml", "config/generated.yml",
                 surface=RichPromptSurface())
"""

from __future__ import annotations

import logging
from pathlib import Path

from prompter.diagnostics import Diagnostics
from prompter.engine import CancellationToken, TraversalEngine
from prompter.handlers import HandlerRegistry
from prompter.interfaces import PromptSurface
from prompter.models.session import ArrayScope, RunResult
from prompter.schema_loader import dump_answers, load_schema

logger = logging.getLogger(__name__)


def run(
    schema_path: Path | str,
    output_path: Path | str | None = None,
    *,
    surface: PromptSurface,
    registry: HandlerRegistry | None = None,
    array_scope: ArrayScope | str = ArrayScope.LIVE,
    token: CancellationToken | None = None,
) -> RunResult:
    """Collect answers for the schema at ``schema_path``.

    The artifact is written to ``output_path`` only when the run ends in
    ``done`` (complete, or partial after an interrupt with save).  Schema
    diagnostics are included in the returned result.

    Raises:
        FileNotFoundError: if the schema file does not exist.
        SchemaError: if the schema document is not a mapping.
    """
    diagnostics = Diagnostics()
    schema = load_schema(schema_path, diagnostics)

    engine = TraversalEngine(
        schema,
        surface,
        registry=registry,
        array_scope=array_scope,
        token=token,
        diagnostics=diagnostics,
    )
    result = engine.run()

    if output_path is not None and result.saved:
        dump_answers(result.answers, output_path)
    elif output_path is not None:
        logger.info("Run %s; nothing written to %s", result.state.value, output_path)
    return result
