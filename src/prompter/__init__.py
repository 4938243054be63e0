"""prompter — collect configuration through a terminal dialogue.

Walks a declarative YAML schema, asks for each field in declaration order,
and produces a nested answers document shaped like the schema.

Public API:
    run               — load a schema, run the engine, write the artifact
    TraversalEngine   — skeleton + acquisition passes, cancellation states
    CancellationToken — request an interrupt from outside the engine
    AnswerStore       — nested answers with dig-style lookup
    ConditionEvaluator — skip_if / length / transform / validate slots
    OptionSource      — option lists from static/directory/dataset/handler
    PostProcessor     — transform → convert → confirm pipeline
    HandlerRegistry   — named option handlers (``default_registry``)
    PromptSurface     — ABC for the terminal layer

Models:
    SchemaNode, SourceSpec, RunState, RunResult, ArrayScope, Diagnostic
"""

from prompter.answers import ABSENT, AnswerStore
from prompter.engine import CancellationToken, TraversalEngine
from prompter.evaluator import ConditionEvaluator
from prompter.handlers import HandlerRegistry, default_registry, register_builtin_handlers
from prompter.interfaces import PromptSurface
from prompter.models import (
    ArrayScope,
    Diagnostic,
    RunResult,
    RunState,
    SchemaNode,
    SourceSpec,
)
from prompter.postprocess import PostProcessor
from prompter.runner import run
from prompter.schema_loader import dump_answers, load_schema
from prompter.sources import OptionSource

__all__ = [
    # Entry point & engine
    "run",
    "TraversalEngine",
    "CancellationToken",
    # Components
    "ABSENT",
    "AnswerStore",
    "ConditionEvaluator",
    "OptionSource",
    "PostProcessor",
    "HandlerRegistry",
    "default_registry",
    "register_builtin_handlers",
    "PromptSurface",
    # Schema I/O
    "load_schema",
    "dump_answers",
    # Models
    "ArrayScope",
    "Diagnostic",
    "RunResult",
    "RunState",
    "SchemaNode",
    "SourceSpec",
]
