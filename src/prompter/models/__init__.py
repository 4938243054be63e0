"""Public model re-exports for prompter.

Consumers should import from ``prompter.models`` rather than reaching into
sub-modules directly.
"""

# --- Schema ---
from prompter.models.schema import (
    FieldType,
    Schema,
    SchemaNode,
    SourceKind,
    SourceSpec,
)

# --- Session / run ---
from prompter.models.session import (
    ArrayScope,
    Diagnostic,
    RunResult,
    RunState,
)

__all__ = [
    # Schema
    "FieldType",
    "Schema",
    "SchemaNode",
    "SourceKind",
    "SourceSpec",
    # Session
    "ArrayScope",
    "Diagnostic",
    "RunResult",
    "RunState",
]
