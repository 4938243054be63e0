"""Prompter constants shared across the package.

Several limits can be overridden via environment variables so that
deployments can tune them without code changes.
"""

import os

# Field types accepted in a schema, and the aliases the loader maps onto them.
FIELD_TYPES: set[str] = {"text", "integer", "boolean", "select", "multi_select", "hash", "array"}
TYPE_ALIASES: dict[str, str] = {
    "string": "text",
    "str": "text",
    "int": "integer",
    "bool": "boolean",
    "choice": "select",
    "multiselect": "multi_select",
    "map": "hash",
    "object": "hash",
    "list": "array",
}

# Option source kinds and the aliases used by older schemas.
SOURCE_KINDS: set[str] = {"static", "directory", "dataset", "handler"}
SOURCE_ALIASES: dict[str, str] = {
    "files": "directory",
    "dir": "directory",
    "yaml": "dataset",
    "json": "dataset",
    "processor": "handler",
}

# Source keys that select *what* to call; everything else is handler config.
SOURCE_SELECTOR_KEYS: set[str] = {"type", "kind", "handler", "class", "method"}

# Numeric conversions offered by the ``convert`` attribute.
CONVERTERS: set[str] = {"int", "float"}

# Sandbox limits for schema expressions.
# Overridable via PROMPTER_MAX_EXPRESSION_LENGTH / PROMPTER_MAX_SEQUENCE_REPEAT.
MAX_EXPRESSION_LENGTH = int(os.getenv("PROMPTER_MAX_EXPRESSION_LENGTH", "2000"))
MAX_SEQUENCE_REPEAT = int(os.getenv("PROMPTER_MAX_SEQUENCE_REPEAT", "100000"))

# Upper bound on a computed array length, so a runaway expression cannot
# trap the operator in an endless loop of repetitions.
# Overridable via PROMPTER_MAX_ARRAY_LENGTH.
MAX_ARRAY_LENGTH = int(os.getenv("PROMPTER_MAX_ARRAY_LENGTH", "1000"))

# Choices offered when a run is interrupted.
SAVE_CHOICE = "Save partial results and exit"
DISCARD_CHOICE = "Exit without saving"
