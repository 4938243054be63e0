"""CLI configuration — reads settings from environment variables.

All settings have defaults suitable for interactive use.  Command-line
flags override the environment; the resulting value is passed explicitly
into the entry point, there is no global configuration object.

Environment variables:
    PROMPTER_SCHEMA_PATH      default schema file
    PROMPTER_OUTPUT_PATH      default output file (unset → don't write)
    PROMPTER_LOG_LEVEL        logging level (default WARNING)
    PROMPTER_ARRAY_SCOPE      live | deferred (default live)
    PROMPTER_HANDLER_MODULES  comma-separated modules that register handlers
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PrompterSettings:
    """Immutable CLI configuration."""

    # Schema to walk (None → must be given on the command line)
    schema_path: str | None = None

    # Where to write the answers (None → print only)
    output_path: str | None = None

    # Logging
    log_level: str = "WARNING"

    # How array elements are committed while they are acquired
    array_scope: str = "live"

    # Modules imported at startup so their handlers are registered
    handler_modules: tuple[str, ...] = field(default_factory=tuple)


def load_settings() -> PrompterSettings:
    """Build settings from ``PROMPTER_*`` environment variables."""
    raw_modules = os.getenv("PROMPTER_HANDLER_MODULES", "")
    modules = tuple(m.strip() for m in raw_modules.split(",") if m.strip())

    return PrompterSettings(
        schema_path=os.getenv("PROMPTER_SCHEMA_PATH") or None,
        output_path=os.getenv("PROMPTER_OUTPUT_PATH") or None,
        log_level=os.getenv("PROMPTER_LOG_LEVEL", "WARNING").upper(),
        array_scope=os.getenv("PROMPTER_ARRAY_SCOPE", "live").lower(),
        handler_modules=modules,
    )
