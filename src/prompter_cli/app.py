"""Console-script entry point: ``prompter``.

``main()`` builds the settings (environment, then command-line flags),
configures logging, registers handlers, runs the schema and prints the
answers.

Usage::

    prompter config/prompts/schema.yml -o config/generated.yml

    # Register extra option handlers from a module
    prompter schema.yml --handlers myapp.prompter_handlers

    # Array elements committed only once every repetition is answered
    prompter schema.yml --array-scope deferred

Exit codes:
    0  answers collected (complete, or partial after saving)
    1  run discarded or force-terminated
    2  usage or schema error
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from dataclasses import replace

from rich.console import Console
from rich.syntax import Syntax

from prompter.errors import SchemaError
from prompter.handlers import HandlerRegistry, default_registry, register_builtin_handlers
from prompter.interfaces import PromptSurface
from prompter.models.session import ArrayScope, RunState
from prompter.runner import run
from prompter.schema_loader import dumps_answers

from prompter_cli.config import PrompterSettings, load_settings
from prompter_cli.surface import RichPromptSurface

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prompter",
        description="Collect configuration values interactively from a YAML schema.",
    )
    parser.add_argument(
        "schema",
        nargs="?",
        help="Schema file to walk (default: $PROMPTER_SCHEMA_PATH)",
    )
    parser.add_argument(
        "-o", "--output",
        help="Write the answers to this YAML file (default: $PROMPTER_OUTPUT_PATH)",
    )
    parser.add_argument(
        "--handlers",
        action="append",
        default=[],
        metavar="MODULE",
        help="Import MODULE at startup to register option handlers (repeatable)",
    )
    parser.add_argument(
        "--array-scope",
        choices=[s.value for s in ArrayScope],
        help="How array elements are committed while being asked (default: live)",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (default: WARNING)",
    )
    return parser


def resolve_settings(args: argparse.Namespace, base: PrompterSettings) -> PrompterSettings:
    """Overlay command-line flags on environment settings."""
    overrides: dict = {}
    if args.schema:
        overrides["schema_path"] = args.schema
    if args.output:
        overrides["output_path"] = args.output
    if args.array_scope:
        overrides["array_scope"] = args.array_scope
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    if args.handlers:
        overrides["handler_modules"] = base.handler_modules + tuple(args.handlers)
    return replace(base, **overrides)


def load_handler_modules(modules: tuple[str, ...], registry: HandlerRegistry) -> None:
    """Import each module; call its ``register_handlers(registry)`` if present.

    Modules may instead register into ``default_registry`` at import time.

    Raises:
        ImportError: if a module cannot be imported.
    """
    for name in modules:
        module = importlib.import_module(name)
        hook = getattr(module, "register_handlers", None)
        if callable(hook):
            hook(registry)
        logger.info("Handlers loaded from %s", name)


def main(argv: list[str] | None = None, *, surface: PromptSurface | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = resolve_settings(args, load_settings())

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    console = Console()
    if settings.schema_path is None:
        console.print("[red]A schema path must be provided or configured[/red]")
        parser.print_usage(sys.stderr)
        return 2

    try:
        array_scope = ArrayScope(settings.array_scope)
    except ValueError:
        console.print(f"[red]Unknown array scope: {settings.array_scope}[/red]")
        return 2

    # --- Handlers ---
    registry = register_builtin_handlers(default_registry)
    try:
        load_handler_modules(settings.handler_modules, registry)
    except ImportError as exc:
        logger.error("Cannot load handler module: %s", exc)
        console.print(f"[red]Cannot load handler module: {exc}[/red]")
        return 2

    if surface is None:
        surface = RichPromptSurface(console)

    console.print(f"Starting Prompter for: {settings.schema_path}\n")
    console.print("Press Ctrl+C at any time to exit\n")

    try:
        result = run(
            settings.schema_path,
            settings.output_path,
            surface=surface,
            registry=registry,
            array_scope=array_scope,
        )
    except (FileNotFoundError, SchemaError) as exc:
        logger.error("Cannot load schema: %s", exc)
        console.print(f"[red]{exc}[/red]")
        return 2

    if result.state != RunState.DONE:
        console.print("\nExiting without saving.")
        return 1

    console.print("\n[bold]Final answers:[/bold]")
    console.print(Syntax(dumps_answers(result.answers), "yaml"))
    if result.diagnostics:
        console.print(f"[yellow]{len(result.diagnostics)} warning(s) during the run[/yellow]")
    if settings.output_path:
        console.print(f"\nConfiguration saved to {settings.output_path}")
    return 0


def cli() -> None:
    """Console-script entry point: ``prompter``."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
