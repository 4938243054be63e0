"""Built-in option handlers.

Installed into a registry by
:func:`prompter.handlers.register_builtin_handlers`.
"""

from prompter.processors.feature_flags import filter_by_release

__all__ = ["filter_by_release"]
