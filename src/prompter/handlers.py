"""Handler registry — named callables that compute option lists at run time.

A handler is any callable ``(answers, config) -> list[str]``:

  - ``answers``: a deep copy of the answers collected so far
  - ``config``: the source's parameters minus its kind and selector keys

Handlers are registered by name at startup, either directly or with the
decorator form::

    registry = HandlerRegistry()

    @registry.register("feature_flags.filter_by_release")
    def filter_by_release(answers, config):
        ...

A schema refers to a handler through its source::

    feature_flags:
      type: multi_select
      source:
        type: handler
        handler: feature_flags
        method: filter_by_release
        data_file: features.yml

Lookups return ``None`` for unknown names; the option source decides how
to report that.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[Mapping[str, Any], Mapping[str, Any]], list]


class HandlerRegistry:
    """Maps handler names to callables."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, fn: Optional[Handler] = None):
        """Register ``fn`` under ``name``; usable as a decorator when ``fn`` is omitted.

        Re-registering a name replaces the previous handler.
        """
        if not name:
            raise ValueError("Handler name must be a non-empty string")

        def _register(handler: Handler) -> Handler:
            if not callable(handler):
                raise TypeError(f"Handler {name!r} is not callable")
            if name in self._handlers:
                logger.info("Replacing handler %r", name)
            self._handlers[name] = handler
            return handler

        if fn is None:
            return _register
        return _register(fn)

    def unregister(self, name: str) -> None:
        self._handlers.pop(name, None)

    def get(self, name: str) -> Optional[Handler]:
        """Return the handler for ``name``, or None if it is not registered."""
        return self._handlers.get(name)

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._handlers)


# Process-wide registry, populated at startup (see register_builtin_handlers
# and the ``--handlers`` CLI option).
default_registry = HandlerRegistry()


def register_builtin_handlers(registry: HandlerRegistry) -> HandlerRegistry:
    """Install the handlers that ship with prompter into ``registry``."""
    from prompter.processors.feature_flags import filter_by_release

    registry.register("feature_flags.filter_by_release", filter_by_release)
    return registry
