"""prompter_cli — terminal front end for the prompter engine.

Provides the ``prompter`` console script, the rich-based
``RichPromptSurface`` and environment-driven ``PrompterSettings``.
"""

from prompter_cli.config import PrompterSettings, load_settings
from prompter_cli.surface import RichPromptSurface

__all__ = ["PrompterSettings", "RichPromptSurface", "load_settings"]
