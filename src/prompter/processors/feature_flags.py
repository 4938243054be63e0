"""Feature-flag handler — offers the flags introduced up to a chosen release.

The data file groups flags by the release that introduced them::

    feature_flags:
      releases:
        3.1.5.0: [f1, f2]
        3.1.5.1: [f3, f4]
        3.1.5.2: [f5, f6]
        3.1.5.3: [f7, f8]

With ``release_version: 3.1.5.3`` in the answers, the handler returns
``[f1, f2, f3, f4, f5, f6, f7, f8]``: every flag from every release up to
and including the selected one, deduplicated in first-seen order.

Config keys (from the schema source):
    data_file      path to the YAML/JSON data file (default ``features.yml``)
    answer_key     dotted answer path holding the version (default ``release_version``)
    releases_key   dotted path to the release map in the file
                   (default ``feature_flags.releases``)
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from prompter.answers import ABSENT, dig
from prompter.schema_loader import read_document

logger = logging.getLogger(__name__)


def _version_key(version: str) -> tuple:
    """Sort key for dotted versions; numeric parts compare as numbers."""
    parts = []
    for part in str(version).split("."):
        parts.append((0, int(part), "") if part.isdigit() else (1, 0, part))
    return tuple(parts)


def filter_by_release(answers: Mapping[str, Any], config: Mapping[str, Any]) -> list[str]:
    """Return the flags of every release up to ``answers[answer_key]``."""
    data_file = config.get("data_file", "features.yml")
    answer_key = str(config.get("answer_key", "release_version"))
    releases_key = str(config.get("releases_key", "feature_flags.releases"))

    selected = dig(answers, *answer_key.split("."))
    if selected is ABSENT or selected is None:
        logger.info("No %s answered yet; no feature flags offered", answer_key)
        return []

    data = read_document(data_file)
    releases = dig(data, *releases_key.split("."))
    if not isinstance(releases, Mapping):
        raise ValueError(f"{data_file}: {releases_key} is not a mapping of releases")

    target = _version_key(str(selected))
    flags: list[str] = []
    seen: set[str] = set()
    for version in sorted(releases, key=lambda v: _version_key(str(v))):
        if _version_key(str(version)) > target:
            break
        for flag in releases[version] or []:
            flag = str(flag)
            if flag not in seen:
                seen.add(flag)
                flags.append(flag)
    return flags
