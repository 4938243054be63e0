import textwrap

import pytest
import yaml

from prompter.diagnostics import Diagnostics
from prompter.handlers import HandlerRegistry
from prompter.schema_loader import parse_schema


def parse_yaml_schema(text, diagnostics=None):
    """Parse an inline YAML schema (dedented) into ``{key: SchemaNode}``."""
    return parse_schema(yaml.safe_load(textwrap.dedent(text)), diagnostics)


@pytest.fixture
def schema_from():
    return parse_yaml_schema


@pytest.fixture
def diagnostics():
    return Diagnostics()


@pytest.fixture
def registry():
    """Empty handler registry, isolated from the process-wide one."""
    return HandlerRegistry()
