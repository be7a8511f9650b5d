"""Shared fixtures: mock external tools written as small Python scripts."""

import sys
import textwrap

import pytest

# Picks its behaviour from the credential and the model on its command line.
ROUTING_TOOL = """
import os, sys
key = os.environ.get("API_KEY", "")
model = sys.argv[-1]
if key.startswith("bad"):
    sys.stderr.write("Error: 401 unauthorized\\n")
    sys.exit(1)
if key.startswith("half") and model.startswith("secondary"):
    sys.stderr.write("403 permission denied for this model\\n")
    sys.exit(1)
print("I am " + model + ", fast and accurate")
"""


@pytest.fixture()
def make_tool(tmp_path):
    """Write a mock tool script; return the command tuple that runs it."""
    counter = {"n": 0}

    def _make(source: str) -> tuple[str, ...]:
        counter["n"] += 1
        script = tmp_path / f"mock_tool_{counter['n']}.py"
        script.write_text(textwrap.dedent(source))
        return (sys.executable, str(script))

    return _make


@pytest.fixture()
def routing_tool(make_tool):
    return make_tool(ROUTING_TOOL)
