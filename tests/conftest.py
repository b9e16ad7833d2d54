"""Shared fixtures for the tool-docs test suite.

All tests run with zero API calls, zero network access, zero LLM credits.
The OpenHands LLM is mocked wherever a text generator is needed.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

# Ensure the repo root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from tests.fixtures import (  # noqa: E402
    SAMPLE_BRAND_ROWS,
    SAMPLE_BRANDS,
    SAMPLE_CLI_OUTPUT,
    SAMPLE_COMPOUND_WORDS,
    SAMPLE_STOP_WORDS,
    write_json,
)
from tool_docs.naming import NamingTables  # noqa: E402


@pytest.fixture
def tables():
    """Small in-memory lookup tables (aks/acr/appservice brands)."""
    return NamingTables.build(
        brands=SAMPLE_BRANDS,
        compound_words=SAMPLE_COMPOUND_WORDS,
        stop_words=SAMPLE_STOP_WORDS,
    )


@pytest.fixture
def data_dir(tmp_path):
    """Temp lookup-table directory with the three required tables."""
    data = tmp_path / "data"
    write_json(data / "brand-to-server-mapping.json", SAMPLE_BRAND_ROWS)
    write_json(data / "compound-words.json", {"nodepool": "node-pool"})
    write_json(data / "stop-words.json", ["the"])
    write_json(data / "common-parameters.json", [{"name": "--subscription"}])
    return data


@pytest.fixture
def cli_output(tmp_path):
    """Temp CLI JSON dump with three tools."""
    return write_json(tmp_path / "input" / "cli-output.json", SAMPLE_CLI_OUTPUT)


@pytest.fixture
def text_generator():
    """Stand-in for TextGenerator; configure .complete per test."""
    generator = MagicMock()
    generator.complete.return_value = ""
    return generator


@pytest.fixture
def mock_llm(monkeypatch):
    """Patch the OpenHands LLM class used by the text generator.

    Yields the mocked class; ``MockLLM.return_value.completion`` is the call.
    """
    monkeypatch.setenv("LLM_MODEL", "azure/gpt-4o")
    monkeypatch.setenv("LLM_BASE_URL", "http://fake:9999")
    monkeypatch.setenv("LLM_API_KEY", "test-key-fake")
    with patch("tool_docs.llm_client.LLM") as MockLLM:
        yield MockLLM
