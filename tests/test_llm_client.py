"""
Tests for the text-generation client and model configuration.

The OpenHands LLM class is patched; no network calls are made.
"""

import pytest

from tests.fixtures import make_llm_response
from tool_docs.llm_client import (
    GenerationError,
    LLMSettings,
    TextGenerator,
    create_text_generator,
)
from tool_docs.model_config import (
    MODEL_OVERRIDES,
    TASK_OUTPUT_CAPS,
    _strip_provider_prefix,
    output_cap,
    resolve_model_config,
)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class TestSettings:

    def test_from_env(self, mock_llm):
        settings = LLMSettings.from_env()
        assert settings.model == "azure/gpt-4o"
        assert settings.base_url == "http://fake:9999"
        assert settings.api_key == "test-key-fake"
        assert settings.configured

    def test_api_key_from_file(self, monkeypatch, tmp_path):
        key_file = tmp_path / "key"
        key_file.write_text("file-key\n")
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        monkeypatch.setenv("LLM_API_KEY_FILE", str(key_file))

        assert LLMSettings.from_env().api_key == "file-key"

    def test_no_model_means_fallback_mode(self, monkeypatch):
        monkeypatch.delenv("LLM_MODEL", raising=False)
        settings = LLMSettings.from_env()

        assert not settings.configured
        assert create_text_generator(settings) is None
        with pytest.raises(ValueError):
            TextGenerator(settings)


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

class TestTextGenerator:

    def test_returns_response_text(self, mock_llm):
        mock_llm.return_value.completion.return_value = make_llm_response("hello")
        generator = TextGenerator(LLMSettings.from_env(), retry_delay=0)

        assert generator.complete("system", "user", task="examples") == "hello"

        messages = mock_llm.return_value.completion.call_args.kwargs["messages"]
        assert [m.role for m in messages] == ["system", "user"]

    def test_client_configured_per_task(self, mock_llm):
        mock_llm.return_value.completion.return_value = make_llm_response("ok")
        generator = TextGenerator(LLMSettings.from_env(), retry_delay=0)

        generator.complete("s", "u", task="examples")
        generator.complete("s", "u", task="examples")
        generator.complete("s", "u", task="improve")

        assert mock_llm.call_count == 2
        caps = [c.kwargs["max_output_tokens"] for c in mock_llm.call_args_list]
        assert caps == [TASK_OUTPUT_CAPS["examples"], TASK_OUTPUT_CAPS["improve"]]
        assert mock_llm.call_args.kwargs["base_url"] == "http://fake:9999"
        assert mock_llm.call_args.kwargs["api_key"] == "test-key-fake"

    def test_retries_then_succeeds(self, mock_llm):
        mock_llm.return_value.completion.side_effect = [
            RuntimeError("503"),
            make_llm_response("recovered"),
        ]
        generator = TextGenerator(LLMSettings.from_env(), retry_delay=0)

        assert generator.complete("s", "u") == "recovered"
        assert mock_llm.return_value.completion.call_count == 2

    def test_raises_after_max_retries(self, mock_llm):
        mock_llm.return_value.completion.side_effect = RuntimeError("503")
        generator = TextGenerator(LLMSettings.from_env(), retry_delay=0)

        with pytest.raises(GenerationError, match="after 3 attempts"):
            generator.complete("s", "u")
        assert mock_llm.return_value.completion.call_count == 3

    def test_empty_response_is_failure(self, mock_llm):
        mock_llm.return_value.completion.return_value = make_llm_response("   ")
        generator = TextGenerator(LLMSettings.from_env(), retry_delay=0)

        with pytest.raises(GenerationError, match="empty response"):
            generator.complete("s", "u")


# ---------------------------------------------------------------------------
# Model configuration
# ---------------------------------------------------------------------------

class TestModelConfig:

    def test_strip_provider_prefix(self):
        assert _strip_provider_prefix("azure/gpt-4o") == "gpt-4o"
        assert _strip_provider_prefix("ollama/qwen3-coder:30b") == "qwen3-coder:30b"
        assert _strip_provider_prefix("gpt-4o") == "gpt-4o"

    def test_override_table_wins(self):
        assert resolve_model_config("azure/gpt-4.1") == MODEL_OVERRIDES["gpt-4.1"]

    def test_task_cap_applied(self):
        assert output_cap("azure/gpt-4o", "examples") == 1_024
        assert output_cap("azure/gpt-4o", "improve") == 8_192
        assert output_cap("azure/gpt-4o", "family-h2") == 100

    def test_model_limit_caps_task(self):
        # No cap for the default task, so the model limit applies
        assert output_cap("ollama/qwen3-coder:30b", "default") == 8_192

    def test_unknown_model_uses_defaults(self):
        config = resolve_model_config("no-such-provider/made-up-model-xyz")
        assert config.max_output_tokens > 0
        assert str(config).startswith("ctx=")
