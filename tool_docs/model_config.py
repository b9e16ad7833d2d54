"""
Model configuration and output-cap resolution.

Litellm's registry is the fallback source of model limits; it is wrong for
some hosted deployments (Azure deployments reuse model names with
different caps), so known models are pinned in an override table.
Each generation task also has its own cap: example prompts are a short
JSON object, an improved tool page is a full document.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ModelConfig:
    """Constraints for a specific LLM model."""

    context_window: int        # max input tokens the model accepts
    max_output_tokens: int     # actual provider limit for completions

    def __str__(self) -> str:
        return f"ctx={self.context_window:,} out={self.max_output_tokens:,}"


# ──────────────────────────────────────────────────────────────────────
# Override table. Keys are the model identifier WITHOUT the provider
# prefix (e.g., "gpt-4o" not "azure/gpt-4o").
# ──────────────────────────────────────────────────────────────────────

MODEL_OVERRIDES: dict[str, ModelConfig] = {
    "gpt-4o": ModelConfig(context_window=128_000, max_output_tokens=16_384),
    "gpt-4o-mini": ModelConfig(context_window=128_000, max_output_tokens=16_384),
    "gpt-4.1": ModelConfig(context_window=1_047_576, max_output_tokens=32_768),
    "gpt-4.1-mini": ModelConfig(context_window=1_047_576, max_output_tokens=32_768),
    # Common local model for offline runs
    "qwen3-coder:30b": ModelConfig(context_window=32_768, max_output_tokens=8_192),
}

# Per-task ceilings, applied on top of the model limit
TASK_OUTPUT_CAPS: dict[str, int] = {
    "examples": 1_024,
    "improve": 8_192,
    "family-metadata": 2_048,
    "family-h2": 100,
    "family-related": 2_048,
}

_DEFAULT_CONFIG = ModelConfig(context_window=32_768, max_output_tokens=4_096)


def _strip_provider_prefix(model: str) -> str:
    """'azure/gpt-4o' → 'gpt-4o', 'ollama/qwen3-coder:30b' → 'qwen3-coder:30b'."""
    PROVIDER_PREFIXES = ("azure/", "openai/", "openrouter/", "ollama/", "litellm_proxy/")
    for prefix in PROVIDER_PREFIXES:
        if model.startswith(prefix):
            return model[len(prefix):]
    return model


def resolve_model_config(model: str) -> ModelConfig:
    """Resolve the actual constraints for a model.

    Resolution order:
    1. Override table (exact match after stripping provider prefix)
    2. Litellm's model registry
    3. Conservative defaults
    """
    bare = _strip_provider_prefix(model)

    if bare in MODEL_OVERRIDES:
        return MODEL_OVERRIDES[bare]

    try:
        import litellm
        info = litellm.get_model_info(model)
        if info:
            ctx = info.get("max_input_tokens") or info.get("max_tokens") or _DEFAULT_CONFIG.context_window
            out = info.get("max_output_tokens") or _DEFAULT_CONFIG.max_output_tokens
            if out > ctx:
                out = min(out, ctx // 2)
            return ModelConfig(context_window=ctx, max_output_tokens=out)
    except Exception:
        # Unknown to litellm (raises for unmapped models)
        pass

    return _DEFAULT_CONFIG


def output_cap(model: str, task: str) -> int:
    """Max output tokens for one generation task on one model."""
    limit = resolve_model_config(model).max_output_tokens
    return min(limit, TASK_OUTPUT_CAPS.get(task, limit))
