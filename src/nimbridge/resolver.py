"""Model name resolution for nimbridge."""

from typing import Mapping

LARGE_MODEL = "meta/llama-3.1-405b-instruct"
MEDIUM_MODEL = "meta/llama-3.1-70b-instruct"
SMALL_MODEL = "meta/llama-3.1-8b-instruct"

MODEL_ALIASES = {
    # GPT models
    "gpt-3.5-turbo": SMALL_MODEL,
    "gpt-4": MEDIUM_MODEL,
    "gpt-4-turbo": LARGE_MODEL,
    "gpt-4o": "deepseek-ai/deepseek-v3.1",
    # Claude models
    "claude-3-opus": LARGE_MODEL,
    "claude-3-sonnet": MEDIUM_MODEL,
    "claude-3-haiku": SMALL_MODEL,
    # Gemini models
    "gemini-pro": MEDIUM_MODEL,
    # Native backend models
    SMALL_MODEL: SMALL_MODEL,
    MEDIUM_MODEL: MEDIUM_MODEL,
    LARGE_MODEL: LARGE_MODEL,
    "deepseek-ai/deepseek-v3.1": "deepseek-ai/deepseek-v3.1",
    "qwen/qwen3-coder-480b-a35b-instruct": "qwen/qwen3-coder-480b-a35b-instruct",
    "nvidia/llama-3.1-nemotron-ultra-253b-v1": "nvidia/llama-3.1-nemotron-ultra-253b-v1",
}

# Evaluated top to bottom, first match wins.
TIER_HEURISTICS = (
    (("opus", "405b", "gpt-4o", "ultra"), LARGE_MODEL),
    (("sonnet", "gpt-4", "70b", "gemini"), MEDIUM_MODEL),
)


def resolve_model(requested_model: str, aliases: Mapping[str, str] = MODEL_ALIASES) -> str:
    """
    Map a caller-facing model name onto a backend model identifier.

    Args:
        requested_model: The model name sent by the caller
        aliases: Alias table to consult before falling back to heuristics

    Returns:
        An exact alias match, the name unchanged when it already looks like a
        namespaced backend model, or a size tier picked from the name.
    """
    if requested_model in aliases:
        return aliases[requested_model]

    if "/" in requested_model:
        return requested_model

    model_lower = requested_model.lower()
    for patterns, backend_model in TIER_HEURISTICS:
        if any(pattern in model_lower for pattern in patterns):
            return backend_model

    return SMALL_MODEL
