"""Translation of caller requests into backend request bodies."""

from typing import Any, Dict

from .config import ProxySettings
from .models import ChatCompletionRequest
from .resolver import resolve_model

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048

# Forwarded only when the caller sent them, so backend defaults apply otherwise.
OPTIONAL_SAMPLING_FIELDS = ("top_p", "frequency_penalty", "presence_penalty")


def build_backend_request(request: ChatCompletionRequest, settings: ProxySettings) -> Dict[str, Any]:
    """
    Build the backend request body for a validated chat request.

    Args:
        request: The caller's chat completion request
        settings: Process-wide settings (alias table and thinking mode)

    Returns:
        A JSON-serialisable dictionary ready to post to the backend
    """
    body: Dict[str, Any] = {
        "model": resolve_model(request.model, settings.model_aliases),
        "messages": [
            message.model_dump(exclude_unset=True) for message in request.messages
        ],
        "temperature": (
            request.temperature
            if request.temperature is not None
            else DEFAULT_TEMPERATURE
        ),
        "max_tokens": (
            request.max_tokens
            if request.max_tokens is not None
            else DEFAULT_MAX_TOKENS
        ),
        "stream": bool(request.stream),
    }

    for field in OPTIONAL_SAMPLING_FIELDS:
        if field in request.model_fields_set:
            body[field] = getattr(request, field)

    if settings.thinking_mode:
        body["extra_body"] = {"chat_template_kwargs": {"thinking": True}}

    return body
