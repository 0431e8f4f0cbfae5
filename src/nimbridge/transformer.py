"""Translation of non-streaming backend responses."""

import time
from typing import Any, Dict, Optional

from .models import ChatCompletionResponse, Choice, ResponseMessage, Usage
from .reasoning import merge_reasoning

USAGE_COUNTS = ("prompt_tokens", "completion_tokens", "total_tokens")


def _as_int(value: Any, default: int) -> int:
    # Backends sometimes send null or float numbers
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)


def _transform_usage(usage: Any) -> Usage:
    if not isinstance(usage, dict):
        return Usage()
    fields = {key: value for key, value in usage.items() if value is not None}
    for key in USAGE_COUNTS:
        fields[key] = _as_int(fields.get(key), 0)
    return Usage.model_validate(fields)


def _transform_choice(position: int, choice: Dict[str, Any], show_reasoning: bool) -> Choice:
    message = choice.get("message") or {}
    return Choice(
        index=_as_int(choice.get("index"), position),
        message=ResponseMessage(
            role=message.get("role") or "assistant",
            content=merge_reasoning(
                message.get("reasoning_content"),
                message.get("content"),
                show_reasoning,
            ),
            tool_calls=message.get("tool_calls") or None,
        ),
        finish_reason=choice.get("finish_reason") or "stop",
    )


def transform_response(
    backend_response: Dict[str, Any],
    requested_model: str,
    show_reasoning: bool,
    now: Optional[int] = None,
) -> ChatCompletionResponse:
    """
    Convert a backend chat completion into the caller-facing shape.

    The input is not modified. ``reasoning_content`` never appears in the
    result; it is folded into ``content`` only when ``show_reasoning`` is on.
    Null or missing counts, indexes and timestamps fall back to defaults.

    Args:
        backend_response: Decoded JSON body returned by the backend
        requested_model: Model name the caller asked for, echoed back
        show_reasoning: Whether reasoning text is merged into content
        now: Timestamp used when the backend omitted ``id`` or ``created``

    Returns:
        The chat completion response model
    """
    if now is None:
        now = int(time.time())

    return ChatCompletionResponse(
        id=str(backend_response.get("id") or f"chatcmpl-{now}"),
        created=_as_int(backend_response.get("created"), now) or now,
        model=requested_model,
        choices=[
            _transform_choice(position, choice, show_reasoning)
            for position, choice in enumerate(backend_response.get("choices") or [])
            if isinstance(choice, dict)
        ],
        usage=_transform_usage(backend_response.get("usage")),
    )
