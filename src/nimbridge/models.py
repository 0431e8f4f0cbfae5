"""Data models and schemas for nimbridge."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """Chat message model. Unknown fields are kept and forwarded as-is."""

    model_config = ConfigDict(extra="allow")

    role: str
    content: Optional[Union[str, List[Any]]] = None


class ChatCompletionRequest(BaseModel):
    """Request model for chat completions."""

    model_config = ConfigDict(extra="ignore")

    model: str = Field(min_length=1)
    messages: List[Message] = Field(min_length=1)
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    stream: Optional[bool] = False
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None


class Usage(BaseModel):
    model_config = ConfigDict(extra="allow")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ResponseMessage(BaseModel):
    role: str = "assistant"
    content: str = ""
    tool_calls: Optional[List[Dict[str, Any]]] = None


class Choice(BaseModel):
    """Choice model for non-streaming chat completions."""

    index: int = 0
    message: ResponseMessage
    finish_reason: str = "stop"


class ChatCompletionResponse(BaseModel):
    """Response model for chat completions."""

    id: str
    object: str = "chat.completion"
    created: int
    model: str
    choices: List[Choice]
    usage: Usage = Field(default_factory=Usage)


class ModelCard(BaseModel):
    id: str
    object: str = "model"
    created: int
    owned_by: str = "nvidia-nim-proxy"


class ModelList(BaseModel):
    object: str = "list"
    data: List[ModelCard]
