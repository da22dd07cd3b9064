"""
Chat completion request and response models.

Messages and content parts are tagged unions: the ``role`` field selects the
message variant and the ``type`` field selects the content part variant.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ChatRole(str, Enum):
    """Chat message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    FUNCTION = "function"


class ChatFinishReason(str, Enum):
    """Reasons the service gives for ending a choice."""
    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"
    FUNCTION_CALL = "function_call"


class ImageDetail(str, Enum):
    """Detail level requested for an image content part."""
    AUTO = "auto"
    LOW = "low"
    HIGH = "high"


class TextContentPart(BaseModel):
    """Text content part."""
    type: Literal["text"] = "text"
    text: str = ""


class ImageUrl(BaseModel):
    url: str
    detail: Optional[ImageDetail] = None


class ImageContentPart(BaseModel):
    """Image reference content part."""
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = Annotated[
    Union[TextContentPart, ImageContentPart],
    Field(discriminator="type"),
]

MessageContent = Union[str, List[ContentPart]]


class FunctionCall(BaseModel):
    name: str = ""
    arguments: str = ""


class ToolCall(BaseModel):
    """A function tool call requested by the assistant."""
    id: Optional[str] = None
    type: Literal["function"] = "function"
    function: FunctionCall = Field(default_factory=FunctionCall)


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    content: MessageContent
    name: Optional[str] = None


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: MessageContent
    name: Optional[str] = None


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: Optional[MessageContent] = None
    tool_calls: Optional[List[ToolCall]] = None
    name: Optional[str] = None


class ToolMessage(BaseModel):
    role: Literal["tool"] = "tool"
    content: MessageContent
    tool_call_id: str


class FunctionMessage(BaseModel):
    role: Literal["function"] = "function"
    content: Optional[str] = None
    name: str


ChatMessage = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, ToolMessage, FunctionMessage],
    Field(discriminator="role"),
]


class TokenUsage(BaseModel):
    """Token usage reported by the service."""
    model_config = ConfigDict(extra="ignore")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @property
    def input_tokens(self) -> int:
        return self.prompt_tokens

    @property
    def output_tokens(self) -> int:
        return self.completion_tokens


class ChatCompletionOptions(BaseModel):
    """Request body of a chat completion call.

    Unknown fields are kept so that service options this SDK does not model
    still reach the wire.
    """
    model_config = ConfigDict(extra="allow")

    model: str
    messages: List[ChatMessage] = Field(default_factory=list)
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stop: Optional[Union[str, List[str]]] = None
    tools: Optional[List[Dict[str, Any]]] = None
    stream: Optional[bool] = None
    stream_options: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON request body."""
        return self.model_dump(mode="json", exclude_none=True)


class ChatResponseMessage(BaseModel):
    """Message of a completion choice."""
    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None


class ChatChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    message: ChatResponseMessage = Field(default_factory=ChatResponseMessage)
    finish_reason: Optional[str] = None


class ChatCompletion(BaseModel):
    """Unary chat completion response."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    model: Optional[str] = None
    created: Optional[int] = None
    choices: List[ChatChoice] = Field(default_factory=list)
    usage: Optional[TokenUsage] = None

    @property
    def finish_reason(self) -> Optional[str]:
        """Finish reason of the first choice."""
        if self.choices:
            return self.choices[0].finish_reason
        return None

    @property
    def text(self) -> Optional[str]:
        """Text of the first choice."""
        if self.choices:
            return self.choices[0].message.content
        return None
