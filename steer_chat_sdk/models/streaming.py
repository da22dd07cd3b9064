"""
Streaming chat completion updates.

One server-sent event carries one JSON chunk. A chunk lists zero or more
choices, and each choice becomes one StreamingChatCompletionUpdate. A chunk
without choices (for example the trailing usage chunk) still becomes a single
update so that its usage is not lost.

Decoding is lenient: fields with an unexpected shape are dropped instead of
failing the stream.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .chat import ContentPart, TextContentPart, TokenUsage

logger = logging.getLogger(__name__)

_content_part_adapter: TypeAdapter = TypeAdapter(ContentPart)


class StreamingToolCallUpdate(BaseModel):
    """Partial tool call for the call at ``index``."""
    index: int
    id: Optional[str] = None
    function_name: Optional[str] = None
    arguments_update: Optional[str] = None


class StreamingChatCompletionUpdate(BaseModel):
    """One partial delta of a streaming chat completion.

    ``None`` (or an empty list) means "unchanged since the previous update".
    """
    completion_id: Optional[str] = None
    model: Optional[str] = None
    created: Optional[int] = None
    choice_index: Optional[int] = None
    role: Optional[str] = None
    content_update: List[ContentPart] = Field(default_factory=list)
    tool_call_updates: List[StreamingToolCallUpdate] = Field(default_factory=list)
    finish_reason: Optional[str] = None
    usage: Optional[TokenUsage] = None

    @property
    def text(self) -> str:
        """Concatenated text of this update's text parts."""
        return "".join(
            part.text for part in self.content_update if isinstance(part, TextContentPart)
        )


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _parse_usage(value: Any) -> Optional[TokenUsage]:
    if not isinstance(value, dict):
        return None
    try:
        return TokenUsage.model_validate(value)
    except ValidationError:
        logger.debug("Ignoring malformed usage in stream chunk: %r", value)
        return None


def _parse_content(value: Any) -> List[ContentPart]:
    if isinstance(value, str):
        return [TextContentPart(text=value)]
    if not isinstance(value, list):
        return []

    parts: List[ContentPart] = []
    for item in value:
        try:
            parts.append(_content_part_adapter.validate_python(item))
        except ValidationError:
            logger.debug("Ignoring malformed content part in stream chunk: %r", item)
    return parts


def _parse_tool_calls(value: Any) -> List[StreamingToolCallUpdate]:
    if not isinstance(value, list):
        return []

    updates = []
    for item in value:
        if not isinstance(item, dict):
            continue
        index = _int_or_none(item.get("index"))
        if index is None or index < 0:
            continue
        function = item.get("function")
        if not isinstance(function, dict):
            function = {}
        updates.append(StreamingToolCallUpdate(
            index=index,
            id=_str_or_none(item.get("id")),
            function_name=_str_or_none(function.get("name")),
            arguments_update=_str_or_none(function.get("arguments")),
        ))
    return updates


def updates_from_chunk(chunk: Any) -> List[StreamingChatCompletionUpdate]:
    """
    Split one decoded stream chunk into per-choice updates.

    Args:
        chunk: The JSON value of one server-sent event

    Returns:
        Updates in choice order; empty when the chunk is not an object
    """
    if not isinstance(chunk, dict):
        return []

    common: Dict[str, Any] = {
        "completion_id": _str_or_none(chunk.get("id")),
        "model": _str_or_none(chunk.get("model")),
        "created": _int_or_none(chunk.get("created")),
        "usage": _parse_usage(chunk.get("usage")),
    }

    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices:
        return [StreamingChatCompletionUpdate(**common)]

    updates = []
    for choice in choices:
        if not isinstance(choice, dict):
            continue
        delta = choice.get("delta")
        if not isinstance(delta, dict):
            delta = {}
        updates.append(StreamingChatCompletionUpdate(
            **common,
            choice_index=_int_or_none(choice.get("index")),
            role=_str_or_none(delta.get("role")),
            content_update=_parse_content(delta.get("content")),
            tool_call_updates=_parse_tool_calls(delta.get("tool_calls")),
            finish_reason=_str_or_none(choice.get("finish_reason")),
        ))
    return updates


def decode_updates(data: str) -> List[StreamingChatCompletionUpdate]:
    """
    Decode the payload of one server-sent event into updates.

    Args:
        data: JSON text of the event

    Returns:
        Zero or more updates, in the order the service listed them

    Raises:
        ValueError: If the payload is not valid JSON
    """
    return updates_from_chunk(json.loads(data))
