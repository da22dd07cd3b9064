"""
Span events for chat messages and choices.

Payloads are JSON encoded under the ``event.data`` attribute. Message text,
tool call arguments and image URLs are replaced with a placeholder unless
content recording is switched on.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from opentelemetry.trace import Span

from ..config.constants import (
    GEN_AI_ASSISTANT_MESSAGE_EVENT,
    GEN_AI_EVENT_PAYLOAD_KEY,
    GEN_AI_FUNCTION_MESSAGE_EVENT,
    GEN_AI_SYSTEM_KEY,
    GEN_AI_SYSTEM_MESSAGE_EVENT,
    GEN_AI_SYSTEM_VALUE,
    GEN_AI_TOOL_MESSAGE_EVENT,
    GEN_AI_USER_MESSAGE_EVENT,
    REDACTED_CONTENT,
)
from ..models.chat import ChatMessage, MessageContent, ToolCall


def sanitize_text(value: Optional[str], record_content: bool) -> Optional[str]:
    if value is None:
        return None
    return value if record_content else REDACTED_CONTENT


def _text_part(part, record_content: bool) -> Dict[str, Any]:
    return {"type": "text", "content": sanitize_text(part.text, record_content)}


def _image_part(part, record_content: bool) -> Dict[str, Any]:
    detail = part.image_url.detail
    return {
        "type": "image",
        "detail_level": detail.value if detail is not None else None,
        "content": sanitize_text(part.image_url.url, record_content),
    }


_CONTENT_PART_SANITIZERS: Dict[str, Callable[[Any, bool], Dict[str, Any]]] = {
    "text": _text_part,
    "image_url": _image_part,
}


def sanitize_content(
    content: Optional[MessageContent], record_content: bool
) -> Optional[List[Dict[str, Any]]]:
    """Event representation of message content."""
    if content is None:
        return None
    if isinstance(content, str):
        return [{"type": "text", "content": sanitize_text(content, record_content)}]
    return [_CONTENT_PART_SANITIZERS[part.type](part, record_content) for part in content]


def sanitize_tool_calls(
    tool_calls: Optional[Sequence[ToolCall]], record_content: bool
) -> Optional[List[Dict[str, Any]]]:
    if not tool_calls:
        return None
    return [
        {
            "id": call.id,
            "type": call.type,
            "function": {
                "name": call.function.name,
                "arguments": sanitize_text(call.function.arguments, record_content),
            },
        }
        for call in tool_calls
    ]


def _content_payload(message, record_content: bool) -> Dict[str, Any]:
    return {"content": sanitize_content(message.content, record_content)}


def _assistant_payload(message, record_content: bool) -> Dict[str, Any]:
    return {
        "content": sanitize_content(message.content, record_content),
        "tool_calls": sanitize_tool_calls(message.tool_calls, record_content),
    }


def _tool_payload(message, record_content: bool) -> Dict[str, Any]:
    return {
        "content": sanitize_content(message.content, record_content),
        "tool_call_id": message.tool_call_id,
    }


_MESSAGE_EVENTS: Dict[str, Tuple[str, Callable[[Any, bool], Dict[str, Any]]]] = {
    "system": (GEN_AI_SYSTEM_MESSAGE_EVENT, _content_payload),
    "user": (GEN_AI_USER_MESSAGE_EVENT, _content_payload),
    "assistant": (GEN_AI_ASSISTANT_MESSAGE_EVENT, _assistant_payload),
    "tool": (GEN_AI_TOOL_MESSAGE_EVENT, _tool_payload),
    "function": (GEN_AI_FUNCTION_MESSAGE_EVENT, _content_payload),
}


def message_event(message: ChatMessage, record_content: bool) -> Tuple[str, Dict[str, Any]]:
    """Event name and payload for one request message."""
    name, build_payload = _MESSAGE_EVENTS[message.role]
    return name, build_payload(message, record_content)


def choice_payload(
    index: Optional[int],
    finish_reason: Optional[str],
    role: Optional[str],
    content: Optional[MessageContent],
    tool_calls: Optional[Sequence[ToolCall]],
    record_content: bool,
) -> Dict[str, Any]:
    return {
        "index": index,
        "finish_reason": finish_reason,
        "message": {
            "role": role,
            "content": sanitize_content(content, record_content),
            "tool_calls": sanitize_tool_calls(tool_calls, record_content),
        },
    }


def write_event(span: Span, name: str, payload: Dict[str, Any]) -> None:
    span.add_event(
        name,
        attributes={
            GEN_AI_EVENT_PAYLOAD_KEY: json.dumps(payload),
            GEN_AI_SYSTEM_KEY: GEN_AI_SYSTEM_VALUE,
        },
    )
