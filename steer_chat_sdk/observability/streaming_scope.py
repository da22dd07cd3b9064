"""
Accumulation and reporting for streaming chat calls.

A StreamingScope folds every update a caller receives into one logical
response: scalar fields keep their last non-null value, text is concatenated,
tool call fragments are collected per index. The scope is finalized exactly
once, by whichever of completion, failure, cancellation or disposal happens
first, and only then reports to its InstrumentationScope. Merging an update
and taking the final snapshot share one lock, so a cancellation arriving from
another thread never reports a half-merged update.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..config.constants import CANCELLED_ERROR_TYPE, INCOMPLETE_RESPONSE_ERROR_TYPE
from ..errors import get_error_type
from ..models.chat import (
    ContentPart,
    FunctionCall,
    ImageContentPart,
    ImageDetail,
    ImageUrl,
    TextContentPart,
    TokenUsage,
    ToolCall,
)
from ..models.streaming import StreamingChatCompletionUpdate, StreamingToolCallUpdate
from .scope import InstrumentationScope

logger = logging.getLogger(__name__)


class ScopeOutcome(str, Enum):
    """How a streaming call ended."""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class _ToolCallAccumulator:
    """Fragments of the tool call at one index."""

    def __init__(self):
        self.call_id: Optional[str] = None
        self.function_name: Optional[str] = None
        self.arguments: Optional[List[str]] = None

    def add(self, update: StreamingToolCallUpdate) -> None:
        if update.id is not None:
            self.call_id = update.id
        if update.function_name is not None:
            self.function_name = update.function_name
        if update.arguments_update is not None:
            if self.arguments is None:
                self.arguments = []
            self.arguments.append(update.arguments_update)

    def to_tool_call(self) -> ToolCall:
        return ToolCall(
            id=self.call_id,
            function=FunctionCall(
                name=self.function_name or "",
                arguments="".join(self.arguments or ()),
            ),
        )


class _ContentAccumulator:
    """Text fragments or an image reference, tagged by content kind."""

    def __init__(self):
        self.kind: Optional[str] = None
        self.text: Optional[List[str]] = None
        self.image_url: Optional[str] = None
        self.image_detail: Optional[ImageDetail] = None

    def add(self, part: ContentPart) -> None:
        if part.type == "image_url":
            self.kind = "image_url"
            if part.image_url.url:
                self.image_url = part.image_url.url
            if part.image_url.detail is not None:
                self.image_detail = part.image_url.detail
        elif part.type == "text":
            # an observed image keeps precedence
            if self.kind is None:
                self.kind = "text"
            if self.text is None:
                self.text = []
            self.text.append(part.text)

    def to_content(self) -> ContentPart:
        if self.kind == "image_url" and self.image_url is not None:
            return ImageContentPart(image_url=ImageUrl(url=self.image_url, detail=self.image_detail))
        return TextContentPart(text="".join(self.text or ()))


@dataclass(frozen=True)
class StreamingCompletionSummary:
    """The logical response reconstructed from a finished stream."""
    outcome: ScopeOutcome
    response_id: Optional[str] = None
    model: Optional[str] = None
    role: Optional[str] = None
    finish_reason: Optional[str] = None
    usage: Optional[TokenUsage] = None
    content: ContentPart = field(default_factory=TextContentPart)
    tool_calls: Tuple[ToolCall, ...] = ()
    error_type: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def text(self) -> str:
        return self.content.text if isinstance(self.content, TextContentPart) else ""


class StreamingScope:
    """Mutable accumulation state and finalize-once reporting of one streaming call."""

    def __init__(self, scope: InstrumentationScope):
        self._scope = scope

        self._response_id: Optional[str] = None
        self._model: Optional[str] = None
        self._role: Optional[str] = None
        self._finish_reason: Optional[str] = None
        self._usage: Optional[TokenUsage] = None
        self._content = _ContentAccumulator()
        self._tools: List[_ToolCallAccumulator] = []

        self._lock = threading.Lock()
        self._reported = False
        self.summary: Optional[StreamingCompletionSummary] = None

    @property
    def is_reported(self) -> bool:
        return self._reported

    def record_update(self, update: StreamingChatCompletionUpdate) -> None:
        """Merge one update into the accumulated state."""
        with self._lock:
            self._merge(update)

    def _merge(self, update: StreamingChatCompletionUpdate) -> None:
        try:
            if update.model is not None:
                self._model = update.model
            if update.completion_id is not None:
                self._response_id = update.completion_id
            if update.role is not None:
                self._role = update.role

            for part in update.content_update:
                self._content.add(part)

            for tool_update in update.tool_call_updates:
                self._tool_accumulator(tool_update.index).add(tool_update)

            if update.finish_reason is not None:
                self._finish_reason = update.finish_reason
            if update.usage is not None:
                self._usage = update.usage
        except Exception as e:
            logger.debug(f"Ignoring unexpected streaming update shape: {e}")

    def finalize(self, outcome: ScopeOutcome, error: Optional[BaseException] = None) -> bool:
        """
        Report the accumulated response and close the instrumentation scope.

        Args:
            outcome: How the stream ended
            error: The exception that ended the stream, for FAILED outcomes

        Returns:
            True if this call reported, False if the scope was already finalized
        """
        with self._lock:
            if self._reported:
                return False
            self._reported = True
            summary = self._snapshot(outcome, error)

        try:
            if summary is not None:
                self.summary = summary
                self._scope.record_streaming_chat_completion(summary)
        except Exception as e:
            logger.debug(f"Failed to report streaming chat completion: {e}")
        finally:
            self._scope.close()
        return True

    def complete(self) -> bool:
        return self.finalize(ScopeOutcome.COMPLETED)

    def record_exception(self, error: BaseException) -> bool:
        return self.finalize(ScopeOutcome.FAILED, error)

    def record_cancellation(self) -> bool:
        return self.finalize(ScopeOutcome.CANCELLED)

    def _tool_accumulator(self, index: int) -> _ToolCallAccumulator:
        while len(self._tools) <= index:
            self._tools.append(_ToolCallAccumulator())
        return self._tools[index]

    def _error_type(self, outcome: ScopeOutcome, error: Optional[BaseException]) -> Optional[str]:
        if outcome is ScopeOutcome.CANCELLED:
            return CANCELLED_ERROR_TYPE
        if error is not None:
            return get_error_type(error)
        if outcome is ScopeOutcome.FAILED or self._finish_reason is None:
            return INCOMPLETE_RESPONSE_ERROR_TYPE
        return None

    def _snapshot(
        self, outcome: ScopeOutcome, error: Optional[BaseException]
    ) -> Optional[StreamingCompletionSummary]:
        try:
            return self._build_summary(outcome, error)
        except Exception as e:
            logger.debug(f"Failed to summarize streaming chat completion: {e}")
            return None

    def _build_summary(
        self, outcome: ScopeOutcome, error: Optional[BaseException]
    ) -> StreamingCompletionSummary:
        return StreamingCompletionSummary(
            outcome=outcome,
            response_id=self._response_id,
            model=self._model,
            role=self._role,
            finish_reason=self._finish_reason,
            usage=self._usage,
            content=self._content.to_content(),
            tool_calls=tuple(tool.to_tool_call() for tool in self._tools),
            error_type=self._error_type(outcome, error),
            error=error,
        )
