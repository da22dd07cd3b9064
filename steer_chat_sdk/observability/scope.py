"""
Per-call tracing and metrics.

An InstrumentationScope owns the span and the duration timer of one logical
client call. It is started by the InstrumentationFactory, receives exactly one
result (a completion, embeddings, a streaming summary or an exception) and is
closed once. Emission is best effort: telemetry failures are logged and never
reach the caller.
"""

import asyncio
import logging
import threading
import time
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from opentelemetry import trace
from opentelemetry.metrics import Meter
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer

from ..config.constants import (
    ERROR_TYPE_KEY,
    GEN_AI_CHOICE_EVENT,
    GEN_AI_CLIENT_OPERATION_DURATION_METRIC,
    GEN_AI_CLIENT_STREAMS_COMPLETED_METRIC,
    GEN_AI_CLIENT_STREAMS_STARTED_METRIC,
    GEN_AI_CLIENT_TOKEN_USAGE_METRIC,
    GEN_AI_OPERATION_NAME_KEY,
    GEN_AI_REQUEST_MAX_TOKENS_KEY,
    GEN_AI_REQUEST_MODEL_KEY,
    GEN_AI_REQUEST_TEMPERATURE_KEY,
    GEN_AI_REQUEST_TOP_P_KEY,
    GEN_AI_RESPONSE_FINISH_REASONS_KEY,
    GEN_AI_RESPONSE_ID_KEY,
    GEN_AI_RESPONSE_MODEL_KEY,
    GEN_AI_SYSTEM_KEY,
    GEN_AI_SYSTEM_VALUE,
    GEN_AI_TOKEN_TYPE_KEY,
    GEN_AI_USAGE_INPUT_TOKENS_KEY,
    GEN_AI_USAGE_OUTPUT_TOKENS_KEY,
    SERVER_ADDRESS_KEY,
    SERVER_PORT_KEY,
)
from ..config.settings import InstrumentationConfig
from ..errors import get_error_type
from ..models.chat import ChatCompletion, ChatCompletionOptions
from ..models.embeddings import EmbeddingCollection, EmbeddingOptions
from .events import choice_payload, message_event, write_event

if TYPE_CHECKING:
    from .streaming_scope import StreamingCompletionSummary, StreamingScope

logger = logging.getLogger(__name__)


class ClientInstruments:
    """Metric instruments shared by every scope of one factory."""

    def __init__(self, meter: Meter):
        self.duration = meter.create_histogram(
            name=GEN_AI_CLIENT_OPERATION_DURATION_METRIC,
            unit="s",
            description="Measures GenAI operation duration."
        )
        self.token_usage = meter.create_histogram(
            name=GEN_AI_CLIENT_TOKEN_USAGE_METRIC,
            unit="{token}",
            description="Measures the number of input and output token used."
        )
        self.streams_started = meter.create_counter(
            name=GEN_AI_CLIENT_STREAMS_STARTED_METRIC,
            unit="{stream}",
            description="Measures the number of started streaming calls."
        )
        self.streams_completed = meter.create_counter(
            name=GEN_AI_CLIENT_STREAMS_COMPLETED_METRIC,
            unit="{stream}",
            description="Measures the number of completed streaming calls."
        )


class InstrumentationScope:
    """Span, timer and metric attributes of one client call."""

    def __init__(
        self,
        model: Optional[str],
        operation_name: str,
        server_address: str,
        server_port: int,
        config: InstrumentationConfig,
        tracer: Tracer,
        instruments: ClientInstruments,
        enabled: bool = True,
    ):
        self.request_model = model
        self.operation_name = operation_name
        self._config = config
        self._tracer = tracer
        self._instruments = instruments
        self._enabled = enabled and config.enabled

        self._span = trace.INVALID_SPAN
        self._start_time = 0.0
        self._close_lock = threading.Lock()
        self._closed = False

        # Metric attributes shared by every emission of this scope
        self._base_attributes: Mapping[str, Any] = MappingProxyType({
            GEN_AI_SYSTEM_KEY: GEN_AI_SYSTEM_VALUE,
            GEN_AI_REQUEST_MODEL_KEY: model or "",
            SERVER_ADDRESS_KEY: server_address,
            SERVER_PORT_KEY: server_port,
            GEN_AI_OPERATION_NAME_KEY: operation_name,
        })

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def span(self):
        return self._span

    def start_chat(self, options: Optional[ChatCompletionOptions]) -> "InstrumentationScope":
        """Start the span and timer of a chat call."""
        if not self._enabled:
            return self

        self._start()
        try:
            if self._span.is_recording() and options is not None:
                if options.max_tokens is not None:
                    self._span.set_attribute(GEN_AI_REQUEST_MAX_TOKENS_KEY, options.max_tokens)
                if options.temperature is not None:
                    self._span.set_attribute(GEN_AI_REQUEST_TEMPERATURE_KEY, options.temperature)
                if options.top_p is not None:
                    self._span.set_attribute(GEN_AI_REQUEST_TOP_P_KEY, options.top_p)

                if self._config.record_events:
                    for message in options.messages:
                        name, payload = message_event(message, self._config.record_content)
                        write_event(self._span, name, payload)
        except Exception as e:
            logger.debug(f"Failed to record chat request attributes: {e}")
        return self

    def start_embedding(self, options: Optional[EmbeddingOptions]) -> "InstrumentationScope":
        """Start the span and timer of an embedding call."""
        if self._enabled:
            self._start()
        return self

    def start_streaming_chat(self, options: Optional[ChatCompletionOptions]) -> "StreamingScope":
        from .streaming_scope import StreamingScope

        self.start_chat(options)
        if self._enabled:
            try:
                self._instruments.streams_started.add(1, self._base_attributes)
            except Exception as e:
                logger.debug(f"Failed to record stream start: {e}")
        return StreamingScope(self)

    def record_chat_completion(self, completion: ChatCompletion) -> None:
        if not self._enabled:
            return

        try:
            usage = completion.usage
            self._record_metrics(
                completion.model,
                None,
                usage.input_tokens if usage else None,
                usage.output_tokens if usage else None,
            )

            if self._span.is_recording():
                self._record_response_attributes(
                    completion.id,
                    completion.model,
                    completion.finish_reason,
                    usage.input_tokens if usage else None,
                    usage.output_tokens if usage else None,
                )
                if self._config.record_events:
                    for choice in completion.choices:
                        self._record_choice(
                            choice.index,
                            choice.finish_reason,
                            choice.message.role,
                            choice.message.content,
                            choice.message.tool_calls,
                        )
        except Exception as e:
            logger.debug(f"Failed to record chat completion telemetry: {e}")

    def record_embeddings(self, embeddings: EmbeddingCollection) -> None:
        if not self._enabled:
            return

        try:
            input_tokens = embeddings.usage.input_tokens if embeddings.usage else None
            self._record_metrics(embeddings.model, None, input_tokens, None)

            if self._span.is_recording():
                if embeddings.model is not None:
                    self._span.set_attribute(GEN_AI_RESPONSE_MODEL_KEY, embeddings.model)
                if input_tokens is not None:
                    self._span.set_attribute(GEN_AI_USAGE_INPUT_TOKENS_KEY, input_tokens)
        except Exception as e:
            logger.debug(f"Failed to record embedding telemetry: {e}")

    def record_streaming_chat_completion(self, summary: "StreamingCompletionSummary") -> None:
        """Report the accumulated result of a streaming chat call."""
        if not self._enabled:
            return

        usage = summary.usage
        input_tokens = usage.input_tokens if usage else None
        output_tokens = usage.output_tokens if usage else None

        try:
            if self._span.is_recording():
                self._record_response_attributes(
                    summary.response_id,
                    summary.model,
                    summary.finish_reason,
                    input_tokens,
                    output_tokens,
                )
                self._set_span_error(summary.error, summary.error_type)

                if self._config.record_events:
                    self._record_choice(
                        0,
                        summary.finish_reason,
                        summary.role,
                        [summary.content],
                        summary.tool_calls,
                    )

            self._instruments.streams_completed.add(1, self._base_attributes)
            self._record_metrics(summary.model, summary.error_type, input_tokens, output_tokens)
        except Exception as e:
            logger.debug(f"Failed to record streaming chat telemetry: {e}")

    def record_exception(self, error: BaseException) -> None:
        if not self._enabled:
            return

        try:
            error_type = get_error_type(error)
            self._record_metrics(None, error_type, None, None)
            self._set_span_error(error, error_type)
        except Exception as e:
            logger.debug(f"Failed to record exception telemetry: {e}")

    def close(self) -> None:
        """End the span. Only the first call has an effect."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        try:
            self._span.end()
        except Exception as e:
            logger.debug(f"Failed to end span: {e}")

    def __enter__(self) -> "InstrumentationScope":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if isinstance(exc_val, (Exception, asyncio.CancelledError)):
            self.record_exception(exc_val)
        self.close()
        return False

    def _start(self) -> None:
        self._start_time = time.perf_counter()
        try:
            self._span = self._tracer.start_span(
                f"{self.operation_name} {self.request_model}",
                kind=SpanKind.CLIENT,
                attributes=dict(self._base_attributes),
            )
        except Exception as e:
            logger.debug(f"Failed to start span: {e}")

    def _attributes(self, response_model: Optional[str], error_type: Optional[str]) -> Dict[str, Any]:
        overrides = {}
        if response_model is not None:
            overrides[GEN_AI_RESPONSE_MODEL_KEY] = response_model
        if error_type is not None:
            overrides[ERROR_TYPE_KEY] = error_type
        return {**self._base_attributes, **overrides}

    def _record_metrics(
        self,
        response_model: Optional[str],
        error_type: Optional[str],
        input_tokens: Optional[int],
        output_tokens: Optional[int],
    ) -> None:
        attributes = self._attributes(response_model, error_type)
        self._instruments.duration.record(time.perf_counter() - self._start_time, attributes)

        if input_tokens is not None:
            self._instruments.token_usage.record(
                input_tokens, {**attributes, GEN_AI_TOKEN_TYPE_KEY: "input"}
            )
        if output_tokens is not None:
            self._instruments.token_usage.record(
                output_tokens, {**attributes, GEN_AI_TOKEN_TYPE_KEY: "output"}
            )

    def _record_response_attributes(
        self,
        response_id: Optional[str],
        model: Optional[str],
        finish_reason: Optional[str],
        input_tokens: Optional[int],
        output_tokens: Optional[int],
    ) -> None:
        if response_id is not None:
            self._span.set_attribute(GEN_AI_RESPONSE_ID_KEY, response_id)
        if model is not None:
            self._span.set_attribute(GEN_AI_RESPONSE_MODEL_KEY, model)
        if finish_reason is not None:
            self._span.set_attribute(GEN_AI_RESPONSE_FINISH_REASONS_KEY, [finish_reason])
        if input_tokens is not None:
            self._span.set_attribute(GEN_AI_USAGE_INPUT_TOKENS_KEY, input_tokens)
        if output_tokens is not None:
            self._span.set_attribute(GEN_AI_USAGE_OUTPUT_TOKENS_KEY, output_tokens)

    def _set_span_error(self, error: Optional[BaseException], error_type: Optional[str]) -> None:
        if error_type is None:
            return
        self._span.set_attribute(ERROR_TYPE_KEY, error_type)
        description = str(error) if error is not None and str(error) else error_type
        self._span.set_status(Status(StatusCode.ERROR, description))

    def _record_choice(self, index, finish_reason, role, content, tool_calls) -> None:
        payload = choice_payload(
            index, finish_reason, role, content, tool_calls, self._config.record_content
        )
        write_event(self._span, GEN_AI_CHOICE_EVENT, payload)
