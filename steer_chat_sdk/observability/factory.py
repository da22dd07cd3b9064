"""Creates instrumentation scopes for the calls of one client."""

import logging
from typing import Any, Dict, Optional

import httpx
from opentelemetry import metrics, trace
from opentelemetry.metrics import MeterProvider
from opentelemetry.trace import TracerProvider
from pydantic import ValidationError

from .. import __version__
from ..config.constants import (
    CHAT_OPERATION_NAME,
    EMBEDDING_OPERATION_NAME,
    INSTRUMENTATION_NAME,
)
from ..config.settings import InstrumentationConfig
from ..models.chat import ChatCompletionOptions
from ..models.embeddings import EmbeddingOptions
from ..streaming.cancellation import CallContext
from .scope import ClientInstruments, InstrumentationScope
from .streaming_scope import StreamingScope

logger = logging.getLogger(__name__)


class InstrumentationFactory:
    """
    Per-client factory of instrumentation scopes.

    Args:
        model: Default model, used when a request does not name one
        endpoint: Base URL of the service; its host and port are reported
        config: Instrumentation switches (read from the environment if omitted)
        tracer_provider: OpenTelemetry tracer provider (global if omitted)
        meter_provider: OpenTelemetry meter provider (global if omitted)
    """

    def __init__(
        self,
        model: Optional[str],
        endpoint: str,
        config: Optional[InstrumentationConfig] = None,
        tracer_provider: Optional[TracerProvider] = None,
        meter_provider: Optional[MeterProvider] = None,
    ):
        url = httpx.URL(endpoint)
        self.server_address = url.host
        self.server_port = url.port or (443 if url.scheme == "https" else 80)
        self.model = model
        self.config = config or InstrumentationConfig.from_env()

        self._tracer = trace.get_tracer(
            INSTRUMENTATION_NAME, __version__, tracer_provider=tracer_provider
        )
        self._instruments = ClientInstruments(
            metrics.get_meter(INSTRUMENTATION_NAME, __version__, meter_provider=meter_provider)
        )

    def _scope(self, model: Optional[str], operation_name: str, context: CallContext) -> InstrumentationScope:
        return InstrumentationScope(
            model or self.model,
            operation_name,
            self.server_address,
            self.server_port,
            self.config,
            self._tracer,
            self._instruments,
            enabled=not context.instrumented,
        )

    def start_chat_scope(
        self, options: Optional[ChatCompletionOptions], context: CallContext
    ) -> InstrumentationScope:
        model = options.model if options is not None else None
        return self._scope(model, CHAT_OPERATION_NAME, context).start_chat(options)

    def start_chat_scope_from_payload(
        self, payload: Dict[str, Any], context: CallContext
    ) -> InstrumentationScope:
        """Start a chat scope for a raw request body."""
        if context.instrumented:
            return self._scope(None, CHAT_OPERATION_NAME, context)

        try:
            options = ChatCompletionOptions.model_validate(payload)
        except ValidationError as e:
            logger.debug(f"Request body is not a recognized chat request: {e}")
            options = None
        model = payload.get("model") if isinstance(payload.get("model"), str) else None
        return self._scope(model, CHAT_OPERATION_NAME, context).start_chat(options)

    def start_chat_streaming_scope(
        self, options: Optional[ChatCompletionOptions], context: CallContext
    ) -> StreamingScope:
        model = options.model if options is not None else None
        return self._scope(model, CHAT_OPERATION_NAME, context).start_streaming_chat(options)

    def start_embedding_scope(
        self, options: Optional[EmbeddingOptions], context: CallContext
    ) -> InstrumentationScope:
        model = options.model if options is not None else None
        return self._scope(model, EMBEDDING_OPERATION_NAME, context).start_embedding(options)
