"""Client interface for the chat-completion service."""

from typing import Any, Dict, List, Optional, Sequence, Union

import httpx
from opentelemetry.metrics import MeterProvider
from opentelemetry.trace import TracerProvider
from pydantic import TypeAdapter, ValidationError

from ..config.constants import CHAT_COMPLETIONS_PATH, EMBEDDINGS_PATH
from ..config.settings import ClientSettings, InstrumentationConfig
from ..errors import ErrorMapper
from ..models.chat import ChatCompletion, ChatCompletionOptions, ChatMessage, UserMessage
from ..models.embeddings import EmbeddingCollection, EmbeddingOptions
from ..observability.factory import InstrumentationFactory
from ..observability.logging import ClientLogger
from ..observability.scope import InstrumentationScope
from ..streaming.cancellation import CallContext, CancellationToken
from ..streaming.iterator import AsyncStreamingUpdateIterator, StreamingUpdateIterator

logger = ClientLogger("chat")

_messages_adapter: TypeAdapter = TypeAdapter(List[ChatMessage])

Messages = Union[str, Sequence[Union[ChatMessage, Dict[str, Any]]]]


class ChatClient:
    """Client for chat completions and embeddings, sync and async."""

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        instrumentation_config: Optional[InstrumentationConfig] = None,
        http_client: Optional[httpx.Client] = None,
        async_http_client: Optional[httpx.AsyncClient] = None,
        tracer_provider: Optional[TracerProvider] = None,
        meter_provider: Optional[MeterProvider] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Connection settings (read from the environment if omitted)
            instrumentation_config: Telemetry switches (read from the environment if omitted)
            http_client: Optional httpx client used for sync calls
            async_http_client: Optional httpx client used for async calls
            tracer_provider: Optional OpenTelemetry tracer provider
            meter_provider: Optional OpenTelemetry meter provider
        """
        self.settings = settings or ClientSettings.from_env()
        self._base_url = self.settings.base_url.rstrip("/")
        self._client = http_client
        self._async_client = async_http_client
        self._owns_client = http_client is None
        self._owns_async_client = async_http_client is None

        self._instrumentation = InstrumentationFactory(
            self.settings.model,
            self._base_url,
            config=instrumentation_config,
            tracer_provider=tracer_provider,
            meter_provider=meter_provider,
        )

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of the sync HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.settings.timeout)
        return self._client

    @property
    def async_client(self) -> httpx.AsyncClient:
        """Lazy initialization of the async HTTP client."""
        if self._async_client is None:
            self._async_client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._async_client

    # Chat

    def complete_chat(
        self,
        messages: Messages,
        options: Optional[ChatCompletionOptions] = None,
        *,
        model: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> ChatCompletion:
        """Create a chat completion for the given conversation."""
        options = self._chat_options(messages, options, model, stream=False)
        with logger.track_request("complete_chat", options.model) as request_info:
            response = self.send_chat_request(
                options.to_payload(), CallContext.create(cancellation)
            )
            completion = ChatCompletion.model_validate(response.json())
            logger.log_usage(completion.usage, completion.model, request_info["request_id"])
        return completion

    async def complete_chat_async(
        self,
        messages: Messages,
        options: Optional[ChatCompletionOptions] = None,
        *,
        model: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> ChatCompletion:
        """Create a chat completion for the given conversation."""
        options = self._chat_options(messages, options, model, stream=False)
        with logger.track_request("complete_chat", options.model) as request_info:
            response = await self.send_chat_request_async(
                options.to_payload(), CallContext.create(cancellation)
            )
            completion = ChatCompletion.model_validate(response.json())
            logger.log_usage(completion.usage, completion.model, request_info["request_id"])
        return completion

    def complete_chat_streaming(
        self,
        messages: Messages,
        options: Optional[ChatCompletionOptions] = None,
        *,
        model: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> StreamingUpdateIterator:
        """
        Stream a chat completion.

        No request is sent until the first update is requested. Close the
        returned iterator (or use it as a context manager) when stopping early.
        """
        options = self._chat_options(messages, options, model, stream=True)
        context = CallContext.create(cancellation)
        scope = self._instrumentation.start_chat_streaming_scope(options, context)
        payload = options.to_payload()
        nested = context.nested()

        def get_response() -> httpx.Response:
            logger.debug("Opening chat stream", model=options.model)
            return self.send_chat_request(payload, nested)

        return StreamingUpdateIterator(get_response, scope, context.cancellation)

    def complete_chat_streaming_async(
        self,
        messages: Messages,
        options: Optional[ChatCompletionOptions] = None,
        *,
        model: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> AsyncStreamingUpdateIterator:
        """
        Stream a chat completion asynchronously.

        No request is sent until the first update is awaited. Close the
        returned iterator (or use it as an async context manager) when
        stopping early.
        """
        options = self._chat_options(messages, options, model, stream=True)
        context = CallContext.create(cancellation)
        scope = self._instrumentation.start_chat_streaming_scope(options, context)
        payload = options.to_payload()
        nested = context.nested()

        async def get_response() -> httpx.Response:
            logger.debug("Opening chat stream", model=options.model)
            return await self.send_chat_request_async(payload, nested)

        return AsyncStreamingUpdateIterator(get_response, scope, context.cancellation)

    def send_chat_request(
        self, payload: Dict[str, Any], context: Optional[CallContext] = None
    ) -> httpx.Response:
        """
        Send a raw chat completion request body.

        A streaming request returns the unread response; the caller owns it.

        Raises:
            ServiceError: If the service answers with a non-success status
        """
        context = context or CallContext.create()
        streaming = bool(payload.get("stream"))
        with self._instrumentation.start_chat_scope_from_payload(payload, context) as scope:
            context.cancellation.raise_if_cancelled()
            request = self._build_request(self.client, CHAT_COMPLETIONS_PATH, payload)
            response = self.client.send(request, stream=streaming)
            if not response.is_success:
                response.read()
                response.close()
                raise ErrorMapper.from_response(response)

            if not streaming:
                self._record_chat_response(scope, response)
            return response

    async def send_chat_request_async(
        self, payload: Dict[str, Any], context: Optional[CallContext] = None
    ) -> httpx.Response:
        """
        Send a raw chat completion request body.

        A streaming request returns the unread response; the caller owns it.

        Raises:
            ServiceError: If the service answers with a non-success status
        """
        context = context or CallContext.create()
        streaming = bool(payload.get("stream"))
        with self._instrumentation.start_chat_scope_from_payload(payload, context) as scope:
            context.cancellation.raise_if_cancelled()
            request = self._build_request(self.async_client, CHAT_COMPLETIONS_PATH, payload)
            response = await self.async_client.send(request, stream=streaming)
            if not response.is_success:
                await response.aread()
                await response.aclose()
                raise ErrorMapper.from_response(response)

            if not streaming:
                self._record_chat_response(scope, response)
            return response

    # Embeddings

    def generate_embeddings(
        self,
        inputs: Union[str, List[str]],
        options: Optional[EmbeddingOptions] = None,
        *,
        model: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> EmbeddingCollection:
        """Create embeddings for one or more inputs."""
        options = self._embedding_options(inputs, options, model)
        context = CallContext.create(cancellation)
        with logger.track_request("generate_embeddings", options.model):
            with self._instrumentation.start_embedding_scope(options, context) as scope:
                context.cancellation.raise_if_cancelled()
                request = self._build_request(self.client, EMBEDDINGS_PATH, options.to_payload())
                response = self.client.send(request)
                if not response.is_success:
                    raise ErrorMapper.from_response(response)

                embeddings = EmbeddingCollection.model_validate(response.json())
                scope.record_embeddings(embeddings)
        return embeddings

    async def generate_embeddings_async(
        self,
        inputs: Union[str, List[str]],
        options: Optional[EmbeddingOptions] = None,
        *,
        model: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> EmbeddingCollection:
        """Create embeddings for one or more inputs."""
        options = self._embedding_options(inputs, options, model)
        context = CallContext.create(cancellation)
        with logger.track_request("generate_embeddings", options.model):
            with self._instrumentation.start_embedding_scope(options, context) as scope:
                context.cancellation.raise_if_cancelled()
                request = self._build_request(self.async_client, EMBEDDINGS_PATH, options.to_payload())
                response = await self.async_client.send(request)
                if not response.is_success:
                    raise ErrorMapper.from_response(response)

                embeddings = EmbeddingCollection.model_validate(response.json())
                scope.record_embeddings(embeddings)
        return embeddings

    # Lifecycle

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    async def aclose(self) -> None:
        if self._async_client is not None and self._owns_async_client:
            await self._async_client.aclose()
            self._async_client = None
        self.close()

    def __enter__(self) -> "ChatClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # Helpers

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    def _build_request(
        self,
        http_client: Union[httpx.Client, httpx.AsyncClient],
        path: str,
        payload: Dict[str, Any],
    ) -> httpx.Request:
        return http_client.build_request(
            "POST",
            f"{self._base_url}{path}",
            json=payload,
            headers=self._headers(),
        )

    def _resolve_model(self, model: Optional[str], options_model: Optional[str]) -> str:
        resolved = model or options_model or self.settings.model
        if not resolved:
            raise ValueError("No model given and no default model configured (STEER_CHAT_MODEL)")
        return resolved

    def _chat_options(
        self,
        messages: Messages,
        options: Optional[ChatCompletionOptions],
        model: Optional[str],
        stream: bool,
    ) -> ChatCompletionOptions:
        if isinstance(messages, str):
            messages = [UserMessage(content=messages)]

        update: Dict[str, Any] = {
            "model": self._resolve_model(model, options.model if options else None),
            "messages": _messages_adapter.validate_python(list(messages)),
            "stream": True if stream else None,
        }
        if stream and (options is None or options.stream_options is None):
            update["stream_options"] = {"include_usage": True}

        if options is None:
            return ChatCompletionOptions(**update)
        return options.model_copy(update=update)

    def _embedding_options(
        self,
        inputs: Union[str, List[str]],
        options: Optional[EmbeddingOptions],
        model: Optional[str],
    ) -> EmbeddingOptions:
        resolved = self._resolve_model(model, options.model if options else None)
        if options is None:
            return EmbeddingOptions(model=resolved, input=inputs)
        return options.model_copy(update={"model": resolved, "input": inputs})

    @staticmethod
    def _record_chat_response(scope: InstrumentationScope, response: httpx.Response) -> None:
        if not scope.is_enabled:
            return
        try:
            completion = ChatCompletion.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.debug(f"Response body is not a chat completion: {e}")
            return
        scope.record_chat_completion(completion)
