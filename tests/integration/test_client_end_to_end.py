"""End-to-end tests of ChatClient over a mocked HTTP transport."""

import json

import httpx
import pytest

from steer_chat_sdk import ChatClient
from steer_chat_sdk.config.settings import ClientSettings, InstrumentationConfig
from steer_chat_sdk.errors import OperationCancelledError, ServiceError, StreamStateError
from steer_chat_sdk.models.chat import ChatCompletionOptions, SystemMessage, UserMessage
from steer_chat_sdk.streaming.cancellation import CancellationToken
from tests.helpers.streaming_mocks import (
    StreamingServer,
    chunk,
    sse_body,
    tool_call_delta,
    usage_chunk,
)

COMPLETION_BODY = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "created": 1700000000,
    "model": "gpt-test-2024",
    "choices": [{
        "index": 0,
        "finish_reason": "stop",
        "message": {"role": "assistant", "content": "4"},
    }],
    "usage": {"prompt_tokens": 9, "completion_tokens": 1, "total_tokens": 10},
}

EMBEDDING_BODY = {
    "object": "list",
    "model": "embed-test-001",
    "data": [{"object": "embedding", "index": 0, "embedding": [0.25, -0.5]}],
    "usage": {"prompt_tokens": 3, "total_tokens": 3},
}

STREAM_BODY = sse_body(
    chunk(role="assistant", content=""),
    chunk(content="Hel"),
    chunk(content="lo"),
    chunk(finish_reason="stop"),
    usage_chunk(5, 2),
    "[DONE]",
)


def make_client(settings, server, telemetry, config=None):
    transport = server.transport()
    return ChatClient(
        settings=settings,
        instrumentation_config=config or InstrumentationConfig(),
        http_client=httpx.Client(transport=transport),
        async_http_client=httpx.AsyncClient(transport=transport),
        tracer_provider=telemetry.tracer_provider,
        meter_provider=telemetry.meter_provider,
    )


@pytest.mark.integration
class TestCompleteChat:
    """Unary chat completions."""

    def test_sync_completion(self, settings, server, telemetry):
        server.json_body = COMPLETION_BODY
        client = make_client(settings, server, telemetry)

        completion = client.complete_chat(
            [SystemMessage(content="Be brief"), UserMessage(content="2+2?")],
            ChatCompletionOptions(model="ignored", messages=[], max_tokens=5),
            model="gpt-test",
        )

        assert completion.text == "4"
        assert completion.usage.total_tokens == 10

        request = server.requests[0]
        assert request.url == "https://chat.example.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer test-key"
        payload = server.request_payloads[0]
        assert payload["model"] == "gpt-test"
        assert payload["max_tokens"] == 5
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]
        assert "stream" not in payload

        span = telemetry.spans[0]
        assert span.name == "chat gpt-test"
        assert span.attributes["gen_ai.response.model"] == "gpt-test-2024"
        assert telemetry.token_usage() == {"input": 9, "output": 1}

    @pytest.mark.asyncio
    async def test_async_completion_from_string(self, settings, server, telemetry):
        server.json_body = COMPLETION_BODY
        client = make_client(settings, server, telemetry)

        completion = await client.complete_chat_async("2+2?")

        assert completion.finish_reason == "stop"
        assert server.request_payloads[0]["messages"] == [{"role": "user", "content": "2+2?"}]
        assert len(telemetry.spans) == 1

    def test_no_authorization_without_api_key(self, server, telemetry):
        server.json_body = COMPLETION_BODY
        settings = ClientSettings(base_url="https://chat.example.com/v1", model="gpt-test")
        client = make_client(settings, server, telemetry)

        client.complete_chat("hi")

        assert "authorization" not in server.requests[0].headers

    def test_service_error(self, settings, server, telemetry):
        server.status_code = 429
        server.json_body = {"error": {"message": "slow down", "type": "rate_limit"}}
        server.headers = {"retry-after": "2"}
        client = make_client(settings, server, telemetry)

        with pytest.raises(ServiceError) as exc_info:
            client.complete_chat("hi")

        error = exc_info.value
        assert error.status_code == 429
        assert error.retry_after == 2.0
        assert error.error_code == "rate_limit"
        assert error.is_retryable
        assert "slow down" in str(error)
        assert telemetry.spans[0].attributes["error.type"] == "429"

    def test_cancelled_before_send(self, settings, server, telemetry):
        server.json_body = COMPLETION_BODY
        token = CancellationToken()
        token.cancel()
        client = make_client(settings, server, telemetry)

        with pytest.raises(OperationCancelledError):
            client.complete_chat("hi", cancellation=token)

        assert server.requests == []
        assert telemetry.spans[0].attributes["error.type"] == "cancelled"

    def test_missing_model(self, server, telemetry):
        settings = ClientSettings(base_url="https://chat.example.com/v1")
        client = make_client(settings, server, telemetry)

        with pytest.raises(ValueError):
            client.complete_chat("hi")

        assert server.requests == []

    def test_raw_request_is_instrumented(self, settings, server, telemetry):
        server.json_body = COMPLETION_BODY
        client = make_client(settings, server, telemetry)

        response = client.send_chat_request(
            {"model": "gpt-raw", "messages": [{"role": "user", "content": "hi"}]}
        )

        assert response.json()["id"] == "chatcmpl-1"
        assert telemetry.spans[0].name == "chat gpt-raw"
        assert telemetry.spans[0].attributes["gen_ai.response.id"] == "chatcmpl-1"


@pytest.mark.integration
class TestStreamingChat:
    """Streaming chat completions."""

    def test_sync_stream(self, settings, server, telemetry):
        server.body = STREAM_BODY
        client = make_client(settings, server, telemetry)

        updates = client.complete_chat_streaming("Say hello")
        assert server.requests == []

        text = "".join(update.text for update in updates)

        assert text == "Hello"
        payload = server.request_payloads[0]
        assert payload["stream"] is True
        assert payload["stream_options"] == {"include_usage": True}
        assert server.streams[0].close_count >= 1

        summary = updates.scope.summary
        assert summary.text == "Hello"
        assert summary.finish_reason == "stop"
        assert summary.usage.total_tokens == 7
        assert summary.error_type is None

        # one span for the logical call, none for the request underneath it
        assert len(telemetry.spans) == 1
        span = telemetry.spans[0]
        assert "error.type" not in span.attributes
        assert span.attributes["gen_ai.usage.output_tokens"] == 2
        assert telemetry.histogram_count("gen_ai.client.operation.duration") == 1
        assert telemetry.counter_total("gen_ai.client.streams.started") == 1
        assert telemetry.counter_total("gen_ai.client.streams.completed") == 1

        with pytest.raises(StreamStateError):
            next(updates)

    @pytest.mark.asyncio
    async def test_async_stream_with_tool_calls(self, settings, server, telemetry):
        server.body = sse_body(
            chunk(role="assistant", tool_calls=[tool_call_delta(0, "", name="get_weather", call_id="call_1")]),
            chunk(tool_calls=[tool_call_delta(0, '{"city":')]),
            chunk(tool_calls=[tool_call_delta(0, '"Paris"}')]),
            chunk(finish_reason="tool_calls"),
            "[DONE]",
        )
        client = make_client(settings, server, telemetry)

        async with client.complete_chat_streaming_async("Weather in Paris?") as updates:
            received = [update async for update in updates]

        assert len(received) == 4
        tool_call = updates.scope.summary.tool_calls[0]
        assert tool_call.id == "call_1"
        assert tool_call.function.name == "get_weather"
        assert json.loads(tool_call.function.arguments) == {"city": "Paris"}
        assert len(telemetry.spans) == 1
        assert tuple(telemetry.spans[0].attributes["gen_ai.response.finish_reasons"]) == ("tool_calls",)

    @pytest.mark.asyncio
    async def test_async_stream_service_error(self, settings, server, telemetry):
        server.status_code = 503
        server.json_body = {"error": {"message": "overloaded"}}
        client = make_client(settings, server, telemetry)

        updates = client.complete_chat_streaming_async("hi")
        with pytest.raises(ServiceError):
            await updates.__anext__()

        assert updates.scope.summary.error_type == "503"
        assert len(telemetry.spans) == 1
        assert telemetry.spans[0].attributes["error.type"] == "503"

    def test_cancel_mid_stream(self, settings, server, telemetry):
        server.body = STREAM_BODY
        token = CancellationToken()
        client = make_client(settings, server, telemetry)

        updates = client.complete_chat_streaming("Say hello", cancellation=token)
        next(updates)
        token.cancel()

        with pytest.raises(OperationCancelledError):
            next(updates)

        assert updates.scope.summary.error_type == "cancelled"
        assert server.streams[0].close_count >= 1
        assert len(telemetry.spans) == 1
        assert telemetry.spans[0].attributes["error.type"] == "cancelled"

    def test_early_close(self, settings, server, telemetry):
        server.body = STREAM_BODY
        client = make_client(settings, server, telemetry)

        with client.complete_chat_streaming("Say hello") as updates:
            for update in updates:
                if update.text:
                    break

        summary = updates.scope.summary
        assert summary.text == "Hel"
        assert summary.finish_reason is None
        assert summary.error_type == "error"
        assert server.streams[0].close_count >= 1

    def test_stream_records_events(self, settings, server, telemetry):
        server.body = STREAM_BODY
        config = InstrumentationConfig(record_events=True, record_content=True)
        client = make_client(settings, server, telemetry, config=config)

        for _ in client.complete_chat_streaming("Say hello"):
            pass

        events = telemetry.spans[0].events
        assert [event.name for event in events] == ["gen_ai.user.message", "gen_ai.choice"]
        choice = json.loads(events[1].attributes["event.data"])
        assert choice["finish_reason"] == "stop"
        assert choice["message"]["content"] == [{"type": "text", "content": "Hello"}]


@pytest.mark.integration
class TestEmbeddings:
    """Embedding calls."""

    def test_sync_embeddings(self, settings, server, telemetry):
        server.json_body = EMBEDDING_BODY
        client = make_client(settings, server, telemetry)

        result = client.generate_embeddings(["hello"], model="embed-test")

        assert result.data[0].embedding == [0.25, -0.5]
        assert server.requests[0].url == "https://chat.example.com/v1/embeddings"
        assert server.request_payloads[0] == {"model": "embed-test", "input": ["hello"]}
        span = telemetry.spans[0]
        assert span.name == "embedding embed-test"
        assert span.attributes["gen_ai.usage.input_tokens"] == 3

    @pytest.mark.asyncio
    async def test_async_embedding_error(self, settings, server, telemetry):
        server.status_code = 400
        server.json_body = {"error": {"message": "bad input", "code": "invalid_input"}}
        client = make_client(settings, server, telemetry)

        with pytest.raises(ServiceError) as exc_info:
            await client.generate_embeddings_async("hello")

        assert exc_info.value.error_code == "invalid_input"
        assert not exc_info.value.is_retryable
        assert telemetry.spans[0].attributes["error.type"] == "400"


@pytest.mark.integration
class TestClientLifecycle:

    @pytest.mark.asyncio
    async def test_injected_clients_stay_open(self, settings, server, telemetry):
        client = make_client(settings, server, telemetry)
        http_client, async_http_client = client.client, client.async_client

        async with client:
            pass

        assert not http_client.is_closed
        assert not async_http_client.is_closed
