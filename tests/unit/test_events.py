"""Unit tests for message and choice span events."""

import json

import pytest

from steer_chat_sdk.models.chat import (
    AssistantMessage,
    ChatCompletion,
    ChatCompletionOptions,
    FunctionCall,
    FunctionMessage,
    ImageContentPart,
    ImageUrl,
    SystemMessage,
    TextContentPart,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from steer_chat_sdk.config.settings import InstrumentationConfig
from steer_chat_sdk.observability.events import (
    choice_payload,
    message_event,
    sanitize_content,
    sanitize_tool_calls,
)
from steer_chat_sdk.observability.factory import InstrumentationFactory
from steer_chat_sdk.streaming.cancellation import CallContext

TOOL_CALL = ToolCall(id="call_1", function=FunctionCall(name="lookup", arguments='{"q": "x"}'))


class TestSanitize:
    """Test redaction of recorded content."""

    def test_text_is_redacted_by_default(self):
        assert sanitize_content("secret", record_content=False) == [
            {"type": "text", "content": "REDACTED"}
        ]

    def test_text_is_kept_when_recording_content(self):
        assert sanitize_content("secret", record_content=True) == [
            {"type": "text", "content": "secret"}
        ]

    def test_image_parts(self):
        parts = [ImageContentPart(image_url=ImageUrl(url="https://img.example/a.png", detail="low"))]

        assert sanitize_content(parts, record_content=False) == [
            {"type": "image", "detail_level": "low", "content": "REDACTED"}
        ]

    def test_tool_call_arguments_are_redacted(self):
        sanitized = sanitize_tool_calls([TOOL_CALL], record_content=False)

        assert sanitized == [{
            "id": "call_1",
            "type": "function",
            "function": {"name": "lookup", "arguments": "REDACTED"},
        }]

    def test_no_content(self):
        assert sanitize_content(None, record_content=True) is None
        assert sanitize_tool_calls([], record_content=True) is None


class TestMessageEvents:
    """Test per-role event names and payloads."""

    @pytest.mark.parametrize("message,name", [
        (SystemMessage(content="rules"), "gen_ai.system.message"),
        (UserMessage(content="question"), "gen_ai.user.message"),
        (AssistantMessage(content="answer"), "gen_ai.assistant.message"),
        (ToolMessage(content="42", tool_call_id="call_1"), "gen_ai.tool.message"),
        (FunctionMessage(content="42", name="lookup"), "gen_ai.function.message"),
    ])
    def test_event_names(self, message, name):
        assert message_event(message, record_content=False)[0] == name

    def test_assistant_payload_has_tool_calls(self):
        _, payload = message_event(AssistantMessage(tool_calls=[TOOL_CALL]), record_content=True)

        assert payload["content"] is None
        assert payload["tool_calls"][0]["function"]["arguments"] == '{"q": "x"}'

    def test_tool_payload_has_call_id(self):
        _, payload = message_event(ToolMessage(content="42", tool_call_id="call_1"), record_content=False)

        assert payload == {"content": [{"type": "text", "content": "REDACTED"}], "tool_call_id": "call_1"}

    def test_choice_payload(self):
        payload = choice_payload(0, "stop", "assistant", [TextContentPart(text="hi")], None, True)

        assert payload == {
            "index": 0,
            "finish_reason": "stop",
            "message": {
                "role": "assistant",
                "content": [{"type": "text", "content": "hi"}],
                "tool_calls": None,
            },
        }


class TestRecordedEvents:
    """Test events written to the span."""

    def _factory(self, telemetry, record_events, record_content=False):
        return InstrumentationFactory(
            "gpt-test",
            "http://localhost:8080/v1",
            config=InstrumentationConfig(record_events=record_events, record_content=record_content),
            tracer_provider=telemetry.tracer_provider,
            meter_provider=telemetry.meter_provider,
        )

    def test_events_written_when_enabled(self, telemetry):
        factory = self._factory(telemetry, record_events=True)
        options = ChatCompletionOptions(
            model="gpt-test",
            messages=[SystemMessage(content="rules"), UserMessage(content="question")],
        )
        completion = ChatCompletion.model_validate({
            "id": "c1",
            "model": "gpt-test",
            "choices": [{"index": 0, "finish_reason": "stop",
                         "message": {"role": "assistant", "content": "answer"}}],
        })

        with factory.start_chat_scope(options, CallContext.create()) as scope:
            scope.record_chat_completion(completion)

        span = telemetry.spans[0]
        names = [event.name for event in span.events]
        assert names == ["gen_ai.system.message", "gen_ai.user.message", "gen_ai.choice"]
        choice = json.loads(span.events[2].attributes["event.data"])
        assert choice["message"]["content"] == [{"type": "text", "content": "REDACTED"}]
        assert span.events[2].attributes["gen_ai.system"] == "openai"
        assert span.attributes["server.address"] == "localhost"
        assert span.attributes["server.port"] == 8080

    def test_no_events_by_default(self, telemetry):
        factory = self._factory(telemetry, record_events=False)
        options = ChatCompletionOptions(model="gpt-test", messages=[UserMessage(content="question")])

        with factory.start_chat_scope(options, CallContext.create()):
            pass

        assert len(telemetry.spans[0].events) == 0
