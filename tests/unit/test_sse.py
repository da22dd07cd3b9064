"""Unit tests for server-sent event decoding."""

import httpx
import pytest

from steer_chat_sdk.streaming.sse import (
    SSEDecoder,
    ServerSentEvent,
    aiter_sse_events,
    iter_sse_events,
)


def decode_lines(lines):
    decoder = SSEDecoder()
    events = [event for event in (decoder.decode(line) for line in lines) if event is not None]
    tail = decoder.flush()
    if tail is not None:
        events.append(tail)
    return events


class TestSSEDecoder:
    """Test the line decoder."""

    def test_blank_line_dispatches_event(self):
        events = decode_lines(["data: hello", ""])

        assert events == [ServerSentEvent(data="hello")]

    def test_multiple_data_lines_are_joined(self):
        events = decode_lines(["data: first", "data: second", ""])

        assert len(events) == 1
        assert events[0].data == "first\nsecond"

    def test_comments_are_ignored(self):
        events = decode_lines([": keep-alive", "data: x", ""])

        assert [event.data for event in events] == ["x"]

    def test_only_one_leading_space_is_stripped(self):
        events = decode_lines(["data:  indented", "data:tight", ""])

        assert events[0].data == " indented\ntight"

    def test_event_id_and_retry_fields(self):
        events = decode_lines(["event: update", "id: 7", "retry: 1500", "data: {}", ""])

        assert events[0] == ServerSentEvent(data="{}", event="update", id="7", retry=1500)

    def test_invalid_retry_is_ignored(self):
        events = decode_lines(["retry: soon", "data: x", ""])

        assert events[0].retry is None

    def test_event_without_data_is_not_dispatched(self):
        events = decode_lines(["event: ping", "", "data: real", ""])

        assert [event.data for event in events] == ["real"]
        assert events[0].event == "message"

    def test_pending_data_is_flushed_at_end(self):
        events = decode_lines(["data: [DONE]"])

        assert [event.data for event in events] == ["[DONE]"]

    def test_unknown_fields_are_ignored(self):
        events = decode_lines(["foo: bar", "data: x", ""])

        assert [event.data for event in events] == ["x"]


class TestResponseDecoding:
    """Test decoding over httpx responses."""

    BODY = b"data: one\n\n: comment\r\ndata: two\r\n\r\ndata: [DONE]\n\n"

    def test_iter_sse_events(self):
        response = httpx.Response(200, content=self.BODY)

        assert [event.data for event in iter_sse_events(response)] == ["one", "two", "[DONE]"]

    @pytest.mark.asyncio
    async def test_aiter_sse_events(self):
        response = httpx.Response(200, content=self.BODY)

        events = [event.data async for event in aiter_sse_events(response)]

        assert events == ["one", "two", "[DONE]"]
