"""
Streaming update iterators.

The iterators flatten a two-level source into one lazy sequence: server-sent
events are pulled from the response one at a time, and every event decodes
into zero or more StreamingChatCompletionUpdate values. Each update is
recorded into the StreamingScope before it is handed to the caller.

The response is requested on the first advance. Whatever ends the stream
first (the ``[DONE]`` event, the end of the body, an error, cancellation or
``aclose()``/``close()``) finalizes the scope, closes the event source and
then closes the response. Advancing an ended stream raises StreamStateError.

Example:
    async with client.complete_chat_streaming_async(messages) as updates:
        async for update in updates:
            print(update.text, end="")
"""

import asyncio
import logging
from collections import deque
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    Deque,
    Iterator,
    Optional,
)

import httpx

from ..config.constants import STREAM_TERMINAL_DATA
from ..errors import StreamStateError
from ..models.streaming import StreamingChatCompletionUpdate, decode_updates
from ..observability.streaming_scope import StreamingScope
from .cancellation import CancellationToken
from .sse import ServerSentEvent, aiter_sse_events, iter_sse_events

logger = logging.getLogger(__name__)


class _StreamingUpdateIteratorBase:
    """State shared by the async and sync iterators."""

    def __init__(self, scope: StreamingScope, cancellation: Optional[CancellationToken] = None):
        self._scope = scope
        self._cancellation = cancellation
        self._pending: Deque[StreamingChatCompletionUpdate] = deque()
        self._response: Optional[httpx.Response] = None
        self._finished = False

        self._unregister: Optional[Callable[[], None]] = None
        if cancellation is not None:
            self._unregister = cancellation.register(self._scope.record_cancellation)

    @property
    def scope(self) -> StreamingScope:
        return self._scope

    @property
    def response(self) -> Optional[httpx.Response]:
        return self._response

    def _ensure_active(self) -> None:
        if self._finished:
            raise StreamStateError("The streaming response has already completed or been closed")

    def _raise_if_cancelled(self) -> None:
        if self._cancellation is not None:
            self._cancellation.raise_if_cancelled()

    def _take_pending(self) -> StreamingChatCompletionUpdate:
        update = self._pending.popleft()
        self._scope.record_update(update)
        return update

    def _buffer_event(self, event: ServerSentEvent) -> bool:
        """Queue the updates of one event. False for the terminal event."""
        if event.data == STREAM_TERMINAL_DATA:
            return False
        self._pending.extend(decode_updates(event.data))
        return True

    def _check_response(self, response: httpx.Response) -> None:
        self._response = response
        if response.is_closed or response.is_stream_consumed:
            raise StreamStateError("The response does not have a readable content stream")

    def _mark_finished(self) -> None:
        self._finished = True
        self._pending.clear()
        if self._unregister is not None:
            self._unregister()
            self._unregister = None


class AsyncStreamingUpdateIterator(_StreamingUpdateIteratorBase):
    """Async iterator of the updates of one streaming chat call."""

    def __init__(
        self,
        get_response: Callable[[], Awaitable[httpx.Response]],
        scope: StreamingScope,
        cancellation: Optional[CancellationToken] = None,
    ):
        super().__init__(scope, cancellation)
        self._get_response = get_response
        self._events: Optional[AsyncIterator[ServerSentEvent]] = None

    def __aiter__(self) -> "AsyncStreamingUpdateIterator":
        return self

    async def __anext__(self) -> StreamingChatCompletionUpdate:
        self._ensure_active()
        try:
            update = await self._advance()
        except asyncio.CancelledError:
            self._scope.record_cancellation()
            await self._release()
            raise
        except Exception as e:
            self._scope.record_exception(e)
            await self._release()
            raise

        if update is None:
            self._scope.complete()
            await self._release()
            raise StopAsyncIteration
        return update

    async def aclose(self) -> None:
        """Finalize the scope and release the response. Safe to call repeatedly."""
        if self._finished:
            return
        self._scope.complete()
        await self._release()

    async def __aenter__(self) -> "AsyncStreamingUpdateIterator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if isinstance(exc_val, asyncio.CancelledError):
            self._scope.record_cancellation()
        elif isinstance(exc_val, Exception):
            self._scope.record_exception(exc_val)
        await self.aclose()
        return False

    async def _advance(self) -> Optional[StreamingChatCompletionUpdate]:
        while True:
            # also checked after each pulled frame, before its updates are handed out
            self._raise_if_cancelled()
            if self._pending:
                return self._take_pending()

            if self._events is None:
                self._events = await self._open()

            try:
                event = await self._events.__anext__()
            except StopAsyncIteration:
                return None

            if not self._buffer_event(event):
                return None

    async def _open(self) -> AsyncIterator[ServerSentEvent]:
        response = await self._get_response()
        self._check_response(response)
        return aiter_sse_events(response)

    async def _release(self) -> None:
        if self._finished and self._events is None and self._response is None:
            return
        self._mark_finished()

        events, self._events = self._events, None
        if events is not None:
            try:
                await events.aclose()
            except Exception as e:
                logger.debug(f"Failed to close event stream: {e}")

        response, self._response = self._response, None
        if response is not None:
            try:
                await response.aclose()
            except Exception as e:
                logger.debug(f"Failed to close streaming response: {e}")


class StreamingUpdateIterator(_StreamingUpdateIteratorBase):
    """Iterator of the updates of one streaming chat call."""

    def __init__(
        self,
        get_response: Callable[[], httpx.Response],
        scope: StreamingScope,
        cancellation: Optional[CancellationToken] = None,
    ):
        super().__init__(scope, cancellation)
        self._get_response = get_response
        self._events: Optional[Iterator[ServerSentEvent]] = None

    def __iter__(self) -> "StreamingUpdateIterator":
        return self

    def __next__(self) -> StreamingChatCompletionUpdate:
        self._ensure_active()
        try:
            update = self._advance()
        except asyncio.CancelledError:
            self._scope.record_cancellation()
            self._release()
            raise
        except Exception as e:
            self._scope.record_exception(e)
            self._release()
            raise

        if update is None:
            self._scope.complete()
            self._release()
            raise StopIteration
        return update

    def close(self) -> None:
        """Finalize the scope and release the response. Safe to call repeatedly."""
        if self._finished:
            return
        self._scope.complete()
        self._release()

    def __enter__(self) -> "StreamingUpdateIterator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if isinstance(exc_val, asyncio.CancelledError):
            self._scope.record_cancellation()
        elif isinstance(exc_val, Exception):
            self._scope.record_exception(exc_val)
        self.close()
        return False

    def _advance(self) -> Optional[StreamingChatCompletionUpdate]:
        while True:
            # also checked after each pulled frame, before its updates are handed out
            self._raise_if_cancelled()
            if self._pending:
                return self._take_pending()

            if self._events is None:
                self._events = self._open()

            event = next(self._events, None)
            if event is None or not self._buffer_event(event):
                return None

    def _open(self) -> Iterator[ServerSentEvent]:
        response = self._get_response()
        self._check_response(response)
        return iter_sse_events(response)

    def _release(self) -> None:
        if self._finished and self._events is None and self._response is None:
            return
        self._mark_finished()

        events, self._events = self._events, None
        if events is not None:
            try:
                events.close()
            except Exception as e:
                logger.debug(f"Failed to close event stream: {e}")

        response, self._response = self._response, None
        if response is not None:
            try:
                response.close()
            except Exception as e:
                logger.debug(f"Failed to close streaming response: {e}")
