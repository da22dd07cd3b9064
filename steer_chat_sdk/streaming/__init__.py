"""Streaming primitives: server-sent events, cancellation and update iterators."""

from .cancellation import CallContext, CancellationToken
from .iterator import AsyncStreamingUpdateIterator, StreamingUpdateIterator
from .sse import ServerSentEvent, SSEDecoder, aiter_sse_events, iter_sse_events

__all__ = [
    "AsyncStreamingUpdateIterator",
    "CallContext",
    "CancellationToken",
    "SSEDecoder",
    "ServerSentEvent",
    "StreamingUpdateIterator",
    "aiter_sse_events",
    "iter_sse_events",
]
