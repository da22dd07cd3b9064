"""
Server-sent event decoding over httpx responses.

Lines of a ``text/event-stream`` body are folded into ServerSentEvent frames:
a blank line dispatches the pending event, lines starting with ``:`` are
comments, and repeated ``data`` fields are joined with newlines.
"""

from dataclasses import dataclass
from typing import AsyncIterator, Iterator, List, Optional

import httpx


@dataclass(frozen=True)
class ServerSentEvent:
    """One decoded server-sent event."""
    data: str
    event: str = "message"
    id: Optional[str] = None
    retry: Optional[int] = None


class SSEDecoder:
    """Incremental line-based decoder for server-sent events."""

    def __init__(self):
        self._data: List[str] = []
        self._event: Optional[str] = None
        self._id: Optional[str] = None
        self._retry: Optional[int] = None

    def decode(self, line: str) -> Optional[ServerSentEvent]:
        """
        Feed one line (without its terminator).

        Returns:
            The dispatched event when ``line`` is blank and data is pending
        """
        if not line:
            return self.flush()

        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            if "\0" not in value:
                self._id = value
        elif field == "retry":
            try:
                self._retry = int(value)
            except ValueError:
                pass
        return None

    def flush(self) -> Optional[ServerSentEvent]:
        """Dispatch the pending event, if it carries any data."""
        if not self._data:
            self._event = None
            return None

        event = ServerSentEvent(
            data="\n".join(self._data),
            event=self._event or "message",
            id=self._id,
            retry=self._retry,
        )
        # id persists across events
        self._data = []
        self._event = None
        self._retry = None
        return event


async def aiter_sse_events(response: httpx.Response) -> AsyncIterator[ServerSentEvent]:
    """Lazily decode the events of a streamed async response."""
    decoder = SSEDecoder()
    async for line in response.aiter_lines():
        event = decoder.decode(line.rstrip("\r\n"))
        if event is not None:
            yield event

    event = decoder.flush()
    if event is not None:
        yield event


def iter_sse_events(response: httpx.Response) -> Iterator[ServerSentEvent]:
    """Lazily decode the events of a streamed sync response."""
    decoder = SSEDecoder()
    for line in response.iter_lines():
        event = decoder.decode(line.rstrip("\r\n"))
        if event is not None:
            yield event

    event = decoder.flush()
    if event is not None:
        yield event
