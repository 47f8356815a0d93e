from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

from fastapi.responses import StreamingResponse

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: dict[str, Any]) -> str:
    return f"data: {json.dumps(event)}\n\n"


class SSEStream:
    """Push-style event stream consumed by a ``StreamingResponse``.

    Producers call ``send`` from a background task while the response
    iterates ``create_stream()``. Sends before the stream exists or after it
    is closed are dropped, so a pipeline can keep running after the client
    goes away.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str | None] | None = None
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def create_stream(self) -> AsyncIterator[str]:
        self._queue = asyncio.Queue()
        if self._closed:
            self._queue.put_nowait(None)
        return self._iterate(self._queue)

    async def _iterate(self, queue: asyncio.Queue[str | None]) -> AsyncIterator[str]:
        try:
            while True:
                chunk = await queue.get()
                if chunk is None:
                    break
                yield chunk
        finally:
            self._closed = True

    def send(self, event: dict[str, Any]) -> None:
        if self._queue is None or self._closed:
            return
        self._queue.put_nowait(encode_event(event))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._queue is not None:
            self._queue.put_nowait(None)


def create_sse_response(stream: SSEStream) -> StreamingResponse:
    return StreamingResponse(
        stream.create_stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
