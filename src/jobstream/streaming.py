from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any

import anyio
from fastapi.responses import StreamingResponse

from jobstream.services.jobs import ChannelEmpty, JobRun, MessageKind, StreamMessage

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"
STREAMING_UNSUPPORTED_MESSAGE = "Streaming unsupported!"

FlushCheck = Callable[[Mapping[str, Any]], bool]
DisconnectCheck = Callable[[], Awaitable[bool]]


class StreamingUnsupportedError(RuntimeError):
    pass


def supports_incremental_flush(scope: Mapping[str, Any]) -> bool:
    # ASGI servers send every http.response.body chunk as it comes,
    # close-delimited for HTTP/1.0 clients, chunked otherwise.
    return scope.get("type") == "http"


def get_flush_check() -> FlushCheck:
    return supports_incremental_flush


def ensure_streaming_supported(scope: Mapping[str, Any], flush_check: FlushCheck = supports_incremental_flush) -> None:
    if not flush_check(scope):
        raise StreamingUnsupportedError(STREAMING_UNSUPPORTED_MESSAGE)


def event_stream_headers(*, allow_origin: str = "*") -> dict[str, str]:
    return {
        "Content-Type": EVENT_STREAM_MEDIA_TYPE,
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "Access-Control-Allow-Origin": allow_origin,
        "X-Accel-Buffering": "no",
    }


def format_frame(message: StreamMessage) -> str:
    """Render one server-sent event.

    Progress lines use the default event type so plain ``EventSource.onmessage``
    handlers see them; errors and completion get their own ``event:`` line.
    """
    lines: list[str] = []
    if message.kind is not MessageKind.PROGRESS:
        lines.append(f"event: {message.kind.value}")
    for text_line in message.text.splitlines() or [""]:
        lines.append(f"data: {text_line}")
    return "\n".join(lines) + "\n\n"


async def forward_events(
    run: JobRun,
    *,
    emit_done: bool = False,
    poll_seconds: float = 0.1,
    is_disconnected: DisconnectCheck | None = None,
) -> AsyncIterator[str]:
    """Yield one frame per channel message until the channel is closed and drained.

    The loop never blocks a worker thread: an empty channel is re-checked after a
    cancellable ``anyio.sleep``, and the client connection is checked while idle.
    Leaving the loop for any reason cancels the job so its thread stops at the
    next send or sleep.
    """
    try:
        while True:
            try:
                message = run.receive_nowait()
            except ChannelEmpty:
                if is_disconnected is not None and await is_disconnected():
                    print(f"[stream] client disconnected job={run.job_name}", flush=True)
                    return
                await anyio.sleep(poll_seconds)
                continue
            if message is None:
                break
            yield format_frame(message)
        if emit_done and not run.cancelled:
            yield format_frame(StreamMessage.done())
    finally:
        if not run.channel.closed or run.cancelled:
            print(f"[stream] stream closed early job={run.job_name}", flush=True)
        run.cancel()


def event_stream_response(
    run: JobRun,
    *,
    allow_origin: str = "*",
    emit_done: bool = False,
    poll_seconds: float = 0.1,
    is_disconnected: DisconnectCheck | None = None,
) -> StreamingResponse:
    return StreamingResponse(
        forward_events(
            run,
            emit_done=emit_done,
            poll_seconds=poll_seconds,
            is_disconnected=is_disconnected,
        ),
        status_code=200,
        media_type=EVENT_STREAM_MEDIA_TYPE,
        headers=event_stream_headers(allow_origin=allow_origin),
    )
