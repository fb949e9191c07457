from __future__ import annotations

import queue
from threading import Event, Lock
from typing import cast

from jobstream.services.jobs.types import StreamMessage


class JobCancelled(Exception):
    """Raised inside a job when its run has been cancelled."""


class ChannelClosedError(RuntimeError):
    pass


class ChannelEmpty(Exception):
    """Nothing to read yet; the channel is still open."""


_CLOSED = object()


class Channel:
    """Bounded single-producer/single-consumer message conduit for one job run.

    Blocking calls poll in ``poll_seconds`` slices so that a cancelled run never
    leaves a thread parked on a full or empty queue.
    """

    def __init__(self, *, capacity: int = 1, cancel_event: Event, poll_seconds: float = 0.1) -> None:
        self._queue: queue.Queue[object] = queue.Queue(maxsize=max(1, capacity))
        self._cancel_event = cancel_event
        self._poll_seconds = poll_seconds
        self._lock = Lock()
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: StreamMessage) -> None:
        if self._closed:
            raise ChannelClosedError("send on closed channel")
        self._put(message)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosedError("channel already closed")
            self._closed = True
        try:
            self._put(_CLOSED)
        except JobCancelled:
            # receive() stops on the cancel event, nobody needs the marker
            pass

    def receive(self) -> StreamMessage | None:
        if self._drained:
            return None
        while True:
            try:
                item = self._queue.get(timeout=self._poll_seconds)
            except queue.Empty:
                if self._cancel_event.is_set():
                    return None
                continue
            return self._unwrap(item)

    def receive_nowait(self) -> StreamMessage | None:
        if self._drained:
            return None
        try:
            item = self._queue.get_nowait()
        except queue.Empty:
            if self._cancel_event.is_set():
                return None
            raise ChannelEmpty() from None
        return self._unwrap(item)

    def _unwrap(self, item: object) -> StreamMessage | None:
        if item is _CLOSED:
            self._drained = True
            return None
        return cast(StreamMessage, item)

    def _put(self, item: object) -> None:
        while True:
            if self._cancel_event.is_set():
                raise JobCancelled()
            try:
                self._queue.put(item, timeout=self._poll_seconds)
            except queue.Full:
                continue
            return


class JobSink:
    """Send-only handle handed to a running job."""

    def __init__(self, channel: Channel, *, job_name: str, cancel_event: Event) -> None:
        self._channel = channel
        self._job_name = job_name
        self._cancel_event = cancel_event

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def progress(self, text: str) -> None:
        self._emit(StreamMessage.progress(text))

    def error(self, text: str) -> None:
        self._emit(StreamMessage.error(text))

    def sleep(self, seconds: float) -> None:
        if self._cancel_event.wait(seconds):
            raise JobCancelled()

    def _emit(self, message: StreamMessage) -> None:
        print(f"[{self._job_name}] {message.text}", flush=True)
        self._channel.send(message)
