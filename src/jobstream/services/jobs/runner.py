from __future__ import annotations

from functools import lru_cache
from threading import BoundedSemaphore, Event, Thread

from jobstream.services.jobs.channel import Channel, ChannelClosedError, JobCancelled, JobSink
from jobstream.services.jobs.registry import JobRegistry, get_registry
from jobstream.services.jobs.types import StreamMessage

UNKNOWN_JOB_MESSAGE = "Invalid job selected."


class RunnerSaturatedError(RuntimeError):
    pass


class JobRun:
    """One job invocation: the job thread, its closer thread and their channel."""

    def __init__(self, *, job_name: str, channel: Channel, cancel_event: Event) -> None:
        self.job_name = job_name
        self.channel = channel
        self._cancel_event = cancel_event
        self._closer_thread: Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def receive(self) -> StreamMessage | None:
        return self.channel.receive()

    def receive_nowait(self) -> StreamMessage | None:
        return self.channel.receive_nowait()

    def cancel(self) -> None:
        self._cancel_event.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait until the job has returned and the channel is closed."""
        if self._closer_thread is None:
            return True
        self._closer_thread.join(timeout)
        return not self._closer_thread.is_alive()

    def _attach(self, closer_thread: Thread) -> None:
        self._closer_thread = closer_thread


class JobRunner:
    def __init__(
        self,
        registry: JobRegistry,
        *,
        max_concurrent_jobs: int = 32,
        channel_capacity: int = 1,
        poll_seconds: float = 0.1,
    ) -> None:
        self._registry = registry
        self._slots = BoundedSemaphore(max(1, max_concurrent_jobs))
        self._channel_capacity = channel_capacity
        self._poll_seconds = poll_seconds

    def start(self, job_name: str, parameter: str = "") -> JobRun:
        if not self._slots.acquire(blocking=False):
            raise RunnerSaturatedError("too many jobs running; try again later")

        cancel_event = Event()
        channel = Channel(
            capacity=self._channel_capacity,
            cancel_event=cancel_event,
            poll_seconds=self._poll_seconds,
        )
        run = JobRun(job_name=job_name, channel=channel, cancel_event=cancel_event)
        sink = JobSink(channel, job_name=job_name or "jobstream", cancel_event=cancel_event)

        job_thread = Thread(
            target=self._run_job,
            args=(job_name, parameter, sink),
            name=f"job-{job_name}",
            daemon=True,
        )
        closer_thread = Thread(
            target=self._close_when_done,
            args=(job_thread, channel),
            name=f"job-{job_name}-closer",
            daemon=True,
        )
        run._attach(closer_thread)

        try:
            job_thread.start()
            closer_thread.start()
        except RuntimeError:
            cancel_event.set()
            self._slots.release()
            raise
        return run

    def _run_job(self, job_name: str, parameter: str, sink: JobSink) -> None:
        job = self._registry.lookup(job_name)
        try:
            if job is None:
                sink.error(UNKNOWN_JOB_MESSAGE)
                return
            job.run(parameter, sink)
        except JobCancelled:
            print(f"[runner] job cancelled job={job_name}", flush=True)
        except Exception as exc:
            print(f"[runner] job crashed job={job_name} error={exc!r}", flush=True)
            try:
                sink.error(f"Job {job_name} failed: {exc}")
            except JobCancelled:
                pass

    def _close_when_done(self, job_thread: Thread, channel: Channel) -> None:
        try:
            job_thread.join()
            channel.close()
        except ChannelClosedError:
            pass
        finally:
            self._slots.release()


@lru_cache
def get_runner() -> JobRunner:
    from jobstream.config import get_settings

    settings = get_settings()
    return JobRunner(
        get_registry(),
        max_concurrent_jobs=settings.max_concurrent_jobs,
        channel_capacity=settings.channel_capacity,
        poll_seconds=settings.receive_poll_seconds,
    )
