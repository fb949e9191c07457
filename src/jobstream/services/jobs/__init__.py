from jobstream.services.jobs.channel import Channel, ChannelClosedError, ChannelEmpty, JobCancelled, JobSink
from jobstream.services.jobs.registry import JobRegistry, build_default_registry, get_registry
from jobstream.services.jobs.runner import (
    UNKNOWN_JOB_MESSAGE,
    JobRun,
    JobRunner,
    RunnerSaturatedError,
    get_runner,
)
from jobstream.services.jobs.types import Job, MessageKind, StreamMessage

__all__ = [
    "UNKNOWN_JOB_MESSAGE",
    "Channel",
    "ChannelClosedError",
    "ChannelEmpty",
    "Job",
    "JobCancelled",
    "JobRegistry",
    "JobRun",
    "JobRunner",
    "JobSink",
    "MessageKind",
    "RunnerSaturatedError",
    "StreamMessage",
    "build_default_registry",
    "get_registry",
    "get_runner",
]
