from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from jobstream.services.jobs.channel import JobSink


class MessageKind(str, Enum):
    PROGRESS = "progress"
    ERROR = "error"
    DONE = "done"


@dataclass(frozen=True)
class StreamMessage:
    kind: MessageKind
    text: str

    @classmethod
    def progress(cls, text: str) -> StreamMessage:
        return cls(kind=MessageKind.PROGRESS, text=text)

    @classmethod
    def error(cls, text: str) -> StreamMessage:
        return cls(kind=MessageKind.ERROR, text=text)

    @classmethod
    def done(cls) -> StreamMessage:
        return cls(kind=MessageKind.DONE, text="")


class Job(Protocol):
    name: str
    label: str
    fields_template: str | None

    def run(self, parameter: str, sink: JobSink) -> None: ...
