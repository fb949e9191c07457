from dataclasses import dataclass
from functools import lru_cache
import os


def _to_bool(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: str | None, *, default: int, minimum: int) -> int:
    if value is None:
        return default
    parsed = int(value)
    return max(minimum, parsed)


def _to_float(value: str | None, *, default: float, minimum: float) -> float:
    if value is None:
        return default
    parsed = float(value)
    return max(minimum, parsed)


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    max_concurrent_jobs: int
    channel_capacity: int
    receive_poll_seconds: float
    allow_origin: str
    emit_done_event: bool
    job1_page_count: int
    job1_page_delay_seconds: float
    job2_default_path: str
    job2_delay_seconds: float


@lru_cache
def get_settings() -> Settings:
    return Settings(
        host=os.getenv("JOBSTREAM_HOST", "0.0.0.0"),
        port=_to_int(os.getenv("JOBSTREAM_PORT"), default=8080, minimum=1),
        max_concurrent_jobs=_to_int(
            os.getenv("JOBSTREAM_MAX_CONCURRENT_JOBS"), default=32, minimum=1
        ),
        channel_capacity=_to_int(os.getenv("JOBSTREAM_CHANNEL_CAPACITY"), default=1, minimum=1),
        receive_poll_seconds=_to_float(
            os.getenv("JOBSTREAM_RECEIVE_POLL_SECONDS"), default=0.1, minimum=0.01
        ),
        allow_origin=os.getenv("JOBSTREAM_ALLOW_ORIGIN", "*"),
        emit_done_event=_to_bool(os.getenv("JOBSTREAM_EMIT_DONE_EVENT"), default=False),
        job1_page_count=_to_int(os.getenv("JOB1_PAGE_COUNT"), default=5, minimum=0),
        job1_page_delay_seconds=_to_float(
            os.getenv("JOB1_PAGE_DELAY_SECONDS"), default=1.0, minimum=0.0
        ),
        job2_default_path=os.getenv("JOB2_DEFAULT_PATH", "."),
        job2_delay_seconds=_to_float(os.getenv("JOB2_DELAY_SECONDS"), default=0.5, minimum=0.0),
    )
