from __future__ import annotations

from pathlib import Path
import stat

from jobstream.services.jobs.channel import JobSink


class SimulatedPaginationJob:
    """Pretends to page through a remote API, one page per delay."""

    name = "job1"
    label = "Simulated API pagination"
    fields_template: str | None = None

    def __init__(self, *, page_count: int = 5, delay_seconds: float = 1.0) -> None:
        self._page_count = page_count
        self._delay_seconds = delay_seconds

    def run(self, parameter: str, sink: JobSink) -> None:
        for page in range(1, self._page_count + 1):
            sink.sleep(self._delay_seconds)
            sink.progress(f"Fetched page {page} from API")


class DirectoryListingJob:
    """Reports each subdirectory of ``parameter``; files are skipped."""

    name = "job2"
    label = "Directory listing"
    fields_template: str | None = "job2_fields.html"

    def __init__(self, *, default_path: str = ".", delay_seconds: float = 0.5) -> None:
        self._default_path = default_path
        self._delay_seconds = delay_seconds

    def run(self, parameter: str, sink: JobSink) -> None:
        directory = Path(parameter or self._default_path)
        try:
            entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        except OSError as exc:
            sink.error(f"Error reading directory: {exc}")
            return

        for entry in entries:
            # lstat: a symlink to a directory is not listed
            if not stat.S_ISDIR(entry.lstat().st_mode):
                continue
            sink.progress(f"Found directory: {entry.name}")
            sink.sleep(self._delay_seconds)
