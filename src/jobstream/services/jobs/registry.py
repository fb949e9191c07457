from __future__ import annotations

from functools import lru_cache

from jobstream.services.jobs.types import Job


class JobRegistry:
    def __init__(self, jobs: list[Job] | None = None) -> None:
        self._jobs: dict[str, Job] = {}
        for job in jobs or []:
            self.register(job)

    def register(self, job: Job) -> None:
        if not job.name:
            raise ValueError("job name must not be empty")
        if job.name in self._jobs:
            raise ValueError(f"job already registered: {job.name}")
        self._jobs[job.name] = job

    def lookup(self, identifier: str) -> Job | None:
        return self._jobs.get(identifier)

    def names(self) -> list[str]:
        return list(self._jobs)

    def jobs(self) -> list[Job]:
        return list(self._jobs.values())

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)


def build_default_registry() -> JobRegistry:
    from jobstream.config import get_settings
    from jobstream.services.jobs.builtin import DirectoryListingJob, SimulatedPaginationJob

    settings = get_settings()
    return JobRegistry(
        [
            SimulatedPaginationJob(
                page_count=settings.job1_page_count,
                delay_seconds=settings.job1_page_delay_seconds,
            ),
            DirectoryListingJob(
                default_path=settings.job2_default_path,
                delay_seconds=settings.job2_delay_seconds,
            ),
        ]
    )


@lru_cache
def get_registry() -> JobRegistry:
    return build_default_registry()
