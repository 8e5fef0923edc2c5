"""
Scrape job storage.

Jobs are written only by the orchestrator task that owns them and read by
progress pollers. Readers always receive a snapshot copy, and ``update``
swaps in a whole new record, so a poller never sees half of an iteration's
changes.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from padsplit.exceptions import NotFoundError
from padsplit.models import ScrapeJob


class JobStore(ABC):
    @abstractmethod
    def insert(self, job: ScrapeJob) -> None:
        ...

    @abstractmethod
    def get(self, job_id: str) -> ScrapeJob:
        """Snapshot of the job. Raises NotFoundError for unknown ids."""

    @abstractmethod
    def update(self, job_id: str, **changes: Any) -> ScrapeJob:
        """Apply ``changes`` as one unit and return the new snapshot."""

    @abstractmethod
    def all(self) -> List[ScrapeJob]:
        ...

    def __contains__(self, job_id: str) -> bool:
        try:
            self.get(job_id)
        except NotFoundError:
            return False
        return True


class InMemoryJobStore(JobStore):
    """Process-local store; contents are lost when the process exits."""

    def __init__(self) -> None:
        self._jobs: Dict[str, ScrapeJob] = {}

    def insert(self, job: ScrapeJob) -> None:
        if job.id in self._jobs:
            raise ValueError(f"Job {job.id} already exists")
        self._jobs[job.id] = job.model_copy(deep=True)

    def get(self, job_id: str) -> ScrapeJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Scrape job {job_id} not found")
        return job.model_copy(deep=True)

    def update(self, job_id: str, **changes: Any) -> ScrapeJob:
        current = self._jobs.get(job_id)
        if current is None:
            raise NotFoundError(f"Scrape job {job_id} not found")
        updated = current.model_copy(update=changes, deep=True)
        self._jobs[job_id] = updated
        return updated.model_copy(deep=True)

    def all(self) -> List[ScrapeJob]:
        return [job.model_copy(deep=True) for job in self._jobs.values()]

