"""
Scrape job orchestration.

A job scrapes a batch of zip codes strictly in order through one browser
session and one page. ``start`` returns the job id immediately and the loop
runs as a background asyncio task; pollers read snapshots from the job store
while the task, the job's only writer, records each zip code as it finishes.
"""
import asyncio
import re
import uuid
from collections.abc import Awaitable, Callable, Sequence
from typing import Dict, List, Optional

from loguru import logger

from padsplit import config
from padsplit.exceptions import NotFoundError
from padsplit.models import Credentials, JobProgress, JobResults, JobStatus, ScrapeJob, ZipRecord, ZipStatus
from padsplit.scrapers.auth import login
from padsplit.scrapers.browser import BrowserSessionManager
from padsplit.scrapers.zip_extractor import extract_zip_code
from padsplit.services.job_store import InMemoryJobStore, JobStore
from padsplit.utils.numbers import round_half_up
from padsplit.utils.time import elapsed_ms, now_utc

AuthenticateFn = Callable[..., Awaitable[bool]]
ExtractFn = Callable[..., Awaitable[ZipRecord]]
SleepFn = Callable[[float], Awaitable[None]]

ZIP_CODE_RE = re.compile(r"^\d{5}$")


def normalize_zip_codes(zip_codes: Optional[Sequence[str]]) -> List[str]:
    """
    Strip and validate a requested batch of zip codes.

    Blank entries are dropped. An empty heading pattern would match any
    zip's section, so every remaining code must be exactly five digits.

    Raises:
        ValueError: nothing left after dropping blanks, or a malformed code.
    """
    cleaned = [str(z).strip() for z in zip_codes or []]
    cleaned = [z for z in cleaned if z]
    if not cleaned:
        raise ValueError("No zip codes selected")
    invalid = [z for z in cleaned if not ZIP_CODE_RE.match(z)]
    if invalid:
        raise ValueError(f"Invalid zip codes: {', '.join(invalid)}")
    return cleaned


def _new_job_id() -> str:
    return f"scrape_{uuid.uuid4().hex[:12]}"


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class ScrapeOrchestrator:
    """Starts scrape jobs as background tasks and answers progress/results polls."""

    def __init__(
        self,
        store: Optional[JobStore] = None,
        sessions: Optional[BrowserSessionManager] = None,
        authenticate: Optional[AuthenticateFn] = None,
        extract: Optional[ExtractFn] = None,
        request_delay_ms: int = config.INTER_REQUEST_DELAY_MS,
        sleep: Optional[SleepFn] = None,
    ):
        self.store = store or InMemoryJobStore()
        self.sessions = sessions or BrowserSessionManager()
        self._authenticate = authenticate or login
        self._extract = extract or extract_zip_code
        self._sleep = sleep or asyncio.sleep
        self.request_delay_ms = request_delay_ms
        self._tasks: Dict[str, asyncio.Task] = {}

    def start(self, city_name: str, zip_codes: Sequence[str], credentials: Credentials) -> str:
        """Register a running job and spawn its scrape loop. Must be called inside an event loop."""
        zip_codes = normalize_zip_codes(zip_codes)

        job_id = _new_job_id()
        self.store.insert(
            ScrapeJob(
                id=job_id,
                city_name=city_name,
                total_zip_codes=len(zip_codes),
                start_time=now_utc(),
            )
        )

        task = asyncio.get_running_loop().create_task(
            self._run(job_id, city_name, zip_codes, credentials),
            name=job_id,
        )
        self._tasks[job_id] = task
        task.add_done_callback(lambda _t: self._tasks.pop(job_id, None))

        logger.info(
            "Started scrape job {job_id}: {count} zip codes for {city}",
            job_id=job_id,
            count=len(zip_codes),
            city=city_name,
        )
        return job_id

    async def _run(self, job_id: str, city_name: str, zip_codes: List[str], credentials: Credentials) -> None:
        log = logger.bind(job_id=job_id)
        session = None
        try:
            session = await self.sessions.acquire()
            page = await session.new_page()
            await self._authenticate(page, credentials.email, credentials.password)

            results: List[ZipRecord] = []
            total = len(zip_codes)
            for index, zip_code in enumerate(zip_codes, start=1):
                self.store.update(job_id, current_zip_code=zip_code)

                record = await self._extract_one(page, zip_code, city_name, log)
                results.append(record)

                changes = {
                    "results": list(results),
                    "completed_zip_codes": index,
                    "current_zip_code": zip_code,
                }
                if index == total:
                    changes.update(status=JobStatus.COMPLETED, end_time=now_utc())
                self.store.update(job_id, **changes)

                if index < total:
                    await self._sleep(self.request_delay_ms / 1000)

            log.success("Scrape job {job_id} completed ({total} zip codes)", job_id=job_id, total=total)
        except Exception as exc:
            log.error("Scrape job {job_id} failed: {error}", job_id=job_id, error=_error_message(exc))
            self.store.update(job_id, status=JobStatus.ERROR, error=_error_message(exc), end_time=now_utc())
        finally:
            if session is not None:
                await self.sessions.release(session)

    async def _extract_one(self, page, zip_code: str, city_name: str, log) -> ZipRecord:
        """One zip code; failures become an error row instead of aborting the batch."""
        try:
            record = await self._extract(page, zip_code)
        except Exception as exc:
            log.warning("Zip {zip_code} failed: {error}", zip_code=zip_code, error=_error_message(exc))
            return ZipRecord(zip_code=zip_code, city=city_name, status=ZipStatus.ERROR, error=_error_message(exc))
        return record.model_copy(update={"city": city_name})

    def get_job(self, job_id: str) -> ScrapeJob:
        return self.store.get(job_id)

    def progress(self, job_id: str) -> JobProgress:
        job = self.store.get(job_id)
        percent = 0
        if job.total_zip_codes:
            percent = round_half_up(job.completed_zip_codes / job.total_zip_codes * 100)
        return JobProgress(
            status=job.status,
            total_zip_codes=job.total_zip_codes,
            completed_zip_codes=job.completed_zip_codes,
            current_zip_code=job.current_zip_code,
            progress_percent=percent,
            error=job.error,
        )

    def results(self, job_id: str) -> JobResults:
        job = self.store.get(job_id)
        return JobResults(
            status=job.status,
            city_name=job.city_name,
            results=job.results,
            duration_ms=elapsed_ms(job.start_time, job.end_time),
        )

    async def wait(self, job_id: str) -> ScrapeJob:
        """Block until the job's task finishes and return the final snapshot."""
        if job_id not in self.store:
            raise NotFoundError(f"Scrape job {job_id} not found")
        task = self._tasks.get(job_id)
        if task is not None:
            await task
        return self.store.get(job_id)

    def running_jobs(self) -> List[ScrapeJob]:
        return [job for job in self.store.all() if job.status == JobStatus.RUNNING]
