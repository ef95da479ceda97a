"""
Conversion service: accepts uploads, starts jobs in the background and
projects job state for API clients.
"""

import asyncio
import time
import uuid
from pathlib import Path
from typing import Optional, Set

from .converter import Converter
from .core.config import Settings, get_logger
from .core.exceptions import (
    FileTooLargeError,
    InvalidInputError,
    InvalidStateError,
    JobNotFoundError,
)
from .image_exporter import ImageExporter, cleanup_exported_images
from .job_store import JobStore
from .models import (
    ConversionJob,
    ConversionReport,
    ConversionResult,
    JobStatus,
    JobStatusView,
)
from .orchestrator import ConversionOrchestrator
from .publishers import create_publisher

logger = get_logger("service")

STATUS_MESSAGES = {
    JobStatus.PENDING: "Job is pending",
    JobStatus.PARSING: "Parsing PSD file...",
    JobStatus.CONVERTING: "Converting to Figma format...",
    JobStatus.PUBLISHING: "Creating output file...",
    JobStatus.COMPLETED: "Conversion completed successfully",
    JobStatus.FAILED: "Conversion failed",
}


def get_status_message(status) -> str:
    try:
        return STATUS_MESSAGES[JobStatus(status)]
    except ValueError:
        return "Unknown status"


class ConversionService:
    def __init__(
        self,
        settings: Settings,
        store: JobStore,
        orchestrator: ConversionOrchestrator,
    ):
        self.settings = settings
        self.store = store
        self.orchestrator = orchestrator
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConversionService":
        store = JobStore()
        converter = Converter(ImageExporter(), settings.resolved_export_dir)
        orchestrator = ConversionOrchestrator(store, converter, create_publisher(settings))
        return cls(settings, store, orchestrator)

    async def register_upload(self, file_name: str, content: bytes) -> ConversionJob:
        """Validate an uploaded file, store it and create a pending job.

        Raises:
            InvalidInputError: If the file is empty or not an allowed type
            FileTooLargeError: If the file exceeds the configured limit
        """
        self._validate_upload(file_name, content)

        suffix = Path(file_name).suffix.lower()
        file_path = self.settings.upload_dir / f"{uuid.uuid4()}{suffix}"

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._write_upload, file_path, content)

        logger.info("Stored upload %s (%d bytes) at %s", file_name, len(content), file_path)
        return self.store.create_job(file_name, file_path)

    def start_job(self, job_id: str) -> ConversionJob:
        """Start a pending job in the background and return immediately.

        Raises:
            JobNotFoundError: If the job does not exist
            InvalidStateError: If the job is not pending or already started
        """
        job = self.store.mark_started(job_id)

        task = asyncio.create_task(self.orchestrator.run(job_id))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

        logger.info("Started conversion for job %s", job_id)
        return job

    def get_status(self, job_id: str) -> JobStatusView:
        job = self._get_job(job_id)
        return JobStatusView(
            id=job.id,
            status=job.status.value,
            message=get_status_message(job.status),
            result=job.result,
            error_message=job.error.message if job.error else None,
        )

    def get_result(self, job_id: str) -> ConversionResult:
        """Return the result of a finished job.

        Raises:
            JobNotFoundError: If the job does not exist
            InvalidStateError: If the job has not finished yet
        """
        job = self._get_job(job_id)
        if not job.status.is_finished:
            raise InvalidStateError(
                "Conversion is not yet complete",
                {"job_id": job_id, "status": job.status.value},
            )

        if job.result is not None:
            return job.result

        return ConversionResult(
            success=False,
            report=ConversionReport(
                total_layers=0,
                editable_layers=0,
                flattened_layers=0,
                unsupported_features=(),
                processing_time_ms=0,
                warnings=(),
            ),
            error=job.error,
        )

    async def wait_for_completion(
        self,
        job_id: str,
        interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> JobStatusView:
        """Poll a job until it finishes.

        Raises:
            TimeoutError: If the job is still running after ``timeout`` seconds;
                the job itself keeps running
        """
        interval = self.settings.poll_interval_seconds if interval is None else interval
        timeout = self.settings.poll_timeout_seconds if timeout is None else timeout
        deadline = time.monotonic() + timeout

        while True:
            view = self.get_status(job_id)
            if JobStatus(view.status).is_finished:
                return view
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Conversion timeout for job {job_id}")
            await asyncio.sleep(interval)

    def cleanup_old_jobs(self) -> int:
        """Drop stale jobs and the exported images older than the job TTL."""
        ttl = self.settings.job_ttl_seconds
        removed = self.store.cleanup_old_jobs(ttl)
        cleanup_exported_images(self.settings.resolved_export_dir, max_age_seconds=ttl)
        return removed

    def _get_job(self, job_id: str) -> ConversionJob:
        job = self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}", {"job_id": job_id})
        return job

    def _validate_upload(self, file_name: str, content: bytes) -> None:
        suffix = Path(file_name or "").suffix.lower()
        if suffix not in self.settings.allowed_extensions:
            allowed = ", ".join(self.settings.allowed_extensions)
            raise InvalidInputError(
                f"Only {allowed} files are allowed",
                {"file_name": file_name},
            )

        if not content:
            raise InvalidInputError("Uploaded file is empty", {"file_name": file_name})

        if len(content) > self.settings.max_file_size:
            raise FileTooLargeError(
                f"File size {len(content)} exceeds limit {self.settings.max_file_size}",
                {"size": len(content), "limit": self.settings.max_file_size},
            )

    @staticmethod
    def _write_upload(file_path: Path, content: bytes) -> None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Conversion task failed: %s", error)
