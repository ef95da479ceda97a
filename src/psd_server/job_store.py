"""
In-memory store for conversion jobs.

Jobs are immutable records. Every update replaces the stored record under a
lock, so concurrent tasks never observe a half-applied change.
"""

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Union

from .core.config import get_logger
from .core.exceptions import InvalidStateError, JobNotFoundError
from .models import (
    ConversionJob,
    ConversionReport,
    ConversionResult,
    JobError,
    JobStatus,
    ParsedDocument,
)

logger = get_logger("job_store")


class JobStore:
    def __init__(self):
        self._jobs: Dict[str, ConversionJob] = {}
        self._lock = threading.RLock()

    def create_job(self, file_name: str, file_path: Union[str, Path]) -> ConversionJob:
        now = datetime.now()
        job = ConversionJob(
            id=str(uuid.uuid4()),
            status=JobStatus.PENDING,
            file_name=file_name,
            file_path=Path(file_path),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._jobs[job.id] = job

        logger.info("Created job %s for %s", job.id, file_name)
        return job

    def get_job(self, job_id: str) -> Optional[ConversionJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def update_status(self, job_id: str, status: JobStatus) -> ConversionJob:
        """Move a job to a new status.

        Raises:
            JobNotFoundError: If the job does not exist
            InvalidStateError: If the job has already finished
        """
        with self._lock:
            current = self._get_or_raise(job_id)
            if current.status.is_finished:
                raise InvalidStateError(
                    f"Job {job_id} has already finished (status: {current.status.value})",
                    {"job_id": job_id, "status": current.status.value},
                )
            job = self._update(job_id, status=status)

        logger.debug("Job %s status: %s", job_id, status.value)
        return job

    def attach_parsed_data(self, job_id: str, parsed_data: ParsedDocument) -> ConversionJob:
        return self._update(job_id, parsed_data=parsed_data)

    def attach_result(self, job_id: str, result: ConversionResult) -> ConversionJob:
        """Record the result; the job finishes as completed or failed."""
        status = JobStatus.COMPLETED if result.success else JobStatus.FAILED
        return self._update(job_id, result=result, status=status)

    def attach_error(
        self,
        job_id: str,
        error: JobError,
        report: Optional[ConversionReport] = None,
    ) -> ConversionJob:
        """Fail the job with an error.

        When a report is given, a ``success=False`` result carrying it is
        stored alongside the error.
        """
        changes = {"error": error, "status": JobStatus.FAILED}
        if report is not None:
            changes["result"] = ConversionResult(success=False, report=report, error=error)
        return self._update(job_id, **changes)

    def mark_started(self, job_id: str) -> ConversionJob:
        """Atomically claim a pending job so it can only be started once."""
        with self._lock:
            job = self._get_or_raise(job_id)
            if job.status != JobStatus.PENDING or job.started_at is not None:
                raise InvalidStateError(
                    f"Job {job_id} cannot be started (status: {job.status.value})",
                    {"job_id": job_id, "status": job.status.value},
                )
            now = datetime.now()
            job = replace(job, started_at=now, updated_at=now)
            self._jobs[job_id] = job
            return job

    def delete_job(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def cleanup_old_jobs(self, max_age_seconds: float = 3600) -> int:
        """Drop idle jobs not updated within max_age_seconds, returning how many.

        Only finished jobs and pending jobs that were never started are
        removed; a job with a conversion in flight is kept regardless of age.
        """
        cutoff = datetime.now() - timedelta(seconds=max_age_seconds)
        with self._lock:
            stale = [
                job_id
                for job_id, job in self._jobs.items()
                if job.updated_at < cutoff and self._is_idle(job)
            ]
            for job_id in stale:
                self.delete_job(job_id)

        if stale:
            logger.info("Removed %d stale jobs", len(stale))
        return len(stale)

    def list_jobs(self) -> List[ConversionJob]:
        with self._lock:
            return list(self._jobs.values())

    @staticmethod
    def _is_idle(job: ConversionJob) -> bool:
        if job.status.is_finished:
            return True
        return job.status == JobStatus.PENDING and job.started_at is None

    def _get_or_raise(self, job_id: str) -> ConversionJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}", {"job_id": job_id})
        return job

    def _update(self, job_id: str, **changes) -> ConversionJob:
        with self._lock:
            job = self._get_or_raise(job_id)
            job = replace(job, updated_at=datetime.now(), **changes)
            self._jobs[job_id] = job
            return job
