"""
Runs a conversion job through parse, convert and publish.
"""

import asyncio
import time
from pathlib import Path

from . import parser
from .converter import Converter
from .core.config import get_logger
from .core.error_mapper import build_job_error
from .core.exceptions import JobNotFoundError
from .job_store import JobStore
from .models import ConversionMetrics, ConversionResult, JobStatus
from .publishers import BasePublisher
from .reporter import build_report

logger = get_logger("orchestrator")


class ConversionOrchestrator:
    def __init__(self, store: JobStore, converter: Converter, publisher: BasePublisher):
        self.store = store
        self.converter = converter
        self.publisher = publisher

    async def run(self, job_id: str) -> None:
        """Run one job to completion.

        Failures inside a stage are recorded on the job and never raised.

        Raises:
            JobNotFoundError: If the job does not exist; nothing is changed
        """
        job = self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job not found: {job_id}", {"job_id": job_id})

        start_time = time.monotonic()
        metrics = ConversionMetrics()
        stage = JobStatus.PARSING
        logger.info("Starting conversion process for job %s", job_id)

        try:
            self.store.update_status(job_id, JobStatus.PARSING)
            loop = asyncio.get_event_loop()
            data = await loop.run_in_executor(None, job.file_path.read_bytes)
            document = await loop.run_in_executor(
                None, parser.parse, data, parser.document_name(job.file_name)
            )
            self.store.attach_parsed_data(job_id, document)
            logger.info(
                "PSD parsed: %d top-level layers, %d in total",
                len(document.layers),
                sum(1 for _ in document.iter_layers()),
            )

            stage = JobStatus.CONVERTING
            self.store.update_status(job_id, JobStatus.CONVERTING)
            nodes, metrics = await self.converter.convert(document)

            stage = JobStatus.PUBLISHING
            self.store.update_status(job_id, JobStatus.PUBLISHING)
            published = await self.publisher.publish(document.name, nodes)
            logger.info("Published artifact %s for job %s", published.artifact_id, job_id)

            report = build_report(metrics, self._elapsed_ms(start_time))
            self.store.attach_result(
                job_id,
                ConversionResult(
                    success=True,
                    report=report,
                    artifact_url=published.artifact_url,
                    artifact_key=published.artifact_id,
                    root_node_id=published.root_node_id,
                ),
            )
            logger.info(
                "Conversion completed for job %s in %dms", job_id, report.processing_time_ms
            )
        except Exception as e:
            logger.error("Conversion failed for job %s during %s: %s", job_id, stage.value, e)
            error = build_job_error(e, stage=stage.value)
            report = build_report(metrics, self._elapsed_ms(start_time))
            try:
                self.store.attach_error(job_id, error, report)
            except JobNotFoundError:
                logger.warning("Job %s was removed before its failure could be recorded", job_id)
        finally:
            self._cleanup_file(job.file_path)

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)

    @staticmethod
    def _cleanup_file(file_path: Path) -> None:
        try:
            file_path.unlink()
            logger.debug("Cleaned up file: %s", file_path)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, e)
