from io import BytesIO
from unittest.mock import AsyncMock, Mock

import pytest
from psd_tools import PSDImage

from psd_server.converter import Converter
from psd_server.core.exceptions import JobNotFoundError, PublishError
from psd_server.job_store import JobStore
from psd_server.models import ConversionMetrics, JobStatus, PublishResult
from psd_server.orchestrator import ConversionOrchestrator


@pytest.fixture
def psd_path(tmp_path):
    path = tmp_path / "upload.psd"
    buffer = BytesIO()
    PSDImage.new("RGB", (64, 32)).save(buffer)
    path.write_bytes(buffer.getvalue())
    return path


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def publisher():
    publisher = Mock()
    publisher.publish = AsyncMock(
        return_value=PublishResult(
            artifact_id="KEY",
            artifact_url="https://www.figma.com/file/KEY/Poster",
            root_node_id="0:1",
        )
    )
    return publisher


@pytest.fixture
def orchestrator(store, publisher, tmp_path):
    return ConversionOrchestrator(store, Converter(export_dir=tmp_path / "exported"), publisher)


class TestConversionOrchestrator:
    async def test_successful_run(self, orchestrator, store, publisher, psd_path):
        job = store.create_job("Poster.psd", psd_path)

        await orchestrator.run(job.id)

        finished = store.get_job(job.id)
        assert finished.status == JobStatus.COMPLETED
        assert finished.parsed_data.name == "Poster"
        assert finished.parsed_data.width == 64
        assert finished.error is None

        result = finished.result
        assert result.success is True
        assert result.artifact_key == "KEY"
        assert result.artifact_url == "https://www.figma.com/file/KEY/Poster"
        assert result.root_node_id == "0:1"
        assert result.report.total_layers == 0
        assert result.report.processing_time_ms >= 0

        name, nodes = publisher.publish.await_args.args
        assert name == "Poster"
        assert nodes[0].name == "Poster"
        assert not psd_path.exists()

    async def test_statuses_move_forward(self, orchestrator, store, psd_path):
        job = store.create_job("Poster.psd", psd_path)
        seen = []
        original_update = store.update_status

        def record(job_id, status):
            seen.append(status)
            return original_update(job_id, status)

        store.update_status = record

        await orchestrator.run(job.id)

        assert seen == [JobStatus.PARSING, JobStatus.CONVERTING, JobStatus.PUBLISHING]
        assert store.get_job(job.id).status == JobStatus.COMPLETED

    async def test_missing_job(self, orchestrator):
        with pytest.raises(JobNotFoundError):
            await orchestrator.run("missing")

    async def test_parse_failure(self, orchestrator, store, publisher, tmp_path):
        path = tmp_path / "broken.psd"
        path.write_bytes(b"not a psd at all")
        job = store.create_job("broken.psd", path)

        await orchestrator.run(job.id)

        failed = store.get_job(job.id)
        assert failed.status == JobStatus.FAILED
        assert failed.error.code == "PARSE_FAILED"
        assert failed.error.message == "The file could not be read as a PSD document."
        assert failed.error.details["stage"] == "parsing"
        assert failed.error.details["error_type"] == "ParseError"
        assert failed.result.success is False
        assert failed.result.error == failed.error
        publisher.publish.assert_not_called()
        assert not path.exists()

    async def test_publish_failure_keeps_metrics(self, orchestrator, store, publisher, psd_path):
        publisher.publish.side_effect = PublishError("401", kind="auth")
        job = store.create_job("Poster.psd", psd_path)

        await orchestrator.run(job.id)

        failed = store.get_job(job.id)
        assert failed.status == JobStatus.FAILED
        assert failed.error.code == "PUBLISH_FAILED"
        assert failed.error.details["stage"] == "publishing"
        assert failed.error.details["kind"] == "auth"
        assert failed.result.report.total_layers == 0

    async def test_job_removed_mid_run_still_cleans_upload(
        self, orchestrator, store, publisher, psd_path
    ):
        job = store.create_job("Poster.psd", psd_path)

        async def remove_then_fail(name, nodes):
            store.delete_job(job.id)
            raise PublishError("connection reset", kind="transport")

        publisher.publish.side_effect = remove_then_fail

        await orchestrator.run(job.id)

        assert store.get_job(job.id) is None
        assert not psd_path.exists()

    async def test_converter_failure(self, store, publisher, psd_path):
        converter = Mock()
        converter.convert = AsyncMock(side_effect=RuntimeError("walk exploded"))
        orchestrator = ConversionOrchestrator(store, converter, publisher)
        job = store.create_job("Poster.psd", psd_path)

        await orchestrator.run(job.id)

        failed = store.get_job(job.id)
        assert failed.status == JobStatus.FAILED
        assert failed.error.code == "CONVERSION_FAILED"
        assert failed.error.message == "An unexpected error occurred during conversion"
        assert failed.error.details["stage"] == "converting"

    async def test_missing_upload_fails_job(self, orchestrator, store, tmp_path):
        job = store.create_job("gone.psd", tmp_path / "gone.psd")

        await orchestrator.run(job.id)

        failed = store.get_job(job.id)
        assert failed.status == JobStatus.FAILED
        assert failed.error.details["stage"] == "parsing"
        assert failed.error.details["error_type"] == "FileNotFoundError"

    async def test_metrics_reach_report(self, store, publisher, psd_path):
        metrics = ConversionMetrics(total_layers=3, editable_layers=2, flattened_layers=1)
        converter = Mock()
        converter.convert = AsyncMock(return_value=([], metrics))
        orchestrator = ConversionOrchestrator(store, converter, publisher)
        job = store.create_job("Poster.psd", psd_path)

        await orchestrator.run(job.id)

        report = store.get_job(job.id).result.report
        assert report.total_layers == 3
        assert report.editable_layers == 2
        assert report.flattened_layers == 1
