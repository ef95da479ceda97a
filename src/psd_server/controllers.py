import uuid

from litestar import Controller, Request, get, post
from litestar.response import Response
from litestar.status_codes import HTTP_200_OK, HTTP_202_ACCEPTED
from pydantic import ValidationError

from .api.models import (
    ConvertRequest,
    ConvertResponse,
    ResultResponse,
    StatusResponse,
    UploadResponse,
)
from .core.config import get_logger
from .core.exceptions import InvalidInputError
from .service import ConversionService

logger = get_logger("controllers")


def validate_job_id(job_id: str) -> str:
    try:
        uuid.UUID(job_id)
    except ValueError:
        raise InvalidInputError("Invalid job ID format", {"job_id": job_id})
    return job_id


class UploadController(Controller):
    path = "/upload"

    @post("")
    async def upload(self, request: Request, service: ConversionService) -> Response:
        """Accept a multipart PSD upload and create a pending job"""
        content_type = request.headers.get("content-type", "")
        if "multipart/form-data" not in content_type:
            raise InvalidInputError("Expected a multipart/form-data upload")

        form_data = await request.form()
        upload = form_data.get("file")
        if upload is None or not hasattr(upload, "read"):
            raise InvalidInputError("No file uploaded")

        content = await upload.read()
        service.cleanup_old_jobs()
        job = await service.register_upload(upload.filename, content)

        response = UploadResponse(
            job_id=job.id, file_name=job.file_name, file_size=len(content)
        )
        return Response(response.to_payload(), status_code=HTTP_200_OK)


class ConversionController(Controller):
    @post("/convert")
    async def start_conversion(
        self, request: Request, service: ConversionService
    ) -> Response:
        """Start converting an uploaded file in the background"""
        try:
            payload = await request.json()
        except Exception:
            raise InvalidInputError("Invalid JSON in request body")

        try:
            data = ConvertRequest.model_validate(payload or {})
        except ValidationError:
            raise InvalidInputError("Job ID is required")

        job = service.start_job(data.job_id)

        response = ConvertResponse(job_id=job.id)
        return Response(response.to_payload(), status_code=HTTP_202_ACCEPTED)

    @get("/status/{job_id:str}")
    async def get_status(self, job_id: str, service: ConversionService) -> Response:
        view = service.get_status(validate_job_id(job_id))
        return Response(StatusResponse.from_view(view).to_payload(), status_code=HTTP_200_OK)

    @get("/result/{job_id:str}")
    async def get_result(self, job_id: str, service: ConversionService) -> Response:
        result = service.get_result(validate_job_id(job_id))
        return Response(ResultResponse.from_result(result).to_payload(), status_code=HTTP_200_OK)
