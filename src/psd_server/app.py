import time
from typing import Optional

from litestar import Litestar, Request, get
from litestar.datastructures import State
from litestar.di import Provide
from litestar.response import Response
from litestar.status_codes import HTTP_200_OK

from . import __version__
from .api.models import ErrorResponse, HealthResponse
from .controllers import ConversionController, UploadController
from .core.config import Settings, get_logger, get_settings, setup_logging
from .core.error_mapper import map_conversion_error
from .core.exceptions import PsdConversionError
from .service import ConversionService

logger = get_logger("app")

# Multipart framing on top of the largest accepted file
UPLOAD_OVERHEAD_BYTES = 1024 * 1024

# Track server start time for uptime calculation
_server_start_time = time.time()


@get("/health")
async def health(service: ConversionService) -> Response:
    """Health check endpoint"""
    unfinished = [job for job in service.store.list_jobs() if not job.status.is_finished]
    health_data = HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=int(time.time() - _server_start_time),
        active_jobs=len(unfinished),
    )
    return Response(health_data.to_payload(), status_code=HTTP_200_OK)


def conversion_error_handler(request: Request, exc: PsdConversionError) -> Response:
    code, message, status_code, suggestions = map_conversion_error(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)

    error_response = ErrorResponse.create_error(
        code=code,
        message=message,
        details=exc.details,
        suggestions=suggestions,
    )
    return Response(error_response.to_payload(), status_code=status_code)


def provide_service(state: State) -> ConversionService:
    """Provide the conversion service shared by all requests"""
    return state.service


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[ConversionService] = None,
) -> Litestar:
    settings = settings or get_settings()
    service = service or ConversionService.from_settings(settings)

    def startup() -> None:
        setup_logging(settings.log_level)
        settings.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Upload directory: %s", settings.upload_dir)
        logger.info("Max file size: %.2fMB", settings.max_file_size / 1024 / 1024)

    return Litestar(
        route_handlers=[health, UploadController, ConversionController],
        dependencies={"service": Provide(provide_service, sync_to_thread=False)},
        exception_handlers={PsdConversionError: conversion_error_handler},
        debug=settings.debug,
        state=State({"settings": settings, "service": service}),
        on_startup=[startup],
        request_max_body_size=settings.max_file_size + UPLOAD_OVERHEAD_BYTES,
    )


app = create_app()
