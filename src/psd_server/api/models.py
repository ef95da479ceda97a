from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models import ConversionResult, JobStatusView


class ApiModel(BaseModel):
    """Base for payloads exchanged with API clients, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ErrorDetail(ApiModel):
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
    suggestions: List[str] = Field(default_factory=list)


class ErrorResponse(ApiModel):
    success: bool = False
    error: ErrorDetail

    @classmethod
    def create_error(
        cls,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> "ErrorResponse":
        return cls(
            error=ErrorDetail(
                code=code,
                message=message,
                details=details or {},
                suggestions=suggestions or [],
            )
        )


class HealthResponse(ApiModel):
    status: str
    version: str
    uptime_seconds: int
    active_jobs: int


class UploadResponse(ApiModel):
    success: bool = True
    job_id: str
    file_name: str
    file_size: int
    message: str = "File uploaded successfully. Ready for conversion."


class ConvertRequest(ApiModel):
    job_id: str = Field(min_length=1)


class ConvertResponse(ApiModel):
    success: bool = True
    job_id: str
    message: str = "Conversion started"


class StatusResponse(ApiModel):
    job_id: str
    status: str
    message: str
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def from_view(cls, view: JobStatusView) -> "StatusResponse":
        return cls(
            job_id=view.id,
            status=view.status,
            message=view.message,
            result=view.result.to_dict() if view.result else None,
            error=view.error_message,
        )


class ResultResponse(ApiModel):
    success: bool
    result: Dict[str, Any]

    @classmethod
    def from_result(cls, result: ConversionResult) -> "ResultResponse":
        return cls(success=result.success, result=result.to_dict())
