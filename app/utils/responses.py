"""Generic response models for consistent API responses."""

from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from app.config.settings import APP_NAME, APP_VERSION

T = TypeVar("T")


class ResponseMetadata(BaseModel):
    """Metadata included in all API responses."""

    app_name: str = Field(default=APP_NAME)
    app_version: str = Field(default=APP_VERSION)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {
        "json_schema_extra": {
            "example": {
                "app_name": "Product Description Backend",
                "app_version": "1.0.0",
                "timestamp": "2025-07-03T15:58:36Z",
            }
        }
    }


class RecordResponse(BaseModel, Generic[T]):
    """Success response carrying a single stored record."""

    success: bool = Field(default=True)
    message: str = Field(default="Record created successfully")
    record: T
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class ErrorResponse(BaseModel):
    """Standard error response structure."""

    success: bool = Field(default=False)
    error: str
    detail: Optional[Any] = None
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)

    model_config = {
        "json_schema_extra": {
            "example": {
                "success": False,
                "error": "Missing required fields: keyFeatures",
                "detail": None,
                "metadata": {
                    "app_name": "Product Description Backend",
                    "app_version": "1.0.0",
                    "timestamp": "2025-07-03T15:58:36Z",
                },
            }
        }
    }


def record_response(
    record: T,
    message: str = "Record created successfully",
) -> RecordResponse[T]:
    """Create a record response."""
    return RecordResponse(success=True, message=message, record=record)


def error_response(
    error: str,
    detail: Optional[Any] = None,
) -> ErrorResponse:
    """Create an error response."""
    return ErrorResponse(success=False, error=error, detail=detail)
