"""Pydantic request/response models for the REST API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from sprint_export.models import ExportBundle, QualityTier, check_file_name


# --- Response Models ---

class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    formats: List[str]


class FormatInfo(BaseModel):
    format: str
    extension: str
    mime_type: str


class FormatsResponse(BaseModel):
    formats: List[FormatInfo]
    quality_tiers: List[str] = Field(default_factory=QualityTier.values)


class ErrorResponse(BaseModel):
    """Body returned for a failed export."""
    error: str
    code: str
    recoverable: bool = False
    attempts: int = 0
    suggestions: List[str] = Field(default_factory=list)


# --- Request Models ---

class ExportRequestOptions(BaseModel):
    """Export options minus the format, which comes from the path."""
    quality: str = QualityTier.MEDIUM.value
    include_images: bool = True
    compression: bool = False
    interactive: bool = False
    batch_size: int = Field(default=10, ge=1)
    progressive: bool = False
    executive_format: Optional[str] = None
    file_name: Optional[str] = None
    track_analytics: bool = True

    @field_validator("file_name")
    @classmethod
    def validate_file_name(cls, value: Optional[str]) -> Optional[str]:
        return check_file_name(value)

    def with_format(self, format_name: str) -> Dict[str, Any]:
        return {"format": format_name, **self.model_dump(exclude_none=True)}


class ExportRequest(BaseModel):
    bundle: ExportBundle = Field(..., description="Presentation and sprint data to export")
    options: ExportRequestOptions = Field(default_factory=ExportRequestOptions)
