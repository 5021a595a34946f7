"""Pydantic models for the hosting platform's CI API responses."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class JobStatus(str, Enum):
    """Job status as reported by the platform.

    Statuses this version does not know about decode to UNKNOWN.
    """

    CREATED = "created"
    WAITING_FOR_RESOURCE = "waiting_for_resource"
    PREPARING = "preparing"
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "JobStatus":
        return cls.UNKNOWN

    @property
    def is_active(self) -> bool:
        return self in (JobStatus.PENDING, JobStatus.RUNNING)


class APIModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PipelineInfo(APIModel):
    """Pipeline summary as returned by the list endpoints."""

    id: int
    iid: Optional[int] = None
    project_id: Optional[int] = None
    status: str = ""
    source: str = ""
    ref: str = ""
    sha: str = ""
    web_url: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pipeline(PipelineInfo):
    """Full pipeline record."""

    before_sha: str = ""
    tag: bool = False
    yaml_errors: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    committed_at: Optional[datetime] = None
    duration: Optional[float] = None
    queued_duration: Optional[float] = None
    coverage: Optional[str] = None
    detailed_status: Optional[Dict[str, Any]] = None


class Job(APIModel):
    id: int
    name: str = ""
    stage: str = ""
    status: JobStatus = JobStatus.UNKNOWN
    ref: str = ""
    tag: bool = False
    allow_failure: bool = False
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration: Optional[float] = None
    queued_duration: Optional[float] = None
    failure_reason: Optional[str] = None
    web_url: str = ""
    pipeline: Optional[PipelineInfo] = None

    @field_validator("status", mode="before")
    @classmethod
    def _decode_status(cls, value: Any) -> JobStatus:
        if isinstance(value, JobStatus):
            return value
        return JobStatus(value)

    @property
    def pipeline_id(self) -> Optional[int]:
        return self.pipeline.id if self.pipeline is not None else None


class Commit(APIModel):
    id: str
    short_id: str = ""
    title: str = ""
    message: str = ""
    author_name: str = ""
    author_email: str = ""
    created_at: Optional[datetime] = None
    committed_date: Optional[datetime] = None
    web_url: str = ""
    status: Optional[str] = None
    last_pipeline: Optional[PipelineInfo] = None


class LintResult(APIModel):
    valid: bool
    errors: List[str] = []
    warnings: List[str] = []
    merged_yaml: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "LintResult":
        """Accept both the project lint payload and the legacy
        {"status": "valid"|"invalid"} form."""
        if "valid" not in data and "status" in data:
            data = {**data, "valid": data["status"] == "valid"}
        return cls.model_validate(data)
