"""
Data models for generation requests, remote payloads and job results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from .schemas import SchemaVariant


class GenerationRequest(BaseModel):
    """Request for one generated image. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., description="Text prompt for image generation")
    negative_prompt: str = Field("", description="Negative prompt to avoid certain content")
    width: int = Field(512, gt=0, description="Image width in pixels")
    height: int = Field(512, gt=0, description="Image height in pixels")
    steps: int = Field(20, gt=0, description="Number of sampling steps")
    guidance_scale: float = Field(7.0, gt=0, description="Classifier-free guidance scale")
    sampler_name: str = Field("euler", description="Sampler name")
    seed: int = Field(-1, ge=-1, description="Random seed, -1 for random")

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("prompt must not be empty")
        return v

    @property
    def has_random_seed(self) -> bool:
        return self.seed == -1

    def with_seed(self, seed: int) -> "GenerationRequest":
        return self.model_copy(update={"seed": seed})


class JobStatus(str, Enum):
    """Job status as seen by the poller."""
    QUEUED = "QUEUED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @classmethod
    def from_remote(cls, value: Any) -> "JobStatus":
        """Map a remote status string; anything unexpected is UNKNOWN."""
        if not isinstance(value, str):
            return cls.UNKNOWN
        return _REMOTE_STATUS_MAP.get(value.strip().upper(), cls.UNKNOWN)


_REMOTE_STATUS_MAP = {
    "IN_QUEUE": JobStatus.QUEUED,
    "QUEUED": JobStatus.QUEUED,
    "IN_PROGRESS": JobStatus.IN_PROGRESS,
    "RUNNING": JobStatus.IN_PROGRESS,
    "COMPLETED": JobStatus.COMPLETED,
    "FAILED": JobStatus.FAILED,
    "CANCELLED": JobStatus.FAILED,
    "TIMED_OUT": JobStatus.FAILED,
}


@dataclass(frozen=True)
class JobHandle:
    """Remote job created by one accepted submission."""
    job_id: str
    variant: "SchemaVariant"
    endpoint_id: str
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def variant_name(self) -> str:
        return self.variant.name


@dataclass(frozen=True)
class PollResult:
    """Outcome of a single status query."""
    status: JobStatus
    output: Any = None
    error: Any = None
    execution_time_ms: Any = None
    attempt: int = 0


@dataclass(frozen=True)
class GeneratedImage:
    """Canonical result of a completed job."""
    data: bytes
    b64: str
    mime_type: str
    handle: JobHandle
    variant: "SchemaVariant"

    @property
    def job_id(self) -> str:
        return self.handle.job_id


@dataclass(frozen=True)
class HealthReport:
    """Worker pool availability as reported by the health surface."""
    workers_ready: int = 0
    workers_busy: int = 0
    workers_idle: int = 0
    jobs_in_queue: Optional[int] = None
    jobs_in_progress: Optional[int] = None
    jobs_completed: Optional[int] = None
    jobs_failed: Optional[int] = None

    @property
    def has_available_workers(self) -> bool:
        return (self.workers_ready + self.workers_idle) > 0


class SubmitResponse(BaseModel):
    """Response model for job submission."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, description="Remote job identifier")
    status: Optional[str] = Field(None, description="Initial job status")


class StatusResponse(BaseModel):
    """Response model for a job status query."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(None, description="Remote job identifier")
    status: Optional[str] = Field(None, description="Remote job status")
    output: Any = Field(None, description="Job output when completed")
    error: Any = Field(None, description="Remote error detail when failed")
    executionTime: Any = Field(None, description="Execution time in milliseconds, as reported")
    delayTime: Any = Field(None, description="Queue delay in milliseconds, as reported")


class WorkerCounts(BaseModel):
    """Worker counters from the health surface."""
    model_config = ConfigDict(extra="allow")

    ready: int = 0
    busy: int = 0
    idle: int = 0
    running: Optional[int] = None
    initializing: Optional[int] = None
    throttled: Optional[int] = None

    @field_validator("ready", "busy", "idle", mode="before")
    @classmethod
    def missing_count_is_zero(cls, v):
        return 0 if v is None else v


class JobCounts(BaseModel):
    """Job counters from the health surface."""
    model_config = ConfigDict(extra="allow")

    inQueue: Optional[int] = None
    inProgress: Optional[int] = None
    completed: Optional[int] = None
    failed: Optional[int] = None
    retried: Optional[int] = None


class HealthResponse(BaseModel):
    """Response model for the health check."""
    model_config = ConfigDict(extra="allow")

    workers: WorkerCounts = Field(default_factory=WorkerCounts)
    jobs: JobCounts = Field(default_factory=JobCounts)

    @field_validator("workers", "jobs", mode="before")
    @classmethod
    def missing_section_is_empty(cls, v):
        return {} if v is None else v

    def to_report(self) -> HealthReport:
        return HealthReport(
            workers_ready=self.workers.ready,
            workers_busy=self.workers.busy,
            workers_idle=self.workers.idle,
            jobs_in_queue=self.jobs.inQueue,
            jobs_in_progress=self.jobs.inProgress,
            jobs_completed=self.jobs.completed,
            jobs_failed=self.jobs.failed,
        )
