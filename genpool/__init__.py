"""
Generation worker pool client

Submits image-generation jobs to a remote serverless GPU worker pool whose
request schema is not known in advance, polls them to completion and
normalizes the result.
"""

from .client import ImageJobClient
from .config import GenPoolConfig, PollConfig, load_config
from .errors import GenPoolError
from .models import GeneratedImage, GenerationRequest, HealthReport, JobHandle, JobStatus

__version__ = "1.0.0"

__all__ = [
    "ImageJobClient",
    "GenPoolConfig",
    "PollConfig",
    "load_config",
    "GenPoolError",
    "GeneratedImage",
    "GenerationRequest",
    "HealthReport",
    "JobHandle",
    "JobStatus",
]
