"""
Error taxonomy for the worker pool client.

Every error carries the endpoint id, the job id when one is known and the name
of the schema variant in use, so callers can decide what to do without parsing
messages.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Classification of failures."""
    UNREACHABLE = "unreachable"
    REMOTE_SERVER_ERROR = "remote_server_error"
    AUTH_INVALID = "auth_invalid"
    ENDPOINT_NOT_FOUND = "endpoint_not_found"
    SCHEMA_REJECTED = "schema_rejected"
    MALFORMED_RESPONSE = "malformed_response"
    NO_VARIANT_ACCEPTED = "no_variant_accepted"
    REMOTE_JOB_FAILED = "remote_job_failed"
    TIMEOUT_EXCEEDED = "timeout_exceeded"
    CANCELLED = "cancelled"
    NO_IMAGE_IN_OUTPUT = "no_image_in_output"
    WORKERS_UNAVAILABLE = "workers_unavailable"
    ADMIN_FAILED = "admin_failed"
    CONFIG_INVALID = "config_invalid"


class GenPoolError(Exception):
    """Base exception for the genpool package."""

    kind: ErrorKind = ErrorKind.UNREACHABLE
    retryable: bool = False

    def __init__(
        self,
        message: str,
        endpoint_id: Optional[str] = None,
        job_id: Optional[str] = None,
        variant: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.endpoint_id = endpoint_id
        self.job_id = job_id
        self.variant = variant
        self.status_code = status_code
        self.details = details or {}

    def with_context(self, endpoint_id=None, job_id=None, variant=None) -> "GenPoolError":
        """Fill in context fields that are still unset and return self."""
        if self.endpoint_id is None:
            self.endpoint_id = endpoint_id
        if self.job_id is None:
            self.job_id = job_id
        if self.variant is None:
            self.variant = variant
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
            "endpoint_id": self.endpoint_id,
            "job_id": self.job_id,
            "variant": self.variant,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __str__(self) -> str:
        context = []
        if self.endpoint_id:
            context.append(f"endpoint={self.endpoint_id}")
        if self.job_id:
            context.append(f"job={self.job_id}")
        if self.variant:
            context.append(f"variant={self.variant}")
        if self.status_code is not None:
            context.append(f"http={self.status_code}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class ConfigError(GenPoolError):
    """Raised when configuration is missing or invalid."""
    kind = ErrorKind.CONFIG_INVALID


class TransportError(GenPoolError):
    """DNS, connect or timeout failure. Retryable within bounded attempts."""
    kind = ErrorKind.UNREACHABLE
    retryable = True


class RemoteServerError(TransportError):
    """HTTP 5xx (or 408/429) from the worker pool."""
    kind = ErrorKind.REMOTE_SERVER_ERROR


class AuthError(GenPoolError):
    """HTTP 401/403. The API key is missing or invalid; never retried."""
    kind = ErrorKind.AUTH_INVALID


class NotFoundError(GenPoolError):
    """HTTP 404. Fatal unless the caller switches to another endpoint id."""
    kind = ErrorKind.ENDPOINT_NOT_FOUND


class SchemaRejected(GenPoolError):
    """HTTP 4xx for a request body the deployment does not accept."""
    kind = ErrorKind.SCHEMA_REJECTED


class MalformedResponse(GenPoolError):
    """2xx response that is not JSON or lacks required fields."""
    kind = ErrorKind.MALFORMED_RESPONSE


class NoVariantAccepted(GenPoolError):
    """Every schema variant in the catalog was rejected."""
    kind = ErrorKind.NO_VARIANT_ACCEPTED

    def __init__(self, message: str, attempts: List[Any], **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = list(attempts)


class RemoteJobFailed(GenPoolError):
    """The remote job reached FAILED; `remote_error` is the payload verbatim."""
    kind = ErrorKind.REMOTE_JOB_FAILED

    def __init__(self, message: str, remote_error: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.remote_error = remote_error


class TimeoutExceeded(GenPoolError):
    """Poll budget exhausted without a terminal status.

    The job may still finish remotely; `handle` can be passed to
    `ImageJobClient.resume` to keep polling it.
    """
    kind = ErrorKind.TIMEOUT_EXCEEDED

    def __init__(self, message: str, handle: Any = None, attempts: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.handle = handle
        self.attempts = attempts


class JobCancelled(GenPoolError):
    """Local polling stopped by the caller. The remote job keeps running."""
    kind = ErrorKind.CANCELLED

    def __init__(self, message: str, handle: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.handle = handle


class NoImageInOutput(GenPoolError):
    """COMPLETED job whose output holds no recognizable image."""
    kind = ErrorKind.NO_IMAGE_IN_OUTPUT


class WorkersUnavailable(GenPoolError):
    """Health gate refused submission because no worker is ready or idle."""
    kind = ErrorKind.WORKERS_UNAVAILABLE

    def __init__(self, message: str, report: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.report = report


class AdminError(GenPoolError):
    """Administrative GraphQL call returned errors."""
    kind = ErrorKind.ADMIN_FAILED
