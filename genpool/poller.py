"""
Status poller.

The worker pool has no push channel, so completion is discovered by querying
/status/{job_id} every `interval_ms` until a terminal state or until the
attempt budget runs out.

Stopping the poller (cancel event or deadline) only stops local polling; the
remote job is not cancelled and may keep running on a worker.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Optional

from pydantic import ValidationError

from .config import PollConfig
from .errors import (
    GenPoolError,
    JobCancelled,
    MalformedResponse,
    RemoteJobFailed,
    TimeoutExceeded,
    TransportError,
)
from .events import EventBus, EventType
from .extractor import ResultExtractor
from .models import GeneratedImage, JobHandle, JobStatus, PollResult, StatusResponse
from .transport import EndpointClient

logger = logging.getLogger(__name__)

TERMINAL_MEMORY = 1024


class StatusPoller:
    """Drives a job handle to a terminal state."""

    def __init__(self, client: EndpointClient, extractor: Optional[ResultExtractor] = None,
                 events: Optional[EventBus] = None, default_config: Optional[PollConfig] = None):
        self.client = client
        self.extractor = extractor or ResultExtractor()
        self.events = events or EventBus()
        self.default_config = default_config or PollConfig()
        self._terminal: "OrderedDict[str, PollResult]" = OrderedDict()
        self._lock = threading.Lock()

    def terminal_result(self, job_id: str) -> Optional[PollResult]:
        with self._lock:
            return self._terminal.get(job_id)

    def _remember(self, job_id: str, result: PollResult) -> None:
        with self._lock:
            self._terminal[job_id] = result
            self._terminal.move_to_end(job_id)
            while len(self._terminal) > TERMINAL_MEMORY:
                self._terminal.popitem(last=False)

    def check_status(self, handle: JobHandle, attempt: int = 0) -> PollResult:
        """Issue one status query. Malformed payloads come back as UNKNOWN."""
        try:
            data = self.client.get_json(f"status/{handle.job_id}", timeout=self.client.config.status_timeout)
        except MalformedResponse as e:
            logger.warning(f"Malformed status response for job {handle.job_id}: {e}")
            return PollResult(status=JobStatus.UNKNOWN, error=e.message, attempt=attempt)

        try:
            response = StatusResponse(**data)
        except ValidationError as e:
            logger.warning(f"Unexpected status payload for job {handle.job_id}: {e}")
            return PollResult(status=JobStatus.UNKNOWN, error=str(e), attempt=attempt)

        status = JobStatus.from_remote(response.status)
        if status is JobStatus.UNKNOWN:
            logger.warning(f"Unrecognized status {response.status!r} for job {handle.job_id}")
        return PollResult(
            status=status,
            output=response.output,
            error=response.error,
            execution_time_ms=response.executionTime,
            attempt=attempt,
        )

    def _wait_interval(self, handle: JobHandle, seconds: float, cancel_event: Optional[threading.Event],
                       deadline: Optional[float], attempt: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise self._cancelled(handle)

        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise self._deadline_passed(handle, attempt)
            seconds = min(seconds, remaining)

        if cancel_event is not None:
            if cancel_event.wait(seconds):
                raise self._cancelled(handle)
        elif seconds > 0:
            time.sleep(seconds)

        if deadline is not None and time.monotonic() >= deadline:
            raise self._deadline_passed(handle, attempt)

    def _cancelled(self, handle: JobHandle) -> JobCancelled:
        logger.info(f"Polling of job {handle.job_id} cancelled; the remote job may still be running")
        return JobCancelled(
            "Polling cancelled by caller; remote job was not cancelled",
            handle=handle,
            endpoint_id=handle.endpoint_id,
            job_id=handle.job_id,
            variant=handle.variant_name,
        )

    def _deadline_passed(self, handle: JobHandle, attempt: int) -> TimeoutExceeded:
        return TimeoutExceeded(
            f"Deadline passed after {attempt} status queries",
            handle=handle,
            attempts=attempt,
            endpoint_id=handle.endpoint_id,
            job_id=handle.job_id,
            variant=handle.variant_name,
        )

    def _finish(self, handle: JobHandle, result: PollResult) -> PollResult:
        if result.status is JobStatus.FAILED:
            raise RemoteJobFailed(
                f"Remote job failed: {result.error}",
                remote_error=result.error,
                endpoint_id=handle.endpoint_id,
                job_id=handle.job_id,
                variant=handle.variant_name,
            )
        return result

    def wait(self, handle: JobHandle, config: Optional[PollConfig] = None,
             cancel_event: Optional[threading.Event] = None, deadline: Optional[float] = None) -> PollResult:
        """
        Poll until COMPLETED and return that PollResult.

        Args:
            handle: Job to poll
            config: Interval and attempt budget (defaults to the poller's config)
            cancel_event: Set it from another thread to stop polling
            deadline: `time.monotonic()` value after which polling stops

        Raises:
            RemoteJobFailed: terminal FAILED status
            TimeoutExceeded: attempts or deadline exhausted
            JobCancelled: cancel_event was set
            TransportError: more consecutive transport failures than allowed
            AuthError, NotFoundError: fatal HTTP errors
        """
        config = config or self.default_config

        cached = self.terminal_result(handle.job_id)
        if cached is not None:
            logger.debug(f"Job {handle.job_id} already {cached.status.value}; not polling again")
            return self._finish(handle, cached)

        interval = config.interval_ms / 1000.0
        transport_errors = 0

        for attempt in range(1, config.max_attempts + 1):
            self._wait_interval(handle, interval, cancel_event, deadline, attempt - 1)

            try:
                result = self.check_status(handle, attempt)
            except TransportError as e:
                transport_errors += 1
                e.with_context(job_id=handle.job_id, variant=handle.variant_name)
                logger.warning(
                    f"Status query {attempt}/{config.max_attempts} for job {handle.job_id} failed "
                    f"({transport_errors}/{config.max_transport_errors}): {e}"
                )
                self.events.emit(
                    EventType.TRANSPORT_RETRY,
                    endpoint_id=handle.endpoint_id,
                    job_id=handle.job_id,
                    variant=handle.variant_name,
                    attempt=attempt,
                    detail={"error": str(e), "consecutive": transport_errors},
                )
                if transport_errors > config.max_transport_errors:
                    raise
                continue
            except GenPoolError as e:
                e.with_context(job_id=handle.job_id, variant=handle.variant_name)
                raise

            transport_errors = 0
            logger.info(f"Job {handle.job_id} attempt {attempt}/{config.max_attempts}: {result.status.value}")
            self.events.emit(
                EventType.POLL_TICK,
                endpoint_id=handle.endpoint_id,
                job_id=handle.job_id,
                variant=handle.variant_name,
                status=result.status.value,
                attempt=attempt,
            )

            if result.status.is_terminal:
                self._remember(handle.job_id, result)
                self.events.emit(
                    EventType.TERMINAL_STATE,
                    endpoint_id=handle.endpoint_id,
                    job_id=handle.job_id,
                    variant=handle.variant_name,
                    status=result.status.value,
                    attempt=attempt,
                    detail={"execution_time_ms": result.execution_time_ms},
                )
                return self._finish(handle, result)

        raise TimeoutExceeded(
            f"Job did not reach a terminal state after {config.max_attempts} status queries",
            handle=handle,
            attempts=config.max_attempts,
            endpoint_id=handle.endpoint_id,
            job_id=handle.job_id,
            variant=handle.variant_name,
        )

    def poll(self, handle: JobHandle, config: Optional[PollConfig] = None,
             cancel_event: Optional[threading.Event] = None, deadline: Optional[float] = None) -> GeneratedImage:
        """Poll to completion and extract the generated image."""
        result = self.wait(handle, config=config, cancel_event=cancel_event, deadline=deadline)
        return self.extractor.extract(result.output, handle)
