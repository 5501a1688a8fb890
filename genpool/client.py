"""
Image job client: negotiate -> submit -> poll -> extract.
"""

import logging
import random
import threading
import time
from typing import Optional

import requests

from .config import GenPoolConfig, PollConfig
from .errors import WorkersUnavailable
from .events import EventBus
from .extractor import ResultExtractor
from .health import HealthChecker
from .models import GeneratedImage, GenerationRequest, HealthReport, JobHandle
from .negotiator import PreferredVariantCache, SchemaNegotiator
from .poller import StatusPoller
from .schemas import build_catalog
from .submitter import JobSubmitter
from .transport import EndpointClient

logger = logging.getLogger(__name__)

MAX_SEED = 2**31 - 1

# Shared by every client in the process unless a cache is passed explicitly.
_default_cache = PreferredVariantCache()


class ImageJobClient:
    """High-level client for one worker pool endpoint."""

    def __init__(self, config: GenPoolConfig, session: Optional[requests.Session] = None,
                 events: Optional[EventBus] = None, cache: Optional[PreferredVariantCache] = None):
        self.config = config
        self.events = events or EventBus()
        self.http = EndpointClient(config.endpoint, session=session)
        self.catalog = build_catalog(
            checkpoint_name=config.negotiation.checkpoint_name,
            names=config.negotiation.variants,
        )
        self.health = HealthChecker(self.http)
        self.submitter = JobSubmitter(self.http)
        self.negotiator = SchemaNegotiator(
            self.submitter,
            self.catalog,
            cache=cache if cache is not None else _default_cache,
            events=self.events,
        )
        self.poller = StatusPoller(
            self.http,
            extractor=ResultExtractor(),
            events=self.events,
            default_config=config.polling,
        )

    @property
    def endpoint_id(self) -> str:
        return self.config.endpoint.endpoint_id

    def check_health(self) -> HealthReport:
        return self.health.check_health()

    def _health_gate(self) -> None:
        report = self.health.check_health()
        if self.config.health.abort_if_no_workers and not report.has_available_workers:
            raise WorkersUnavailable(
                "No ready or idle workers; not submitting",
                report=report,
                endpoint_id=self.endpoint_id,
            )

    def _prepare(self, request: GenerationRequest) -> GenerationRequest:
        if request.has_random_seed and self.config.negotiation.resolve_random_seed:
            request = request.with_seed(random.randint(0, MAX_SEED))
            logger.debug(f"Resolved random seed to {request.seed}")
        return request

    def _deadline(self, poll_config: PollConfig) -> float:
        # Poll waits plus one status timeout per attempt.
        budget = poll_config.budget_seconds + poll_config.max_attempts * self.config.endpoint.status_timeout
        return time.monotonic() + budget

    def submit(self, request: GenerationRequest, preferred: Optional[str] = None) -> JobHandle:
        """Negotiate a schema and submit; returns the job handle without polling."""
        if self.config.health.check_before_submit or self.config.health.abort_if_no_workers:
            self._health_gate()
        return self.negotiator.submit(self._prepare(request), preferred=preferred)

    def resume(self, handle: JobHandle, poll_config: Optional[PollConfig] = None,
               cancel_event: Optional[threading.Event] = None, deadline: Optional[float] = None) -> GeneratedImage:
        """Poll an existing handle, e.g. after TimeoutExceeded."""
        poll_config = poll_config or self.config.polling
        if deadline is None:
            deadline = self._deadline(poll_config)
        return self.poller.poll(handle, config=poll_config, cancel_event=cancel_event, deadline=deadline)

    def generate(self, request: GenerationRequest, poll_config: Optional[PollConfig] = None,
                 cancel_event: Optional[threading.Event] = None, deadline: Optional[float] = None,
                 preferred: Optional[str] = None) -> GeneratedImage:
        """
        Run one generation end to end.

        Cancelling through `cancel_event` stops local polling only; the job
        already submitted keeps running on the worker pool.
        """
        handle = self.submit(request, preferred=preferred)
        logger.info(f"Job {handle.job_id} submitted with variant {handle.variant_name}; polling")
        image = self.resume(handle, poll_config=poll_config, cancel_event=cancel_event, deadline=deadline)
        logger.info(f"Job {handle.job_id} produced {len(image.data)} bytes ({image.mime_type})")
        return image
