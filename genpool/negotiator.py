"""
Schema negotiation.

Drives the submitter through the variant catalog until the deployment accepts
one shape, then remembers that shape for the rest of the process.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .errors import (
    GenPoolError,
    MalformedResponse,
    NoVariantAccepted,
    RemoteServerError,
    SchemaRejected,
)
from .events import EventBus, EventType
from .models import GenerationRequest, JobHandle
from .schemas import SchemaVariant
from .submitter import JobSubmitter

logger = logging.getLogger(__name__)

# Per-variant failures that move negotiation on to the next variant.
ABSORBED_ERRORS = (SchemaRejected, MalformedResponse, RemoteServerError)


@dataclass(frozen=True)
class VariantFailure:
    """Why one variant was not accepted."""
    variant: str
    kind: str
    message: str
    status_code: Optional[int] = None
    body: object = None


class PreferredVariantCache:
    """Last accepted variant name per endpoint id, for the process lifetime only."""

    def __init__(self):
        self._lock = threading.Lock()
        self._preferred: Dict[str, str] = {}

    def get(self, endpoint_id: str) -> Optional[str]:
        with self._lock:
            return self._preferred.get(endpoint_id)

    def set(self, endpoint_id: str, variant_name: str) -> None:
        with self._lock:
            self._preferred[endpoint_id] = variant_name

    def clear(self, endpoint_id: Optional[str] = None) -> None:
        with self._lock:
            if endpoint_id is None:
                self._preferred.clear()
            else:
                self._preferred.pop(endpoint_id, None)


class SchemaNegotiator:
    """Submits a request using the first variant the endpoint accepts."""

    def __init__(self, submitter: JobSubmitter, catalog: Sequence[SchemaVariant],
                 cache: Optional[PreferredVariantCache] = None, events: Optional[EventBus] = None):
        if not catalog:
            raise ValueError("Schema catalog must contain at least one variant")
        self.submitter = submitter
        self.catalog = list(catalog)
        self.cache = cache if cache is not None else PreferredVariantCache()
        self.events = events or EventBus()

    @property
    def endpoint_id(self) -> str:
        return self.submitter.client.endpoint_id

    def preferred_variant(self) -> Optional[str]:
        return self.cache.get(self.endpoint_id)

    def _ordered(self, catalog: List[SchemaVariant], preferred: Optional[str]) -> List[SchemaVariant]:
        if preferred is None:
            return catalog
        first = [variant for variant in catalog if variant.name == preferred]
        if not first:
            logger.warning(f"Preferred variant {preferred!r} is not in the catalog; ignoring it")
            return catalog
        return first + [variant for variant in catalog if variant.name != preferred]

    def submit(self, request: GenerationRequest, catalog: Optional[Sequence[SchemaVariant]] = None,
               preferred: Optional[str] = None) -> JobHandle:
        """
        Submit `request`, trying variants until one is accepted.

        Args:
            request: The generation request
            catalog: Variants to try (defaults to the negotiator's catalog)
            preferred: Variant name to try first; defaults to the cached one

        Returns:
            JobHandle for the accepted submission

        Raises:
            NoVariantAccepted: every variant was rejected; `attempts` holds one
                VariantFailure per catalog entry
            AuthError, NotFoundError, TransportError: propagated immediately
        """
        variants = list(catalog) if catalog is not None else self.catalog
        if preferred is None:
            preferred = self.preferred_variant()

        failures: List[VariantFailure] = []
        for variant in self._ordered(variants, preferred):
            payload = variant.build(request)
            logger.info(f"Submitting job to {self.endpoint_id} using variant {variant.name}")
            try:
                job_id = self.submitter.post_job(payload)
            except ABSORBED_ERRORS as e:
                failure = VariantFailure(
                    variant=variant.name,
                    kind=e.kind.value,
                    message=e.message,
                    status_code=e.status_code,
                    body=e.details.get("body"),
                )
                failures.append(failure)
                logger.warning(f"Variant {variant.name} rejected by {self.endpoint_id}: {e}")
                self.events.emit(
                    EventType.VARIANT_REJECTED,
                    endpoint_id=self.endpoint_id,
                    variant=variant.name,
                    detail={"kind": failure.kind, "status_code": failure.status_code},
                )
                continue
            except GenPoolError as e:
                e.with_context(endpoint_id=self.endpoint_id, variant=variant.name)
                raise

            handle = JobHandle(job_id=job_id, variant=variant, endpoint_id=self.endpoint_id)
            if preferred != variant.name:
                logger.info(f"Variant {variant.name} is now preferred for {self.endpoint_id}")
            self.cache.set(self.endpoint_id, variant.name)
            self.events.emit(EventType.VARIANT_ACCEPTED, endpoint_id=self.endpoint_id,
                             job_id=job_id, variant=variant.name)
            self.events.emit(EventType.JOB_SUBMITTED, endpoint_id=self.endpoint_id,
                             job_id=job_id, variant=variant.name)
            return handle

        raise NoVariantAccepted(
            f"No schema variant accepted after {len(failures)} attempts",
            attempts=failures,
            endpoint_id=self.endpoint_id,
        )
