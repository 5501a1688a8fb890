"""
Endpoint health checker.

Reports worker availability; it never decides whether to submit.
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from .errors import MalformedResponse
from .models import HealthReport, HealthResponse
from .transport import EndpointClient

logger = logging.getLogger(__name__)


class HealthChecker:
    """Queries the liveness surface of the worker pool."""

    def __init__(self, client: EndpointClient):
        self.client = client

    def check_health(self) -> HealthReport:
        """
        Query worker counters.

        Raises:
            TransportError: endpoint unreachable
            AuthError: HTTP 401
            NotFoundError: HTTP 404
            MalformedResponse: body is not a health payload
        """
        data = self.client.get_json("health", timeout=self.client.config.health_timeout)
        try:
            report = HealthResponse(**data).to_report()
        except ValidationError as e:
            raise MalformedResponse(
                f"Unexpected health payload: {e}",
                endpoint_id=self.client.endpoint_id,
                details={"body": data},
            ) from e

        logger.info(
            f"Endpoint {self.client.endpoint_id} workers: ready={report.workers_ready} "
            f"busy={report.workers_busy} idle={report.workers_idle}"
        )
        if not report.has_available_workers:
            logger.warning(
                f"No ready or idle workers on endpoint {self.client.endpoint_id}; "
                f"submitted jobs are likely to stay queued"
            )
        return report

    def fetch_schema(self) -> Dict[str, Any]:
        """Return the service-defined schema document. Advisory only."""
        return self.client.get_json("schema", timeout=self.client.config.health_timeout)
