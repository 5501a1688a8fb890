"""
Job submitter.

POSTing to /run creates a remote job every time it is accepted; there is no
deduplication on the remote side.
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from .errors import MalformedResponse
from .models import SubmitResponse
from .transport import EndpointClient

logger = logging.getLogger(__name__)


class JobSubmitter:
    """Posts one payload and returns the remote job id."""

    def __init__(self, client: EndpointClient):
        self.client = client

    def post_job(self, payload: Dict[str, Any]) -> str:
        """POST `payload` to /run and return the new job id."""
        data = self.client.post_json("run", payload, timeout=self.client.config.request_timeout)
        try:
            job_id = SubmitResponse(**data).id
        except ValidationError as e:
            raise MalformedResponse(
                "Submission accepted without a job id",
                endpoint_id=self.client.endpoint_id,
                details={"body": data},
            ) from e

        logger.info(f"Job {job_id} created on endpoint {self.client.endpoint_id}")
        return job_id
