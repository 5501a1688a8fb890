"""
HTTP transport for the worker pool endpoint.

Maps raw HTTP outcomes onto the error taxonomy so the components above only
deal with classified failures.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .config import EndpointConfig
from .errors import (
    AuthError,
    MalformedResponse,
    NotFoundError,
    RemoteServerError,
    SchemaRejected,
    TransportError,
)

logger = logging.getLogger(__name__)

# Status codes worth another try rather than a schema verdict.
RETRYABLE_STATUS_CODES = {408, 429}
MAX_ERROR_BODY_CHARS = 500


def _error_body(response) -> Any:
    try:
        return response.json()
    except ValueError:
        return (response.text or "")[:MAX_ERROR_BODY_CHARS]


def classify_response(response, endpoint_id: Optional[str] = None) -> None:
    """Raise the taxonomy error matching a non-2xx response."""
    status = response.status_code
    if 200 <= status < 300:
        return

    body = _error_body(response)
    kwargs = {"endpoint_id": endpoint_id, "status_code": status, "details": {"body": body}}

    if status in (401, 403):
        raise AuthError("Authentication failed: API key is missing or invalid", **kwargs)
    if status == 404:
        raise NotFoundError("Endpoint or job not found", **kwargs)
    if status in RETRYABLE_STATUS_CODES or status >= 500:
        raise RemoteServerError(f"Worker pool returned HTTP {status}", **kwargs)
    raise SchemaRejected(f"Request rejected with HTTP {status}", **kwargs)


class EndpointClient:
    """Thin JSON-over-HTTP client bound to one endpoint id."""

    def __init__(self, config: EndpointConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self._api_key = config.resolve_api_key()

    @property
    def endpoint_id(self) -> str:
        return self.config.endpoint_id

    def url(self, path: str) -> str:
        return f"{self.config.endpoint_url}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def request_json(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                     timeout: Optional[float] = None) -> Dict[str, Any]:
        """Send a request and return the decoded JSON object."""
        url = self.url(path)
        timeout = timeout if timeout is not None else self.config.request_timeout
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=timeout,
            )
        except requests.exceptions.Timeout as e:
            raise TransportError(f"{method} {path} timed out after {timeout}s", endpoint_id=self.endpoint_id) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}", endpoint_id=self.endpoint_id) from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        classify_response(response, endpoint_id=self.endpoint_id)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(
                f"{method} {path} returned a non-JSON body",
                endpoint_id=self.endpoint_id,
                status_code=response.status_code,
                details={"body": (response.text or "")[:MAX_ERROR_BODY_CHARS]},
            ) from e

        if not isinstance(data, dict):
            raise MalformedResponse(
                f"{method} {path} returned {type(data).__name__}, expected a JSON object",
                endpoint_id=self.endpoint_id,
                status_code=response.status_code,
            )
        return data

    def get_json(self, path: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        return self.request_json("GET", path, timeout=timeout)

    def post_json(self, path: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        return self.request_json("POST", path, payload=payload, timeout=timeout)
