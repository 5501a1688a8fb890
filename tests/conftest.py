"""
Shared fixtures for genpool tests. No test touches the network: HTTP sessions
are mocks whose `request` returns canned responses.
"""

import base64
from unittest.mock import Mock

import pytest

from genpool.config import EndpointConfig, GenPoolConfig, PollConfig
from genpool.models import GenerationRequest, JobHandle
from genpool.schemas import build_catalog
from genpool.transport import EndpointClient

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR-fake-image"
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")

_NO_JSON = object()


def fake_response(status_code=200, payload=None, text=None):
    """Build a requests.Response stand-in."""
    response = Mock()
    response.status_code = status_code
    if payload is _NO_JSON:
        response.json.side_effect = ValueError("No JSON object could be decoded")
        response.text = text if text is not None else "<html>bad gateway</html>"
    else:
        response.json.return_value = payload
        response.text = text if text is not None else str(payload)
    return response


@pytest.fixture
def make_response():
    return fake_response


@pytest.fixture
def no_json():
    return _NO_JSON


@pytest.fixture
def png_b64():
    return PNG_B64


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def endpoint_config():
    return EndpointConfig(endpoint_id="ep-test", api_key="test-key")


@pytest.fixture
def genpool_config(endpoint_config):
    return GenPoolConfig(
        endpoint=endpoint_config,
        polling=PollConfig(interval_ms=0, max_attempts=10, max_transport_errors=2),
    )


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def http(endpoint_config, session):
    return EndpointClient(endpoint_config, session=session)


@pytest.fixture
def catalog():
    return build_catalog()


@pytest.fixture
def request_():
    return GenerationRequest(prompt="anime girl with black hair", width=512, height=512, steps=20, seed=42)


@pytest.fixture
def handle(catalog):
    return JobHandle(job_id="job-1", variant=catalog[0], endpoint_id="ep-test")


def status_payload(status, output=None, error=None, job_id="job-1"):
    payload = {"id": job_id, "status": status}
    if output is not None:
        payload["output"] = output
    if error is not None:
        payload["error"] = error
    return payload


@pytest.fixture
def status_response():
    """Factory for /status responses."""
    def _make(status, output=None, error=None, status_code=200):
        return fake_response(status_code, status_payload(status, output=output, error=error))
    return _make
