"""
End-to-end tests for ImageJobClient against a mocked worker pool.
"""

import threading

import pytest

from genpool.client import ImageJobClient
from genpool.config import HealthConfig, NegotiationConfig, PollConfig
from genpool.errors import AuthError, JobCancelled, TimeoutExceeded, WorkersUnavailable
from genpool.events import EventBus, EventType
from genpool.models import GenerationRequest
from genpool.negotiator import PreferredVariantCache

from conftest import fake_response, status_payload


class FakeWorkerPool:
    """Routes session.request calls by path and records them."""

    def __init__(self, statuses, accepts="endpoint", health=None, output=None):
        self.statuses = list(statuses)
        self.accepts = accepts
        self.health = health or {"workers": {"ready": 1, "idle": 0, "busy": 0}}
        self.output = output
        self.calls = []

    def __call__(self, method, url, json=None, headers=None, timeout=None):
        self.calls.append((method, url, json))
        if url.endswith("/run"):
            if self.accepts in json.get("input", {}):
                return fake_response(200, {"id": "job-42", "status": "IN_QUEUE"})
            return fake_response(400, {"error": "Invalid input"})
        if url.endswith("/health"):
            return fake_response(200, self.health)
        if "/status/" in url:
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            output = self.output if status == "COMPLETED" else None
            return fake_response(200, status_payload(status, output=output, job_id="job-42"))
        return fake_response(404, {})

    def paths(self):
        return [url.rsplit("/", 1)[-1] if "/status/" not in url else "status" for _, url, _ in self.calls]


@pytest.fixture
def make_client(genpool_config, session):
    def _make(**sections):
        config = genpool_config.model_copy(update=sections)
        return ImageJobClient(config, session=session, cache=PreferredVariantCache())
    return _make


class TestImageJobClient:
    """Test cases for ImageJobClient."""

    def test_generate_end_to_end(self, make_client, session, request_, png_b64, png_bytes):
        pool = FakeWorkerPool(["IN_QUEUE", "IN_PROGRESS", "COMPLETED"], output={"images": [png_b64]})
        session.request.side_effect = pool

        image = make_client().generate(request_)

        assert image.data == png_bytes
        assert image.job_id == "job-42"
        assert image.variant.name == "endpoint_params"
        assert pool.paths() == ["run", "run", "run", "status", "status", "status"]

    def test_second_generation_uses_preferred_variant(self, make_client, session, request_, png_b64):
        pool = FakeWorkerPool(["COMPLETED"], output=png_b64)
        session.request.side_effect = pool
        client = make_client()

        client.generate(request_)
        pool.calls.clear()
        client.generate(request_)

        assert pool.paths() == ["run", "status"]

    def test_random_seed_resolved_once(self, make_client, session, png_b64):
        pool = FakeWorkerPool(["COMPLETED"], accepts="api_name", output=png_b64)
        session.request.side_effect = pool

        make_client().generate(GenerationRequest(prompt="a lighthouse at dusk"))

        seed = pool.calls[0][2]["input"]["seed"]
        assert 0 <= seed <= 2**31 - 1

    def test_random_seed_left_to_worker(self, make_client, session, png_b64):
        pool = FakeWorkerPool(["COMPLETED"], accepts="api_name", output=png_b64)
        session.request.side_effect = pool

        client = make_client(negotiation=NegotiationConfig(resolve_random_seed=False))
        client.generate(GenerationRequest(prompt="a lighthouse at dusk"))

        assert pool.calls[0][2]["input"]["seed"] == -1

    def test_health_gate_aborts_without_workers(self, make_client, session, request_):
        pool = FakeWorkerPool(["COMPLETED"], health={"workers": {"ready": 0, "idle": 0, "busy": 3}})
        session.request.side_effect = pool

        client = make_client(health=HealthConfig(abort_if_no_workers=True))
        with pytest.raises(WorkersUnavailable) as exc_info:
            client.generate(request_)

        assert pool.paths() == ["health"]
        assert exc_info.value.report.workers_busy == 3

    def test_health_check_before_submit_is_advisory(self, make_client, session, request_, png_b64):
        pool = FakeWorkerPool(["COMPLETED"], health={"workers": {}}, output=png_b64)
        session.request.side_effect = pool

        client = make_client(health=HealthConfig(check_before_submit=True))
        client.generate(request_)

        assert pool.paths()[0] == "health"
        assert "status" in pool.paths()

    def test_timeout_then_resume(self, make_client, session, request_, png_b64):
        pool = FakeWorkerPool(["IN_PROGRESS", "IN_PROGRESS", "COMPLETED"], output=png_b64)
        session.request.side_effect = pool
        client = make_client()
        short = PollConfig(interval_ms=0, max_attempts=2)

        with pytest.raises(TimeoutExceeded) as exc_info:
            client.generate(request_, poll_config=short)

        image = client.resume(exc_info.value.handle, poll_config=short)

        assert image.job_id == "job-42"
        assert pool.paths().count("run") == 3

    def test_cancel_stops_polling(self, make_client, session, request_):
        pool = FakeWorkerPool(["IN_PROGRESS"])
        session.request.side_effect = pool
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(JobCancelled) as exc_info:
            make_client().generate(request_, cancel_event=cancel)

        assert exc_info.value.job_id == "job-42"
        assert "status" not in pool.paths()

    def test_auth_error_surfaces(self, make_client, session, request_):
        session.request.return_value = fake_response(401, {"error": "Unauthorized"})
        with pytest.raises(AuthError):
            make_client().generate(request_)
        assert session.request.call_count == 1

    def test_events_cover_the_flow(self, genpool_config, session, request_, png_b64):
        pool = FakeWorkerPool(["COMPLETED"], output=png_b64)
        session.request.side_effect = pool
        events = EventBus()
        seen = []
        events.subscribe(seen.append)

        ImageJobClient(genpool_config, session=session, events=events, cache=PreferredVariantCache()).generate(request_)

        types = [e.type for e in seen]
        assert types.count(EventType.VARIANT_REJECTED) == 2
        assert types[-1] is EventType.TERMINAL_STATE
        assert EventType.JOB_SUBMITTED in types

    def test_configured_variant_subset(self, make_client, session, request_):
        pool = FakeWorkerPool(["COMPLETED"])
        session.request.side_effect = pool
        client = make_client(negotiation=NegotiationConfig(variants=["flat", "endpoint_params"]))

        handle = client.submit(request_)

        assert [v.name for v in client.catalog] == ["flat", "endpoint_params"]
        assert handle.variant.name == "endpoint_params"
        assert pool.paths() == ["run", "run"]
