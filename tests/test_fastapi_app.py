import time
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from conftest import ScriptedStatusClient, found
from webdash.adapters.result_sink_inmemory import InMemoryResultSink
from webdash.adapters.web.fastapi import create_app
from webdash.core.config import SupervisorConfig
from webdash.core.exceptions import JobStartError
from webdash.core.managers.generation_tracker import GenerationTracker

SITE_URL = "https://crumbs.example.com"
FAST = SupervisorConfig(poll_interval=0.001, verify_retry_delay=0.001)
SLOW = SupervisorConfig(poll_interval=5.0)


class FakeHttpClient:
    """Only the lifespan touches the client; the status client is scripted."""

    def __init__(self):
        self.entered = False
        self.exited = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True
        return False


def build_app(status_client, config=FAST, job_starter=None, http_client=None):
    http_client = http_client or FakeHttpClient()

    def tracker_factory(client):
        return GenerationTracker(
            status_client=status_client,
            result_sink=InMemoryResultSink(),
            config=config,
            job_starter=job_starter,
        )

    return create_app(tracker_factory=tracker_factory, http_client=http_client)


def wait_for_state(client: TestClient, job_id: str, state: str, timeout: float = 2.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/generations/{job_id}").json()
        if body["state"] == state:
            return body
        if time.monotonic() > deadline:
            raise AssertionError(f"job {job_id} stuck in {body['state']}")
        time.sleep(0.01)


def test_track_until_complete():
    status = ScriptedStatusClient(
        found("processing", 30),
        found("complete", 100, siteUrl=SITE_URL, subdomain="crumbs"),
    )
    with TestClient(build_app(status)) as client:
        resp = client.put("/generations/job_a")
        assert resp.status_code == 202
        assert resp.json()["jobId"] == "job_a"

        body = wait_for_state(client, "job_a", "complete")

    assert body["outcome"]["kind"] == "complete"
    assert body["outcome"]["site"]["siteUrl"] == SITE_URL
    assert body["progress"]["stepIndex"] == 6
    assert body["progress"]["currentStep"] == "Finalizing layout and content"
    assert body["history"][-1]["status"] == "complete"


def test_track_is_idempotent():
    status = ScriptedStatusClient(found("processing", 30))
    with TestClient(build_app(status, config=SLOW)) as client:
        client.put("/generations/job_a")
        client.put("/generations/job_a")
        wait_for_state(client, "job_a", "polling")

        assert client.get("/health").json() == {"status": "ok", "activeJobs": 1}
        assert status.calls == 1


def test_unknown_job_is_problem_json():
    with TestClient(build_app(ScriptedStatusClient(found("pending")))) as client:
        resp = client.get("/generations/nope", headers={"X-Request-ID": "req-123"})

    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.headers["X-Request-ID"] == "req-123"
    problem = resp.json()
    assert problem["title"] == "Job Not Found"
    assert problem["status"] == 404


def test_cancel_with_server_notification():
    starter = AsyncMock()
    status = ScriptedStatusClient(found("processing", 30))
    with TestClient(build_app(status, config=SLOW, job_starter=starter)) as client:
        client.put("/generations/job_a")
        wait_for_state(client, "job_a", "polling")

        resp = client.post("/generations/job_a/cancel", params={"notifyServer": "true"})
        assert resp.status_code == 200
        assert resp.json()["state"] == "cancelled"
        assert resp.json()["outcome"] == {"kind": "cancelled", "origin": "caller"}
        assert client.get("/health").json()["activeJobs"] == 0

    starter.request_cancel.assert_awaited_once()


def test_retry_of_active_job_conflicts():
    status = ScriptedStatusClient(found("processing", 30))
    with TestClient(build_app(status, config=SLOW, job_starter=AsyncMock())) as client:
        client.put("/generations/job_a")
        resp = client.post("/generations/job_a/retry")

    assert resp.status_code == 409
    assert resp.json()["title"] == "Invalid Job State"


def test_retry_relaunches_failed_job():
    status = ScriptedStatusClient(
        found("processing", 30, prompt="A bakery"),
        found("failed", 30, error="Model overloaded"),
        found("processing", 10),
    )
    starter = AsyncMock()
    with TestClient(build_app(status, job_starter=starter)) as client:
        client.put("/generations/job_a")
        failed = wait_for_state(client, "job_a", "failed")
        assert failed["outcome"]["message"] == "Model overloaded"

        resp = client.post("/generations/job_a/retry")

        assert resp.status_code == 202
        new_id = resp.json()["jobId"]
        assert new_id != "job_a"
        assert client.get(f"/generations/{new_id}").status_code == 200

    starter.start_job.assert_awaited_once()


def test_retry_start_failure_is_bad_gateway():
    status = ScriptedStatusClient(found("processing", 30, prompt="A bakery"), found("failed", 30))
    starter = AsyncMock()
    starter.start_job.side_effect = JobStartError("Subdomain already taken", upstream_status=409)
    with TestClient(build_app(status, job_starter=starter)) as client:
        client.put("/generations/job_a")
        wait_for_state(client, "job_a", "failed")

        resp = client.post("/generations/job_a/retry")

    assert resp.status_code == 502
    assert resp.json()["detail"] == "Subdomain already taken"
    assert resp.json()["additional"]["requestId"] == resp.headers["X-Request-ID"]


def test_lifespan_opens_and_closes_http_client():
    http_client = FakeHttpClient()
    with TestClient(build_app(ScriptedStatusClient(found("pending")), http_client=http_client)):
        assert http_client.entered
    assert http_client.exited
