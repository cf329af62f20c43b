"""HttpJobControlAdapter: start-job error classification, retries and cancel notification."""

from unittest.mock import AsyncMock

import pytest

from webdash.adapters.job_control_http import START_FAILED_MESSAGE, HttpJobControlAdapter
from webdash.adapters.retry_tenacity import TenacityRetryAdapter
from webdash.core.exceptions import JobStartError, UpstreamException
from webdash.core.models.job import GenerationParams
from webdash.core.models.upstream_error import UpstreamErrorResponse

BASE = "http://api.test/api"


def upstream(status: int) -> UpstreamException:
    return UpstreamException(UpstreamErrorResponse(title="Upstream", status=status, detail=f"status {status}"))


@pytest.fixture
def params():
    return GenerationParams(prompt="A bakery", businessName="Crumbs", colors={"primary": "#fff"})


@pytest.fixture
def http_client():
    return AsyncMock()


@pytest.fixture
def adapter(http_client):
    return HttpJobControlAdapter(
        http_client,
        BASE,
        retry_port=TenacityRetryAdapter(),
        attempts=3,
        wait_initial=0.001,
        wait_max=0.002,
    )


class TestStartJob:
    @pytest.mark.asyncio
    async def test_success_posts_params_with_job_id(self, adapter, http_client, params):
        http_client.post.return_value = {"status": 200, "headers": {}, "body": {"success": True}}

        await adapter.start_job("job_new", params)

        http_client.post.assert_awaited_once()
        url = http_client.post.call_args.args[0]
        body = http_client.post.call_args.kwargs["json"]
        assert url == f"{BASE}/start-job"
        assert body["jobId"] == "job_new"
        assert body["prompt"] == "A bakery"
        assert body["colors"] == {"primary": "#fff"}

    @pytest.mark.asyncio
    async def test_conflict_is_not_retried(self, adapter, http_client, params):
        http_client.post.return_value = {
            "status": 409,
            "headers": {},
            "body": {"success": False, "error": "Subdomain already taken"},
        }

        with pytest.raises(JobStartError) as excinfo:
            await adapter.start_job("job_new", params)

        assert excinfo.value.message == "Subdomain already taken"
        assert excinfo.value.upstream_status == 409
        assert http_client.post.await_count == 1

    @pytest.mark.asyncio
    async def test_unsuccessful_body_uses_fallback_message(self, adapter, http_client, params):
        http_client.post.return_value = {"status": 200, "headers": {}, "body": {"success": False}}

        with pytest.raises(JobStartError) as excinfo:
            await adapter.start_job("job_new", params)

        assert excinfo.value.message == START_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_transient_status_is_retried(self, adapter, http_client, params):
        http_client.post.side_effect = [
            {"status": 503, "headers": {}, "body": "unavailable"},
            {"status": 200, "headers": {}, "body": {"success": True}},
        ]

        await adapter.start_job("job_new", params)

        assert http_client.post.await_count == 2

    @pytest.mark.asyncio
    async def test_transport_errors_exhaust_retries(self, adapter, http_client, params):
        http_client.post.side_effect = upstream(502)

        with pytest.raises(JobStartError) as excinfo:
            await adapter.start_job("job_new", params)

        assert excinfo.value.upstream_status == 502
        assert http_client.post.await_count == 3

    @pytest.mark.asyncio
    async def test_without_retry_port_single_attempt(self, http_client, params):
        adapter = HttpJobControlAdapter(http_client, BASE)
        http_client.post.side_effect = upstream(504)

        with pytest.raises(JobStartError):
            await adapter.start_job("job_new", params)

        assert http_client.post.await_count == 1


class TestRequestCancel:
    @pytest.mark.asyncio
    async def test_posts_cancelled_status(self, adapter, http_client):
        http_client.post.return_value = {"status": 200, "headers": {}, "body": {"success": True}}

        await adapter.request_cancel("job_a", "Generation cancelled by user")

        http_client.post.assert_awaited_once_with(
            f"{BASE}/update-job-status",
            json={"jobId": "job_a", "status": "cancelled", "error": "Generation cancelled by user"},
        )

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self, adapter, http_client):
        http_client.post.side_effect = upstream(502)
        await adapter.request_cancel("job_a", "reason")

        http_client.post.side_effect = None
        http_client.post.return_value = {"status": 500, "headers": {}, "body": "oops"}
        await adapter.request_cancel("job_a", "reason")
