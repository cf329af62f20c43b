import re

import pytest
from pydantic import TypeAdapter, ValidationError

from webdash.core.models.job import CompletedSite, GenerationParams, JobSnapshot, JobStatus
from webdash.core.models.outcome import Cancelled, Completed, Failed, TerminalOutcome
from webdash.core.utils.job_id import generate_job_id, to_base36


class TestJobId:
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"
        with pytest.raises(ValueError):
            to_base36(-1)

    def test_format(self):
        job_id = generate_job_id(now_ms=1_700_000_000_000)
        assert re.fullmatch(r"job_[0-9a-z]+_[0-9a-z]{6}", job_id)
        assert job_id.startswith(f"job_{to_base36(1_700_000_000_000)}_")

    def test_ids_are_unique(self):
        assert len({generate_job_id(now_ms=1) for _ in range(50)}) == 50


class TestJobSnapshot:
    def test_progress_is_clamped(self):
        assert JobSnapshot.from_payload({"status": "processing", "progress": 140}).progress == 100
        assert JobSnapshot.from_payload({"status": "processing", "progress": -3}).progress == 0
        assert JobSnapshot.from_payload({"status": "processing", "progress": None}).progress == 0

    def test_completed_is_folded_into_complete(self):
        snapshot = JobSnapshot.from_payload({"status": "completed", "site_url": "https://x.example"})
        assert snapshot.status == JobStatus.complete
        assert snapshot.site_url == "https://x.example"

    def test_error_only_kept_for_failed(self):
        assert JobSnapshot.from_payload({"status": "processing", "error": "old"}).error is None
        assert JobSnapshot.from_payload({"status": "failed", "error": "boom"}).error == "boom"

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValidationError):
            JobSnapshot.from_payload({"status": "exploded"})


class TestGenerationParams:
    def test_captured_only_with_prompt_or_business_name(self):
        assert GenerationParams.from_job_payload({"status": "processing", "colors": {}}) is None
        params = GenerationParams.from_job_payload(
            {"status": "processing", "businessName": "Crumbs", "pagesMeta": [{"title": "Home"}]}
        )
        assert params is not None
        assert params.to_request_body() == {"businessName": "Crumbs", "pagesMeta": [{"title": "Home"}]}

    def test_unknown_keys_are_not_replayed(self):
        params = GenerationParams.from_job_payload({"prompt": "x", "status": "failed", "progress": 3})
        assert params.to_request_body() == {"prompt": "x"}


class TestCompletedSite:
    def test_record_uses_persisted_names(self):
        record = CompletedSite(job_id="job_a", site_url="https://x.example", subdomain="x").to_record()
        assert set(record) == {"jobId", "siteUrl", "subdomain", "createdAt", "status", "domainId"}
        assert record["status"] == "active"

    def test_parses_record(self):
        site = CompletedSite.model_validate({"jobId": "job_a", "siteUrl": "https://x.example"})
        assert site.job_id == "job_a"


class TestTerminalOutcome:
    def test_discriminated_on_kind(self):
        adapter = TypeAdapter(TerminalOutcome)
        assert isinstance(adapter.validate_python({"kind": "cancelled", "origin": "server"}), Cancelled)
        assert isinstance(
            adapter.validate_python({"kind": "failed", "message": "m", "reason": "timed_out"}), Failed
        )
        completed = adapter.validate_python(
            {"kind": "complete", "site": {"jobId": "job_a", "siteUrl": "https://x.example"}}
        )
        assert isinstance(completed, Completed)
