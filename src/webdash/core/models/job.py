from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(StrEnum):
    pending = "pending"
    processing = "processing"
    complete = "complete"  # wire value "completed" is folded into this one
    failed = "failed"
    cancelled = "cancelled"


# Keys of the original generation request that a retry must replay verbatim.
GENERATION_PARAM_KEYS = (
    "prompt",
    "businessType",
    "businessName",
    "businessDescription",
    "websiteTitle",
    "websiteDescription",
    "websiteKeyphrase",
    "colors",
    "fonts",
    "pagesMeta",
    "subdomain",
)


class GenerationParams(BaseModel):
    """Opaque bag of the original generation request.

    Only `prompt` and `businessName` are inspected (to decide whether anything
    worth replaying was captured); everything else is carried through untouched.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    prompt: Optional[str] = None
    businessName: Optional[str] = None

    @classmethod
    def from_job_payload(cls, payload: Dict[str, Any]) -> Optional["GenerationParams"]:
        if not payload.get("prompt") and not payload.get("businessName"):
            return None
        return cls(**{key: payload.get(key) for key in GENERATION_PARAM_KEYS})

    def to_request_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class JobResult(BaseModel):
    site_url: Optional[str] = None
    subdomain: Optional[str] = None
    domain_id: Optional[Any] = None

    def has_usable_url(self) -> bool:
        return bool(self.site_url and self.site_url.strip())


class JobSnapshot(BaseModel):
    """Normalized shape of one job-status observation."""

    model_config = ConfigDict(frozen=True)

    job_id: Optional[str] = None
    status: JobStatus
    progress: int = Field(default=0, ge=0, le=100)
    result: Optional[JobResult] = None
    error: Optional[str] = None
    generation_params: Optional[GenerationParams] = None

    @field_validator("status", mode="before")
    @classmethod
    def _fold_status_synonyms(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "completed":
                return JobStatus.complete
        return value

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value: Any) -> int:
        if value is None:
            return 0
        try:
            number = int(round(float(value)))
        except (TypeError, ValueError, OverflowError):
            return 0
        return max(0, min(100, number))

    @property
    def site_url(self) -> Optional[str]:
        if self.result and self.result.has_usable_url():
            return self.result.site_url
        return None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "JobSnapshot":
        """Build a snapshot from the flat job document the status endpoint returns.

        The server mixes snake_case and camelCase spellings for the result fields,
        both are accepted.
        """
        status = payload.get("status")
        result = None
        if isinstance(status, str) and status.strip().lower() in ("complete", "completed"):
            result = JobResult(
                site_url=payload.get("site_url") or payload.get("siteUrl"),
                subdomain=payload.get("subdomain"),
                domain_id=payload.get("domain_id") or payload.get("domainId"),
            )
        error = payload.get("error") if isinstance(status, str) and status.strip().lower() == "failed" else None
        return cls(
            job_id=payload.get("jobId") or payload.get("id"),
            status=status,
            progress=payload.get("progress"),
            result=result,
            error=error,
            generation_params=GenerationParams.from_job_payload(payload),
        )


class CompletedSite(BaseModel):
    """Record handed to the result sink when a job completes.

    Field aliases are the persisted names consumed downstream.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    job_id: str = Field(alias="jobId")
    site_url: str = Field(alias="siteUrl")
    subdomain: Optional[str] = None
    created_at: str = Field(
        alias="createdAt",
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
    )
    status: str = "active"
    domain_id: Optional[Any] = Field(default=None, alias="domainId")

    @classmethod
    def from_snapshot(cls, job_id: str, snapshot: JobSnapshot) -> "CompletedSite":
        result = snapshot.result or JobResult()
        return cls(
            job_id=job_id,
            site_url=result.site_url or "",
            subdomain=result.subdomain,
            domain_id=result.domain_id,
        )

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
