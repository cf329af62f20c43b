"""Terminal outcomes of a supervised generation job.

A supervisor settles exactly one of these. The union is discriminated on
`kind` so it serializes cleanly through the web adapter.
"""

from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from webdash.core.models.job import CompletedSite


class FailureReason(StrEnum):
    server_failed = "server_failed"
    missing_result_url = "missing_result_url"
    not_found_exhausted = "not_found_exhausted"
    transport_exhausted = "transport_exhausted"
    timed_out = "timed_out"
    verification_transport_error = "verification_transport_error"
    unexpected_error = "unexpected_error"


class Completed(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["complete"] = "complete"
    site: CompletedSite


class Failed(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    message: str
    reason: FailureReason


class Cancelled(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["cancelled"] = "cancelled"
    origin: Literal["caller", "server"] = "caller"


TerminalOutcome = Annotated[
    Union[Completed, Failed, Cancelled], Field(discriminator="kind")
]


class RetryResult(BaseModel):
    """What `JobSupervisor.retry()` launched.

    `reload` means no generation parameters were captured, so nothing new was
    started and the caller should supervise `job_id` (the original one) again.
    """

    model_config = ConfigDict(frozen=True)

    job_id: str
    reload: bool = False
