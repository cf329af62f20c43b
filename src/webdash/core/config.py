"""Configuration models for core domain components.

This module provides Pydantic-based configuration classes that consolidate
settings for the job supervisor, enabling dependency injection and testability.
"""

from pydantic import BaseModel, Field


class SupervisorConfig(BaseModel):
    """Configuration for JobSupervisor behavior.

    All delays are in seconds (float for test flexibility). The defaults are the
    production polling contract of the generation API.

    Attributes:
        poll_interval: Seconds between status polls while the job is processing
        verify_retry_delay: Seconds between verification attempts while the job is not visible yet
        not_found_retry_delay: Seconds to wait after a not-found poll
        transport_retry_delay: Seconds to wait after a transport or server error
        max_not_found_retries: Consecutive not-found answers tolerated before failing
        max_consecutive_errors: Consecutive transport errors tolerated before failing
        max_poll_attempts: Global poll ceiling, independent of error classification
        retry_transport_during_verification: Apply transport retries in the verification step
        cap_verification_not_found: Apply the not-found cap in the verification step
    """

    poll_interval: float = Field(
        default=2.0,
        gt=0,
        description="Interval in seconds between job status polling requests",
    )

    verify_retry_delay: float = Field(
        default=2.0,
        gt=0,
        description="Delay in seconds before re-verifying a job that is not visible yet",
    )

    not_found_retry_delay: float = Field(
        default=2.0,
        gt=0,
        description="Delay in seconds after a poll that found no job document",
    )

    transport_retry_delay: float = Field(
        default=1.0,
        gt=0,
        description="Delay in seconds after a poll that failed at the transport level",
    )

    max_not_found_retries: int = Field(
        default=10,
        ge=1,
        description="Consecutive not-found answers after which the job is failed",
    )

    max_consecutive_errors: int = Field(
        default=5,
        ge=1,
        description="Consecutive transport/server errors after which the job is failed",
    )

    max_poll_attempts: int = Field(
        default=120,
        ge=1,
        description="Maximum number of polls before the job is considered timed out",
    )

    retry_transport_during_verification: bool = Field(
        default=False,
        description="Retry transport errors during verification instead of failing at once",
    )

    cap_verification_not_found: bool = Field(
        default=True,
        description="Bound the verification not-found loop by max_not_found_retries",
    )

    model_config = {
        "frozen": True,  # Immutable after creation for safety
        "extra": "forbid",  # Reject unknown fields
    }

    @classmethod
    def from_app_settings(cls, settings) -> "SupervisorConfig":
        """Factory method to construct config from WebdashSettings instance.

        Args:
            settings: WebdashSettings instance from core.settings

        Returns:
            SupervisorConfig with values from app settings
        """
        return cls(
            poll_interval=settings.WEBDASH_POLL_INTERVAL,
            verify_retry_delay=settings.WEBDASH_VERIFY_RETRY_DELAY,
            not_found_retry_delay=settings.WEBDASH_NOT_FOUND_RETRY_DELAY,
            transport_retry_delay=settings.WEBDASH_TRANSPORT_RETRY_DELAY,
            max_not_found_retries=settings.WEBDASH_MAX_NOT_FOUND_RETRIES,
            max_consecutive_errors=settings.WEBDASH_MAX_CONSECUTIVE_ERRORS,
            max_poll_attempts=settings.WEBDASH_MAX_POLL_ATTEMPTS,
            retry_transport_during_verification=settings.WEBDASH_RETRY_TRANSPORT_DURING_VERIFICATION,
            cap_verification_not_found=settings.WEBDASH_CAP_VERIFICATION_NOT_FOUND,
        )
