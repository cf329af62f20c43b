from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# Five modelled phases, two extra display slots (pre-verification and
# post-completion) kept for UI compatibility.
TOTAL_STEPS = 7


class GenerationStep(StrEnum):
    CREATING_SITE = "Creating website"
    GENERATING_SITEMAP = "Generating sitemap"
    DESIGNING_PAGES = "Designing pages"
    OPTIMIZING_FOR_DEVICES = "Optimizing for devices"
    FINALIZING = "Finalizing layout and content"


class ProgressStatus(StrEnum):
    pending = "pending"
    processing = "processing"
    complete = "complete"
    error = "error"
    cancelled = "cancelled"


class GenerationProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_index: int = Field(0, ge=0, lt=TOTAL_STEPS)
    total_steps: int = TOTAL_STEPS
    current_step: GenerationStep = GenerationStep.CREATING_SITE
    progress: int = Field(0, ge=0, le=100)
    status: ProgressStatus = ProgressStatus.pending

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            ProgressStatus.complete,
            ProgressStatus.error,
            ProgressStatus.cancelled,
        )
