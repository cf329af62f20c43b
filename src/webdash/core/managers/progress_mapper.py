"""Maps coarse server progress onto the discrete generation steps."""

from webdash.core.models.progress import (
    TOTAL_STEPS,
    GenerationProgress,
    GenerationStep,
    ProgressStatus,
)

# Upper bound (inclusive) of each progress band, in step order.
_BANDS: tuple[tuple[int, GenerationStep], ...] = (
    (20, GenerationStep.CREATING_SITE),
    (40, GenerationStep.GENERATING_SITEMAP),
    (60, GenerationStep.DESIGNING_PAGES),
    (80, GenerationStep.OPTIMIZING_FOR_DEVICES),
    (100, GenerationStep.FINALIZING),
)


def map_progress(progress: int) -> tuple[GenerationStep, int]:
    """Return the step and its index for a 0-100 progress value.

    Out-of-range input is clamped first, so every integer maps to exactly one step.
    """
    clamped = max(0, min(100, int(progress)))
    for index, (upper, step) in enumerate(_BANDS):
        if clamped <= upper:
            return step, index
    return _BANDS[-1][1], len(_BANDS) - 1  # pragma: no cover - unreachable after clamp


def running_progress(progress: int, status: ProgressStatus = ProgressStatus.processing) -> GenerationProgress:
    step, index = map_progress(progress)
    return GenerationProgress(
        step_index=index,
        current_step=step,
        progress=max(0, min(100, int(progress))),
        status=status,
    )


def initial_progress() -> GenerationProgress:
    return GenerationProgress()


def completed_progress() -> GenerationProgress:
    return GenerationProgress(
        step_index=TOTAL_STEPS - 1,
        current_step=GenerationStep.FINALIZING,
        progress=100,
        status=ProgressStatus.complete,
    )


def halted_progress(status: ProgressStatus) -> GenerationProgress:
    """Progress shown once a job failed or was cancelled: reset to the first step."""
    return GenerationProgress(
        step_index=0,
        current_step=GenerationStep.CREATING_SITE,
        progress=0,
        status=status,
    )


def progress_for(status: ProgressStatus, progress: int = 0) -> GenerationProgress:
    """Fixed-shape progress for a status: terminal ones ignore `progress`."""
    if status == ProgressStatus.complete:
        return completed_progress()
    if status in (ProgressStatus.error, ProgressStatus.cancelled):
        return halted_progress(status)
    return running_progress(progress, status)
