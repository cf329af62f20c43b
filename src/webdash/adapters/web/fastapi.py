# webdash/adapters/web/fastapi.py
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict

import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from webdash.core.exceptions import (
    InvalidSupervisorStateError,
    JobStartError,
    UnknownJobError,
)
from webdash.core.interfaces.http_client import HttpClientPort
from webdash.core.logging_config import bind_correlation_id, correlation_id_var
from webdash.core.managers.generation_tracker import GenerationTracker
from webdash.core.managers.job_supervisor import JobSupervisor
from webdash.core.managers.observers import ProgressHistoryObserver
from webdash.core.models.progress import GenerationProgress
from webdash.core.models.upstream_error import UpstreamErrorResponse
from webdash.core.settings import logger


def progress_view(progress: GenerationProgress) -> Dict[str, Any]:
    return {
        "currentStep": progress.current_step.value,
        "stepIndex": progress.step_index,
        "totalSteps": progress.total_steps,
        "progress": progress.progress,
        "status": progress.status.value,
    }


def supervisor_view(
    supervisor: JobSupervisor, history: ProgressHistoryObserver | None = None
) -> Dict[str, Any]:
    outcome = supervisor.outcome
    view: Dict[str, Any] = {
        "jobId": supervisor.job_id,
        "state": supervisor.state.value,
        "progress": progress_view(supervisor.progress),
        "outcome": jsonable_encoder(outcome.model_dump(by_alias=True)) if outcome else None,
    }
    if history is not None:
        view["history"] = [progress_view(p) for p in history.history(supervisor.job_id)]
    return view


# Driver adapter: it depends on the core (GenerationTracker) but the core does
# not depend on it.
def create_app(
    tracker_factory: Callable[[HttpClientPort], GenerationTracker],
    http_client: HttpClientPort,
):
    """Create the FastAPI app.

    The tracker and its adapters are assembled by the composition root and
    handed in as a factory that receives the opened HTTP client. This module
    only deals with HTTP concerns and lifecycle.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with http_client as client:
            tracker = tracker_factory(client)
            app.state.tracker = tracker
            app.state.history = ProgressHistoryObserver()
            try:
                yield
            finally:
                await tracker.shutdown()

    app = FastAPI(title="webdash generation tracker", lifespan=lifespan)

    def render_problem(
        problem: UpstreamErrorResponse,
        *,
        include_request_id: bool = False,
    ) -> JSONResponse:
        payload = jsonable_encoder(problem.model_dump(exclude_none=True))
        response = JSONResponse(
            status_code=problem.status,
            content=payload,
            media_type="application/problem+json",
        )
        if include_request_id and problem.additional and problem.additional.requestId:
            response.headers["X-Request-ID"] = problem.additional.requestId
        return response

    def build_problem(status: int, title: str, detail: str, request: Request) -> UpstreamErrorResponse:
        return UpstreamErrorResponse(
            title=title,
            status=status,
            detail=detail,
            instance=str(request.url),
        )

    # Correlation id middleware: per-request id (header override) exposed to logging
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        cid = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        with bind_correlation_id(cid):
            response = await call_next(request)
        response.headers["X-Request-ID"] = cid
        return response

    @app.exception_handler(UnknownJobError)
    async def unknown_job_handler(request: Request, exc: UnknownJobError):
        return render_problem(build_problem(404, "Job Not Found", exc.message, request))

    @app.exception_handler(InvalidSupervisorStateError)
    async def invalid_state_handler(request: Request, exc: InvalidSupervisorStateError):
        return render_problem(build_problem(409, "Invalid Job State", exc.message, request))

    @app.exception_handler(JobStartError)
    async def job_start_handler(request: Request, exc: JobStartError):
        problem = build_problem(502, "Job Start Failed", exc.message, request)
        problem = problem.with_request_id(correlation_id_var.get())
        return render_problem(problem, include_request_id=True)

    @app.get("/health")
    async def health(request: Request):
        tracker: GenerationTracker = request.app.state.tracker
        return {"status": "ok", "activeJobs": len(tracker.active_job_ids())}

    @app.put("/generations/{job_id}", status_code=202)
    async def track_generation(job_id: str, request: Request):
        tracker: GenerationTracker = request.app.state.tracker
        history: ProgressHistoryObserver = request.app.state.history
        supervisor = tracker.track(job_id, observers=[history])
        logger.debug(f"[web:track] job_id={job_id} state={supervisor.state}")
        return supervisor_view(supervisor, history)

    @app.get("/generations/{job_id}")
    async def get_generation(job_id: str, request: Request):
        tracker: GenerationTracker = request.app.state.tracker
        supervisor = tracker.require(job_id)
        return supervisor_view(supervisor, request.app.state.history)

    @app.post("/generations/{job_id}/cancel")
    async def cancel_generation(job_id: str, request: Request, notifyServer: bool = False):
        tracker: GenerationTracker = request.app.state.tracker
        tracker.cancel(job_id, notify_server=notifyServer)
        return supervisor_view(tracker.require(job_id), request.app.state.history)

    @app.post("/generations/{job_id}/retry", status_code=202)
    async def retry_generation(job_id: str, request: Request):
        tracker: GenerationTracker = request.app.state.tracker
        supervisor = await tracker.retry(job_id)
        logger.info(f"[web:retry] job_id={job_id} now supervising job_id={supervisor.job_id}")
        return supervisor_view(supervisor, request.app.state.history)

    return app
