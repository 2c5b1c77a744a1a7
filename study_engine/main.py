from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional, Union

from dotenv import load_dotenv

# Load environment variables (expects OPENAI_API_KEY, PG creds in .env)
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env")

# structlog caches its processor chain on first use; configure before other app imports
from .config import get_settings
from .log_config import configure_structlog

_settings = get_settings()
configure_structlog(log_level=_settings.log_level, json_logs=_settings.json_logs)

from contextlib import asynccontextmanager

import structlog
from celery.result import AsyncResult
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .celery_worker import generate_artifact_task
from .errors import ArtifactError
from .infra.artifact_db import ArtifactCache
from .log_config import bind_request_context
from .models.artifact import ArtifactKind
from .routes import artifacts
from .routes.artifacts import get_requester_id, status_for

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Creates the artifact cache table and indexes before serving."""
    ArtifactCache().ensure_schema()
    logger.info("artifact_schema_ready")
    yield


app = FastAPI(title="Study Artifact Engine", version="0.1.0", lifespan=lifespan)
app.include_router(artifacts.router)


@app.middleware("http")
async def request_log_context(request: Request, call_next):
    request_id = bind_request_context(request.headers.get("x-request-id"), request.headers.get("x-user-id"))
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(ArtifactError)
async def artifact_error_handler(request: Request, exc: ArtifactError) -> JSONResponse:
    """
    Catches engine errors raised outside route bodies (e.g. while building dependencies).
    """
    logger.warning("artifact_request_failed", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(status_code=status_for(exc), content={"detail": str(exc)})


@app.post("/jobs/{kind}/{document_id}")
async def start_artifact_job(
    kind: ArtifactKind,
    document_id: str,
    questions: Optional[int] = Query(None, ge=1),
    owner_id: str = Depends(get_requester_id),
) -> Dict[str, str]:
    """
    Queues artifact generation on the Celery worker.

    Returns:
        Dict[str, str]: The Celery task id and its status.
    """
    task = generate_artifact_task.delay(kind.value, document_id, owner_id, questions)
    return {"job_id": task.id, "status": "queued"}


@app.get("/jobs/{job_id}")
async def get_job_status(job_id: str) -> Dict[str, Union[str, Dict]]:
    """
    Retrieves the status of a background job.

    Returns:
        Dict[str, Union[str, Dict]]: The status of the job, and the artifact if complete.
    """
    result = AsyncResult(job_id, app=generate_artifact_task.app)
    if result.state == 'PENDING':
        return {"status": "processing"}
    elif result.state == 'SUCCESS':
        return {"status": "complete", "data": result.result}
    elif result.state == 'FAILURE':
        return {"status": "failed", "error": str(result.result)}
    else:
        return {"status": result.state}


@app.get("/health")
def health() -> Dict[str, str]:
    """
    Health check endpoint to verify service status.
    """
    return {"status": "ok"}


@app.get("/config")
def config_preview() -> Dict[str, Union[str, float, int, None]]:
    """
    Endpoint to preview current configuration (safely).
    """
    settings = get_settings()
    return {
        "openai_key_present": "true" if (settings.openai_api_key or os.getenv("OPENAI_API_KEY")) else "false",
        "chat_model": settings.chat_model,
        "postgres_host": settings.postgres_host,
        "generation_timeout_seconds": settings.generation_timeout_seconds,
        "default_quiz_questions": settings.default_quiz_questions,
    }
