from typing import Optional

import structlog
from celery import Celery
from celery.signals import worker_init

from .config import get_settings
from .infra.artifact_db import ArtifactCache
from .log_config import bind_job_context
from .models.artifact import ArtifactKind
from .services.artifact_service import get_artifact_service

logger = structlog.get_logger(__name__)

redis_url = get_settings().redis_url
celery = Celery("study_worker", broker=redis_url, backend=redis_url)


@worker_init.connect
def prepare_artifact_schema(**kwargs):
    ArtifactCache().ensure_schema()
    logger.info("artifact_schema_ready")


@celery.task(bind=True)
def generate_artifact_task(self, kind: str, document_id: str, owner_id: str, question_count: Optional[int] = None):
    """
    Produce (or fetch from cache) an artifact outside the request cycle.
    Returns the wire shape so the result backend can store it as JSON.
    """
    bind_job_context(self.request.id, kind, document_id)
    logger.info("artifact_job_started")
    service = get_artifact_service()
    kind = ArtifactKind(kind)

    if kind == ArtifactKind.SUMMARY:
        artifact = service.get_summary(document_id, owner_id)
    elif kind == ArtifactKind.FLASHCARDS:
        artifact = service.get_flashcards(document_id, owner_id)
    else:
        artifact = service.get_quiz(document_id, owner_id, question_count=question_count)

    logger.info("artifact_job_complete")
    return artifact.model_dump(by_alias=True, mode="json")
