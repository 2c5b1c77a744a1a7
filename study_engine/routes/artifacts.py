from typing import List, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel

from study_engine.errors import ArtifactError, GenerationTimeout, GenerationUnavailable, NotFoundOrForbidden
from study_engine.models.artifact import FlashcardDeck, Quiz, Summary
from study_engine.services.artifact_service import ArtifactService, get_artifact_service

router = APIRouter(prefix="/documents", tags=["artifacts"])


# Dependency Injection helpers
def get_service() -> ArtifactService:
    return get_artifact_service()


def get_requester_id(x_user_id: str = Header(...)) -> str:
    """Identity of the caller, set by the authenticating proxy."""
    return x_user_id


def status_for(error: ArtifactError) -> int:
    if isinstance(error, NotFoundOrForbidden):
        return 404
    if isinstance(error, GenerationTimeout):
        return 504
    if isinstance(error, GenerationUnavailable):
        return 503
    return 500


def to_http_error(error: ArtifactError) -> HTTPException:
    return HTTPException(status_code=status_for(error), detail=str(error))


class CachedArtifactResponse(BaseModel):
    id: str
    kind: str
    size: Optional[int] = None
    created_at: str


@router.get("/{document_id}/summary", response_model=Summary)
def get_summary(
    document_id: str,
    owner_id: str = Depends(get_requester_id),
    service: ArtifactService = Depends(get_service),
):
    """
    Return the topic-wise summary of a document, generating it on first use.
    """
    try:
        return service.get_summary(document_id, owner_id)
    except ArtifactError as e:
        raise to_http_error(e)


@router.get("/{document_id}/flashcards", response_model=FlashcardDeck)
def get_flashcards(
    document_id: str,
    owner_id: str = Depends(get_requester_id),
    service: ArtifactService = Depends(get_service),
):
    try:
        return service.get_flashcards(document_id, owner_id)
    except ArtifactError as e:
        raise to_http_error(e)


@router.get("/{document_id}/quiz", response_model=Quiz)
def get_quiz(
    document_id: str,
    questions: Optional[int] = Query(None, ge=1),
    owner_id: str = Depends(get_requester_id),
    service: ArtifactService = Depends(get_service),
):
    """
    Return a multiple-choice quiz with `questions` questions (configured default when omitted).
    Larger cached quizzes are reused and cut down to the requested size.
    """
    try:
        return service.get_quiz(document_id, owner_id, question_count=questions)
    except ArtifactError as e:
        raise to_http_error(e)


@router.get("/{document_id}/artifacts", response_model=List[CachedArtifactResponse])
def list_cached_artifacts(
    document_id: str,
    owner_id: str = Depends(get_requester_id),
    service: ArtifactService = Depends(get_service),
):
    """
    List what has already been generated for a document.
    """
    try:
        entries = service.list_cached(document_id, owner_id)
    except ArtifactError as e:
        raise to_http_error(e)

    return [
        CachedArtifactResponse(
            id=str(entry.id),
            kind=entry.kind.value,
            size=entry.size_parameter,
            created_at=entry.created_at.isoformat(),
        )
        for entry in entries
    ]
