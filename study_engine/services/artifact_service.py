from __future__ import annotations

import threading
from functools import lru_cache
from typing import List, Optional

import structlog

from ..config import get_settings
from ..errors import CachePersistFailure, GenerationTimeout, NotFoundOrForbidden
from ..generation_client import GenerationClient, build_generation_client
from ..infra.artifact_db import ArtifactCache
from ..infra.document_store import DocumentStore, PostgresDocumentStore
from ..models.artifact import ArtifactKind, CacheEntry, DerivedArtifact, FlashcardDeck, Quiz, Summary
from ..models.document import Document
from .prompts import PromptFactory
from .response_parser import parse_flashcards, parse_quiz, parse_summary
from .single_flight import SingleFlight

logger = structlog.get_logger(__name__)

DEFAULT_QUIZ_QUESTIONS = 20


class ArtifactService:
    """
    Produces summaries, flashcard decks and quizzes for a user's documents.

    Each request checks ownership, then serves from the cache or generates,
    parses and persists a new artifact. Generation for a given cache key runs
    at most once at a time; concurrent identical requests share its outcome.
    """

    def __init__(
        self,
        documents: DocumentStore,
        cache: ArtifactCache,
        client: GenerationClient,
        generation_timeout: float = 45.0,
        default_quiz_questions: int = DEFAULT_QUIZ_QUESTIONS,
    ):
        self.documents = documents
        self.cache = cache
        self.client = client
        self.generation_timeout = generation_timeout
        self.default_quiz_questions = default_quiz_questions
        self._flights = SingleFlight()

    def get_summary(self, document_id: str, owner_id: str) -> Summary:
        return self._get_or_create(document_id, owner_id, ArtifactKind.SUMMARY)

    def get_flashcards(self, document_id: str, owner_id: str) -> FlashcardDeck:
        return self._get_or_create(document_id, owner_id, ArtifactKind.FLASHCARDS)

    def get_quiz(self, document_id: str, owner_id: str, question_count: Optional[int] = None) -> Quiz:
        """
        Returns a quiz with `question_count` questions (default 20).

        A cached quiz with at least that many questions is reused and trimmed.
        Otherwise exactly `question_count` questions are requested from the
        generator and the result is stored as a new entry.
        """
        count = self.default_quiz_questions if question_count is None else question_count
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValueError(f"question_count must be a positive integer, got {question_count!r}")
        return self._get_or_create(document_id, owner_id, ArtifactKind.QUIZ, size=count)

    def list_cached(self, document_id: str, owner_id: str) -> List[CacheEntry]:
        self._require_document(document_id, owner_id)
        return self.cache.list_entries(document_id, owner_id)

    def _require_document(self, document_id: str, owner_id: str) -> Document:
        document = self.documents.get(document_id, owner_id)
        if document is None or document.owner_id != owner_id:
            raise NotFoundOrForbidden(document_id)
        return document

    def _get_or_create(self, document_id: str, owner_id: str, kind: ArtifactKind, size: Optional[int] = None) -> DerivedArtifact:
        document = self._require_document(document_id, owner_id)

        hit = self.cache.get(document_id, owner_id, kind, min_size=size)
        if hit is not None:
            logger.info("artifact_cache_hit", document_id=document_id, kind=kind.value,
                        requested_size=size, stored_size=hit.stored_size)
            return hit.artifact

        key = (document_id, owner_id, kind.value, size)
        return self._flights.do(key, lambda: self._produce(document_id, owner_id, document, kind, size))

    def _produce(self, document_id: str, owner_id: str, document: Document, kind: ArtifactKind, size: Optional[int]) -> DerivedArtifact:
        # A flight that finished after our first lookup may already have stored it
        hit = self.cache.get(document_id, owner_id, kind, min_size=size)
        if hit is not None:
            return hit.artifact

        prompt = PromptFactory.build(kind, document.content, size)
        raw = self._generate(prompt)
        artifact = self._parse(kind, raw, document, size)

        stored_size = len(artifact.questions) if isinstance(artifact, Quiz) else None
        try:
            self.cache.put(document_id, owner_id, kind, artifact, size=stored_size)
        except CachePersistFailure as e:
            logger.error("artifact_persist_failed", document_id=document_id, owner_id=owner_id,
                         kind=kind.value, size=stored_size, error=str(e))

        logger.info("artifact_generated", document_id=document_id, kind=kind.value,
                    requested_size=size, stored_size=stored_size)
        return artifact

    def _generate(self, prompt: str) -> str:
        """
        Runs one generation call on its own daemon thread and waits at most
        `generation_timeout` seconds for it. A call that overruns is abandoned
        and holds no shared worker.
        """
        outcome = {}
        done = threading.Event()

        def call():
            try:
                outcome["text"] = self.client.generate(prompt)
            except Exception as e:
                outcome["error"] = e
            finally:
                done.set()

        threading.Thread(target=call, name="generation", daemon=True).start()
        if not done.wait(self.generation_timeout):
            logger.warning("generation_timed_out", timeout_seconds=self.generation_timeout)
            raise GenerationTimeout(self.generation_timeout)
        if "error" in outcome:
            raise outcome["error"]
        return outcome["text"]

    def _parse(self, kind: ArtifactKind, raw: str, document: Document, size: Optional[int]) -> DerivedArtifact:
        if kind == ArtifactKind.SUMMARY:
            return parse_summary(raw)
        if kind == ArtifactKind.FLASHCARDS:
            return parse_flashcards(raw, fallback_excerpt=document.content)
        return parse_quiz(raw, requested_count=size)


@lru_cache()
def get_artifact_service() -> ArtifactService:
    settings = get_settings()
    return ArtifactService(
        documents=PostgresDocumentStore(),
        cache=ArtifactCache(),
        client=build_generation_client(settings),
        generation_timeout=settings.generation_timeout_seconds,
        default_quiz_questions=settings.default_quiz_questions,
    )
