from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, Field


class ArtifactKind(str, Enum):
    SUMMARY = "summary"
    FLASHCARDS = "flashcards"
    QUIZ = "quiz"


class Topic(BaseModel):
    title: str
    body: str = Field(alias="content")

    model_config = {"populate_by_name": True}


class Summary(BaseModel):
    """
    Topic-wise overview of a document.
    Serialized as {content, topics: [{title, content}]}.
    """
    overall_text: str = Field(alias="content")
    topics: List[Topic] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class Flashcard(BaseModel):
    question: str
    answer: str


class FlashcardDeck(BaseModel):
    cards: List[Flashcard] = Field(default_factory=list)


class QuizQuestion(BaseModel):
    prompt: str = Field(alias="question")
    options: List[str] = Field(min_length=4, max_length=4)
    correct_index: int = Field(alias="correctAnswer", ge=0, le=3)

    model_config = {"populate_by_name": True}


class Quiz(BaseModel):
    questions: List[QuizQuestion] = Field(default_factory=list)

    def first(self, count: int) -> "Quiz":
        """Returns a copy holding only the first `count` questions."""
        return Quiz(questions=list(self.questions[:count]))


DerivedArtifact = Union[Summary, FlashcardDeck, Quiz]

ARTIFACT_MODELS = {
    ArtifactKind.SUMMARY: Summary,
    ArtifactKind.FLASHCARDS: FlashcardDeck,
    ArtifactKind.QUIZ: Quiz,
}


class CacheEntry(BaseModel):
    """
    A persisted artifact keyed by (document_id, owner_id, kind[, size_parameter]).
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    document_id: str
    owner_id: str
    kind: ArtifactKind
    size_parameter: Optional[int] = None  # quiz only
    artifact: Optional[DerivedArtifact] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class CacheHit(BaseModel):
    artifact: DerivedArtifact
    stored_size: Optional[int] = None
