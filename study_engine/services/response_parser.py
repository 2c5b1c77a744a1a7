"""Decoding of raw generation output into study artifacts.

Every parse function returns a usable artifact. Decoding is an explicit
attempt that yields a `DecodeResult`; when it fails, the matching fallback
builder produces a deterministic placeholder artifact instead.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, List, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from ..errors import MalformedResponse
from ..models.artifact import Flashcard, FlashcardDeck, Quiz, QuizQuestion, Summary, Topic

logger = structlog.get_logger(__name__)

FALLBACK_TOPIC_TITLE = "Main Content"
FALLBACK_EXCERPT_CHARS = 300
MAX_FALLBACK_QUESTIONS = 5

_OPENING_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\n?```$")


@dataclass
class DecodeResult:
    ok: bool
    value: Any = None
    error: Optional[MalformedResponse] = None

    @classmethod
    def success(cls, value: Any) -> "DecodeResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> "DecodeResult":
        return cls(ok=False, error=MalformedResponse(reason))


class _GeneratedSummary(BaseModel):
    summary: str
    topics: List[Topic] = Field(default_factory=list)


def strip_fences(raw: str) -> str:
    """Remove an optional ```json ... ``` wrapper and surrounding whitespace."""
    text = raw.strip()
    text = _OPENING_FENCE.sub("", text, count=1)
    text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def decode_json(raw: str) -> DecodeResult:
    text = strip_fences(raw or "")
    if not text:
        return DecodeResult.failure("empty response")
    try:
        return DecodeResult.success(json.loads(text))
    except json.JSONDecodeError as e:
        return DecodeResult.failure(f"invalid JSON: {e}")


def _as_list(payload: Any) -> List[Any]:
    # A single decoded object stands for a one-element list
    return payload if isinstance(payload, list) else [payload]


def _decode_items(raw: str, model: type[BaseModel]) -> DecodeResult:
    decoded = decode_json(raw)
    if not decoded.ok:
        return decoded

    items = []
    for obj in _as_list(decoded.value):
        try:
            items.append(model.model_validate(obj))
        except ValidationError:
            continue

    if not items:
        return DecodeResult.failure(f"no valid {model.__name__} items")
    return DecodeResult.success(items)


# --- Summary ---

def decode_summary(raw: str) -> DecodeResult:
    decoded = decode_json(raw)
    if not decoded.ok:
        return decoded
    try:
        generated = _GeneratedSummary.model_validate(decoded.value)
    except ValidationError as e:
        return DecodeResult.failure(f"summary shape mismatch: {e.error_count()} errors")
    return DecodeResult.success(Summary(overall_text=generated.summary, topics=generated.topics))


def fallback_summary(raw: str) -> Summary:
    return Summary(
        overall_text=raw,
        topics=[Topic(title=FALLBACK_TOPIC_TITLE, body=raw)],
    )


def parse_summary(raw: str) -> Summary:
    result = decode_summary(raw)
    if result.ok:
        return result.value
    logger.warning("response_parse_fallback", kind="summary", reason=str(result.error))
    return fallback_summary(raw)


# --- Flashcards ---

def fallback_flashcards(fallback_excerpt: str) -> FlashcardDeck:
    return FlashcardDeck(cards=[
        Flashcard(
            question="What is the main topic of this content?",
            answer=(fallback_excerpt or "")[:FALLBACK_EXCERPT_CHARS] + "...",
        ),
        Flashcard(
            question="What are the key concepts discussed?",
            answer="The content covers various important topics that require further study.",
        ),
    ])


def parse_flashcards(raw: str, fallback_excerpt: str) -> FlashcardDeck:
    result = _decode_items(raw, Flashcard)
    if result.ok:
        return FlashcardDeck(cards=result.value)
    logger.warning("response_parse_fallback", kind="flashcards", reason=str(result.error))
    return fallback_flashcards(fallback_excerpt)


# --- Quiz ---

def fallback_quiz(requested_count: int) -> Quiz:
    count = max(1, min(requested_count, MAX_FALLBACK_QUESTIONS))
    return Quiz(questions=[
        QuizQuestion(
            prompt=f"Question {i + 1}: What is discussed in this content?",
            options=["Option A", "Option B", "Option C", "Option D"],
            correct_index=0,
        )
        for i in range(count)
    ])


def parse_quiz(raw: str, requested_count: int) -> Quiz:
    """
    Decode a quiz. The result is never trimmed to `requested_count`;
    only the fallback path looks at it.
    """
    result = _decode_items(raw, QuizQuestion)
    if result.ok:
        return Quiz(questions=result.value)
    logger.warning("response_parse_fallback", kind="quiz", reason=str(result.error))
    return fallback_quiz(requested_count)
