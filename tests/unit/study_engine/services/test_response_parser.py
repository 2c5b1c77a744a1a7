import json
import pytest
from study_engine.services.response_parser import (
    decode_json,
    parse_flashcards,
    parse_quiz,
    parse_summary,
    strip_fences,
)
from tests.utils.fakes import quiz_json


@pytest.mark.parametrize("raw, expected", [
    ('{"a": 1}', '{"a": 1}'),
    ('```json\n{"a": 1}\n```', '{"a": 1}'),
    ('```\n[1, 2]\n```', '[1, 2]'),
    ('  \n```JSON\n{"a": 1}```  \n', '{"a": 1}'),
])
def test_strip_fences(raw, expected):
    assert strip_fences(raw) == expected


def test_decode_json_reports_failure_without_raising():
    result = decode_json("definitely not json")
    assert not result.ok
    assert result.value is None
    assert "invalid JSON" in str(result.error)

    assert not decode_json("   ").ok


def test_parse_summary_success():
    raw = json.dumps({
        "summary": "Cells need energy.",
        "topics": [{"title": "Mitochondria", "content": "They make ATP."}],
    })
    summary = parse_summary(f"```json\n{raw}\n```")

    assert summary.overall_text == "Cells need energy."
    assert len(summary.topics) == 1
    assert summary.topics[0].title == "Mitochondria"
    assert summary.topics[0].body == "They make ATP."


def test_parse_summary_missing_topics_defaults_to_empty():
    summary = parse_summary('{"summary": "Only an overview."}')
    assert summary.overall_text == "Only an overview."
    assert summary.topics == []


def test_parse_summary_fallback_keeps_raw_text():
    raw = "Sorry, here is a plain text summary instead."
    summary = parse_summary(raw)

    assert summary.overall_text == raw
    assert len(summary.topics) == 1
    assert summary.topics[0].title == "Main Content"
    assert summary.topics[0].body == raw


def test_parse_summary_wrong_shape_falls_back():
    raw = '{"overview": "wrong key"}'
    summary = parse_summary(raw)
    assert summary.overall_text == raw
    assert summary.topics[0].title == "Main Content"


def test_parse_flashcards_list():
    raw = json.dumps([
        {"question": "What is ATP?", "answer": "Energy currency."},
        {"question": "Where is it made?", "answer": "Mitochondria."},
    ])
    deck = parse_flashcards(raw, fallback_excerpt="unused")
    assert [c.question for c in deck.cards] == ["What is ATP?", "Where is it made?"]


def test_parse_flashcards_wraps_single_object():
    deck = parse_flashcards('{"question": "Q", "answer": "A"}', fallback_excerpt="unused")
    assert len(deck.cards) == 1
    assert deck.cards[0].answer == "A"


def test_parse_flashcards_drops_invalid_items():
    raw = json.dumps([{"question": "Q1", "answer": "A1"}, {"question": "no answer"}])
    deck = parse_flashcards(raw, fallback_excerpt="unused")
    assert len(deck.cards) == 1


def test_parse_flashcards_fallback_uses_excerpt():
    excerpt = "x" * 500
    deck = parse_flashcards("not json at all", fallback_excerpt=excerpt)

    assert len(deck.cards) == 2
    assert deck.cards[0].question == "What is the main topic of this content?"
    assert deck.cards[0].answer == "x" * 300 + "..."
    assert deck.cards[1].question == "What are the key concepts discussed?"


def test_parse_quiz_success_is_not_trimmed():
    quiz = parse_quiz(quiz_json(7, fenced=True), requested_count=5)
    assert len(quiz.questions) == 7
    assert quiz.questions[2].correct_index == 2
    assert quiz.questions[0].prompt == "Generated question 1?"


def test_parse_quiz_wraps_single_object():
    raw = json.dumps({"question": "Q?", "options": ["a", "b", "c", "d"], "correctAnswer": 3})
    quiz = parse_quiz(raw, requested_count=20)
    assert len(quiz.questions) == 1
    assert quiz.questions[0].correct_index == 3


def test_parse_quiz_drops_questions_with_bad_options():
    raw = json.dumps([
        {"question": "Three options", "options": ["a", "b", "c"], "correctAnswer": 0},
        {"question": "Bad index", "options": ["a", "b", "c", "d"], "correctAnswer": 4},
        {"question": "Fine", "options": ["a", "b", "c", "d"], "correctAnswer": 1},
    ])
    quiz = parse_quiz(raw, requested_count=3)
    assert [q.prompt for q in quiz.questions] == ["Fine"]


@pytest.mark.parametrize("requested, expected", [(20, 5), (3, 3), (1, 1)])
def test_parse_quiz_fallback(requested, expected):
    quiz = parse_quiz("The model rambled instead of answering.", requested_count=requested)

    assert len(quiz.questions) == expected
    for i, question in enumerate(quiz.questions):
        assert question.prompt == f"Question {i + 1}: What is discussed in this content?"
        assert len(question.options) == 4
        assert question.correct_index == 0


def test_parse_quiz_empty_list_falls_back():
    quiz = parse_quiz("[]", requested_count=20)
    assert 1 <= len(quiz.questions) <= 5


def test_wire_shapes():
    summary = parse_summary("plain")
    assert summary.model_dump(by_alias=True) == {
        "content": "plain",
        "topics": [{"title": "Main Content", "content": "plain"}],
    }

    quiz = parse_quiz("plain", requested_count=1)
    dumped = quiz.model_dump(by_alias=True)
    assert dumped["questions"][0]["question"].startswith("Question 1")
    assert dumped["questions"][0]["correctAnswer"] == 0
