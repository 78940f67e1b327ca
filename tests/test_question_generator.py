import json
from unittest.mock import patch

import pytest

from database.models import Question
from modules.interview.question_generator import (
    FALLBACK_QUESTIONS,
    build_question_prompt,
    generate_fallback_questions,
    generate_interview_questions,
    question_count,
)

RESUME = "Data engineer with Spark and Airflow experience."
JOB = "Senior data engineer, Spark, Kafka, AWS."


@pytest.mark.parametrize("duration,expected", [(15, 3), (30, 6), (45, 9), (60, 12), (75, 15), (90, 18)])
def test_question_count_is_duration_over_five(duration, expected):
    assert question_count(duration) == expected


def test_question_count_rounds_up():
    assert question_count(17) == 4


def test_fallback_questions_are_truncated_and_typed():
    questions = generate_fallback_questions("behavioral", 3, "advanced")
    assert len(questions) == 3
    assert all(isinstance(q, Question) for q in questions)
    assert [q.id for q in questions] == [1, 2, 3]
    assert {q.type for q in questions} == {"behavioral"}
    assert {q.difficulty for q in questions} == {"advanced"}


def test_unknown_type_uses_mixed_pool():
    questions = generate_fallback_questions("whiteboard", 2, "beginner")
    assert [q.question for q in questions] == FALLBACK_QUESTIONS["mixed"][:2]


def test_prompt_mentions_configuration():
    prompt = build_question_prompt(RESUME, JOB, "technical", "advanced", 30, 6)
    assert "6" in prompt
    assert "technical" in prompt
    assert RESUME in prompt


@patch("modules.interview.question_generator.chat_completion")
def test_parses_questions_object(mock_chat):
    mock_chat.return_value = "```json\n" + json.dumps({
        "questions": [
            {"id": 1, "question": "Explain Spark partitioning.", "type": "technical",
             "category": "spark", "difficulty": "advanced", "expectedDuration": "5 minutes",
             "followUpSuggestions": ["How do you pick the partition count?"]},
            {"question": "Describe a failed pipeline you fixed."},
        ]
    }) + "\n```"

    result = generate_interview_questions(RESUME, JOB, "technical", "advanced", 15, "gemini")

    assert not result.is_fallback
    assert result.meta["questionCount"] == 3
    first, second = result.data
    assert first.follow_up_suggestions == ("How do you pick the partition count?",)
    assert second.id == 2
    assert second.type == "technical"
    assert mock_chat.call_args.kwargs["model_name"] == "gemini"
    assert mock_chat.call_args.kwargs["temperature"] == 0.7


@patch("modules.interview.question_generator.chat_completion")
def test_bare_list_is_accepted(mock_chat):
    mock_chat.return_value = json.dumps([{"question": "Why this role?"}])
    result = generate_interview_questions(RESUME, JOB)
    assert [q.question for q in result.data] == ["Why this role?"]


@patch("modules.interview.question_generator.chat_completion")
def test_unparseable_reply_falls_back(mock_chat):
    mock_chat.return_value = "Here are some great questions for you!"

    result = generate_interview_questions(RESUME, JOB, "hr", "beginner", 15, "chatgpt")

    assert result.is_fallback
    assert result.raw == "Here are some great questions for you!"
    assert len(result.data) == min(3, len(FALLBACK_QUESTIONS["hr"]))
    assert {q.type for q in result.data} == {"hr"}


@patch("modules.interview.question_generator.chat_completion")
def test_empty_question_list_falls_back(mock_chat):
    mock_chat.return_value = json.dumps({"questions": [{"question": ""}]})
    assert generate_interview_questions(RESUME, JOB).is_fallback
