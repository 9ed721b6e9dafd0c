# tests/test_quiz_agent.py
import json

import pytest
from agents.quiz_agent import QuizAgent, _difficulty_scope, _topic_scope, _type_scope
from core.llm_interface import llm_service
from orchestration.errors import GenerationError

from models import QuestionType, QuizRequest


def _item(**overrides):
    item = {
        "id": "q1",
        "type": "mcq",
        "question": "Which law defines temperature?",
        "options": ["A. Zeroth", "B. First", "C. Second", "D. Third"],
        "correctAnswer": "A",
        "explanation": "Thermal equilibrium.",
        "difficulty": "easy",
        "unit": "Unit 1",
    }
    item.update(overrides)
    return item


def test_parse_quiz_output_drops_malformed_questions():
    text = json.dumps(
        {
            "title": "Laws Quiz",
            "questions": [
                _item(),
                _item(id="q2", type="essay"),
                _item(id="q3", question="  "),
                _item(id="q4", correctAnswer=""),
                _item(id="q5", explanation=None),
                _item(id="q6", difficulty="brutal"),
                "not a question",
                _item(id="q1", type="true_false", correctAnswer="True", options=["True", "False"]),
            ],
        }
    )
    title, questions = QuizAgent()._parse_quiz_output(text)

    assert title == "Laws Quiz"
    assert [q.id for q in questions] == ["q1", "q1-8"]
    assert questions[0].options == ("A. Zeroth", "B. First", "C. Second", "D. Third")
    assert questions[1].options is None
    assert questions[1].correct_answer == "True"


def test_parse_quiz_output_accepts_snake_case_answer_and_defaults_id():
    text = json.dumps({"questions": [_item(id=None, correctAnswer=None, correct_answer="A|C", type="multiple_correct")]})
    title, questions = QuizAgent()._parse_quiz_output(text)
    assert title is None
    assert questions[0].id == "q1"
    assert questions[0].correct_answer == "A|C"


def test_parse_quiz_output_invalid_json():
    assert QuizAgent()._parse_quiz_output("no json here") == (None, [])


def test_scope_helpers():
    request = QuizRequest(subject_name="Thermo", selected_topics=["Entropy", "Enthalpy"], focus_topic="Entropy")
    assert '"Entropy"' in _topic_scope(request)
    assert "full syllabus" in _topic_scope(QuizRequest(subject_name="Thermo"))
    assert "hard" in _difficulty_scope("hard")
    assert "one-third" in _difficulty_scope("mixed")
    assert _type_scope([QuestionType.SHORT, QuestionType.MCQ, QuestionType.TRUE_FALSE]).startswith("Include a mix")
    assert "match" in _type_scope([QuestionType.MATCH])


@pytest.mark.asyncio
async def test_generate_quiz(monkeypatch):
    captured = {}

    async def fake_generate(task_label, messages, **kwargs):
        captured["task"] = task_label
        captured["prompt"] = messages[0]["content"]
        return json.dumps({"questions": [_item()]}), {"prompt_tokens": 5, "completion_tokens": 5}

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    request = QuizRequest(subject_name="Thermodynamics", question_count=3)
    quiz, usage = await QuizAgent().generate_quiz(request, "Zeroth law of thermodynamics")

    assert captured["task"] == "quiz_gen"
    assert "Zeroth law of thermodynamics" in captured["prompt"]
    assert quiz.title == "Thermodynamics Quiz"
    assert len(quiz.questions) == 1
    assert usage == {"prompt_tokens": 5, "completion_tokens": 5}


@pytest.mark.asyncio
async def test_generate_quiz_without_valid_questions(monkeypatch):
    async def fake_generate(task_label, messages, **kwargs):
        return json.dumps({"questions": [_item(type="essay")]}), None

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    with pytest.raises(GenerationError):
        await QuizAgent().generate_quiz(QuizRequest(subject_name="Thermo"), "syllabus")


@pytest.mark.asyncio
async def test_socratic_hint(monkeypatch):
    captured = {}

    async def fake_generate(task_label, messages, **kwargs):
        captured.update(task=task_label, prompt=messages[0]["content"], **kwargs)
        return "  Think about equilibrium.  ", None

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    hint, _ = await QuizAgent().socratic_hint("What is the zeroth law?", "Thermo", "Unit 1")

    assert hint == "Think about equilibrium."
    assert captured["task"] == "hint"
    assert captured["max_tokens"] == 512
    assert "Thermo (Unit 1)" in captured["prompt"]
