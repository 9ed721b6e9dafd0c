# orchestration/cli_runner.py
"""Command-line runner for the ExamForge engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import structlog
from agents.artifact_profiles import build_past_paper_context
from config import settings
from core.db_manager import neo4j_manager
from core.llm_interface import ModelGatewayError, llm_service
from pydantic import BaseModel, TypeAdapter
from utils.logging import setup_logging

from models import (
    ArtifactType,
    GradableQuestion,
    PaperConfig,
    PlanningHints,
    QuestionType,
    QuizRequest,
    RefineRequest,
    SubjectContext,
)
from orchestration.errors import GenerationError, InvalidRequestError
from orchestration.service_layer import StudyEngine

logger = structlog.get_logger(__name__)

CACHED_COMMANDS = frozenset({"chat", "notes"})


def _read_text(path: str | None) -> str:
    if not path:
        return ""
    return Path(path).read_text(encoding="utf-8")


def _read_json(path: str | None, default: Any = None) -> Any:
    if not path:
        return default
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _emit(result: BaseModel | dict[str, Any] | str) -> None:
    if isinstance(result, BaseModel):
        print(result.model_dump_json(indent=2))
    elif isinstance(result, str):
        print(json.dumps({"text": result}, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(result, indent=2, ensure_ascii=False))


async def _dispatch(engine: StudyEngine, args: argparse.Namespace) -> Any:
    command = args.command
    if command == "chat":
        subject = SubjectContext(
            subject_name=args.subject,
            subject_code=args.subject_code,
            semester=args.semester,
            branch=args.branch,
        )
        return await engine.answer_with_cache(
            args.scope,
            args.query,
            subject,
            _read_text(args.source),
            _read_json(args.history, default=[]),
        )
    if command == "notes":
        return await engine.generate_quick_notes(
            args.scope, _read_text(args.source), args.topic, args.module_id
        )
    if command in ("deck", "paper"):
        paper_config = (
            PaperConfig.model_validate(_read_json(args.config))
            if command == "paper"
            else None
        )
        hints = PlanningHints(
            artifact_type=ArtifactType(command),
            subject_name=args.subject,
            subject_code=args.subject_code,
            module_name=getattr(args, "module", None),
            custom_topic=getattr(args, "topic", None),
            complexity=args.complexity,
            paper_config=paper_config,
            past_paper_context=build_past_paper_context(
                _read_json(getattr(args, "past_papers", None), default=[])
            )
            if command == "paper"
            else None,
        )
        return await engine.generate_artifact(_read_text(args.source), hints)
    if command == "quiz":
        request = QuizRequest(
            subject_name=args.subject,
            question_count=args.count,
            difficulty=args.difficulty,
            question_types=[QuestionType(t) for t in args.types],
            selected_topics=args.topics or [],
            focus_topic=args.focus,
        )
        return await engine.generate_quiz(request, _read_text(args.source))
    if command == "hint":
        return await engine.socratic_hint(args.question, args.subject, args.unit)
    if command == "suggest":
        return {
            "suggestions": await engine.suggest_prompts(
                args.subject, _read_text(args.source)
            )
        }
    if command == "refine":
        request = RefineRequest(
            content_to_refine=_read_text(args.content),
            refinement_types=args.types,
            subject_name=args.subject,
            target_semester=args.target_semester,
        )
        return await engine.refine_content(request, _read_text(args.source))
    if command == "grade":
        raw_questions = _read_json(args.questions, default=[])
        if isinstance(raw_questions, dict):
            raw_questions = raw_questions.get("questions", [])
        questions = TypeAdapter(list[GradableQuestion]).validate_python(
            [_question_from_json(q) for q in raw_questions]
        )
        return engine.grade_submission(questions, _read_json(args.answers, default={}))
    raise ValueError(f"Unknown command '{command}'")


def _question_from_json(data: dict[str, Any]) -> dict[str, Any]:
    """Accept both ``correctAnswer`` and ``correct_answer`` spellings."""
    item = dict(data)
    if "correct_answer" not in item and "correctAnswer" in item:
        item["correct_answer"] = item.pop("correctAnswer")
    if isinstance(item.get("options"), list):
        item["options"] = tuple(item["options"])
    return item


async def _run(args: argparse.Namespace) -> int:
    engine = StudyEngine()
    try:
        await _prepare_cache_store(args.command)
        result = await _dispatch(engine, args)
    except (InvalidRequestError, GenerationError, ModelGatewayError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps({"error": str(e)}), file=sys.stderr)
        return 1
    finally:
        usage = engine.token_accountant.summary()
        if usage:
            logger.info(f"Usage this run: {usage}")
        await _shutdown()
    _emit(result)
    return 0


async def _prepare_cache_store(command: str) -> None:
    """Connect to Neo4j and apply the cache schema before a cached command."""
    if command not in CACHED_COMMANDS or settings.CACHE_BACKEND != "neo4j":
        return
    try:
        await neo4j_manager.connect()
        await neo4j_manager.create_db_schema()
        logger.info("Neo4j connection and cache schema verified.")
    except Exception as exc:
        # lookups fail open, so the command still runs without the cache
        logger.error("Neo4j cache store setup failed: %s", exc, exc_info=True)


async def _shutdown() -> None:
    try:
        await neo4j_manager.close()
        await llm_service.aclose()
    except Exception as e:
        logger.warning("Could not cleanly shut down clients: %s", e)


def run(args: argparse.Namespace) -> int:
    """Set up logging and run one CLI command."""
    setup_logging()
    exit_code = 1
    try:
        exit_code = asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("ExamForge shutting down gracefully due to KeyboardInterrupt...")
    except Exception as main_err:  # pragma: no cover - entry point catch
        logger.critical(
            "ExamForge encountered an unhandled main exception: %s",
            main_err,
            exc_info=True,
        )
    return exit_code
