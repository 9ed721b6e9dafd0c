# main.py
"""CLI entry point for the ExamForge study-material engine."""

from __future__ import annotations

import argparse
import sys

from orchestration.cli_runner import run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="examforge")
    sub = parser.add_subparsers(dest="command", required=True)

    chat = sub.add_parser("chat", help="Answer a tutoring question (semantically cached)")
    chat.add_argument("--scope", required=True, help="Cache partition, usually the subject id")
    chat.add_argument("--query", required=True)
    chat.add_argument("--subject", required=True, help="Subject name")
    chat.add_argument("--subject-code", default="")
    chat.add_argument("--semester", type=int, default=1)
    chat.add_argument("--branch", default="")
    chat.add_argument("--source", help="Path to syllabus text")
    chat.add_argument("--history", help="Path to a JSON list of {role, content} messages")

    notes = sub.add_parser("notes", help="Generate quick notes (exact-key cached)")
    notes.add_argument("--scope", required=True)
    notes.add_argument("--topic", required=True, help="Subject or module name")
    notes.add_argument("--module-id", default=None)
    notes.add_argument("--source", help="Path to syllabus text")

    deck = sub.add_parser("deck", help="Generate a slide deck in stages")
    paper = sub.add_parser("paper", help="Generate a question paper in stages")
    for artifact in (deck, paper):
        artifact.add_argument("--source", required=True, help="Path to syllabus text")
        artifact.add_argument("--subject", required=True)
        artifact.add_argument("--subject-code", default="")
        artifact.add_argument(
            "--complexity",
            default="intermediate",
            help="basic, intermediate or advanced",
        )
    scope_group = deck.add_mutually_exclusive_group()
    scope_group.add_argument("--module", default=None)
    scope_group.add_argument("--topic", default=None)
    paper.add_argument("--topic", default=None, help="Coverage label for the paper")
    paper.add_argument("--config", required=True, help="Path to paper configuration JSON")
    paper.add_argument(
        "--past-papers", default=None, help="Path to a JSON list of {title, year}"
    )

    quiz = sub.add_parser("quiz", help="Generate a quiz")
    quiz.add_argument("--source", required=True)
    quiz.add_argument("--subject", required=True)
    quiz.add_argument("--count", type=int, default=10)
    quiz.add_argument(
        "--difficulty", default="mixed", choices=["easy", "medium", "hard", "mixed"]
    )
    quiz.add_argument(
        "--types",
        nargs="+",
        default=["mcq", "true_false", "short"],
        choices=["mcq", "true_false", "short", "multiple_correct", "match"],
    )
    quiz.add_argument("--topics", nargs="*", default=None)
    quiz.add_argument("--focus", default=None)

    hint = sub.add_parser("hint", help="Give a Socratic hint for a question")
    hint.add_argument("--question", required=True)
    hint.add_argument("--subject", required=True)
    hint.add_argument("--unit", default=None)

    suggest = sub.add_parser("suggest", help="Suggest starter questions for a subject")
    suggest.add_argument("--subject", required=True)
    suggest.add_argument("--source", required=True, help="Path to syllabus text")

    refine = sub.add_parser("refine", help="Refine existing study material")
    refine.add_argument("--content", required=True, help="Path to the content to refine")
    refine.add_argument(
        "--types",
        nargs="+",
        required=True,
        help="readability, examples, practice, expand and/or simplify",
    )
    refine.add_argument("--subject", default="this subject")
    refine.add_argument("--target-semester", type=int, default=None)
    refine.add_argument("--source", default=None, help="Path to syllabus text")

    grade = sub.add_parser("grade", help="Grade a quiz submission")
    grade.add_argument("--questions", required=True, help="Path to questions JSON")
    grade.add_argument("--answers", required=True, help="Path to answers JSON")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse command-line arguments and run ExamForge."""
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
