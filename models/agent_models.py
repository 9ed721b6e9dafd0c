"""Structures shared by the agents and the model gateway."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, TypedDict

from pydantic import BaseModel, Field


class ChatMessage(TypedDict):
    """A single message sent to the model gateway."""

    role: Literal["user", "assistant"]
    content: str


class UnitOutline(TypedDict, total=False):
    """One planned unit as sent to a fill call."""

    index: int
    type: str
    title: str
    attributes: dict[str, Any]


class SubjectContext(BaseModel):
    """Subject metadata used to build the tutor system prompt."""

    subject_name: str
    subject_code: str = ""
    semester: int = Field(default=1, ge=1)
    branch: str = ""
    reference_books: str = ""


class RefinementType(str, Enum):
    READABILITY = "readability"
    EXAMPLES = "examples"
    PRACTICE = "practice"
    EXPAND = "expand"
    SIMPLIFY = "simplify"


class RefineRequest(BaseModel):
    """Faculty request to rework existing study material.

    ``refinement_types`` holds raw names; unknown names are ignored when the
    request is served.
    """

    content_to_refine: str
    refinement_types: list[str] = Field(default_factory=list)
    subject_name: str = "this subject"
    target_semester: int | None = Field(default=None, ge=1)
