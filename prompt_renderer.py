# prompt_renderer.py
"""Render model prompts from the Jinja2 templates under ``prompts/``."""

import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from pydantic import BaseModel

PROMPTS_PATH = Path(__file__).parent / "prompts"
_env = Environment(
    loader=FileSystemLoader(PROMPTS_PATH),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if hasattr(value, "value"):
        return value.value
    raise TypeError(
        f"Object of type {value.__class__.__name__} is not JSON serializable"
    )


def _dumps(obj: Any, **kwargs: Any) -> str:
    return json.dumps(obj, default=_json_default, ensure_ascii=False, **kwargs)


def _tojson(value: Any, indent: int | None = None) -> str:
    """``tojson`` filter that understands pydantic models and enums."""
    kwargs: dict[str, Any] = {}
    if indent is not None:
        kwargs["indent"] = indent
    return _dumps(value, **kwargs)


_env.policies["json.dumps_function"] = _dumps
_env.filters["tojson"] = _tojson


def render_prompt(template_name: str, context: dict[str, Any]) -> str:
    """Render ``template_name`` (relative to ``prompts/``) with ``context``."""
    template = _env.get_template(template_name)
    return template.render(**context).strip()
