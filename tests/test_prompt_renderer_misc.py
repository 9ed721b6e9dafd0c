import prompt_renderer
import pytest
from jinja2 import DictLoader, Environment, StrictUndefined, UndefinedError
from pydantic import BaseModel


class Person(BaseModel):
    name: str


def test_render_prompt_with_custom_env(monkeypatch):
    env = Environment(
        loader=DictLoader({"greet.j2": "Hello {{ name }}\n"}), autoescape=False
    )
    monkeypatch.setattr(prompt_renderer, "_env", env)
    result = prompt_renderer.render_prompt("greet.j2", {"name": "Bob"})
    assert result == "Hello Bob"


def test_tojson_with_pydantic_object(monkeypatch):
    env = Environment(
        loader=DictLoader({"obj.j2": "{{ person | tojson }}"}),
        autoescape=False,
    )
    env.filters["tojson"] = prompt_renderer._tojson
    monkeypatch.setattr(prompt_renderer, "_env", env)
    result = prompt_renderer.render_prompt("obj.j2", {"person": Person(name="Alice")})
    assert result == '{"name": "Alice"}'


def test_missing_variable_raises(monkeypatch):
    env = Environment(
        loader=DictLoader({"greet.j2": "Hello {{ name }}"}),
        undefined=StrictUndefined,
    )
    monkeypatch.setattr(prompt_renderer, "_env", env)
    with pytest.raises(UndefinedError):
        prompt_renderer.render_prompt("greet.j2", {})


def test_bundled_hint_template_renders():
    text = prompt_renderer.render_prompt(
        "quiz_agent/socratic_hint.j2",
        {"question": "What is entropy?", "subject_name": "Thermo", "unit": None},
    )
    assert "What is entropy?" in text
    assert "Thermo" in text
    assert "()" not in text
