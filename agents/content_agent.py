# agents/content_agent.py
from typing import Any

import structlog
from config import settings
from core.llm_interface import llm_service
from parsing import ParseError, parse_json_array
from prompt_renderer import render_prompt

from models import GenerationUnit, PlanningHints

from .artifact_profiles import ArtifactProfile

logger = structlog.get_logger(__name__)

_PLANNING_KEYS = ("index", "type", "kind")


class ContentAgent:
    """Phase two of staged generation: fill one batch of planned units."""

    def _validate_batch_output(
        self, items: list[Any], units: list[GenerationUnit]
    ) -> list[dict[str, Any]]:
        """Check a batch response against the units it was asked to fill.

        The response must hold exactly one object per unit, in order. An
        object that repeats an ``index`` or ``type`` must agree with its unit,
        and every object needs at least one content field besides those.
        Raises ``ParseError`` on any shape mismatch.
        """
        if len(items) != len(units):
            raise ParseError(
                f"Expected {len(units)} items in batch response, got {len(items)}"
            )

        contents: list[dict[str, Any]] = []
        for unit, item in zip(units, items):
            if not isinstance(item, dict):
                raise ParseError(
                    f"Item for unit {unit.index} is {type(item).__name__}, expected an object"
                )

            echoed_index = item.get("index")
            if (
                isinstance(echoed_index, int)
                and not isinstance(echoed_index, bool)
                and echoed_index != unit.index
            ):
                raise ParseError(
                    f"Item for unit {unit.index} reports index {echoed_index}"
                )

            echoed_kind = item.get("type", item.get("kind"))
            if echoed_kind is not None and str(echoed_kind).strip().lower() != unit.kind.value:
                raise ParseError(
                    f"Item for unit {unit.index} reports type '{echoed_kind}', planned '{unit.kind.value}'"
                )

            content = {k: v for k, v in item.items() if k not in _PLANNING_KEYS}
            if not content:
                raise ParseError(f"Item for unit {unit.index} has no content")
            contents.append(content)
        return contents

    async def fill_batch(
        self,
        profile: ArtifactProfile,
        hints: PlanningHints,
        source_material: str,
        units: list[GenerationUnit],
    ) -> tuple[list[dict[str, Any]], dict[str, int] | None]:
        """Generate content for ``units``.

        Propagates ``ModelGatewayError`` from the gateway and ``ParseError``
        for malformed or mismatched output; the caller decides whether to skip.
        """
        prompt = render_prompt(
            profile.batch_template,
            profile.fill_context(
                hints, source_material, [unit.outline() for unit in units]
            ),
        )
        raw_text, usage_data = await llm_service.async_generate(
            profile.task_label,
            [{"role": "user", "content": prompt}],
            temperature=settings.TEMPERATURE_CONTENT,
            auto_clean_response=True,
        )
        items = parse_json_array(raw_text)
        return self._validate_batch_output(items, units), usage_data
