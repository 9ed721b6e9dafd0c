# agents/refine_agent.py
from collections.abc import Iterable

import structlog
from config import settings
from core.llm_interface import llm_service, truncate_text_by_tokens
from prompt_renderer import render_prompt

from models import RefinementType, RefineRequest

logger = structlog.get_logger(__name__)

REFINEMENT_LABELS = {
    RefinementType.READABILITY: "Improve Readability",
    RefinementType.EXAMPLES: "Add Real-World Examples",
    RefinementType.PRACTICE: "Add Practice Problems",
    RefinementType.EXPAND: "Expand Thin Sections",
    RefinementType.SIMPLIFY: "Simplify for Lower Semester",
}


def valid_refinement_types(raw_types: Iterable[object]) -> list[RefinementType]:
    """Keep the known refinement names, in request order, without repeats."""
    valid: list[RefinementType] = []
    for raw in raw_types:
        try:
            refinement = RefinementType(str(raw).strip().lower())
        except ValueError:
            logger.debug(f"Ignoring unknown refinement type '{raw}'.")
            continue
        if refinement not in valid:
            valid.append(refinement)
    return valid


class RefineAgent:
    """Reworks existing study material along the selected refinement types."""

    async def refine(
        self,
        request: RefineRequest,
        refinement_types: list[RefinementType],
        source_material: str = "",
    ) -> tuple[str, dict[str, int] | None]:
        """Return the refined markdown. Raises ``ModelGatewayError`` on gateway failure."""
        prompt = render_prompt(
            "refine_agent/refine_content.j2",
            {
                "subject_name": request.subject_name,
                "source_material": truncate_text_by_tokens(
                    source_material or "",
                    settings.model_for_task("refine"),
                    settings.MAX_SOURCE_TOKENS,
                ),
                "content_to_refine": request.content_to_refine.strip(),
                "refinement_types": [t.value for t in refinement_types],
                "target_semester": request.target_semester,
            },
        )
        logger.info(
            f"RefineAgent applying {', '.join(REFINEMENT_LABELS[t] for t in refinement_types)} "
            f"to {len(request.content_to_refine)} chars."
        )
        text, usage = await llm_service.async_generate(
            "refine",
            [{"role": "user", "content": prompt}],
            temperature=settings.TEMPERATURE_REFINE,
            auto_clean_response=True,
        )
        return text.strip(), usage
