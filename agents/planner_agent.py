# agents/planner_agent.py
from typing import Any

import structlog
from config import settings
from core.llm_interface import ModelGatewayError, llm_service
from orchestration.errors import PlanningError
from parsing import ParseError, parse_json_object
from prompt_renderer import render_prompt

from models import ArtifactPlan, GenerationUnit, PlanningHints, UnitKind

from .artifact_profiles import ArtifactProfile

logger = structlog.get_logger(__name__)

PLAN_LIST_KEYS = ("outline", "units", "slides", "questions")
PLAN_TITLE_KEYS = ("title", "presentationTitle", "paperTitle")


class PlannerAgent:
    """Phase one of staged generation: ask the model for an ordered unit outline."""

    def __init__(self, max_units: int = settings.MAX_PLANNED_UNITS):
        self.max_units = max_units
        logger.info(f"PlannerAgent initialized (max units per plan: {self.max_units}).")

    def _parse_plan_output(
        self, text: str, profile: ArtifactProfile, hints: PlanningHints
    ) -> ArtifactPlan:
        """
        Parses the JSON plan returned by the model.
        Expects an object with an ``outline`` array of ``{index, type, title}``
        items. Items with an unknown kind or a blank title are dropped, the
        rest are ordered by the planner's index and renumbered from 0.
        """
        try:
            data = parse_json_object(text)
        except ParseError as e:
            raise PlanningError(f"Plan output could not be parsed: {e}") from e

        raw_items: Any = None
        for key in PLAN_LIST_KEYS:
            if isinstance(data.get(key), list):
                raw_items = data[key]
                break
        if not raw_items:
            raise PlanningError("Plan output contains no outline items.")

        candidates: list[tuple[int, int, UnitKind, str, dict[str, Any]]] = []
        for position, item in enumerate(raw_items):
            if not isinstance(item, dict):
                logger.warning(
                    f"Plan item {position} is not an object. Skipping. Item: {str(item)[:100]}"
                )
                continue

            raw_kind = str(item.get("type") or item.get("kind") or "").strip().lower()
            try:
                kind = UnitKind(raw_kind)
            except ValueError:
                logger.warning(f"Plan item {position} has unknown kind '{raw_kind}'. Skipping.")
                continue
            if not profile.accepts(kind):
                logger.warning(
                    f"Plan item {position} kind '{kind.value}' is not valid for a "
                    f"{profile.artifact_type.value}. Skipping."
                )
                continue

            title = item.get("title")
            if not isinstance(title, str) or not title.strip():
                logger.warning(f"Plan item {position} has a missing title. Skipping.")
                continue

            planner_index = item.get("index")
            if not isinstance(planner_index, int) or isinstance(planner_index, bool):
                planner_index = position

            attributes = item.get("attributes")
            candidates.append(
                (
                    planner_index,
                    position,
                    kind,
                    title.strip(),
                    attributes if isinstance(attributes, dict) else {},
                )
            )

        if not candidates:
            raise PlanningError("No valid units survived plan parsing.")

        candidates.sort(key=lambda c: (c[0], c[1]))
        if len(candidates) > self.max_units:
            logger.warning(
                f"Plan has {len(candidates)} units; truncating to {self.max_units}."
            )
            candidates = candidates[: self.max_units]

        units = [
            GenerationUnit(index=i, kind=kind, title=title, attributes=attributes)
            for i, (_, _, kind, title, attributes) in enumerate(candidates)
        ]

        plan_title = next(
            (
                str(data[k]).strip()
                for k in PLAN_TITLE_KEYS
                if isinstance(data.get(k), str) and data[k].strip()
            ),
            f"{hints.subject_name}: {hints.topic}",
        )
        return ArtifactPlan(
            title=plan_title,
            subject=str(data.get("subject") or hints.subject_name),
            topic=str(data.get("topic") or hints.topic),
            units=units,
        )

    async def plan_artifact(
        self,
        profile: ArtifactProfile,
        hints: PlanningHints,
        source_material: str,
    ) -> tuple[ArtifactPlan, dict[str, int] | None]:
        """Generate the unit outline for an artifact.

        Args:
            profile: Artifact profile selecting templates and allowed kinds.
            hints: Subject, topic, complexity and paper configuration.
            source_material: Syllabus text the artifact is built from.

        Returns:
            The plan and the token usage of the planning call.

        Raises:
            PlanningError: if the gateway fails or no usable units are parsed.
        """
        prompt = render_prompt(
            profile.outline_template,
            profile.planning_context(hints, source_material),
        )
        logger.info(
            f"Planning {profile.artifact_type.value} for '{hints.subject_name}' / '{hints.topic}' "
            f"(target: {profile.target_range(hints)}, complexity: {hints.complexity.value})."
        )
        try:
            raw_text, usage_data = await llm_service.async_generate(
                profile.task_label,
                [{"role": "user", "content": prompt}],
                temperature=settings.TEMPERATURE_PLANNING,
                auto_clean_response=True,
            )
        except ModelGatewayError as e:
            logger.error(f"Planning call failed for '{hints.topic}': {e}")
            raise PlanningError(f"Planning call failed: {e}") from e

        try:
            plan = self._parse_plan_output(raw_text, profile, hints)
        except PlanningError:
            logger.error(
                f"Failed to parse a valid plan for '{hints.topic}'. Output: '{raw_text[:500]}...'"
            )
            raise

        logger.info(f"Plan for '{plan.title}' has {len(plan.units)} units.")
        return plan, usage_data
