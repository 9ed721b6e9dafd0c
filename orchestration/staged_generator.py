# orchestration/staged_generator.py
"""Two-phase generation of large artifacts (slide decks, question papers).

Phase one asks the model for an ordered outline of units. Phase two fills the
outline in fixed-size batches, one model call per batch, issued sequentially
with a short delay between calls. A batch whose call fails or whose output
does not line up with the batch is skipped; the artifact is assembled from
whatever units received content.
"""

from __future__ import annotations

import asyncio

import structlog
from agents.artifact_profiles import ArtifactProfile, profile_for
from agents.content_agent import ContentAgent
from agents.planner_agent import PlannerAgent
from config import settings
from core.llm_interface import ModelGatewayError, truncate_text_by_tokens
from parsing import ParseError

from models import (
    ArtifactType,
    BatchReport,
    BatchStatus,
    GeneratedArtifact,
    GenerationState,
    GenerationUnit,
    PlanningHints,
)
from orchestration.errors import InvalidRequestError, PlanningError
from orchestration.token_accountant import TokenAccountant

logger = structlog.get_logger(__name__)


class StagedGenerator:
    """Plan, fill in batches, and assemble an artifact."""

    def __init__(
        self,
        planner: PlannerAgent | None = None,
        content_agent: ContentAgent | None = None,
        token_accountant: TokenAccountant | None = None,
        batch_size: int | None = None,
        batch_delay_seconds: float | None = None,
    ) -> None:
        self.planner = planner or PlannerAgent()
        self.content_agent = content_agent or ContentAgent()
        self.token_accountant = token_accountant or TokenAccountant()
        self.batch_size = batch_size or settings.GENERATION_BATCH_SIZE
        self.batch_delay_seconds = (
            batch_delay_seconds
            if batch_delay_seconds is not None
            else settings.GENERATION_BATCH_DELAY_SECONDS
        )
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    def _record_usage(self, task_label: str, usage: dict[str, int] | None) -> None:
        try:
            self.token_accountant.record_usage(task_label, usage)
        except Exception as e:  # pragma: no cover - accounting is best effort
            logger.warning(f"Failed to record usage for '{task_label}': {e}")

    def _prepare_source(self, profile: ArtifactProfile, source_material: str) -> str:
        return truncate_text_by_tokens(
            source_material.strip(),
            settings.model_for_task(profile.task_label),
            settings.MAX_SOURCE_TOKENS,
        )

    async def generate(
        self, source_material: str, hints: PlanningHints
    ) -> GeneratedArtifact:
        """Run both phases and return the assembled artifact.

        Raises ``InvalidRequestError`` for missing source material or paper
        configuration and ``PlanningError`` if phase one fails. Batch failures
        never raise.
        """
        if not source_material or not source_material.strip():
            raise InvalidRequestError("Source material is required")
        if hints.artifact_type is ArtifactType.PAPER and hints.paper_config is None:
            raise InvalidRequestError("A question paper requires a paper configuration")

        profile = profile_for(hints.artifact_type)
        source = self._prepare_source(profile, source_material)

        state = GenerationState.PLANNING
        logger.info(f"[{hints.artifact_type.value}] state={state.value}")
        try:
            plan, usage = await self.planner.plan_artifact(profile, hints, source)
        except PlanningError:
            logger.error(
                f"[{hints.artifact_type.value}] state={GenerationState.FAILED.value}: planning failed."
            )
            raise
        self._record_usage(profile.task_label, usage)

        state = GenerationState.FILLING
        logger.info(
            f"[{hints.artifact_type.value}] state={state.value}: {len(plan.units)} units, "
            f"batch size {self.batch_size}."
        )
        filled, reports = await self._fill(profile, hints, source, plan.units)

        state = GenerationState.ASSEMBLING
        units = [filled[i] for i in sorted(filled)]
        planned_count = len(plan.units)
        degraded = (len(units) / planned_count) < settings.DEGRADED_ARTIFACT_RATIO

        state = GenerationState.DONE
        skipped = sum(1 for r in reports if r.status is BatchStatus.SKIPPED)
        log_method = logger.warning if degraded else logger.info
        log_method(
            f"[{hints.artifact_type.value}] state={state.value}: {len(units)}/{planned_count} units filled, "
            f"{skipped}/{len(reports)} batches skipped{' (degraded)' if degraded else ''}."
        )
        return GeneratedArtifact(
            artifact_type=hints.artifact_type,
            title=plan.title,
            subject=plan.subject,
            topic=plan.topic,
            units=units,
            planned_count=planned_count,
            batches=reports,
            degraded=degraded,
            state=state,
        )

    async def _fill(
        self,
        profile: ArtifactProfile,
        hints: PlanningHints,
        source: str,
        units: list[GenerationUnit],
    ) -> tuple[dict[int, GenerationUnit], list[BatchReport]]:
        filled: dict[int, GenerationUnit] = {}
        reports: list[BatchReport] = []

        for batch_number, start in enumerate(range(0, len(units), self.batch_size), 1):
            batch = units[start : start + self.batch_size]
            indices = [u.index for u in batch]
            logger.info(
                f"Batch {batch_number}: units {indices[0]}-{indices[-1]} ({len(batch)} units)."
            )
            try:
                contents, usage = await self.content_agent.fill_batch(
                    profile, hints, source, batch
                )
            except (ModelGatewayError, ParseError) as e:
                logger.warning(f"Batch {batch_number} failed, skipping: {e}")
                reports.append(
                    BatchReport(
                        batch_number=batch_number,
                        unit_indices=indices,
                        status=BatchStatus.SKIPPED,
                        reason=str(e),
                    )
                )
            else:
                self._record_usage(profile.task_label, usage)
                for unit, content in zip(batch, contents):
                    filled[unit.index] = unit.model_copy(update={"content": content})
                reports.append(
                    BatchReport(
                        batch_number=batch_number,
                        unit_indices=indices,
                        status=BatchStatus.FILLED,
                    )
                )
                logger.info(f"Batch {batch_number} complete, filled {len(contents)} units.")

            if start + self.batch_size < len(units) and self.batch_delay_seconds > 0:
                await asyncio.sleep(self.batch_delay_seconds)

        return filled, reports
