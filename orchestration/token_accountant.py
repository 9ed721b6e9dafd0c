from __future__ import annotations

import logging
from enum import Enum

from config import settings
from core.usage import TokenUsage, estimate_cost_inr

logger = logging.getLogger(__name__)


class TaskLabel(str, Enum):
    """Task labels routed through the model gateway."""

    CHAT = "chat"
    NOTES = "notes"
    HINT = "hint"
    QUIZ_GEN = "quiz_gen"
    PPT_GEN = "ppt_gen"
    QPAPER_GEN = "qpaper_gen"
    REFINE = "refine"


class TokenAccountant:
    """Accumulate and log token usage and estimated cost per task label."""

    def __init__(self) -> None:
        self.total = TokenUsage()
        self.task_totals: dict[str, TokenUsage] = {}
        self.task_costs_inr: dict[str, float] = {}

    @property
    def total_cost_inr(self) -> float:
        return sum(self.task_costs_inr.values())

    def record_usage(
        self, task: TaskLabel | str, usage: dict[str, int] | TokenUsage | None
    ) -> None:
        """Record token usage for a task. Never raises."""
        task_name = task.value if isinstance(task, TaskLabel) else task

        if isinstance(usage, TokenUsage):
            usage_dict = usage.get_if_used() or {}
        else:
            usage_dict = usage or {}

        if not usage_dict:
            return

        prompt_tokens = usage_dict.get("prompt_tokens")
        completion_tokens = usage_dict.get("completion_tokens")
        if not isinstance(prompt_tokens, int) or not isinstance(completion_tokens, int):
            logger.warning(
                "ExamForge usage: '%s' - token counts missing or not int in usage data. Not recorded. Usage: %s",
                task_name,
                usage_dict,
            )
            return
        if not isinstance(usage_dict.get("total_tokens"), int):
            usage_dict = {
                **usage_dict,
                "total_tokens": prompt_tokens + completion_tokens,
            }

        task_usage = self.task_totals.setdefault(task_name, TokenUsage())
        task_usage.add(usage_dict)
        self.total.add(usage_dict)

        model_key = settings.model_key_for_name(settings.model_for_task(task_name))
        cost = estimate_cost_inr(prompt_tokens, completion_tokens, model_key)
        self.task_costs_inr[task_name] = self.task_costs_inr.get(task_name, 0.0) + cost

        logger.info(
            "ExamForge usage: Tokens from '%s': prompt=%s completion=%s (~INR %.4f). Total this run: %s tokens, ~INR %.4f",
            task_name,
            prompt_tokens,
            completion_tokens,
            cost,
            self.total.total_tokens,
            self.total_cost_inr,
        )

    def get_task_total(self, task: TaskLabel | str) -> int:
        """Return accumulated total tokens for a task."""
        task_name = task.value if isinstance(task, TaskLabel) else task
        task_usage = self.task_totals.get(task_name)
        return task_usage.total_tokens if task_usage else 0

    def summary(self) -> dict[str, dict[str, float]]:
        return {
            name: {
                "prompt_tokens": u.prompt_tokens,
                "completion_tokens": u.completion_tokens,
                "total_tokens": u.total_tokens,
                "cost_inr": round(self.task_costs_inr.get(name, 0.0), 6),
            }
            for name, u in self.task_totals.items()
        }
