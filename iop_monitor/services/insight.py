"""
Narrative insight generation using Pydantic AI.

Key architectural decisions:
- The model sees only the recent window, never the full history
- The returned text is opaque to the core: it is neither parsed nor validated
- Fallback strategy: without an API key, or when the model call fails or
  times out, a rule-based insight is built from the trend summary
"""

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Literal, cast

import structlog
from pydantic import BaseModel, Field
from pydantic_ai import Agent

from iop_monitor.config import InsightConfig, NormalRange
from iop_monitor.domain.models import Reading, TrendDirection
from iop_monitor.services.trends import summarize_trend

logger = structlog.get_logger(__name__)

NOT_ENOUGH_DATA = (
    "Not enough data for a meaningful insight. Please record at least {min_readings} readings."
)

_DIRECTION_PHRASES = {
    TrendDirection.INCREASING: "an upward trend",
    TrendDirection.DECREASING: "a downward trend",
    TrendDirection.STABLE: "stable pressure",
}


class NarrativeInsight(BaseModel):
    """Free-text commentary on recent readings."""

    text: str
    generated_by: Literal["model", "rules", "insufficient_data"]
    readings_considered: int = Field(ge=0)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class InsightGenerator:
    """
    Produces a one or two sentence insight about the recent IOP trend.

    Design principles:
    - Same output contract whether a model is available or not
    - No medical advice, only trend and normal-range commentary
    """

    def __init__(
        self,
        config: InsightConfig | None = None,
        normal_range: NormalRange | None = None,
        stable_epsilon: float = 0.5,
        agent: Any | None = None,
    ) -> None:
        self.config = config or InsightConfig()
        self.normal_range = normal_range or NormalRange()
        self.stable_epsilon = stable_epsilon
        self.logger = logger.bind(component="insight_generator")

        if agent is not None:
            self.agent = agent
        elif self.config.api_key:
            self.agent = Agent(
                model=self.config.model_name,
                output_type=str,
                system_prompt=self._build_system_prompt(),
                defer_model_check=True,
            )
        else:
            self.agent = None

    def _build_system_prompt(self) -> str:
        return f"""You are an AI health assistant specializing in ophthalmology.
You analyze intraocular pressure (IOP) readings for a user monitoring for glaucoma risk.
The normal IOP range is between {self.normal_range.minimum} mmHg and {self.normal_range.maximum} mmHg.

Provide a single, concise, and easy-to-understand insight (one or two sentences max).
Focus on the overall trend (stable, increasing, decreasing) and whether the latest
readings are within the normal range. Do not provide medical advice.
Start your response directly with the insight.
Example: "Your recent readings show a slight upward trend but remain within the normal range."
Another Example: "Your pressure has been consistently stable and in a healthy range."
"""

    def _build_user_prompt(self, readings: Sequence[Reading]) -> str:
        lines = [
            f"On {r.timestamp.strftime('%Y-%m-%d')}, the reading was {r.value} mmHg."
            for r in readings
        ]
        return "Here are the recent readings:\n" + "\n".join(lines)

    async def generate(self, readings: Sequence[Reading]) -> NarrativeInsight:
        """Generate an insight for ``readings`` (oldest first)."""
        if len(readings) < self.config.min_readings:
            return NarrativeInsight(
                text=NOT_ENOUGH_DATA.format(min_readings=self.config.min_readings),
                generated_by="insufficient_data",
                readings_considered=len(readings),
            )

        recent = list(readings)[-self.config.max_readings :]

        if self.agent is None:
            self.logger.info("insight_model_not_configured")
            return self.rule_based(recent)

        try:
            result = await asyncio.wait_for(
                self.agent.run(self._build_user_prompt(recent)),
                timeout=self.config.timeout_seconds,
            )
            text = str(cast(Any, result).output).strip()
        except TimeoutError:
            self.logger.error("insight_timeout", timeout_seconds=self.config.timeout_seconds)
            return self.rule_based(recent)
        except Exception as e:
            self.logger.error("insight_generation_failed", error=str(e))
            return self.rule_based(recent)

        if not text:
            self.logger.warning("insight_empty_response")
            return self.rule_based(recent)

        self.logger.info("insight_generated", readings=len(recent))
        return NarrativeInsight(text=text, generated_by="model", readings_considered=len(recent))

    def rule_based(self, readings: Sequence[Reading]) -> NarrativeInsight:
        """Deterministic insight from the trend summary."""
        summary = summarize_trend(readings, self.normal_range, self.stable_epsilon)
        if summary is None:
            return NarrativeInsight(
                text=NOT_ENOUGH_DATA.format(min_readings=self.config.min_readings),
                generated_by="insufficient_data",
                readings_considered=0,
            )

        latest = summary.latest.value
        if latest > self.normal_range.maximum:
            position = "above"
        elif latest < self.normal_range.minimum:
            position = "below"
        else:
            position = "within"

        text = (
            f"Your recent readings show {_DIRECTION_PHRASES[summary.direction]} "
            f"({summary.change:+.1f} mmHg over {summary.count} readings), and your latest "
            f"reading of {latest:.1f} mmHg is {position} the normal range "
            f"({self.normal_range.minimum:g}-{self.normal_range.maximum:g} mmHg)."
        )
        return NarrativeInsight(text=text, generated_by="rules", readings_considered=summary.count)
