"""
Diet plan generation.

Turns a BodyMetrics snapshot into a nutritionist prompt and asks the
completion service for a one-day meal plan. The plan text is returned as-is.
"""

from typing import Optional

from loguru import logger

from app.config import OpenAISettings
from app.services.completion import CompletionClient
from ml.measurements import BodyMetrics, CalibratedMeasurements

SYSTEM_PROMPT = "You are a helpful nutritionist AI."
NO_PLAN_MESSAGE = "No diet plan returned"


def _px(value: Optional[int]) -> str:
    return f"{value}px" if value is not None else "not measured"


def _ratio(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "n/a"


def build_diet_prompt(
    metrics: BodyMetrics, calibrated: Optional[CalibratedMeasurements] = None
) -> str:
    """Build the user prompt for a diet plan request."""
    lines = [
        "You are a nutritionist AI. Create a personalized weight-loss diet plan "
        "for a person with the following body metrics:",
        f"- Shoulders: {_px(metrics.shoulders)}",
        f"- Chest: {_px(metrics.chest)}",
        f"- Waist: {_px(metrics.waist)}",
        f"- Hips: {_px(metrics.hips)}",
        f"- Waist/Shoulder Ratio: {_ratio(metrics.waist_to_shoulder_ratio)}",
        f"- Hip/Waist Ratio: {_ratio(metrics.hip_to_waist_ratio)}",
    ]

    if calibrated is not None:
        estimates = [
            (label, value)
            for label, value in (
                ("Shoulders", calibrated.shoulders_in),
                ("Chest", calibrated.chest_in),
                ("Waist", calibrated.waist_in),
                ("Hips", calibrated.hips_in),
            )
            if value is not None
        ]
        if estimates:
            lines.append("Estimated front-view widths:")
            lines.extend(f"- {label}: {value:.1f} in" for label, value in estimates)

    lines += [
        "",
        "Provide a full-day diet plan (breakfast, lunch, dinner, snacks) with estimated calories.",
        "Make it concise, practical, and healthy.",
    ]
    return "\n".join(lines)


class DietPlanner:
    """Requests diet plans from a completion client."""

    def __init__(self, client: CompletionClient, settings: OpenAISettings):
        self.client = client
        self.settings = settings

    async def generate(
        self,
        metrics: BodyMetrics,
        calibrated: Optional[CalibratedMeasurements] = None,
    ) -> str:
        """
        Generate a diet plan for the given metrics.

        Raises:
            UpstreamError: If the completion call fails
        """
        logger.info(f"Generating diet plan for metrics: {metrics.model_dump(exclude_none=True)}")

        plan = await self.client.complete(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_diet_prompt(metrics, calibrated)},
            ],
            model=self.settings.diet_model,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )
        if not plan:
            logger.warning("Completion returned an empty diet plan")
            return NO_PLAN_MESSAGE

        logger.debug(f"Diet plan: {plan[:100]}...")
        return plan
