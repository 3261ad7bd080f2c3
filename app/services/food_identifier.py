"""
Food identification service.

Sends a prepared food photo to a vision-capable model and pulls a calorie
figure out of its answer.
"""

import re
from typing import Optional

from loguru import logger

from app.config import OpenAISettings
from app.errors import InputValidationError, UpstreamError
from app.models.schemas import FoodAnalysis
from app.services.completion import CompletionClient
from app.services.image_validator import ImageValidator

FOOD_PROMPT = (
    "Identify the food in this image and estimate the total calories of the portion shown. "
    "Give a short description of the dish and state the estimate as '<number> calories'."
)
NO_ANALYSIS_MESSAGE = "No food analysis found. Please try a clearer image of food."

_CALORIES_PATTERN = re.compile(r"(\d+)\s*calories", re.IGNORECASE)


def parse_calories(text: str) -> Optional[int]:
    """First '<number> calories' figure in the text, if any."""
    match = _CALORIES_PATTERN.search(text)
    return int(match.group(1)) if match else None


class FoodIdentifier:
    """Identifies food in photos via a completion client."""

    def __init__(
        self,
        client: CompletionClient,
        validator: ImageValidator,
        settings: OpenAISettings,
    ):
        self.client = client
        self.validator = validator
        self.settings = settings

    async def identify(self, image_base64: str) -> FoodAnalysis:
        """
        Identify food and estimate calories.

        Args:
            image_base64: Base64-encoded image data (may include data URL prefix)

        Raises:
            InputValidationError: If the image fails validation
            UpstreamError: If the completion call fails or returns nothing
        """
        validation = self.validator.validate_base64(image_base64)
        if not validation.is_valid:
            logger.warning(f"Food image validation failed: {validation.errors}")
            raise InputValidationError(
                "; ".join(validation.errors), details={"errors": validation.errors}
            )
        if validation.warnings:
            logger.warning(f"Food image validation warnings: {validation.warnings}")

        logger.info(
            f"Identifying food in {validation.image_width}x{validation.image_height} image"
        )
        answer = await self.client.complete(
            [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": FOOD_PROMPT},
                        {"type": "image_url", "image_url": {"url": validation.data_url}},
                    ],
                }
            ],
            model=self.settings.vision_model,
            max_tokens=self.settings.food_max_tokens,
        )
        if not answer:
            raise UpstreamError(NO_ANALYSIS_MESSAGE)

        return FoodAnalysis(description=answer, calories=parse_calories(answer))
