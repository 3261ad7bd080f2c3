"""
Food identification endpoint.
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_food_identifier
from app.errors import InputValidationError
from app.models.schemas import ErrorResponse, FoodAnalysis, FoodIdentifyRequest
from app.services.food_identifier import FoodIdentifier

router = APIRouter()


@router.post(
    "/food/identify",
    response_model=FoodAnalysis,
    responses={
        400: {"model": ErrorResponse, "description": "Image missing or invalid"},
        500: {"model": ErrorResponse, "description": "Vision model call failed"},
    },
)
async def identify_food(
    request: FoodIdentifyRequest | None = None,
    identifier: FoodIdentifier = Depends(get_food_identifier),
) -> FoodAnalysis:
    """
    Identify the food in a photo and estimate its calories.

    The image is validated, downscaled to at most 512px on its longest side
    and re-encoded as JPEG before it is sent to the model.
    """
    if request is None or not request.image:
        raise InputValidationError("Image not provided")

    return await identifier.identify(request.image)
