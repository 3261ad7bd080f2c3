"""
Diet plan endpoint.

Stateless: the client posts the metrics snapshot it captured and receives
the generated plan text.
"""

from fastapi import APIRouter, Depends
from loguru import logger

from app.api.dependencies import get_diet_planner
from app.errors import InputValidationError
from app.models.schemas import DietPlanResponse, DietRequest, ErrorResponse
from app.services.diet_planner import DietPlanner
from ml.measurements import calibrate, pixels_per_inch

router = APIRouter()


@router.post(
    "/generateDiet",
    response_model=DietPlanResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Metrics missing or malformed"},
        500: {"model": ErrorResponse, "description": "Language model call failed"},
    },
)
async def generate_diet(
    request: DietRequest | None = None,
    planner: DietPlanner = Depends(get_diet_planner),
) -> DietPlanResponse:
    """
    Generate a diet plan from body metrics.

    When `userHeightInches` and `silhouetteHeightPx` are both given, inch
    estimates of the widths are added to the prompt.
    """
    if request is None or request.metrics is None:
        logger.warning("No metrics provided in request body")
        raise InputValidationError("Metrics not provided")

    calibrated = None
    scale = pixels_per_inch(request.silhouette_height_px, request.user_height_inches)
    if scale is not None:
        calibrated = calibrate(request.metrics, scale, request.calibration_factor)

    plan = await planner.generate(request.metrics, calibrated)
    return DietPlanResponse(diet_plan=plan)
