"""
Pydantic schemas for API request/response validation.

These schemas define the contract between the API and clients. JSON field
names are camelCase; Python attributes are snake_case.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.services.scan_state import ScanMode
from ml.measurements import BodyMetrics, CalibratedMeasurements


class CamelModel(BaseModel):
    """Base schema using camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Request Schemas
# =============================================================================


class DietRequest(CamelModel):
    """Request to generate a diet plan from body metrics."""

    metrics: BodyMetrics | None = Field(None, description="Body metrics snapshot")
    user_height_inches: float | None = Field(
        None,
        gt=0,
        description="Subject height, used with silhouetteHeightPx for inch estimates",
    )
    silhouette_height_px: int | None = Field(
        None,
        gt=0,
        description="Pixel height of the subject in the frame the metrics came from",
    )
    calibration_factor: float = Field(1.0, gt=0, description="Multiplier for inch estimates")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "metrics": {
                    "shoulders": 160,
                    "chest": 150,
                    "waist": 120,
                    "hips": 140,
                    "waistToShoulderRatio": 0.75,
                    "hipToWaistRatio": 1.1667,
                    "isValidScan": True,
                }
            }
        }
    )


class FoodIdentifyRequest(CamelModel):
    """Request to identify food and estimate calories from a photo."""

    image: str | None = Field(
        None,
        description="Base64-encoded image data or data URL (JPEG, PNG, or WebP)",
    )


# =============================================================================
# Response Schemas
# =============================================================================


class DietPlanResponse(CamelModel):
    """Generated diet plan."""

    diet_plan: str = Field(..., description="Plan text as returned by the language model")


class FoodAnalysis(CamelModel):
    """Food identification result."""

    description: str = Field(..., description="Model answer, verbatim")
    calories: int | None = Field(None, ge=0, description="First calorie figure found in the answer")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "description": "A cheeseburger with fries. Approximately 850 calories.",
                "calories": 850,
            }
        }
    )


class ScanStatus(CamelModel):
    """Snapshot of the body scanning session."""

    mode: ScanMode
    scanning: bool
    metrics: BodyMetrics = Field(..., description="Latest live metrics")
    captured_metrics: BodyMetrics | None = Field(None, description="Frozen snapshot, if captured")
    calibrated: CalibratedMeasurements | None = Field(
        None, description="Inch estimates of the displayed metrics"
    )
    diet_plan: str = ""
    loading: bool = False
    camera_error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Human-readable error message")
    details: Any | None = Field(None, description="Additional error details")

    model_config = ConfigDict(
        json_schema_extra={"example": {"error": "Metrics not provided"}}
    )


class ImageValidationResult(BaseModel):
    """Result of image validation checks."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    image_width: int | None = None
    image_height: int | None = None
    data_url: str | None = None
