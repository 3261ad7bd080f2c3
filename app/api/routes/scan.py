"""
Body scanning endpoints.

Drive the server-side scanning session:
1. Start sampling the camera → poll GET /scan for live metrics
2. Capture once the scan is valid (stops the camera)
3. Generate a diet plan from the snapshot, or reset to scan again
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_diet_planner, get_scanner
from app.errors import ScanStateError
from app.models.schemas import ErrorResponse, ScanStatus
from app.services.body_scanner import BodyScanner
from app.services.diet_planner import DietPlanner

router = APIRouter()


def _status(scanner: BodyScanner) -> ScanStatus:
    state = scanner.state
    return ScanStatus(
        mode=state.mode,
        scanning=scanner.is_scanning,
        metrics=state.metrics,
        captured_metrics=state.captured,
        calibrated=state.calibrated(scanner.calibration_factor),
        diet_plan=state.diet_plan,
        loading=state.loading,
        camera_error=state.camera_error,
    )


@router.get("/scan", response_model=ScanStatus, response_model_exclude_none=True)
async def get_scan_status(scanner: BodyScanner = Depends(get_scanner)) -> ScanStatus:
    """Current live metrics, snapshot and diet plan."""
    return _status(scanner)


@router.post("/scan/start", response_model=ScanStatus, response_model_exclude_none=True)
async def start_scan(scanner: BodyScanner = Depends(get_scanner)) -> ScanStatus:
    """
    Start live sampling.

    No-op while captured; reset first to scan again.
    """
    if scanner.state.captured is None:
        scanner.start()
    return _status(scanner)


@router.post("/scan/stop", response_model=ScanStatus, response_model_exclude_none=True)
async def stop_scan(scanner: BodyScanner = Depends(get_scanner)) -> ScanStatus:
    """Stop sampling and release the camera."""
    await scanner.stop()
    return _status(scanner)


@router.post(
    "/scan/capture",
    response_model=ScanStatus,
    response_model_exclude_none=True,
    responses={409: {"model": ErrorResponse, "description": "Scan not valid yet"}},
)
async def capture_scan(scanner: BodyScanner = Depends(get_scanner)) -> ScanStatus:
    """Freeze the live metrics. Requires a valid scan (3 of 4 bands measured)."""
    if not await scanner.capture():
        raise ScanStateError("Body scan is not valid yet. Stand fully inside the frame.")
    return _status(scanner)


@router.post("/scan/reset", response_model=ScanStatus, response_model_exclude_none=True)
async def reset_scan(scanner: BodyScanner = Depends(get_scanner)) -> ScanStatus:
    """Discard the snapshot and diet plan and resume live sampling."""
    scanner.reset()
    return _status(scanner)


@router.post(
    "/scan/diet",
    response_model=ScanStatus,
    response_model_exclude_none=True,
    responses={409: {"model": ErrorResponse, "description": "Request already in progress"}},
)
async def generate_scan_diet(
    scanner: BodyScanner = Depends(get_scanner),
    planner: DietPlanner = Depends(get_diet_planner),
) -> ScanStatus:
    """
    Generate a diet plan for the captured snapshot.

    Remote failures are reported in `dietPlan`, not as an HTTP error.
    """
    await scanner.generate_diet(planner)
    return _status(scanner)
