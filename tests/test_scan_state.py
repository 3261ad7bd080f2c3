import pytest

from app.errors import ScanStateError
from app.services.scan_state import NO_CAPTURE_MESSAGE, ScanMode, ScanState
from ml.measurements import BodyMetrics

VALID = BodyMetrics(shoulders=60, chest=60, waist=40, hips=50, is_valid_scan=True)
PARTIAL = BodyMetrics(shoulders=60, waist=40, waist_to_shoulder_ratio=40 / 60)


def test_starts_live_and_empty():
    state = ScanState()

    assert state.mode is ScanMode.LIVE
    assert state.current == BodyMetrics()
    assert state.captured is None


def test_capture_rejected_while_scan_invalid():
    state = ScanState()
    state.update_live(PARTIAL)

    assert state.capture() is False
    assert state.mode is ScanMode.LIVE
    assert state.captured is None


def test_capture_freezes_metrics():
    state = ScanState()
    state.update_live(VALID, pixels_per_inch=5.0)

    assert state.capture() is True
    assert state.mode is ScanMode.CAPTURED

    assert state.update_live(PARTIAL) is False
    assert state.current == VALID
    assert state.metrics == VALID


def test_reset_clears_snapshot_and_plan():
    state = ScanState()
    state.update_live(VALID)
    state.capture()
    state.begin_diet_request()
    state.finish_diet_request("Eat vegetables")

    state.reset()

    assert state.mode is ScanMode.LIVE
    assert state.captured is None
    assert state.diet_plan == ""
    assert state.update_live(PARTIAL) is True


def test_calibrated_uses_snapshot_scale():
    state = ScanState()
    assert state.calibrated() is None

    state.update_live(VALID, pixels_per_inch=5.0)
    state.capture()
    state.update_live(PARTIAL, pixels_per_inch=2.0)

    assert state.calibrated().shoulders_in == 12.0


def test_diet_request_requires_capture():
    state = ScanState()

    assert state.begin_diet_request() is None
    assert state.diet_plan == NO_CAPTURE_MESSAGE
    assert state.loading is False


def test_diet_request_is_gated_by_loading():
    state = ScanState()
    state.update_live(VALID)
    state.capture()

    assert state.begin_diet_request() == VALID
    assert state.loading is True
    with pytest.raises(ScanStateError):
        state.begin_diet_request()

    state.fail_diet_request("timeout")
    assert state.loading is False
    assert state.diet_plan == "Error generating diet plan: timeout"


def test_plan_dropped_after_reset_mid_request():
    state = ScanState()
    state.update_live(VALID)
    state.capture()
    state.begin_diet_request()

    state.reset()
    state.finish_diet_request("Stale plan")

    assert state.diet_plan == ""
    assert state.loading is False
