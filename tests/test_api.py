import asyncio
import base64
import io
import threading
import time

import numpy as np
from PIL import Image

from app.errors import UpstreamError

from conftest import FakeCompletionClient, FakeSegmenter

API = "/api/v1"

METRICS = {
    "shoulders": 160,
    "chest": 150,
    "waist": 120,
    "hips": 140,
    "waistToShoulderRatio": 0.75,
    "hipToWaistRatio": 1.1667,
    "isValidScan": True,
}


def _wait_for(client, condition, timeout=3.0):
    deadline = time.monotonic() + timeout
    while True:
        status = client.get(f"{API}/scan").json()
        if condition(status):
            return status
        if time.monotonic() > deadline:
            raise AssertionError(f"condition not met, last status: {status}")
        time.sleep(0.02)


# =============================================================================
# Diet plan
# =============================================================================


def test_generate_diet_returns_plan(client, completion_client):
    response = client.post(f"{API}/generateDiet", json={"metrics": METRICS})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"dietPlan": completion_client.reply}
    prompt = completion_client.calls[0]["messages"][1]["content"]
    assert "- Shoulders: 160px" in prompt


def test_generate_diet_without_metrics(client, completion_client):
    response = client.post(f"{API}/generateDiet", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Metrics not provided"}
    assert completion_client.calls == []


def test_generate_diet_with_null_metrics_or_no_body(client):
    assert client.post(f"{API}/generateDiet", json={"metrics": None}).json() == {
        "error": "Metrics not provided"
    }
    response = client.post(f"{API}/generateDiet")
    assert response.status_code == 400
    assert response.json() == {"error": "Metrics not provided"}


def test_generate_diet_malformed_metrics(client):
    response = client.post(f"{API}/generateDiet", json={"metrics": {"shoulders": "wide"}})

    assert response.status_code == 400
    assert "error" in response.json()


def test_generate_diet_upstream_failure(client, completion_client):
    completion_client.error = UpstreamError("Incorrect API key provided", details="AuthenticationError")

    response = client.post(f"{API}/generateDiet", json={"metrics": METRICS})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Incorrect API key provided",
        "details": "AuthenticationError",
    }


def test_generate_diet_with_calibration(client, completion_client):
    response = client.post(
        f"{API}/generateDiet",
        json={
            "metrics": METRICS,
            "userHeightInches": 70,
            "silhouetteHeightPx": 560,
            "calibrationFactor": 1.0,
        },
    )

    assert response.status_code == 200
    prompt = completion_client.calls[0]["messages"][1]["content"]
    assert "- Shoulders: 20.0 in" in prompt


# =============================================================================
# Food identification
# =============================================================================


def test_identify_food(client, completion_client):
    completion_client.reply = "Two boiled eggs, about 155 calories."
    buffer = io.BytesIO()
    Image.new("RGB", (80, 60), (230, 200, 90)).save(buffer, format="JPEG")
    image = "data:image/jpeg;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")

    response = client.post(f"{API}/food/identify", json={"image": image})

    assert response.status_code == 200
    assert response.json() == {"description": completion_client.reply, "calories": 155}


def test_identify_food_without_image(client):
    response = client.post(f"{API}/food/identify", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Image not provided"}


def test_identify_food_invalid_image(client):
    response = client.post(
        f"{API}/food/identify",
        json={"image": base64.b64encode(b"not really a png").decode("ascii")},
    )

    assert response.status_code == 400
    assert "Failed to load image" in response.json()["error"]


def test_identify_food_rejects_decompression_bomb(client, completion_client):
    buffer = io.BytesIO()
    Image.new("1", (14000, 14000)).save(buffer, format="PNG")

    response = client.post(
        f"{API}/food/identify",
        json={"image": base64.b64encode(buffer.getvalue()).decode("ascii")},
    )

    assert response.status_code == 400
    assert "Failed to load image" in response.json()["error"]
    assert completion_client.calls == []


# =============================================================================
# Scanning session
# =============================================================================


def test_scan_capture_and_diet_flow(client, camera, completion_client):
    started = client.post(f"{API}/scan/start").json()
    assert started["mode"] == "live"
    assert started["scanning"] is True

    live = _wait_for(client, lambda s: s["metrics"].get("isValidScan"))
    assert live["metrics"]["shoulders"] == 60

    captured = client.post(f"{API}/scan/capture")
    assert captured.status_code == 200
    body = captured.json()
    assert body["mode"] == "captured"
    assert body["scanning"] is False
    assert body["capturedMetrics"]["waist"] == 40
    assert camera.is_open is False

    with_plan = client.post(f"{API}/scan/diet").json()
    assert with_plan["dietPlan"] == completion_client.reply
    assert with_plan["loading"] is False

    reset = client.post(f"{API}/scan/reset").json()
    assert reset["mode"] == "live"
    assert reset["scanning"] is True
    assert reset["dietPlan"] == ""
    assert "capturedMetrics" not in reset


def test_scan_capture_rejected_when_invalid(client, scanner):
    scanner.segmenter = FakeSegmenter(mask=np.zeros((100, 100), dtype=np.uint8))
    client.post(f"{API}/scan/start")
    _wait_for(client, lambda s: True)

    response = client.post(f"{API}/scan/capture")

    assert response.status_code == 409
    assert "error" in response.json()
    assert client.get(f"{API}/scan").json()["mode"] == "live"


def test_scan_diet_before_capture(client, completion_client):
    body = client.post(f"{API}/scan/diet").json()

    assert body["dietPlan"] == "Please capture your body measurements first"
    assert completion_client.calls == []


class BlockingCompletionClient(FakeCompletionClient):
    """Holds every completion until `release` is set."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    async def complete(self, messages, **kwargs):
        await asyncio.to_thread(self.release.wait, 5)
        return await super().complete(messages, **kwargs)


def test_scan_diet_rejected_while_loading(client, diet_planner):
    blocking = BlockingCompletionClient()
    diet_planner.client = blocking
    client.post(f"{API}/scan/start")
    _wait_for(client, lambda s: s["metrics"].get("isValidScan"))
    client.post(f"{API}/scan/capture")

    first = {}
    worker = threading.Thread(
        target=lambda: first.update(response=client.post(f"{API}/scan/diet"))
    )
    worker.start()
    try:
        _wait_for(client, lambda s: s["loading"])

        second = client.post(f"{API}/scan/diet")

        assert second.status_code == 409
        assert second.json() == {"error": "A diet plan is already being generated"}
    finally:
        blocking.release.set()
        worker.join(timeout=5)

    assert first["response"].status_code == 200
    assert first["response"].json()["dietPlan"] == blocking.reply
    assert len(blocking.calls) == 1


def test_scan_stop_releases_camera(client, camera):
    client.post(f"{API}/scan/start")
    _wait_for(client, lambda s: s["metrics"].get("isValidScan"))

    body = client.post(f"{API}/scan/stop").json()

    assert body["scanning"] is False
    assert camera.is_open is False


# =============================================================================
# Health
# =============================================================================


def test_health(client):
    body = client.get(f"{API}/health").json()

    assert body["status"] == "healthy"
    assert body["checks"]["scanner"] == "idle"


def test_liveness(client):
    assert client.get(f"{API}/health/live").json() == {"status": "alive"}
