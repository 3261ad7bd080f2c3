"""
Shared fixtures and fakes for the test suite.

The segmentation model, camera and completion API are replaced by small
deterministic fakes so tests never touch hardware or the network.
"""

import threading

import numpy as np
import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import (
    get_completion_client,
    get_diet_planner,
    get_food_identifier,
    get_scanner,
)
from app.config import ImageValidationSettings, OpenAISettings
from app.main import create_app
from app.services.body_scanner import BodyScanner
from app.services.camera import CameraError
from app.services.diet_planner import DietPlanner
from app.services.food_identifier import FoodIdentifier
from app.services.image_validator import ImageValidator
from ml.measurements import MeasurementExtractor
from ml.segmentation import SegmentationResult

FRAME_WIDTH = 100
FRAME_HEIGHT = 100


def make_mask(width: int, height: int, spans) -> np.ndarray:
    """
    Build a (height, width) mask with foreground rectangles.

    spans: iterable of (first_row, last_row, first_col, last_col), inclusive.
    """
    mask = np.zeros((height, width), dtype=np.uint8)
    for first_row, last_row, first_col, last_col in spans:
        mask[first_row : last_row + 1, first_col : last_col + 1] = 1
    return mask


def body_mask(width: int = FRAME_WIDTH, height: int = FRAME_HEIGHT) -> np.ndarray:
    """A standing figure covering every band: head to just below the hips."""
    return make_mask(
        width,
        height,
        [
            (5, 11, 40, 60),  # head
            (12, 30, 20, 80),  # shoulders and chest
            (31, 55, 30, 70),  # waist
            (56, 90, 25, 75),  # hips and legs
        ],
    )


class FakeCompletionClient:
    """Records calls and returns a canned reply or raises a canned error."""

    is_configured = True

    def __init__(self, reply="Breakfast: oatmeal, 350 calories", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, messages, *, model=None, temperature=None, max_tokens=None):
        self.calls.append(
            {
                "messages": messages,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.error is not None:
            raise self.error
        return self.reply

    async def close(self):
        pass


class FakeCamera:
    """Camera returning blank frames, or failing every read."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.reads = 0
        self.releases = 0
        self.is_open = False
        self.log = []

    def read(self):
        self.reads += 1
        self.log.append("read")
        if self.fail:
            raise CameraError("Camera permission denied")
        self.is_open = True
        return np.zeros((FRAME_HEIGHT, FRAME_WIDTH, 3), dtype=np.uint8)

    def release(self):
        self.releases += 1
        self.log.append("release")
        self.is_open = False


class FakeSegmenter:
    """Returns the same mask for every frame; can be made to block."""

    def __init__(self, mask=None, block: bool = False):
        self.mask = body_mask() if mask is None else mask
        self.calls = 0
        self.entered = threading.Event()
        self.proceed = threading.Event()
        if not block:
            self.proceed.set()

    def segment(self, frame):
        self.calls += 1
        self.entered.set()
        self.proceed.wait(timeout=5)
        height, width = self.mask.shape
        return SegmentationResult(self.mask, width, height)


@pytest.fixture
def completion_client():
    return FakeCompletionClient()


@pytest.fixture
def openai_settings():
    return OpenAISettings(api_key="test-key")


@pytest.fixture
def diet_planner(completion_client, openai_settings):
    return DietPlanner(completion_client, openai_settings)


@pytest.fixture
def food_identifier(completion_client, openai_settings):
    return FoodIdentifier(
        completion_client, ImageValidator(ImageValidationSettings()), openai_settings
    )


@pytest.fixture
def camera():
    return FakeCamera()


@pytest.fixture
def segmenter():
    return FakeSegmenter()


@pytest.fixture
def scanner(camera, segmenter):
    return BodyScanner(
        camera=camera,
        segmenter=segmenter,
        extractor=MeasurementExtractor(),
        poll_interval=0.01,
        retry_delay=0.01,
    )


@pytest.fixture
def app(completion_client, diet_planner, food_identifier, scanner):
    app = create_app()
    app.dependency_overrides[get_completion_client] = lambda: completion_client
    app.dependency_overrides[get_diet_planner] = lambda: diet_planner
    app.dependency_overrides[get_food_identifier] = lambda: food_identifier
    app.dependency_overrides[get_scanner] = lambda: scanner
    return app


@pytest.fixture
def client(app, scanner):
    with TestClient(app) as test_client:
        yield test_client
        # Stop the fake scanner on the app's event loop before it closes
        test_client.post("/api/v1/scan/stop")
