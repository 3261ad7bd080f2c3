"""
Live body scanning loop.

Each sampling cycle:
1. Reads a frame from the camera
2. Segments the person in the frame
3. Extracts body metrics from the mask
4. Pushes the metrics into the session's ScanState

Cycles run one at a time on the event loop; blocking camera and model calls
are moved to worker threads so the loop keeps yielding between cycles.
"""

import asyncio
from typing import Optional, Protocol

import numpy as np
from loguru import logger

from app.errors import UpstreamError
from app.services.camera import Camera, CameraError
from app.services.diet_planner import DietPlanner
from app.services.scan_state import ScanState
from ml.measurements import MeasurementExtractor, pixels_per_inch
from ml.segmentation import BodySegmenter, SegmentationResult


class FrameSource(Protocol):
    def read(self) -> np.ndarray: ...

    def release(self) -> None: ...


class Segmenter(Protocol):
    def segment(self, frame: np.ndarray) -> SegmentationResult: ...


class BodyScanner:
    """
    Owns the camera, the scan state and the sampling task for one session.

    `start()` schedules the sampling task, `stop()` is the single disposal
    signal: it lets the in-flight cycle finish and releases the camera.
    """

    def __init__(
        self,
        camera: FrameSource,
        segmenter: Segmenter,
        extractor: MeasurementExtractor,
        state: Optional[ScanState] = None,
        poll_interval: float = 0.0,
        retry_delay: float = 1.0,
        user_height_inches: Optional[float] = None,
        calibration_factor: float = 1.0,
    ):
        self.camera = camera
        self.segmenter = segmenter
        self.extractor = extractor
        self.state = state or ScanState()
        self.poll_interval = poll_interval
        self.retry_delay = retry_delay
        self.user_height_inches = user_height_inches
        self.calibration_factor = calibration_factor

        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._stopping: Optional[asyncio.Future] = None
        self._processing = False

    @classmethod
    def from_settings(cls, settings) -> "BodyScanner":
        """Build a scanner with the real camera and segmentation model."""
        return cls(
            camera=Camera(settings.camera.device_index),
            segmenter=BodySegmenter.from_settings(settings.segmentation),
            extractor=MeasurementExtractor.from_settings(settings.measurement),
            poll_interval=settings.camera.poll_interval_seconds,
            retry_delay=settings.camera.retry_delay_seconds,
            user_height_inches=settings.measurement.user_height_inches,
            calibration_factor=settings.measurement.calibration_factor,
        )

    @property
    def is_scanning(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """
        Begin sampling. Must be called from a running event loop.

        If a previous stop is still waiting for its last cycle, the new task
        waits for that stop (and its camera release) before the first read.
        """
        if self.is_scanning:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._run(self._stop_event, self._stopping), name="body-scanner"
        )
        logger.info("Body scanning started")

    async def stop(self) -> None:
        """Stop sampling and release the camera."""
        task, self._task = self._task, None
        self._stop_event.set()
        stopping = asyncio.ensure_future(self._release_after(task, self._stopping))
        self._stopping = stopping
        await stopping

    async def _release_after(
        self, task: Optional[asyncio.Task], previous: Optional[asyncio.Future]
    ) -> None:
        try:
            if previous is not None and not previous.done():
                await asyncio.wait({previous})
            if task is not None:
                await task
        finally:
            self.camera.release()
        if task is not None:
            logger.info("Body scanning stopped")

    async def sample_once(self) -> bool:
        """
        Run one sampling cycle.

        Returns False without doing anything if a cycle is already in flight,
        or if no frame could be read (the error is kept on the scan state).
        """
        if self._processing:
            return False

        self._processing = True
        stop_event = self._stop_event
        try:
            try:
                frame = await asyncio.to_thread(self.camera.read)
            except CameraError as e:
                logger.warning(f"Camera unavailable: {e}")
                self.state.camera_error = str(e)
                self.camera.release()
                return False

            result = await asyncio.to_thread(self.segmenter.segment, frame)
            if stop_event.is_set():
                return False

            metrics = self.extractor.extract(result.mask, result.width, result.height)
            scale = None
            if self.user_height_inches:
                silhouette = self.extractor.silhouette_height(result.mask, result.width, result.height)
                scale = pixels_per_inch(silhouette, self.user_height_inches)

            self.state.update_live(metrics, scale)
            return True
        finally:
            self._processing = False

    async def _run(
        self, stop_event: asyncio.Event, pending_stop: Optional[asyncio.Future] = None
    ) -> None:
        if pending_stop is not None and not pending_stop.done():
            await asyncio.wait({pending_stop})

        try:
            while not stop_event.is_set():
                try:
                    sampled = await self.sample_once()
                except Exception as e:
                    logger.exception(f"Error in body segmentation: {e}")
                    sampled = False

                delay = self.poll_interval if sampled else self.retry_delay
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.camera.release()

    async def capture(self) -> bool:
        """
        Freeze the current live metrics and stop sampling.

        Returns False, leaving scanning untouched, if the live scan is not valid.
        """
        if not self.state.capture():
            return False
        await self.stop()
        return True

    def reset(self) -> None:
        """Drop the snapshot and diet plan and resume live sampling."""
        self.state.reset()
        self.start()

    async def generate_diet(self, planner: DietPlanner) -> str:
        """
        Request a diet plan for the captured snapshot.

        Failures are recorded in the plan text rather than raised.

        Raises:
            ScanStateError: If a request for this session is already loading
        """
        snapshot = self.state.begin_diet_request()
        if snapshot is None:
            return self.state.diet_plan

        calibrated = self.state.calibrated(self.calibration_factor)
        try:
            plan = await planner.generate(snapshot, calibrated)
        except UpstreamError as e:
            logger.error(f"Diet generation error: {e.message}")
            self.state.fail_diet_request(e.message)
        else:
            self.state.finish_diet_request(plan)
        finally:
            self.state.loading = False
        return self.state.diet_plan
