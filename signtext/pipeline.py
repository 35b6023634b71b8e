"""
pipeline.py – Single owned state for the hand-sign → text pipeline.

Three independent triggers read and write this state:

  1. the per-frame callback            → :meth:`SignTextPipeline.on_frame`
  2. the sampling timer (2 s, armed)   → :meth:`prepare_sample` / :meth:`commit_prediction`
  3. the idle timer (1 s)              → :meth:`tick_idle`

Every public method takes the same re-entrant lock, so no two triggers ever
interleave a read-modify-write.  The only slow step, the classifier round
trip, happens *outside* the lock between ``prepare_sample`` and
``commit_prediction``; the commit re-reads the dedup state under the lock.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from signtext.config import PipelineConfig
from signtext.text_assembler import (
    IdleSpacer,
    IdleState,
    OutputBuffer,
    PredictionAccumulator,
)
from signtext.vision_tracker import (
    CropWindow,
    HandObservation,
    compute_crop_window,
    extract_crop,
    interpret_landmarks,
)

logger = logging.getLogger(__name__)


# ── Clock capability ─────────────────────────────────────────────────────────


class Clock(Protocol):
    def now(self) -> float:
        """Seconds on a monotonic timeline."""


class MonotonicClock:
    """Wall-clock time for live runs."""

    def now(self) -> float:
        return time.monotonic()


# ── Sampling hand-off ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SampleRequest:
    """One crop on its way to the classifier.

    ``generation`` ties the request to the buffer it was taken for, so a
    result that lands after :meth:`SignTextPipeline.reset` is dropped.
    """

    crop: np.ndarray
    window: CropWindow
    generation: int


# ── Pipeline ─────────────────────────────────────────────────────────────────


class SignTextPipeline:
    """Presence tracking, crop derivation, idle spacing and accumulation.

    Parameters
    ----------
    config : PipelineConfig or None
        Geometry and timing; defaults to the module constants.
    clock : Clock or None
        Time source.  Tests pass a manual clock.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.clock = clock or MonotonicClock()
        self._lock = threading.RLock()

        # Presence
        self._present = False
        self._last_seen_at = self.clock.now()
        self._crop_window: CropWindow | None = None
        self._frame: np.ndarray | None = None

        # Text
        self._buffer = OutputBuffer()
        self._spacer = IdleSpacer(self.config.idle_threshold, self.config.separator)
        self._accumulator = PredictionAccumulator()
        self._generation = 0

        self._armed = False

    # ── Frame trigger ────────────────────────────────────────────────────

    def observe(
        self, mirrored_frame: np.ndarray, landmarks: np.ndarray | None
    ) -> HandObservation:
        """Interpret *landmarks* against *mirrored_frame* and apply it.

        *mirrored_frame* is kept as the crop source for the next sample; the
        caller must not draw on it afterwards.
        """
        h, w = mirrored_frame.shape[:2]
        observation = interpret_landmarks(landmarks, w, h, self.clock.now())
        self.on_frame(observation, mirrored_frame)
        return observation

    def on_frame(
        self, observation: HandObservation, frame: np.ndarray | None = None
    ) -> None:
        """Apply one frame's :class:`HandObservation`.

        Presence re-arms the idle spacer and refreshes the crop window; an
        absent hand leaves both the window and ``last_seen_at`` untouched.
        """
        with self._lock:
            if frame is not None:
                self._frame = frame

            if not observation.present:
                self._present = False
                return

            if not self._present:
                logger.debug("Hand detected")
            self._present = True
            self._last_seen_at = observation.timestamp
            self._spacer.rearm()
            self._crop_window = compute_crop_window(
                observation.center,
                box_size=self.config.box_size,
                inset=self.config.crop_inset,
            )

    # ── Idle trigger ─────────────────────────────────────────────────────

    def tick_idle(self) -> bool:
        """Evaluate the idle spacer.  Returns ``True`` if a separator was added."""
        with self._lock:
            return self._spacer.evaluate(
                self._present, self._last_seen_at, self.clock.now(), self._buffer
            )

    # ── Sampling trigger ─────────────────────────────────────────────────

    def prepare_sample(self) -> SampleRequest | None:
        """Snapshot the current crop if a dispatch is allowed this tick.

        ``None`` when disarmed, when no hand is present, or before the first
        detection has produced a crop window.
        """
        with self._lock:
            if not self._armed or not self._present:
                return None
            if self._crop_window is None or self._frame is None:
                return None
            crop = extract_crop(self._frame, self._crop_window)
            return SampleRequest(
                crop=crop, window=self._crop_window, generation=self._generation
            )

    def commit_prediction(
        self, symbol: str | None, generation: int | None = None
    ) -> bool:
        """Feed a classifier result to the accumulator.

        Dedup is checked against the last appended symbol as it stands *now*,
        not when the request was sent.  Results from before a reset are
        dropped.  Returns ``True`` if the text changed.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug("Dropping %r from before reset", symbol)
                return False
            return self._accumulator.feed(symbol, self._buffer)

    # ── Control surface ──────────────────────────────────────────────────

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._armed

    def set_armed(self, armed: bool) -> None:
        with self._lock:
            self._armed = armed
        logger.info("Sampling %s", "armed" if armed else "disarmed")

    def toggle_armed(self) -> bool:
        with self._lock:
            self.set_armed(not self._armed)
            return self._armed

    def reset(self) -> None:
        """Clear the text, the dedup memory and the spacer flag."""
        with self._lock:
            self._buffer.clear()
            self._accumulator.reset()
            self._spacer.rearm()
            self._generation += 1
        logger.info("Output cleared")

    @property
    def text(self) -> str:
        with self._lock:
            return self._buffer.text

    @property
    def present(self) -> bool:
        with self._lock:
            return self._present

    @property
    def last_seen_at(self) -> float:
        with self._lock:
            return self._last_seen_at

    @property
    def crop_window(self) -> CropWindow | None:
        with self._lock:
            return self._crop_window

    @property
    def last_prediction(self) -> str | None:
        with self._lock:
            return self._accumulator.last_prediction

    @property
    def space_inserted(self) -> bool:
        with self._lock:
            return self._spacer.space_inserted

    def idle_state(self) -> IdleState:
        with self._lock:
            return self._spacer.state(
                self._present, self._last_seen_at, self.clock.now()
            )

    def idle_seconds(self) -> int:
        """Whole seconds since the hand was last seen (0 while present)."""
        with self._lock:
            if self._present:
                return 0
            return int(self.clock.now() - self._last_seen_at)

    def status(self) -> str:
        """Human-readable presence / idle line for the display."""
        with self._lock:
            if self._present:
                return "Hand detected"
            threshold = int(self.config.idle_threshold)
            idle = self.idle_seconds()
            if idle < threshold:
                return f"Waiting... ({threshold - idle}s left to insert space)"
            return "Space inserted"
