"""
Shared test doubles: a manual clock, a scripted classifier and synthetic
landmark sets.  Nothing here touches a camera or the network.
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from signtext.classifier_client import ClassifierError
from signtext.config import PipelineConfig
from signtext.pipeline import SignTextPipeline
from signtext.vision_tracker import NUM_HAND_JOINTS

FRAME_W = 640
FRAME_H = 480


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.t = start

    def now(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds

    def set(self, t: float) -> None:
        self.t = t


class ScriptedClassifier:
    """Returns queued answers in order; an Exception instance is raised."""

    def __init__(self, answers=None) -> None:
        self.answers = list(answers or [])
        self.calls: list[np.ndarray] = []
        self.release = threading.Event()
        self.release.set()

    def predict(self, bgr_crop: np.ndarray) -> str | None:
        self.calls.append(bgr_crop)
        self.release.wait(timeout=5)
        answer = self.answers.pop(0) if self.answers else None
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeHands:
    """Stands in for MediaPipe Hands; replays queued landmark sets.

    Each queued item is a list of hands, each hand a ``(21, 2)`` array, or
    ``None`` for a frame without detections.
    """

    def __init__(self, frames=None) -> None:
        self.frames = list(frames or [])
        self.seen: list[np.ndarray] = []
        self.closed = False

    def process(self, rgb: np.ndarray):
        self.seen.append(rgb)
        hands = self.frames.pop(0) if self.frames else None
        if not hands:
            return SimpleNamespace(multi_hand_landmarks=None)
        return SimpleNamespace(
            multi_hand_landmarks=[
                SimpleNamespace(
                    landmark=[SimpleNamespace(x=float(x), y=float(y), z=0.0) for x, y in hand]
                )
                for hand in hands
            ]
        )

    def close(self) -> None:
        self.closed = True


def hand_landmarks(cx: float = 0.5, cy: float = 0.5, spread: float = 0.1) -> np.ndarray:
    """Synthetic (21, 2) hand whose normalised bbox is centred on (cx, cy)."""
    rng = np.random.RandomState(7)
    pts = rng.uniform(-spread, spread, size=(NUM_HAND_JOINTS, 2))
    # Pin the extremes so the bbox midpoint is exactly (cx, cy)
    pts[0] = (-spread, -spread)
    pts[1] = (spread, spread)
    return (pts + [cx, cy]).astype(np.float32)


def blank_frame() -> np.ndarray:
    return np.zeros((FRAME_H, FRAME_W, 3), dtype=np.uint8)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def config() -> PipelineConfig:
    # Long periods: tests drive ticks by hand, background timers never fire.
    return PipelineConfig(sample_period=3600.0, idle_tick_period=3600.0)


@pytest.fixture
def pipeline(config, clock) -> SignTextPipeline:
    return SignTextPipeline(config, clock=clock)


@pytest.fixture
def failing() -> ClassifierError:
    return ClassifierError("connection refused")
