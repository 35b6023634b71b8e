"""
signtext/config.py
───────────────────
Timing and geometry constants for the hand-sign → text pipeline.

Everything here can be overridden per run through :class:`PipelineConfig`
(``main.py`` builds one from CLI flags, tests build one by hand).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

# ── Capture surface ──────────────────────────────────────────────────────────

FRAME_WIDTH = 640
FRAME_HEIGHT = 480

# ── Crop geometry ────────────────────────────────────────────────────────────
# A BOX_SIZE square is centred on the hand's bounding box; the classifier
# receives the CROP_SIZE square inside it, inset by CROP_INSET on each side.

BOX_SIZE = 204
CROP_INSET = 2
CROP_SIZE = BOX_SIZE - 2 * CROP_INSET  # 200

# ── Timers (seconds) ─────────────────────────────────────────────────────────

SAMPLE_PERIOD = 2.0      # classifier dispatch cadence while armed
IDLE_TICK_PERIOD = 1.0   # idle evaluator cadence, independent of frames
IDLE_THRESHOLD = 3.0     # no-hand time before a word separator is inserted

SEPARATOR = " "

# ── MediaPipe Hands ──────────────────────────────────────────────────────────

MAX_NUM_HANDS = 1
MODEL_COMPLEXITY = 1
MIN_DETECTION_CONFIDENCE = 0.8
MIN_TRACKING_CONFIDENCE = 0.5

# ── Remote classifier ────────────────────────────────────────────────────────

DEFAULT_CLASSIFIER_URL = "https://uvicorn-server.onrender.com"
PREDICT_PATH = "/predict/"
UPLOAD_FIELD = "image"
UPLOAD_FILENAME = "hand.jpg"
RESPONSE_FIELD = "filename"
DEFAULT_TIMEOUT = 10.0

ENV_CLASSIFIER_URL = "SIGNTEXT_CLASSIFIER_URL"
ENV_TIMEOUT = "SIGNTEXT_TIMEOUT"


@dataclass(frozen=True)
class PipelineConfig:
    """Bundle of the knobs above for one pipeline instance."""

    box_size: int = BOX_SIZE
    crop_inset: int = CROP_INSET
    crop_size: int = CROP_SIZE
    sample_period: float = SAMPLE_PERIOD
    idle_tick_period: float = IDLE_TICK_PERIOD
    idle_threshold: float = IDLE_THRESHOLD
    separator: str = SEPARATOR
    classifier_url: str = DEFAULT_CLASSIFIER_URL
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """Build a config, taking the classifier URL / timeout from the
        environment when set.  Explicit *overrides* win over both."""
        values: dict = {}
        url = os.environ.get(ENV_CLASSIFIER_URL)
        if url:
            values["classifier_url"] = url
        timeout = os.environ.get(ENV_TIMEOUT)
        if timeout:
            values["timeout"] = float(timeout)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
