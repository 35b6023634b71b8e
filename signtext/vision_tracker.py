"""
vision_tracker.py – MediaPipe Hands wrapper plus the per-frame geometry.

Turns a webcam frame into (at most) one 21-joint hand landmark set, then
interprets that set into a presence flag and a bounding-box centre, and
derives the fixed-size crop window sent to the classifier.

Coordinate conventions:
  1. Landmarks are normalised ``(x, y)`` in [0, 1] of the *unmirrored*
     camera frame, exactly as MediaPipe reports them.
  2. Everything downstream (centre, crop window, drawing) lives in the
     *mirrored* display frame, hence the ``(1 - x) * W`` flip.
  3. Crop windows are integer pixel rectangles whose origin is clamped to
     be non-negative; they are only recomputed while a hand is present.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import cv2
import numpy as np

from signtext.config import (
    BOX_SIZE,
    CROP_INSET,
    CROP_SIZE,
    MAX_NUM_HANDS,
    MIN_DETECTION_CONFIDENCE,
    MIN_TRACKING_CONFIDENCE,
    MODEL_COMPLEXITY,
)

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

NUM_HAND_JOINTS = 21

# 21-point hand skeleton connectivity (MediaPipe convention)
HAND_CONNECTIONS: list[tuple[int, int]] = [
    (0, 1), (1, 2), (2, 3), (3, 4),        # thumb
    (5, 6), (6, 7), (7, 8),                 # index
    (9, 10), (10, 11), (11, 12),            # middle
    (13, 14), (14, 15), (15, 16),           # ring
    (17, 18), (18, 19), (19, 20),           # pinky
    (0, 5), (5, 9), (9, 13), (13, 17),      # palm
    (0, 17),
]

# Colours (BGR) for drawing
_BOX_COLOUR = (0, 0, 255)       # red
_SKELETON_COLOUR = (255, 200, 0)
_POINT_COLOUR = (0, 255, 0)


# ── Data structures ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HandObservation:
    """What one frame says about the hand.

    ``center`` is ``None`` exactly when ``present`` is ``False``.
    """

    present: bool
    timestamp: float
    center: tuple[float, float] | None = None


@dataclass(frozen=True)
class CropWindow:
    """Pixel rectangle in the mirrored display frame."""

    x: int
    y: int
    width: int = CROP_SIZE
    height: int = CROP_SIZE
    inset: int = CROP_INSET

    @property
    def box_origin(self) -> tuple[int, int]:
        """Top-left corner of the surrounding (un-inset) box."""
        return (self.x - self.inset, self.y - self.inset)


# ── Landmark capability ──────────────────────────────────────────────────────


class HandTracker:
    """Detect a single hand and return its normalised 21-joint landmarks.

    Parameters
    ----------
    min_detection_confidence : float
        Palm detector threshold; a partly visible hand below it counts as
        absent.
    min_tracking_confidence : float
        Landmark tracker threshold between frames.
    hands : object or None
        Anything with MediaPipe's ``process(rgb) -> result`` interface.
        Built from ``mp.solutions.hands`` when omitted.
    """

    def __init__(
        self,
        min_detection_confidence: float = MIN_DETECTION_CONFIDENCE,
        min_tracking_confidence: float = MIN_TRACKING_CONFIDENCE,
        model_complexity: int = MODEL_COMPLEXITY,
        hands=None,
    ) -> None:
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        if hands is not None:
            self._hands = hands
            return

        import mediapipe as mp

        self._hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=MAX_NUM_HANDS,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        logger.info(
            "MediaPipe Hands ready (detection>=%.2f, tracking>=%.2f)",
            min_detection_confidence,
            min_tracking_confidence,
        )

    def track(self, bgr_frame: np.ndarray) -> np.ndarray | None:
        """Return a ``(21, 2)`` float32 array in [0, 1], or ``None``.

        No hand is a normal outcome, not an error.
        """
        rgb = cv2.cvtColor(bgr_frame, cv2.COLOR_BGR2RGB)
        result = self._hands.process(rgb)

        if not result.multi_hand_landmarks:
            return None

        hand = result.multi_hand_landmarks[0]
        return np.array(
            [(lm.x, lm.y) for lm in hand.landmark], dtype=np.float32
        )

    def close(self) -> None:
        self._hands.close()


# ── Landmark interpretation ──────────────────────────────────────────────────


def interpret_landmarks(
    landmarks: np.ndarray | None,
    width: int,
    height: int,
    timestamp: float,
) -> HandObservation:
    """Collapse one frame's landmarks into a :class:`HandObservation`.

    The centre is the midpoint of the landmark bounding box in the mirrored
    frame: x values are flipped as ``(1 - x) * width`` because the capture is
    displayed (and cropped) mirrored.
    """
    if landmarks is None or len(landmarks) == 0:
        return HandObservation(present=False, timestamp=timestamp)

    pts = np.asarray(landmarks, dtype=np.float64)
    xs = (1.0 - pts[:, 0]) * width
    ys = pts[:, 1] * height

    x_center = (float(xs.min()) + float(xs.max())) / 2
    y_center = (float(ys.min()) + float(ys.max())) / 2
    return HandObservation(
        present=True, timestamp=timestamp, center=(x_center, y_center)
    )


# ── Crop region ──────────────────────────────────────────────────────────────


def compute_crop_window(
    center: tuple[float, float],
    box_size: int = BOX_SIZE,
    inset: int = CROP_INSET,
) -> CropWindow:
    """Fixed-size crop around *center*.

    ``origin = max(0, center - box_size / 2) + inset`` per axis; the extent is
    ``box_size - 2 * inset``.  Only the lower bound is clamped.
    """
    x_center, y_center = center
    x_start = max(0.0, x_center - box_size / 2)
    y_start = max(0.0, y_center - box_size / 2)
    size = box_size - 2 * inset
    return CropWindow(
        x=int(round(x_start)) + inset,
        y=int(round(y_start)) + inset,
        width=size,
        height=size,
        inset=inset,
    )


def extract_crop(frame: np.ndarray, window: CropWindow) -> np.ndarray:
    """Copy *window* out of *frame*, padding with black where it overhangs.

    The result always has shape ``(window.height, window.width, C)``.
    """
    fh, fw = frame.shape[:2]
    out_shape = (window.height, window.width) + frame.shape[2:]
    crop = np.zeros(out_shape, dtype=frame.dtype)

    x1, y1 = max(0, window.x), max(0, window.y)
    x2 = min(fw, window.x + window.width)
    y2 = min(fh, window.y + window.height)
    if x2 <= x1 or y2 <= y1:
        return crop

    crop[y1 - window.y:y2 - window.y, x1 - window.x:x2 - window.x] = frame[y1:y2, x1:x2]
    return crop


# ── Drawing utilities ────────────────────────────────────────────────────────


def mirror_frame(bgr_frame: np.ndarray) -> np.ndarray:
    """Horizontally flip a camera frame for selfie-style display."""
    return cv2.flip(bgr_frame, 1)


def draw_crop_box(
    bgr_frame: np.ndarray,
    window: CropWindow,
    thickness: int = 1,
) -> np.ndarray:
    """Draw the red capture box around *window* (mutates in-place)."""
    bx, by = window.box_origin
    box_size = window.width + 2 * window.inset
    cv2.rectangle(
        bgr_frame, (bx, by), (bx + box_size, by + box_size), _BOX_COLOUR, thickness
    )
    return bgr_frame


def draw_hand(
    bgr_frame: np.ndarray,
    landmarks: np.ndarray,
    point_radius: int = 3,
    line_thickness: int = 2,
) -> np.ndarray:
    """Draw the hand skeleton onto a *mirrored* frame (mutates in-place)."""
    h, w = bgr_frame.shape[:2]
    pts = np.stack(
        [(1.0 - landmarks[:, 0]) * w, landmarks[:, 1] * h], axis=1
    ).astype(int)

    for a, b in HAND_CONNECTIONS:
        cv2.line(bgr_frame, tuple(pts[a]), tuple(pts[b]), _SKELETON_COLOUR, line_thickness)

    for x, y in pts:
        cv2.circle(bgr_frame, (int(x), int(y)), point_radius, _POINT_COLOUR, -1)

    return bgr_frame
