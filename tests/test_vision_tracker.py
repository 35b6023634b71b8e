"""
tests/test_vision_tracker.py – hand tracker, landmark interpretation and crop geometry.
"""

from __future__ import annotations

import numpy as np
import pytest

from conftest import FRAME_H, FRAME_W, FakeHands, hand_landmarks
from signtext.vision_tracker import (
    CropWindow,
    HandTracker,
    compute_crop_window,
    extract_crop,
    interpret_landmarks,
)


def test_no_landmarks_is_absent():
    obs = interpret_landmarks(None, FRAME_W, FRAME_H, timestamp=1.5)
    assert not obs.present
    assert obs.center is None
    assert obs.timestamp == 1.5


def test_empty_landmarks_is_absent():
    obs = interpret_landmarks(np.zeros((0, 2)), FRAME_W, FRAME_H, timestamp=0.0)
    assert not obs.present


def test_center_is_bbox_midpoint_in_mirrored_frame():
    lm = hand_landmarks(cx=0.25, cy=0.5)
    obs = interpret_landmarks(lm, FRAME_W, FRAME_H, timestamp=0.0)

    assert obs.present
    x, y = obs.center
    # x is flipped: 0.25 from the left becomes 0.75 of the width
    assert x == pytest.approx(0.75 * FRAME_W, abs=1e-3)
    assert y == pytest.approx(0.5 * FRAME_H, abs=1e-3)


def test_explicit_points():
    lm = np.array([[0.1, 0.2], [0.3, 0.6], [0.2, 0.4]], dtype=np.float32)
    obs = interpret_landmarks(lm, 100, 100, timestamp=0.0)
    # xs flipped: 90, 70, 80 → midpoint 80; ys: 20, 60, 40 → midpoint 40
    assert obs.center == pytest.approx((80.0, 40.0), abs=1e-4)


def test_crop_window_centred_with_inset():
    window = compute_crop_window((320.0, 240.0))
    assert window == CropWindow(x=320 - 102 + 2, y=240 - 102 + 2, width=200, height=200)
    assert window.box_origin == (218, 138)


def test_crop_origin_clamped_near_zero():
    window = compute_crop_window((0.0, 0.0))
    assert (window.x, window.y) == (2, 2)

    window = compute_crop_window((50.0, 101.9))
    assert window.x == 2
    assert window.y == 2


def test_crop_window_respects_custom_geometry():
    window = compute_crop_window((100.0, 100.0), box_size=64, inset=4)
    assert (window.x, window.y, window.width, window.height) == (72, 72, 56, 56)


def test_extract_crop_inside_frame():
    frame = np.arange(FRAME_H * FRAME_W * 3, dtype=np.uint32).reshape(FRAME_H, FRAME_W, 3)
    window = CropWindow(x=10, y=20)
    crop = extract_crop(frame, window)
    assert crop.shape == (200, 200, 3)
    np.testing.assert_array_equal(crop, frame[20:220, 10:210])


def test_extract_crop_pads_past_frame_edge():
    frame = np.full((FRAME_H, FRAME_W, 3), 255, dtype=np.uint8)
    window = CropWindow(x=FRAME_W - 50, y=FRAME_H - 100)
    crop = extract_crop(frame, window)

    assert crop.shape == (200, 200, 3)
    assert crop[:100, :50].min() == 255
    assert crop[:, 50:].max() == 0
    assert crop[100:, :].max() == 0


def test_extract_crop_fully_outside_is_black():
    frame = np.full((FRAME_H, FRAME_W, 3), 255, dtype=np.uint8)
    crop = extract_crop(frame, CropWindow(x=FRAME_W + 10, y=0))
    assert crop.shape == (200, 200, 3)
    assert crop.max() == 0


# ── HandTracker ──────────────────────────────────────────────────────────────


def test_tracker_returns_first_hand_as_float32():
    first = hand_landmarks(0.3, 0.4)
    second = hand_landmarks(0.7, 0.6)
    tracker = HandTracker(hands=FakeHands([[first, second]]))

    lm = tracker.track(np.zeros((FRAME_H, FRAME_W, 3), dtype=np.uint8))

    assert lm.shape == (21, 2)
    assert lm.dtype == np.float32
    np.testing.assert_allclose(lm, first, atol=1e-6)


def test_tracker_returns_none_without_hand():
    tracker = HandTracker(hands=FakeHands([None, []]))
    frame = np.zeros((FRAME_H, FRAME_W, 3), dtype=np.uint8)
    assert tracker.track(frame) is None
    assert tracker.track(frame) is None


def test_tracker_feeds_rgb_to_detector():
    fake = FakeHands([None])
    tracker = HandTracker(hands=fake)
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    frame[..., 0] = 255  # blue in BGR

    tracker.track(frame)

    (rgb,) = fake.seen
    assert rgb[0, 0].tolist() == [0, 0, 255]


def test_tracker_close_closes_detector():
    fake = FakeHands()
    HandTracker(hands=fake).close()
    assert fake.closed


def test_tracker_builds_mediapipe_hands():
    pytest.importorskip("mediapipe")
    tracker = HandTracker()
    try:
        assert tracker.track(np.zeros((FRAME_H, FRAME_W, 3), dtype=np.uint8)) is None
    finally:
        tracker.close()
