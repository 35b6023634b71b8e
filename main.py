#!/usr/bin/env python3
"""
main.py – SignText orchestrator.

Pipeline:
  Webcam  ──►  mirror  ──►  MediaPipe Hand  ──►  SignTextPipeline
                                                  │  (idle timer, 1 s)
                                                  └► crop ──► classifier (every 2 s, armed) ──► text

Usage
-----
    python main.py                          # default webcam, sampling off until 's'
    python main.py --armed                  # start sampling straight away
    python main.py --url http://127.0.0.1:8000
    python main.py --no-display --armed     # headless (e.g. SSH / CI)

Keys: S = Start/Stop sampling, C = Clear text, Q / Esc = quit.
"""

from __future__ import annotations

import argparse
import logging
import sys

import cv2
import numpy as np

from signtext.classifier_client import ClassifierClient
from signtext.config import (
    FRAME_HEIGHT,
    FRAME_WIDTH,
    MIN_DETECTION_CONFIDENCE,
    PipelineConfig,
)
from signtext.pipeline import SignTextPipeline
from signtext.scheduler import SamplingRunner
from signtext.vision_tracker import (
    HandTracker,
    draw_crop_box,
    draw_hand,
    mirror_frame,
)

WINDOW_NAME = "SignText"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="SignText – hand signs to text via a remote classifier")
    p.add_argument("--camera", type=int, default=0, help="Camera device index")
    p.add_argument(
        "--url",
        type=str,
        default=None,
        help="Classifier base URL (default: $SIGNTEXT_CLASSIFIER_URL or the hosted service)",
    )
    p.add_argument("--timeout", type=float, default=None, help="Classifier request timeout (s)")
    p.add_argument("--armed", action="store_true", help="Start with sampling enabled")
    p.add_argument(
        "--no-display",
        action="store_true",
        help="Headless mode – skip OpenCV window",
    )
    p.add_argument(
        "--detection-confidence",
        type=float,
        default=MIN_DETECTION_CONFIDENCE,
        help="Minimum hand-detection confidence",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def draw_overlay(
    frame: np.ndarray, pipeline: SignTextPipeline
) -> np.ndarray:
    """Status bar on top, accumulated text along the bottom (mutates in-place)."""
    h, w = frame.shape[:2]
    font = cv2.FONT_HERSHEY_SIMPLEX
    scale = 0.48
    thickness = 1
    color_text = (220, 220, 220)  # soft white (BGR)
    color_bar = (32, 32, 32)      # dark bar

    # Top bar: controls + presence status
    bar_h = 56
    roi = frame[0:bar_h, 0:w].copy()
    cv2.rectangle(roi, (0, 0), (w, bar_h), color_bar, -1)
    frame[0:bar_h, 0:w] = cv2.addWeighted(roi, 0.5, frame[0:bar_h, 0:w], 0.5, 0)

    toggle_label = "Stop" if pipeline.armed else "Start"
    info_lines = [
        f"[S] {toggle_label}  ·  [C] Clear  ·  [Q] Quit",
        pipeline.status(),
    ]
    for i, line in enumerate(info_lines):
        cv2.putText(
            frame, line,
            (14, 22 + i * 20),
            font, scale, color_text, thickness,
            cv2.LINE_AA,
        )

    # Bottom bar: predicted output, oldest characters dropped to fit
    prefix = "Predicted Output: "
    text = pipeline.text or "..."
    max_w = w - 28
    while len(text) > 1 and cv2.getTextSize(prefix + text, font, 0.6, thickness)[0][0] > max_w:
        text = text[1:]
    label = prefix + text
    out_h = 40
    roi_b = frame[h - out_h:h, 0:w].copy()
    cv2.rectangle(roi_b, (0, 0), (w, out_h), color_bar, -1)
    frame[h - out_h:h, 0:w] = cv2.addWeighted(roi_b, 0.5, frame[h - out_h:h, 0:w], 0.5, 0)
    cv2.putText(
        frame, label,
        (14, h - 14),
        font, 0.6, color_text, thickness,
        cv2.LINE_AA,
    )
    return frame


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ── Initialise pipeline components ───────────────────────────────────
    config = PipelineConfig.from_env(classifier_url=args.url, timeout=args.timeout)
    tracker = HandTracker(min_detection_confidence=args.detection_confidence)
    classifier = ClassifierClient(config.classifier_url, timeout=config.timeout)
    pipeline = SignTextPipeline(config)
    pipeline.set_armed(args.armed)
    runner = SamplingRunner(pipeline, classifier)

    print(f"[SignText] Classifier : {classifier.endpoint}")
    print(f"[SignText] Sampling   : every {config.sample_period:.1f}s "
          f"({'armed' if args.armed else 'press S to start'})")
    print(f"[SignText] Idle space : after {config.idle_threshold:.1f}s without a hand")
    print("[SignText] Press 'q' to quit.\n")

    # ── Webcam loop ──────────────────────────────────────────────────────
    cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        print(f"[SignText] Cannot open camera {args.camera}", file=sys.stderr)
        sys.exit(1)
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, FRAME_WIDTH)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, FRAME_HEIGHT)

    runner.start()
    last_text = ""
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break

            # 1. Detect on the raw frame, crop and draw on the mirrored one
            landmarks = tracker.track(frame)
            mirrored = mirror_frame(frame)
            pipeline.observe(mirrored, landmarks)

            text = pipeline.text
            if text != last_text:
                print(f"  >> TEXT: {text!r}")
                last_text = text

            # 2. Draw overlay on a copy so crops never contain it
            if not args.no_display:
                display = mirrored.copy()
                window = pipeline.crop_window
                if landmarks is not None and window is not None:
                    draw_hand(display, landmarks)
                    draw_crop_box(display, window)
                draw_overlay(display, pipeline)

                cv2.imshow(WINDOW_NAME, display)
                key = cv2.waitKey(1) & 0xFF
                if key == ord("q") or key == 27:  # Q or Escape
                    break
                if key == ord("s"):
                    runner.toggle_armed()
                elif key == ord("c"):
                    runner.reset()

    except KeyboardInterrupt:
        print("\n[SignText] Interrupted.")
    finally:
        runner.stop()
        cap.release()
        tracker.close()
        classifier.close()
        if not args.no_display:
            cv2.destroyAllWindows()
        print(f"[SignText] Final text: {pipeline.text!r}")
        print("[SignText] Done.")


if __name__ == "__main__":
    main()
