"""
scheduler.py – Fixed-period timers that drive the pipeline off the frame loop.

:class:`SamplingRunner` owns:
  * an always-on idle timer (``idle_tick_period``) calling
    :meth:`SignTextPipeline.tick_idle`;
  * a sampling timer (``sample_period``) that only exists while armed;
  * a single classifier worker thread.  A sampling tick that finds the
    previous request still in flight skips its dispatch.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Protocol

import numpy as np

from signtext.classifier_client import ClassifierError
from signtext.pipeline import SampleRequest, SignTextPipeline

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    def predict(self, bgr_crop: np.ndarray) -> str | None: ...


class PeriodicTask:
    """Call *fn* every *period* seconds on a daemon thread until cancelled.

    The first call happens one full period after :meth:`start`.
    """

    def __init__(self, period: float, fn: Callable[[], object], name: str) -> None:
        self.period = period
        self.fn = fn
        self.name = name
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def _run(self) -> None:
        while not self._stop.wait(self.period):
            try:
                self.fn()
            except Exception:
                logger.exception("%s tick failed", self.name)


class SamplingRunner:
    """Wire a :class:`SignTextPipeline` to its timers and a classifier.

    Parameters
    ----------
    pipeline : SignTextPipeline
        The state every trigger shares.
    classifier : Classifier
        Anything with ``predict(bgr_crop) -> str | None`` that raises
        :class:`ClassifierError` on failure.
    """

    def __init__(self, pipeline: SignTextPipeline, classifier: Classifier) -> None:
        self.pipeline = pipeline
        self.classifier = classifier
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="classifier")
        self._inflight: Future | None = None
        self._idle_task: PeriodicTask | None = None
        self._sample_task: PeriodicTask | None = None

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start(self) -> None:
        cfg = self.pipeline.config
        self._idle_task = PeriodicTask(cfg.idle_tick_period, self.pipeline.tick_idle, "idle-timer")
        self._idle_task.start()
        if self.pipeline.armed:
            self._start_sampling()

    def stop(self, timeout: float | None = None) -> None:
        """Cancel both timers, then wait for any in-flight classification.

        The classifier may be closed once this returns.
        """
        tasks = [t for t in (self._sample_task, self._idle_task) if t is not None]
        self._stop_sampling()
        self._idle_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            task.join(timeout)
        self._executor.shutdown(wait=True)

    # ── Controls ─────────────────────────────────────────────────────────

    def toggle_armed(self) -> bool:
        """Flip the armed flag and start / cancel the sampling timer.

        Disarming never touches the accumulated text.
        """
        armed = self.pipeline.toggle_armed()
        if armed:
            self._start_sampling()
        else:
            self._stop_sampling()
        return armed

    def reset(self) -> None:
        self.pipeline.reset()

    @property
    def sampling(self) -> bool:
        return self._sample_task is not None

    # ── Sampling ─────────────────────────────────────────────────────────

    def sample_once(self) -> Future | None:
        """Run one sampling tick.

        Returns the classifier future when a crop was dispatched, ``None``
        when the tick was skipped.
        """
        if self._inflight is not None and not self._inflight.done():
            logger.debug("Previous classification still running – skipping tick")
            return None

        request = self.pipeline.prepare_sample()
        if request is None:
            return None

        self._inflight = self._executor.submit(self._classify, request)
        return self._inflight

    def _classify(self, request: SampleRequest) -> bool:
        try:
            symbol = self.classifier.predict(request.crop)
        except ClassifierError as exc:
            logger.warning("Prediction error: %s", exc)
            return False
        return self.pipeline.commit_prediction(symbol, request.generation)

    def _start_sampling(self) -> None:
        if self._sample_task is not None:
            return
        period = self.pipeline.config.sample_period
        self._sample_task = PeriodicTask(period, self.sample_once, "sample-timer")
        self._sample_task.start()

    def _stop_sampling(self) -> None:
        if self._sample_task is None:
            return
        self._sample_task.cancel()
        self._sample_task = None
