"""
classifier_client.py – HTTP client for the remote hand-sign classifier.

The service takes one JPEG crop as a multipart upload and answers with a
JSON object whose ``filename`` field holds the predicted symbol:

    POST {base_url}/predict/
        image=<hand.jpg, image/jpeg>
    → 200 {"filename": "A"}

An empty or missing field means "no confident prediction" and is returned
as ``None``.  Anything that prevents reading a prediction (connection
error, timeout, non-2xx, body that is not a JSON object) raises
:class:`ClassifierError`.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np
import requests

from signtext.config import (
    DEFAULT_CLASSIFIER_URL,
    DEFAULT_TIMEOUT,
    PREDICT_PATH,
    RESPONSE_FIELD,
    UPLOAD_FIELD,
    UPLOAD_FILENAME,
)

logger = logging.getLogger(__name__)


class ClassifierError(Exception):
    """The classifier could not be reached or its answer could not be read."""


def encode_jpeg(bgr_image: np.ndarray, quality: int = 92) -> bytes:
    """Encode a BGR image as JPEG bytes."""
    ok, buf = cv2.imencode(".jpg", bgr_image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ClassifierError("JPEG encoding failed")
    return buf.tobytes()


def parse_prediction(payload: object) -> str | None:
    """Pull the predicted symbol out of a decoded response body."""
    if not isinstance(payload, dict):
        raise ClassifierError(f"Unexpected response body: {payload!r}")
    symbol = payload.get(RESPONSE_FIELD)
    if not isinstance(symbol, str) or not symbol:
        return None
    return symbol


class ClassifierClient:
    """Send crops to the classifier and return predicted symbols.

    Parameters
    ----------
    base_url : str
        Service root, e.g. ``"http://127.0.0.1:8000"``.
    timeout : float
        Per-request timeout in seconds.
    session : requests.Session or None
        Injected for connection reuse (and for tests).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_CLASSIFIER_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return self.base_url + PREDICT_PATH

    def predict(self, bgr_crop: np.ndarray) -> str | None:
        """Classify one crop.  Raises :class:`ClassifierError` on failure."""
        return self.predict_bytes(encode_jpeg(bgr_crop))

    def predict_bytes(self, jpeg: bytes) -> str | None:
        files = {UPLOAD_FIELD: (UPLOAD_FILENAME, jpeg, "image/jpeg")}
        try:
            resp = self.session.post(self.endpoint, files=files, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as exc:
            raise ClassifierError(f"Request to {self.endpoint} failed: {exc}") from exc
        except ValueError as exc:
            raise ClassifierError(f"Response is not JSON: {exc}") from exc

        symbol = parse_prediction(payload)
        logger.debug("Classifier answered %r", symbol)
        return symbol

    def close(self) -> None:
        self.session.close()
