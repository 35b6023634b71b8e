"""
text_assembler.py – Predicted symbols + idle time → accumulated text.

Two small state machines share one :class:`OutputBuffer`:

* :class:`IdleSpacer` appends a single word separator once the hand has
  been absent for ``threshold`` seconds, and re-arms when it comes back.
* :class:`PredictionAccumulator` appends classifier symbols, dropping an
  incoming symbol that equals the last one *appended*.

Neither class locks anything; :class:`signtext.pipeline.SignTextPipeline`
serialises access to them.
"""

from __future__ import annotations

import enum
import logging

from signtext.config import IDLE_THRESHOLD, SEPARATOR

logger = logging.getLogger(__name__)


class OutputBuffer:
    """Append-only character sequence, cleared only by :meth:`clear`."""

    def __init__(self) -> None:
        self._chars: list[str] = []

    def append(self, chunk: str) -> None:
        self._chars.extend(chunk)

    def clear(self) -> None:
        self._chars.clear()

    @property
    def text(self) -> str:
        return "".join(self._chars)

    def __len__(self) -> int:
        return len(self._chars)

    def __str__(self) -> str:
        return self.text


class IdleState(enum.Enum):
    ACTIVE = "active"
    IDLE = "idle"


class IdleSpacer:
    """Insert at most one separator per contiguous idle run.

    Parameters
    ----------
    threshold : float
        Seconds without a hand before the run counts as idle.
    separator : str
        What gets appended on the ``ACTIVE → IDLE`` transition.
    """

    def __init__(
        self,
        threshold: float = IDLE_THRESHOLD,
        separator: str = SEPARATOR,
    ) -> None:
        self.threshold = threshold
        self.separator = separator
        self.space_inserted = False

    def state(self, present: bool, last_seen_at: float, now: float) -> IdleState:
        if not present and now - last_seen_at >= self.threshold:
            return IdleState.IDLE
        return IdleState.ACTIVE

    def rearm(self) -> None:
        """Hand seen again: the next idle run may insert a separator."""
        self.space_inserted = False

    def evaluate(
        self,
        present: bool,
        last_seen_at: float,
        now: float,
        buffer: OutputBuffer,
    ) -> bool:
        """Append the separator if this is a fresh idle run.

        Returns ``True`` when a separator was appended.  Calling again in the
        same idle run is a no-op.
        """
        if self.space_inserted:
            return False
        if self.state(present, last_seen_at, now) is not IdleState.IDLE:
            return False

        buffer.append(self.separator)
        self.space_inserted = True
        logger.info("Idle for %.1fs – separator inserted", now - last_seen_at)
        return True


class PredictionAccumulator:
    """Dedup consecutive identical symbols and append the rest.

    A symbol equal to the previously *appended* one is dropped, so a letter
    signed twice in a row ("LL") comes out once.
    """

    def __init__(self) -> None:
        self.last_prediction: str | None = None

    def feed(self, symbol: str | None, buffer: OutputBuffer) -> bool:
        """Append *symbol* unless it is empty or a repeat.

        Returns ``True`` when the buffer changed.
        """
        if not symbol or symbol == self.last_prediction:
            return False

        buffer.append(symbol)
        self.last_prediction = symbol
        logger.debug("Appended %r", symbol)
        return True

    def reset(self) -> None:
        self.last_prediction = None
