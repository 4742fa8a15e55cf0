"""
Measurement session bookkeeping for microphone calibration.

The capture loop delivers one magnitude snapshot at a time. The buffer keeps
only the ones worth averaging: the first WARMUP_DISCARD_COUNT submissions of
a session are dropped while the mic path settles, and snapshots whose peak
does not clear the noise floor are dropped silently.
"""
import itertools
import os
import threading
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from room_eq.config import WARMUP_DISCARD_COUNT
from room_eq.errors import EmptyMeasurement, SessionStateError, ShapeMismatch

DEBUG = os.environ.get("ROOMEQ_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


def _debug_log(message: str) -> None:
    if DEBUG:
        print(message)


class SessionState(Enum):
    IDLE = "idle"
    MEASURING = "measuring"
    COMPLETE = "complete"


_session_ids = itertools.count(1)


@dataclass
class MeasurementSession:
    """Snapshots accumulated during one calibration run."""
    session_id: int
    bin_count: int | None = None  # Fixed by the first submission
    snapshots: list[np.ndarray] = field(default_factory=list)
    submitted: int = 0
    discarded_warmup: int = 0
    rejected_noise: int = 0


def _snapshot_peak_db(snapshot: np.ndarray) -> float | None:
    finite = snapshot[np.isfinite(snapshot)]
    if finite.size == 0:
        return None
    return float(finite.max())


class MeasurementBuffer:
    """
    Accumulates validated magnitude snapshots for the active session.

    Safe for several capture threads submitting concurrently, with one
    reader draining the snapshots once capture has finished.
    """

    def __init__(self, warmup_discard: int = WARMUP_DISCARD_COUNT):
        self.warmup_discard = int(warmup_discard)
        self._lock = threading.Lock()
        self._state = SessionState.IDLE
        self._session = MeasurementSession(session_id=0)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> MeasurementSession:
        """Active session (read-only view for diagnostics)."""
        return self._session

    def reset(self) -> None:
        """Discard all data and start a new measurement session."""
        with self._lock:
            self._session = MeasurementSession(session_id=next(_session_ids))
            self._state = SessionState.MEASURING
        _debug_log(f"[MEASURE] Session {self._session.session_id} started")

    def submit(self, snapshot, noise_floor_db: float) -> bool:
        """
        Offer one magnitude snapshot (dB per bin) to the session.

        Returns:
            True if the snapshot was retained, False if it was discarded
            (warm-up period or peak at/below noise_floor_db).

        Raises:
            SessionStateError: No session is measuring (call reset() first)
            ShapeMismatch: Bin count differs from earlier snapshots
        """
        data = np.array(snapshot, dtype=float)
        if data.ndim != 1 or data.size == 0:
            raise ShapeMismatch(f"Snapshot must be a non-empty 1-D sequence, got shape {data.shape}")
        data.setflags(write=False)

        with self._lock:
            if self._state is not SessionState.MEASURING:
                raise SessionStateError(
                    f"Cannot submit while session is {self._state.value}; call reset() first"
                )
            session = self._session
            if session.bin_count is None:
                session.bin_count = data.size
            elif data.size != session.bin_count:
                raise ShapeMismatch(
                    f"Snapshot has {data.size} bins, session expects {session.bin_count}"
                )

            session.submitted += 1
            if session.submitted <= self.warmup_discard:
                session.discarded_warmup += 1
                return False

            peak_db = _snapshot_peak_db(data)
            if peak_db is None or peak_db <= noise_floor_db:
                session.rejected_noise += 1
                return False

            session.snapshots.append(data)
            return True

    def count(self) -> int:
        """Number of retained snapshots in the active session."""
        with self._lock:
            return len(self._session.snapshots)

    def snapshots(self) -> tuple[np.ndarray, ...]:
        """Retained snapshots (read-only arrays) in arrival order."""
        with self._lock:
            return tuple(self._session.snapshots)

    def finish(self) -> tuple[np.ndarray, ...]:
        """
        Close the session and hand over its snapshots for averaging.

        Raises:
            EmptyMeasurement: No snapshot was retained
        """
        with self._lock:
            session = self._session
            self._state = SessionState.COMPLETE
            retained = tuple(session.snapshots)

        _debug_log(
            f"[MEASURE] Session {session.session_id} complete: submitted={session.submitted}, "
            f"retained={len(retained)}, warmup={session.discarded_warmup}, "
            f"below_floor={session.rejected_noise}"
        )
        if not retained:
            raise EmptyMeasurement(
                "No usable measurement was captured. Check the microphone and playback level."
            )
        return retained
