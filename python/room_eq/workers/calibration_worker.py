"""
Non-blocking calibration worker.

Drives a measurement session from a background thread: polls the capture
source at a fixed cadence for the configured duration, feeds every snapshot
to the MeasurementBuffer, then runs the calibration pipeline and emits the
correction vector.
"""
import os
import threading
import time

from PyQt6.QtCore import QThread, pyqtSignal

from room_eq.analysis import MeasurementBuffer, run_calibration
from room_eq.config import CalibrationConfig
from room_eq.errors import CalibrationError, SessionStateError

DEBUG = os.environ.get("ROOMEQ_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}

# Capture cadence of a display-synced analyser poll
DEFAULT_POLL_INTERVAL_S = 1.0 / 60.0


def _debug_log(message: str) -> None:
    if DEBUG:
        print(message)


class CalibrationWorker(QThread):
    """
    Worker thread for one calibration run.

    The capture callable returns the latest magnitude snapshot (dB per bin)
    or None when no new frame is available. Progress is reported as a
    percentage of the measurement window.
    """

    # Signals
    progress = pyqtSignal(int)      # 0-100 progress percentage
    status = pyqtSignal(str)        # Human-readable step description
    finished = pyqtSignal(list)     # Emits 31 correction gains (dB)
    failed = pyqtSignal(str)        # Emits user-facing error message

    def __init__(self, capture, config: CalibrationConfig | None = None,
                 buffer: MeasurementBuffer | None = None,
                 poll_interval_s: float = DEFAULT_POLL_INTERVAL_S):
        """
        Initialize calibration worker.

        Args:
            capture: Zero-argument callable returning a snapshot or None
            config: CalibrationConfig for the run (defaults if omitted)
            buffer: MeasurementBuffer to fill (a new one if omitted)
            poll_interval_s: Delay between capture polls in seconds
        """
        super().__init__()
        self.capture = capture
        self.config = config if config is not None else CalibrationConfig()
        self.buffer = buffer if buffer is not None else MeasurementBuffer()
        self.poll_interval_s = poll_interval_s
        self.result = None
        self._stop_event = threading.Event()
        self._run_lock = threading.Lock()

    @property
    def is_calibrating(self) -> bool:
        return self._run_lock.locked()

    def stop(self):
        """Request cooperative cancellation."""
        self._stop_event.set()

    def _should_stop(self) -> bool:
        return self._stop_event.is_set()

    def run(self):
        """
        Run calibration in background thread.

        Called by QThread.start(). Emits finished with the corrections or
        failed with a message. A failed run discards its session; a
        cancelled run discards it and emits neither.
        """
        if not self._run_lock.acquire(blocking=False):
            self.failed.emit(str(SessionStateError("Calibration already in progress")))
            return

        try:
            self._run_measurement()
        finally:
            self._run_lock.release()

    def _run_measurement(self):
        start_time = time.monotonic()
        duration = self.config.duration_s
        noise_floor_db = self.config.noise_floor_db
        self.result = None

        try:
            if self._should_stop():
                return

            self.buffer.reset()
            self.status.emit("Measuring...")
            _debug_log(f"[CALIBRATION] Measuring for {duration:.1f}s, target={self.config.target_curve}")

            while True:
                if self._should_stop():
                    _debug_log("[CALIBRATION] Cancelled, discarding session")
                    self.buffer.reset()
                    return

                elapsed = time.monotonic() - start_time
                self.progress.emit(min(100, int(elapsed / duration * 100)))

                snapshot = self.capture()
                if snapshot is not None:
                    self.buffer.submit(snapshot, noise_floor_db)

                if elapsed >= duration:
                    break
                if self.poll_interval_s > 0:
                    time.sleep(self.poll_interval_s)

            self.status.emit("Processing measurements...")
            result = run_calibration(self.buffer, self.config)
            if self._should_stop():
                return

            self.result = result
            self.progress.emit(100)
            self.status.emit("Calibration complete!")
            _debug_log(
                f"[CALIBRATION] Done in {time.monotonic() - start_time:.2f}s "
                f"from {result.snapshot_count} snapshots"
            )
            self.finished.emit(result.corrections)

        except CalibrationError as e:
            _debug_log(f"[CALIBRATION] FAILED: {type(e).__name__}: {e}")
            self.buffer.reset()
            self.failed.emit(str(e))
        except Exception as e:
            # Capture collaborator errors (device lost etc.)
            _debug_log(f"[CALIBRATION] EXCEPTION: {type(e).__name__}: {e}")
            self.buffer.reset()
            self.failed.emit(f"Calibration error: {e}")
