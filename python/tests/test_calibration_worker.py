"""Tests for CalibrationWorker signal flow, failure reporting and cancellation."""

import numpy as np
import pytest

from room_eq.analysis import MeasurementBuffer, SessionState, bin_width_hz
from room_eq.config import BAND_FREQUENCIES, CalibrationConfig
from room_eq.workers import CalibrationWorker

# Short window, the capture source runs dry long before it ends
FAST_CONFIG = CalibrationConfig(duration_s=0.3)


def _plateau_snapshot(bins=4096):
    freqs = np.arange(bins) * bin_width_hz(48000, bins)
    return np.where((freqs >= 100.0) & (freqs <= 10000.0), -20.0, -60.0)


def _frame_source(frames):
    frames = iter(frames)
    return lambda: next(frames, None)


class SignalRecorder:
    def __init__(self, worker):
        self.progress = []
        self.status = []
        self.finished = []
        self.failed = []
        worker.progress.connect(self.progress.append)
        worker.status.connect(self.status.append)
        worker.finished.connect(self.finished.append)
        worker.failed.connect(self.failed.append)


def _make_worker(capture, config=FAST_CONFIG, buffer=None):
    worker = CalibrationWorker(capture, config=config, buffer=buffer, poll_interval_s=0.001)
    return worker, SignalRecorder(worker)


def test_successful_run_emits_corrections(qapp):
    worker, recorder = _make_worker(_frame_source([_plateau_snapshot()] * 30))
    worker.run()

    assert recorder.failed == []
    assert len(recorder.finished) == 1
    corrections = recorder.finished[0]
    assert len(corrections) == 31

    by_freq = dict(zip(BAND_FREQUENCIES, corrections))
    assert by_freq[1000.0] == 0.0
    assert by_freq[20.0] == 10.0

    assert recorder.progress[-1] == 100
    assert recorder.status[0] == "Measuring..."
    assert recorder.status[-1] == "Calibration complete!"
    assert worker.result.snapshot_count == 20  # 30 submitted, 10 warm-up
    assert not worker.is_calibrating


def test_progress_is_monotonic(qapp):
    worker, recorder = _make_worker(_frame_source([_plateau_snapshot()] * 30))
    worker.run()
    assert recorder.progress == sorted(recorder.progress)
    assert all(0 <= p <= 100 for p in recorder.progress)


def test_quiet_room_reports_failure(qapp):
    quiet = np.full(4096, -100.0)
    buffer = MeasurementBuffer()
    worker, recorder = _make_worker(_frame_source([quiet] * 30), buffer=buffer)
    worker.run()

    assert recorder.finished == []
    assert len(recorder.failed) == 1
    assert "No usable measurement" in recorder.failed[0]
    assert worker.result is None
    assert buffer.count() == 0


def test_too_few_snapshots_reports_failure(qapp):
    worker, recorder = _make_worker(_frame_source([_plateau_snapshot()] * 12))
    worker.run()

    assert recorder.finished == []
    assert len(recorder.failed) == 1
    assert "Only 2 usable measurements" in recorder.failed[0]


def test_capture_error_is_reported(qapp):
    def broken_capture():
        raise RuntimeError("device lost")

    worker, recorder = _make_worker(broken_capture)
    worker.run()

    assert recorder.finished == []
    assert recorder.failed == ["Calibration error: device lost"]


def test_capture_error_mid_run_discards_session(qapp):
    buffer = MeasurementBuffer()
    frames = iter([_plateau_snapshot()] * 30)
    delivered = []

    def flaky_capture():
        if len(delivered) == 15:
            raise RuntimeError("device lost")
        frame = next(frames, None)
        delivered.append(frame)
        return frame

    worker, recorder = _make_worker(flaky_capture, buffer=buffer)
    worker.run()

    assert recorder.failed == ["Calibration error: device lost"]
    assert buffer.count() == 0
    assert worker.result is None


def test_stop_before_run_emits_nothing(qapp):
    buffer = MeasurementBuffer()
    worker, recorder = _make_worker(_frame_source([_plateau_snapshot()] * 30), buffer=buffer)
    worker.stop()
    worker.run()

    assert recorder.finished == []
    assert recorder.failed == []
    assert buffer.state is SessionState.IDLE


def test_stop_mid_run_discards_session(qapp):
    buffer = MeasurementBuffer()
    frames = iter([_plateau_snapshot()] * 30)
    delivered = []

    def capture():
        if len(delivered) == 15:
            worker.stop()
        frame = next(frames, None)
        delivered.append(frame)
        return frame

    worker, recorder = _make_worker(capture, buffer=buffer)
    worker.run()

    assert recorder.finished == []
    assert recorder.failed == []
    assert buffer.count() == 0
    assert worker.result is None


def test_second_run_while_busy_is_refused(qapp):
    worker, recorder = _make_worker(_frame_source([]))
    worker._run_lock.acquire()
    try:
        assert worker.is_calibrating
        worker.run()
    finally:
        worker._run_lock.release()

    assert recorder.finished == []
    assert len(recorder.failed) == 1
    assert "already in progress" in recorder.failed[0]
    assert not worker.is_calibrating


def test_reused_buffer_starts_clean(qapp):
    buffer = MeasurementBuffer()
    buffer.reset()
    for _ in range(40):
        buffer.submit(np.full(4096, -30.0), -80.0)
    assert buffer.count() == 30

    worker, recorder = _make_worker(_frame_source([_plateau_snapshot()] * 30), buffer=buffer)
    worker.run()

    assert len(recorder.finished) == 1
    assert worker.result.snapshot_count == 20
    assert buffer.state is SessionState.COMPLETE


@pytest.mark.parametrize("curve", ["flat", "preference-weighted", "house-curve"])
def test_corrections_stay_in_slider_range(qapp, curve):
    config = CalibrationConfig(duration_s=0.3, target_curve=curve)
    worker, recorder = _make_worker(_frame_source([_plateau_snapshot()] * 30), config=config)
    worker.run()

    assert len(recorder.finished) == 1
    assert all(-10.0 <= c <= 10.0 for c in recorder.finished[0])
