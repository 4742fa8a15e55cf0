"""Background workers that drive calibration runs."""

from .calibration_worker import CalibrationWorker

__all__ = [
    "CalibrationWorker",
]
