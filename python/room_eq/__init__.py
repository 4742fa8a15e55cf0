"""
RoomEq - 31-band equalizer auto-calibration

Turns microphone measurements of a room into per-band EQ corrections.
"""

__version__ = "1.0.0"

from .errors import (
    CalibrationError,
    ShapeMismatch,
    InvalidCurve,
    EmptyMeasurement,
    SessionStateError,
)
from .config import (
    CalibrationConfig,
    ConfigValidationError,
    BAND_FREQUENCIES,
    TARGET_CURVES,
)

__all__ = [
    "CalibrationError",
    "ShapeMismatch",
    "InvalidCurve",
    "EmptyMeasurement",
    "SessionStateError",
    "CalibrationConfig",
    "ConfigValidationError",
    "BAND_FREQUENCIES",
    "TARGET_CURVES",
]
