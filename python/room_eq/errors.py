"""
Calibration error types.

Every error here is fatal to the current calibration run but never to the
application: callers surface the message to the user and allow a retry.
"""


class CalibrationError(Exception):
    """Base class for calibration run failures."""
    pass


class ShapeMismatch(CalibrationError, ValueError):
    """Raised when a band vector or snapshot has the wrong length."""
    pass


class InvalidCurve(CalibrationError, ValueError):
    """Raised for an unknown target curve or a missing/malformed custom curve."""
    pass


class EmptyMeasurement(CalibrationError):
    """Raised when no valid measurement data is available to average."""
    pass


class SessionStateError(CalibrationError, RuntimeError):
    """Raised when the measurement session is used out of order."""
    pass
