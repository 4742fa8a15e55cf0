"""
Target curves for calibration.

Closed-form curves are evaluated one band at a time with Python floats so
that the same grid always yields bit-identical targets.
"""
import math

import numpy as np

from room_eq.config import TARGET_CURVES, normalize_curve_id
from room_eq.errors import InvalidCurve, ShapeMismatch
from .bands import ISO_BAND_GRID, as_band_vector


def _preference_weighted_db(freq: float) -> float:
    # Raised bass, neutral mids, lowered treble
    if freq < 100.0:
        return 6.0
    if freq < 200.0:
        return 3.0
    if freq < 1000.0:
        return 0.0
    if freq < 10000.0:
        return -2.0
    return -4.0


def _house_curve_db(freq: float) -> float:
    return 10.0 - (math.log10(freq) - 1.0) * 3.33


_CLOSED_FORM_CURVES = {
    'flat': lambda freq: 0.0,
    'preference-weighted': _preference_weighted_db,
    'house-curve': _house_curve_db,
}


def get_target_curve(curve_id, band_grid=ISO_BAND_GRID, custom=None) -> np.ndarray:
    """
    Get target gains (dB) for every band of the grid.

    Args:
        curve_id: 'flat', 'preference-weighted', 'house-curve' or 'custom'
            (legacy 'harman' / 'b&k' are accepted)
        band_grid: BandGrid the targets are aligned to
        custom: 31 target values, required for 'custom'

    Returns:
        target_db: Array of 31 target values

    Raises:
        InvalidCurve: Unknown identifier, or custom curve missing/malformed
    """
    key = normalize_curve_id(curve_id)
    if key is None:
        raise InvalidCurve(f"Unknown target curve: {curve_id!r}")

    if key == 'custom':
        if custom is None:
            raise InvalidCurve("Custom target curve selected but no curve was supplied")
        try:
            target_db = as_band_vector(custom, "custom target curve")
        except ShapeMismatch as e:
            raise InvalidCurve(str(e))
        if not np.all(np.isfinite(target_db)):
            raise InvalidCurve("Custom target curve contains non-finite values")
        return target_db

    curve_fn = _CLOSED_FORM_CURVES[key]
    return np.array([curve_fn(freq) for freq in band_grid], dtype=float)


def list_target_curves() -> list[tuple[str, str]]:
    """List (curve_id, display name) pairs for selection widgets."""
    return [(key, curve.name) for key, curve in TARGET_CURVES.items()]
