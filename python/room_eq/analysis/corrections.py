"""
Correction calculation for the 31-band graphic EQ.

Turns a smoothed room response into conservative slider gains: peak
normalized, damped, clamped, quantized to the slider step and finally
neighbor-smoothed so no single band jumps against its neighbors.
"""
import os
from dataclasses import dataclass

import numpy as np

from room_eq.config import (
    CORRECTION_DAMPING,
    CORRECTION_STEP_DB,
    DEFAULT_NOISE_FLOOR_DB,
    MAX_CORRECTION_DB,
    CalibrationConfig,
)
from room_eq.errors import EmptyMeasurement
from .bands import ISO_BAND_GRID, as_band_vector
from .measurement import MeasurementBuffer
from .spectrum import (
    average_spectra,
    bin_width_hz,
    extract_band_response,
    smooth_band_response,
)
from .target_curves import get_target_curve

DEBUG = os.environ.get("ROOMEQ_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


def _debug_log(message: str) -> None:
    if DEBUG:
        print(message)


def _quantize(values, step=CORRECTION_STEP_DB):
    quantized = np.round(np.asarray(values, dtype=float) / step) * step
    # Avoid handing out -0.0 to slider code
    return quantized + 0.0


def calculate_corrections(smoothed_response, target_curve, reference_level_db,
                          noise_floor_db=DEFAULT_NOISE_FLOOR_DB) -> list[float]:
    """
    Calculate per-band EQ corrections from a smoothed measured response.

    Steps:
    1. Normalize so the loudest band sits at reference_level_db
    2. Correction = target - (normalized - reference), so target curves
       stay relative to the reference level
    3. Damp to 70% (one pass cannot fully characterize room modes)
    4. Clamp to +/-10 dB
    5. Quantize to 0.5 dB
    6. 3-point moving average over interior bands, then re-quantize

    Args:
        smoothed_response: 31 band levels in dB
        target_curve: 31 target gains in dB
        reference_level_db: Level the response peak is normalized to
        noise_floor_db: Bands at or below this carry no measurement

    Returns:
        corrections: 31 gains in dB, multiples of 0.5 within [-10, 10]

    Raises:
        ShapeMismatch: Either vector is not 31 long
        EmptyMeasurement: No band holds a valid measurement
    """
    measured = as_band_vector(smoothed_response, "smoothed response")
    target = as_band_vector(target_curve, "target curve")

    finite = np.isfinite(measured)
    if not np.any(finite & (measured > noise_floor_db)):
        raise EmptyMeasurement("Measured response has no band above the noise floor")
    measured = np.where(finite, measured, float(noise_floor_db))

    # Corrections are about shape, not playback level
    peak_db = float(np.max(measured))
    normalized = measured - (peak_db - reference_level_db)

    raw = target - (normalized - reference_level_db)
    damped = raw * CORRECTION_DAMPING
    clamped = np.clip(damped, -MAX_CORRECTION_DB, MAX_CORRECTION_DB)
    quantized = _quantize(clamped)

    smoothed = quantized.copy()
    smoothed[1:-1] = (quantized[:-2] + quantized[1:-1] + quantized[2:]) / 3.0
    corrections = _quantize(smoothed)

    _debug_log(f"[CORRECTION] Peak {peak_db:.1f} dB -> reference {reference_level_db:.1f} dB")
    _debug_log(f"[CORRECTION] Raw: {[round(v, 1) for v in raw]}")
    _debug_log(f"[CORRECTION] Final: {corrections.tolist()}")

    return corrections.tolist()


@dataclass
class CalibrationResult:
    """Corrections plus the intermediate responses they were derived from."""
    corrections: list[float]
    snapshot_count: int
    averaged_spectrum: np.ndarray
    band_response: np.ndarray
    smoothed_response: np.ndarray
    target: np.ndarray


def run_calibration(measurement, config: CalibrationConfig,
                    band_grid=ISO_BAND_GRID) -> CalibrationResult:
    """
    Complete calibration pipeline over a finished measurement.

    High-level function that runs, in order:
    1. Minimum snapshot check
    2. Power averaging of snapshots
    3. Band extraction
    4. Fractional octave smoothing
    5. Target curve lookup
    6. Correction calculation

    Args:
        measurement: MeasurementBuffer (its session is finished here) or a
            sequence of retained snapshots
        config: CalibrationConfig for this run
        band_grid: BandGrid for every band vector

    Returns:
        result: CalibrationResult with the 31-band corrections

    Raises:
        EmptyMeasurement: Fewer than config.min_snapshots usable snapshots
        InvalidCurve: Target curve cannot be resolved
        ShapeMismatch: Inconsistent snapshot or curve shapes
    """
    if isinstance(measurement, MeasurementBuffer):
        snapshots = measurement.finish()
    else:
        snapshots = tuple(measurement)

    if len(snapshots) < config.min_snapshots:
        raise EmptyMeasurement(
            f"Only {len(snapshots)} usable measurements captured "
            f"(need {config.min_snapshots}). Raise the playback level and try again."
        )

    _debug_log(f"[CALIBRATION] Averaging {len(snapshots)} snapshots")
    averaged = average_spectra(snapshots, config.noise_floor_db)

    width = bin_width_hz(config.sample_rate, averaged.size)
    band_response = extract_band_response(averaged, band_grid, width, config.noise_floor_db)
    _debug_log(f"[CALIBRATION] Band response: {[round(v, 1) for v in band_response]}")

    smoothed = smooth_band_response(
        band_response, band_grid, config.smoothing_fraction, config.noise_floor_db
    )
    target = get_target_curve(config.target_curve, band_grid, custom=config.custom_curve)

    corrections = calculate_corrections(
        smoothed, target, config.reference_level_db, config.noise_floor_db
    )

    return CalibrationResult(
        corrections=corrections,
        snapshot_count=len(snapshots),
        averaged_spectrum=averaged,
        band_response=band_response,
        smoothed_response=smoothed,
        target=target,
    )
