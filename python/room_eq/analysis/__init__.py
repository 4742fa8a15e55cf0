"""
Acoustic calibration engine for the 31-band EQ.

Provides snapshot capture analysis, measurement buffering, power averaging,
band extraction, fractional octave smoothing, target curves and correction
calculation.
"""
from .bands import (
    BandGrid,
    ISO_BAND_GRID,
    as_band_vector
)
from .levels import (
    db_to_amplitude,
    amplitude_to_db,
    power_mean_db
)
from .target_curves import (
    get_target_curve,
    list_target_curves
)
from .measurement import (
    MeasurementBuffer,
    MeasurementSession,
    SessionState
)
from .spectrum import (
    bin_width_hz,
    compute_magnitude_snapshot,
    average_spectra,
    extract_band_response,
    smooth_band_response
)
from .corrections import (
    calculate_corrections,
    run_calibration,
    CalibrationResult
)

__all__ = [
    # Band grid
    'BandGrid',
    'ISO_BAND_GRID',
    'as_band_vector',
    # Level conversion
    'db_to_amplitude',
    'amplitude_to_db',
    'power_mean_db',
    # Target curves
    'get_target_curve',
    'list_target_curves',
    # Measurement
    'MeasurementBuffer',
    'MeasurementSession',
    'SessionState',
    # Spectrum analysis
    'bin_width_hz',
    'compute_magnitude_snapshot',
    'average_spectra',
    'extract_band_response',
    'smooth_band_response',
    # Corrections
    'calculate_corrections',
    'run_calibration',
    'CalibrationResult'
]
