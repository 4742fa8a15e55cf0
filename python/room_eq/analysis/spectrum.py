"""
Spectrum analysis for room calibration.

Converts raw microphone frames to magnitude snapshots, power-averages
snapshots, maps the wide spectrum onto the 31-band grid and applies
fractional-octave smoothing across bands.
"""
import os

import numpy as np
from scipy.signal import get_window

from room_eq.config import (
    BAND_BIN_RADIUS,
    DEFAULT_FFT_SIZE,
    DEFAULT_NOISE_FLOOR_DB,
    resolve_smoothing_fraction,
)
from room_eq.errors import EmptyMeasurement, ShapeMismatch
from .bands import BandGrid, ISO_BAND_GRID, as_band_vector
from .levels import amplitude_to_db, db_to_amplitude, power_mean_db

DEBUG = os.environ.get("ROOMEQ_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}

# Floor for raw analyser output, well below any usable noise floor
ANALYZER_MIN_DB = -200.0


def _debug_log(message: str) -> None:
    if DEBUG:
        print(message)


def _as_band_grid(band_grid) -> BandGrid:
    # Plain frequency sequences get the same validation as a BandGrid
    if isinstance(band_grid, BandGrid):
        return band_grid
    return BandGrid(band_grid)


def bin_width_hz(sample_rate: float, bin_count: int) -> float:
    """Width of one snapshot bin: Nyquist divided by the bin count."""
    if bin_count <= 0:
        raise ShapeMismatch(f"Spectrum must have at least one bin, got {bin_count}")
    return (sample_rate / 2.0) / bin_count


def compute_magnitude_snapshot(frame, fft_size=DEFAULT_FFT_SIZE):
    """
    Compute one magnitude snapshot from a block of microphone samples.

    Mirrors what a browser AnalyserNode reports: Blackman window over the
    most recent fft_size samples, FFT, magnitude normalized by fft_size,
    converted to dB. No temporal smoothing is applied.

    Args:
        frame: Mono audio samples (float NumPy array), most recent last
        fft_size: FFT length (default: 8192)

    Returns:
        snapshot_db: fft_size // 2 magnitudes in dB (never -inf)

    Example:
        >>> frame = np.random.randn(8192)
        >>> snapshot = compute_magnitude_snapshot(frame)
        >>> len(snapshot)
        4096
    """
    samples = np.asarray(frame, dtype=float).ravel()
    if samples.size >= fft_size:
        samples = samples[-fft_size:]
    else:
        # Short frame: zero-pad so bin spacing stays fixed for the session
        samples = np.pad(samples, (0, fft_size - samples.size))

    window = get_window('blackman', fft_size)
    spectrum = np.fft.rfft(samples * window)[: fft_size // 2]
    magnitude = np.abs(spectrum) / fft_size

    return amplitude_to_db(magnitude, ANALYZER_MIN_DB)


def average_spectra(snapshots, noise_floor_db=DEFAULT_NOISE_FLOOR_DB):
    """
    Combine snapshots bin-by-bin using power averaging.

    Per bin, values strictly above the noise floor are converted to linear
    amplitude, squared, averaged over the number of valid contributions,
    then converted back with 20*log10(sqrt(mean)). Averaging dB values
    directly would be wrong for incoherent levels.

    Args:
        snapshots: Sequence of equal-length dB arrays
        noise_floor_db: Values at or below this are ignored

    Returns:
        averaged_db: One spectrum; bins with no valid contribution hold
            noise_floor_db

    Raises:
        EmptyMeasurement: No snapshots given
        ShapeMismatch: Snapshots differ in length
    """
    if len(snapshots) == 0:
        raise EmptyMeasurement("No measurement snapshots to average")

    lengths = {len(s) for s in snapshots}
    if len(lengths) != 1:
        raise ShapeMismatch(f"Snapshots must share one bin count, got {sorted(lengths)}")

    stacked = np.vstack([np.asarray(s, dtype=float) for s in snapshots])
    valid = np.isfinite(stacked) & (stacked > noise_floor_db)
    counts = valid.sum(axis=0)

    # Zero out invalid entries before leaving the dB domain
    amplitudes = np.where(valid, db_to_amplitude(np.where(valid, stacked, 0.0)), 0.0)
    mean_power = (amplitudes ** 2).sum(axis=0) / np.maximum(counts, 1)
    averaged_db = amplitude_to_db(np.sqrt(mean_power), noise_floor_db)

    # Identical contributions average to themselves exactly
    highest = np.where(valid, stacked, -np.inf).max(axis=0)
    lowest = np.where(valid, stacked, np.inf).min(axis=0)
    uniform = (counts > 0) & (highest == lowest)
    averaged_db = np.where(uniform, highest, averaged_db)

    _debug_log(
        f"[AVERAGE] {len(snapshots)} snapshots, {int(np.count_nonzero(counts))}/{counts.size} bins valid"
    )

    return np.where(counts > 0, averaged_db, float(noise_floor_db))


def extract_band_response(wide_spectrum, band_grid=ISO_BAND_GRID, bin_width=None,
                          noise_floor_db=DEFAULT_NOISE_FLOOR_DB):
    """
    Map a wide-resolution spectrum onto the band grid.

    Each band reads a small window of bins (center +/- BAND_BIN_RADIUS)
    around round(freq / bin_width) and power-averages the ones above the
    noise floor. Reading a window instead of the nearest bin reduces bin
    quantization at low frequencies, where one bin can be wider than the
    spacing between bands.

    Args:
        wide_spectrum: Averaged spectrum in dB (linear bin spacing)
        band_grid: BandGrid (or 31 frequencies) to sample
        bin_width: Bin spacing in Hz (see bin_width_hz)
        noise_floor_db: Bins at or below this are excluded

    Returns:
        band_db: 31 values; noise_floor_db where no bin was usable
    """
    spectrum = np.asarray(wide_spectrum, dtype=float)
    if spectrum.ndim != 1 or spectrum.size == 0:
        raise ShapeMismatch(f"Spectrum must be a non-empty 1-D array, got shape {spectrum.shape}")
    if bin_width is None or bin_width <= 0:
        raise ValueError(f"bin_width must be positive, got {bin_width}")
    band_grid = _as_band_grid(band_grid)

    n_bins = spectrum.size
    band_db = np.full(len(band_grid), float(noise_floor_db))

    for i, freq in enumerate(band_grid):
        center = int(np.floor(freq / bin_width + 0.5))
        if center >= n_bins:
            # Band is above the captured range (low sample rate)
            continue
        lo = max(0, center - BAND_BIN_RADIUS)
        hi = min(n_bins, center + BAND_BIN_RADIUS + 1)
        band_db[i] = power_mean_db(spectrum[lo:hi], noise_floor_db)

    return band_db


def smooth_band_response(band_response, band_grid=ISO_BAND_GRID, fraction=1.0 / 3.0,
                         noise_floor_db=DEFAULT_NOISE_FLOOR_DB):
    """
    Apply fractional octave smoothing across bands.

    For each band center f, every band whose center lies within
    [f * 2^(-fraction/2), f * 2^(fraction/2)] and is above the noise floor
    is power-averaged. Bands with nothing valid in their window keep their
    value.

    Args:
        band_response: 31 band levels in dB
        band_grid: BandGrid (or 31 frequencies) the response is aligned to
        fraction: 1/3, 1/6 or 1/12 (or "1/3", "1/6", "1/12"); anything
            else means 1/3
        noise_floor_db: Values at or below this are ignored

    Returns:
        smoothed_db: New array of 31 values (input untouched)
    """
    response = as_band_vector(band_response, "band response")
    band_grid = _as_band_grid(band_grid)
    octave_fraction = resolve_smoothing_fraction(fraction)
    freqs = band_grid.frequencies

    smoothed = response.copy()
    for i, fc in enumerate(freqs):
        lower = fc * 2.0 ** (-octave_fraction / 2.0)
        upper = fc * 2.0 ** (octave_fraction / 2.0)
        window = response[(freqs >= lower) & (freqs <= upper)]
        valid = window[np.isfinite(window) & (window > noise_floor_db)]
        if valid.size:
            smoothed[i] = power_mean_db(valid, noise_floor_db)

    return smoothed
