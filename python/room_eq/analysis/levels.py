"""
Decibel <-> linear amplitude conversion shared by every calibration stage.

All averaging in the engine happens on linear amplitudes (power domain), so
these two functions are the only place the formulas live.
"""
import numpy as np


def db_to_amplitude(level_db):
    """Convert dB to linear amplitude: 10^(dB/20)."""
    return 10.0 ** (np.asarray(level_db, dtype=float) / 20.0)


def amplitude_to_db(amplitude, floor_db):
    """
    Convert linear amplitude to dB: 20*log10(amplitude).

    Zero, negative or non-finite amplitudes map to floor_db instead of
    -inf/NaN, and no result is ever below floor_db.
    """
    amplitude = np.asarray(amplitude, dtype=float)
    valid = np.isfinite(amplitude) & (amplitude > 0.0)
    # Placeholder 1.0 keeps log10 quiet on invalid entries
    safe = np.where(valid, amplitude, 1.0)
    level_db = np.where(valid, 20.0 * np.log10(safe), floor_db)
    return np.maximum(level_db, floor_db)


def power_mean_db(levels_db, floor_db):
    """
    Power-average dB values strictly above floor_db.

    Returns floor_db when no value qualifies.
    """
    levels_db = np.asarray(levels_db, dtype=float)
    valid = levels_db[np.isfinite(levels_db) & (levels_db > floor_db)]
    if valid.size == 0:
        return float(floor_db)
    if np.all(valid == valid[0]):
        return float(valid[0])
    amplitudes = db_to_amplitude(valid)
    return float(amplitude_to_db(np.sqrt(np.mean(amplitudes ** 2)), floor_db))
