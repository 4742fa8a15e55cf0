"""
The 31-band ISO third-octave grid used as index space for every band vector.
"""
import numpy as np

from room_eq.config import BAND_COUNT, BAND_FREQUENCIES
from room_eq.errors import ShapeMismatch


class BandGrid:
    """
    Ordered, read-only set of 31 band center frequencies (Hz).

    The default grid is the ISO nominal 20 Hz - 20 kHz series. Other grids
    may be supplied but must keep the same invariants: 31 positive,
    strictly increasing frequencies.
    """

    __slots__ = ('_frequencies',)

    def __init__(self, frequencies=BAND_FREQUENCIES):
        freqs = np.array(frequencies, dtype=float)
        if freqs.ndim != 1 or freqs.size != BAND_COUNT:
            raise ShapeMismatch(
                f"Band grid must have {BAND_COUNT} frequencies, got {freqs.size}"
            )
        if not np.all(np.isfinite(freqs)) or np.any(freqs <= 0.0):
            raise ShapeMismatch("Band grid frequencies must be positive and finite")
        if np.any(np.diff(freqs) <= 0.0):
            raise ShapeMismatch("Band grid frequencies must be strictly increasing")
        freqs.setflags(write=False)
        self._frequencies = freqs

    @property
    def frequencies(self) -> np.ndarray:
        """Read-only array of center frequencies."""
        return self._frequencies

    def __len__(self):
        return BAND_COUNT

    def __iter__(self):
        return iter(self._frequencies.tolist())

    def __getitem__(self, index):
        return float(self._frequencies[index])

    def __eq__(self, other):
        if not isinstance(other, BandGrid):
            return NotImplemented
        return np.array_equal(self._frequencies, other._frequencies)

    def __hash__(self):
        return hash(self._frequencies.tobytes())

    def __repr__(self):
        return f"BandGrid({self._frequencies[0]:g}..{self._frequencies[-1]:g} Hz)"


ISO_BAND_GRID = BandGrid()


def as_band_vector(values, name: str = "band vector") -> np.ndarray:
    """
    Copy values into a float array, enforcing the 31-band shape.

    Raises:
        ShapeMismatch: If values is not a flat sequence of 31 numbers.
    """
    try:
        vector = np.array(values, dtype=float)
    except (TypeError, ValueError) as e:
        raise ShapeMismatch(f"Invalid {name}: {e}")
    if vector.ndim != 1 or vector.size != BAND_COUNT:
        raise ShapeMismatch(
            f"Invalid {name}: expected {BAND_COUNT} values, got shape {vector.shape}"
        )
    return vector
