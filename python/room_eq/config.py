"""
Configuration for RoomEq calibration runs.

Holds the band grid constants, calibration defaults, target curve metadata
and the immutable per-run CalibrationConfig.
"""

from dataclasses import dataclass, asdict
from typing import Optional


class ConfigValidationError(Exception):
    """Raised when calibration config validation fails with actionable message."""
    pass


# ISO 266 nominal third-octave centers (Hz) - one per graphic EQ slider
BAND_FREQUENCIES = (
    20.0, 25.0, 31.5, 40.0, 50.0, 63.0, 80.0, 100.0, 125.0, 160.0,
    200.0, 250.0, 315.0, 400.0, 500.0, 630.0, 800.0, 1000.0, 1250.0, 1600.0,
    2000.0, 2500.0, 3150.0, 4000.0, 5000.0, 6300.0, 8000.0, 10000.0,
    12500.0, 16000.0, 20000.0,
)
BAND_COUNT = 31

# Measurement defaults
DEFAULT_SAMPLE_RATE = 48000
DEFAULT_FFT_SIZE = 8192            # 4096 bins, ~5.9 Hz resolution at 48kHz
DEFAULT_DURATION_S = 10.0
DEFAULT_NOISE_FLOOR_DB = -80.0
DEFAULT_REFERENCE_LEVEL_DB = -20.0
DEFAULT_TARGET_CURVE = 'flat'
DEFAULT_SMOOTHING = '1/3'

# Submissions dropped at the start of every session while the mic path settles
WARMUP_DISCARD_COUNT = 10
# Fewer retained snapshots than this is treated as no measurement at all
MIN_VALID_SNAPSHOTS = 5

# Correction shaping
CORRECTION_DAMPING = 0.7           # Apply 70% of the measured difference
MAX_CORRECTION_DB = 10.0
CORRECTION_STEP_DB = 0.5           # Matches slider resolution

# Half-width of the bin window averaged around each band center
BAND_BIN_RADIUS = 1

SMOOTHING_FRACTIONS = {
    '1/3': 1.0 / 3.0,
    '1/6': 1.0 / 6.0,
    '1/12': 1.0 / 12.0,
}


@dataclass
class TargetCurve:
    """Target frequency response curve for calibration."""
    name: str  # Display name (e.g., "Preference Weighted")
    description: str  # What this curve is for (1-2 sentences)


# Target curves offered to the user. Values are computed per band by
# analysis.target_curves; this table only carries display metadata.
TARGET_CURVES = {
    'flat': TargetCurve(
        name="Flat",
        description="Neutral response - every band measured to the same level",
    ),
    'preference-weighted': TargetCurve(
        name="Preference Weighted",
        description="Listener-preference tilt with raised bass and gently lowered treble",
    ),
    'house-curve': TargetCurve(
        name="House Curve",
        description="Constant downward slope from 10 dB at 10 Hz, about 3.3 dB per decade",
    ),
    'custom': TargetCurve(
        name="Custom",
        description="User-supplied 31-band target",
    ),
}

# Legacy identifiers still found in saved settings
TARGET_CURVE_ALIASES = {
    'harman': 'preference-weighted',
    'b&k': 'house-curve',
    'bk': 'house-curve',
}


def normalize_curve_id(curve_id) -> Optional[str]:
    """Map a curve identifier (or legacy alias) to its TARGET_CURVES key."""
    key = str(curve_id or '').strip().lower()
    key = TARGET_CURVE_ALIASES.get(key, key)
    return key if key in TARGET_CURVES else None


def resolve_smoothing_fraction(smoothing) -> float:
    """
    Convert a smoothing setting to an octave fraction.

    Accepts "1/3", "1/6", "1/12" or the matching float. Anything else
    falls back to 1/3 octave.
    """
    if isinstance(smoothing, str):
        return SMOOTHING_FRACTIONS.get(smoothing.strip(), SMOOTHING_FRACTIONS['1/3'])
    try:
        value = float(smoothing)
    except (TypeError, ValueError):
        return SMOOTHING_FRACTIONS['1/3']
    for fraction in SMOOTHING_FRACTIONS.values():
        if abs(value - fraction) < 1e-9:
            return fraction
    return SMOOTHING_FRACTIONS['1/3']


# Validation ranges for config parameters
VALIDATION_RANGES = {
    'sample_rate': (8000, 192000),
    'fft_size': (256, 32768),
    'duration_s': (1.0, 60.0),
    'noise_floor_db': (-140.0, -20.0),
    'reference_level_db': (-60.0, 0.0),
    'min_snapshots': (1, 1000),
}


def _validate_range(value: float, min_val: float, max_val: float, param_name: str) -> float:
    """Validate and clamp a value to a range, raising error if way out of bounds."""
    # Allow small tolerance (10%) beyond range before rejecting
    tolerance = (max_val - min_val) * 0.1
    if value < min_val - tolerance or value > max_val + tolerance:
        raise ConfigValidationError(
            f"Invalid {param_name}: {value} "
            f"(must be between {min_val} and {max_val})"
        )
    # Clamp to exact range
    return max(min_val, min(max_val, value))


@dataclass(frozen=True)
class CalibrationConfig:
    """Immutable input to one calibration run."""
    sample_rate: int = DEFAULT_SAMPLE_RATE
    duration_s: float = DEFAULT_DURATION_S
    target_curve: str = DEFAULT_TARGET_CURVE
    smoothing: str = DEFAULT_SMOOTHING  # "1/3", "1/6" or "1/12"
    noise_floor_db: float = DEFAULT_NOISE_FLOOR_DB
    reference_level_db: float = DEFAULT_REFERENCE_LEVEL_DB
    fft_size: int = DEFAULT_FFT_SIZE
    min_snapshots: int = MIN_VALID_SNAPSHOTS
    custom_curve: Optional[tuple[float, ...]] = None  # Only used with target_curve='custom'

    @property
    def smoothing_fraction(self) -> float:
        return resolve_smoothing_fraction(self.smoothing)

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        data = asdict(self)
        if self.custom_curve is not None:
            data['custom_curve'] = list(self.custom_curve)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'CalibrationConfig':
        """Create config from dictionary with validation."""
        try:
            target_curve = normalize_curve_id(data.get('target_curve', DEFAULT_TARGET_CURVE))
            if target_curve is None:
                valid = ", ".join(TARGET_CURVES)
                raise ConfigValidationError(
                    f"Invalid target_curve: {data.get('target_curve')!r} (must be one of {valid})"
                )

            custom_curve = data.get('custom_curve')
            if custom_curve is not None:
                if not isinstance(custom_curve, (list, tuple)):
                    raise ConfigValidationError(
                        f"Invalid custom_curve: expected list of {BAND_COUNT} values"
                    )
                if len(custom_curve) != BAND_COUNT:
                    raise ConfigValidationError(
                        f"Invalid custom_curve: expected {BAND_COUNT} values, got {len(custom_curve)}"
                    )
                custom_curve = tuple(float(v) for v in custom_curve)

            # Unknown smoothing is cosmetic only, fall back to the default
            smoothing = str(data.get('smoothing', DEFAULT_SMOOTHING)).strip()
            if smoothing not in SMOOTHING_FRACTIONS:
                smoothing = DEFAULT_SMOOTHING

            return cls(
                sample_rate=int(_validate_range(
                    int(data.get('sample_rate', DEFAULT_SAMPLE_RATE)),
                    *VALIDATION_RANGES['sample_rate'],
                    'sample_rate'
                )),
                duration_s=_validate_range(
                    float(data.get('duration_s', DEFAULT_DURATION_S)),
                    *VALIDATION_RANGES['duration_s'],
                    'duration_s'
                ),
                target_curve=target_curve,
                smoothing=smoothing,
                noise_floor_db=_validate_range(
                    float(data.get('noise_floor_db', DEFAULT_NOISE_FLOOR_DB)),
                    *VALIDATION_RANGES['noise_floor_db'],
                    'noise_floor_db'
                ),
                reference_level_db=_validate_range(
                    float(data.get('reference_level_db', DEFAULT_REFERENCE_LEVEL_DB)),
                    *VALIDATION_RANGES['reference_level_db'],
                    'reference_level_db'
                ),
                fft_size=int(_validate_range(
                    int(data.get('fft_size', DEFAULT_FFT_SIZE)),
                    *VALIDATION_RANGES['fft_size'],
                    'fft_size'
                )),
                min_snapshots=int(_validate_range(
                    int(data.get('min_snapshots', MIN_VALID_SNAPSHOTS)),
                    *VALIDATION_RANGES['min_snapshots'],
                    'min_snapshots'
                )),
                custom_curve=custom_curve,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            # Convert generic errors to actionable validation errors
            raise ConfigValidationError(
                f"Calibration config is invalid: {e}"
            )
