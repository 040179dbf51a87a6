"""
Configuration constants for the relationship and fatigue engines.

All adjustable parameters are centralized here for easy tuning.
User overrides for a subset of them are read by engine/config_loader.py.
"""

from dataclasses import dataclass
from typing import Final

# =============================================================================
# SIMILARITY SCORING
# =============================================================================

TARGET_OVERLAP_WEIGHT: Final[float] = 0.7  # Weight of primary-muscle Jaccard overlap
SYNERGIST_OVERLAP_WEIGHT: Final[float] = 0.3  # Weight of secondary-muscle overlap
MOVEMENT_PATTERN_BONUS: Final[float] = 0.10  # Same movement pattern
MECHANICS_BONUS: Final[float] = 0.10  # Same compound/isolated classification
FORCE_BONUS: Final[float] = 0.05  # Same force direction
MAX_SIMILARITY: Final[float] = 1.0

# Substitute viability labels (lower bound of each band)
VIABILITY_BANDS: Final[list[tuple[float, str]]] = [
    (0.8, "excellent"),
    (0.6, "good"),
    (0.4, "fair"),
]

# =============================================================================
# RELATIONSHIP CLASSIFICATION
# =============================================================================

MIN_RELEVANCE: Final[float] = 0.3  # Below this a pair is never related
ALTERNATIVE_THRESHOLD: Final[float] = 0.8  # Alternatives regardless of difficulty
VARIATION_THRESHOLD: Final[float] = 0.7  # Progression/regression bar

MAX_ALTERNATIVES: Final[int] = 5
MAX_PROGRESSIONS: Final[int] = 3
MAX_REGRESSIONS: Final[int] = 3

DIFFICULTY_TIERS: Final[dict[str, int]] = {
    "beginner": 0,
    "intermediate": 1,
    "advanced": 2,
}

# =============================================================================
# ACTIVATION
# =============================================================================

# Fraction equivalents for the categorical fallback representation
CATEGORICAL_ACTIVATION: Final[dict[str, float]] = {
    "high": 0.85,
    "medium": 0.50,
    "low": 0.20,
}

# =============================================================================
# VOLUME AGGREGATION
# =============================================================================

DEFAULT_BODYWEIGHT_KG: Final[float] = 70.0  # Reference bodyweight for BW movements
DEFAULT_BODYWEIGHT_MULTIPLIER: Final[float] = 0.5  # Unmatched bodyweight movements
SECONDARY_VOLUME_SHARE: Final[float] = 0.4  # Secondary muscles get 40% of volume
SECONDS_PER_REP_EQUIVALENT: Final[float] = 3.0  # Duration-based sets

# Name fragment → fraction of bodyweight moved.  Matched longest-first.
BODYWEIGHT_MULTIPLIERS: Final[dict[str, float]] = {
    "push-up": 0.7,
    "pushup": 0.7,
    "pull-up": 1.0,
    "pullup": 1.0,
    "chin-up": 1.0,
    "chinup": 1.0,
    "dip": 0.85,
    "pistol squat": 0.8,
    "squat": 0.6,
    "lunge": 0.5,
}

# =============================================================================
# FATIGUE NORMALIZATION
# =============================================================================

@dataclass(frozen=True)
class VolumeThresholds:
    """Volume (kg) at which a muscle reaches light / moderate / heavy fatigue."""

    light: float
    moderate: float
    heavy: float

    def __post_init__(self) -> None:
        if not 0 < self.light < self.moderate < self.heavy:
            raise ValueError(
                f"thresholds must satisfy 0 < light < moderate < heavy, got "
                f"{self.light}/{self.moderate}/{self.heavy}"
            )


VOLUME_THRESHOLDS: Final[dict[str, VolumeThresholds]] = {
    "small": VolumeThresholds(light=2000, moderate=4000, heavy=6000),
    "medium": VolumeThresholds(light=4000, moderate=8000, heavy=12000),
    "large": VolumeThresholds(light=6000, moderate=12000, heavy=18000),
}

LIGHT_FATIGUE: Final[float] = 33.0  # Fatigue at the light threshold
MODERATE_FATIGUE: Final[float] = 66.0  # Fatigue at the moderate threshold
HEAVY_FATIGUE: Final[float] = 90.0  # Fatigue at the heavy threshold
OVERFLOW_FATIGUE: Final[float] = 10.0  # Max extra fatigue beyond heavy
MAX_FATIGUE: Final[float] = 100.0

# =============================================================================
# RECOVERY
# =============================================================================

RECOVERY_RATE_PER_DAY: Final[float] = 0.5  # Fraction of fatigue recovered per 24h
HOURS_PER_DAY: Final[float] = 24.0

# =============================================================================
# DISPLAY PROJECTION
# =============================================================================

@dataclass(frozen=True)
class FatigueBand:
    """One colour band of the body-map projection."""

    category: str
    label: str
    color: str


# (lower bound, inclusive?) → band, checked top-down
FATIGUE_BANDS: Final[list[tuple[float, bool, FatigueBand]]] = [
    (75.0, True, FatigueBand("very_fatigued", "Very Fatigued", "#dc2626")),
    (50.0, True, FatigueBand("fatigued", "Fatigued", "#f59e0b")),
    (25.0, True, FatigueBand("recovering", "Recovering", "#eab308")),
    (0.0, False, FatigueBand("nearly_recovered", "Nearly Recovered", "#22c55e")),
]
FRESH_BAND: Final[FatigueBand] = FatigueBand("fresh", "Fresh", "#92949c")

PRIMARY_PREVIEW_INTENSITY: Final[float] = 0.8
SECONDARY_PREVIEW_INTENSITY: Final[float] = 0.5
PRIMARY_PREVIEW_COLOR: Final[str] = "#dc2626"
SECONDARY_PREVIEW_COLOR: Final[str] = "#f59e0b"
