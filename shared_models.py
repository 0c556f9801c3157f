"""
Shared Data Models for the FFMI Calculator

This module contains the shared dataclasses and enums used throughout the
FFMI Calculator, including the core evaluation engine, the command-line
report, and the web interface.

Unified data models provide:
- Immutable value types for each evaluation
- Consistent data structures across modules
- Single source of truth for sex and category labels
"""

from dataclasses import dataclass
from enum import Enum

# ============================================================================
# ENUMS
# ============================================================================


class Sex(Enum):
    """Biological sex used to select the FFMI reference tables"""

    MALE = "male"
    FEMALE = "female"

    @classmethod
    def from_string(cls, value: str) -> "Sex":
        """Parse m/f/male/female, case insensitive"""
        value_lower = str(value).strip().lower()
        if value_lower in ["m", "male"]:
            return cls.MALE
        elif value_lower in ["f", "female"]:
            return cls.FEMALE
        raise ValueError(
            f"Unrecognized sex: {value}. Use 'm', 'f', 'male', or 'female'."
        )


class Category(Enum):
    """Muscularity bands, in ladder order from lowest to highest"""

    BELOW_AVERAGE = "Below Average"
    AVERAGE = "Average"
    ABOVE_AVERAGE = "Above Average"
    EXCELLENT = "Excellent"
    VERY_MUSCULAR = "Very Muscular"
    LIKELY_UNNATURAL = "Likely Unnatural"

    # Sentinel for degenerate input (zero height, no fat-free mass)
    NOT_AVAILABLE = "N/A"

    @property
    def label(self) -> str:
        return self.value


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================


@dataclass(frozen=True)
class BodyMetrics:
    """Body measurements supplied for a single evaluation"""

    height_cm: float
    weight_kg: float
    body_fat_percentage: float  # 0-100 scale
    sex: Sex

    @property
    def height_m(self) -> float:
        return self.height_cm / 100


@dataclass(frozen=True)
class CategoryThreshold:
    """One rung of a category ladder: values below upper_bound fall in this band"""

    upper_bound: float  # Exclusive; math.inf for the open-ended top band
    category: Category
    interpretation: str


@dataclass(frozen=True)
class FfmiResult:
    """Evaluation output handed to the display layer"""

    ffmi: float  # kg/m²
    adjusted_ffmi: float  # kg/m², normalized to 1.8 m
    fat_free_mass_kg: float
    category: Category
    interpretation: str
    gauge_percent: float  # 0-100 scale

    @property
    def is_available(self) -> bool:
        """False for the zero-result sentinel"""
        return self.category is not Category.NOT_AVAILABLE


# Zero-result sentinel returned for degenerate inputs
NOT_AVAILABLE_RESULT = FfmiResult(
    ffmi=0.0,
    adjusted_ffmi=0.0,
    fat_free_mass_kg=0.0,
    category=Category.NOT_AVAILABLE,
    interpretation="",
    gauge_percent=0.0,
)


# ============================================================================
# CONVERSION HELPERS
# ============================================================================


def convert_dict_to_body_metrics(metrics_dict: dict) -> BodyMetrics:
    """Convert a config/row dict to a BodyMetrics dataclass"""
    sex = metrics_dict["sex"]
    if not isinstance(sex, Sex):
        sex = Sex.from_string(sex)

    return BodyMetrics(
        height_cm=float(metrics_dict["height_cm"]),
        weight_kg=float(metrics_dict["weight_kg"]),
        body_fat_percentage=float(metrics_dict["body_fat_percentage"]),
        sex=sex,
    )
