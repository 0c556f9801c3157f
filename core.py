"""
Core FFMI Calculation Logic

This module contains all the core calculation logic, classification tables,
batch processing and plotting functionality for the FFMI Calculator. This is
the computational engine that powers both the command-line report and the
web interface.

Sections:
- Reference tables and constants
- Core calculation logic (fat-free mass, FFMI, adjusted FFMI)
- Classification and gauge mapping
- Input validation and explanations
- Batch evaluation
- Plotting logic
- Data loading and orchestration
"""

import json
import logging
import math
import os

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from jsonschema import ValidationError, validate

# Import shared data models
from shared_models import (
    NOT_AVAILABLE_RESULT,
    BodyMetrics,
    Category,
    CategoryThreshold,
    FfmiResult,
    Sex,
    convert_dict_to_body_metrics,
)

logger = logging.getLogger(__name__)

# Height normalization for adjusted FFMI (Kouri et al., 1995)
ADJUSTMENT_SLOPE = 6.1  # kg/m² per meter of height
REFERENCE_HEIGHT_M = 1.8

# Interpretation text shared by both ladders
CATEGORY_INTERPRETATIONS = {
    Category.BELOW_AVERAGE: "Indicates a lower level of muscle mass for your height.",
    Category.AVERAGE: "A healthy and typical amount of muscle mass.",
    Category.ABOVE_AVERAGE: "Represents a good level of muscular development.",
    Category.EXCELLENT: "Signifies a high degree of muscularity, often seen in athletes.",
    Category.VERY_MUSCULAR: "Indicates a level of muscle mass that is achievable naturally by very few.",
    Category.LIKELY_UNNATURAL: "This level of muscularity is rarely, if ever, achieved without performance-enhancing drugs.",
}

# The female ladder tops out at Very Muscular, which carries its own wording
FEMALE_TOP_INTERPRETATION = (
    "Indicates a level of muscle mass that is very high and rarely achieved naturally."
)

# FFMI category ladders (exclusive upper bounds, kg/m²)
FFMI_THRESHOLDS = {
    Sex.MALE: (
        CategoryThreshold(
            18, Category.BELOW_AVERAGE, CATEGORY_INTERPRETATIONS[Category.BELOW_AVERAGE]
        ),
        CategoryThreshold(20, Category.AVERAGE, CATEGORY_INTERPRETATIONS[Category.AVERAGE]),
        CategoryThreshold(
            22, Category.ABOVE_AVERAGE, CATEGORY_INTERPRETATIONS[Category.ABOVE_AVERAGE]
        ),
        CategoryThreshold(24, Category.EXCELLENT, CATEGORY_INTERPRETATIONS[Category.EXCELLENT]),
        CategoryThreshold(
            25, Category.VERY_MUSCULAR, CATEGORY_INTERPRETATIONS[Category.VERY_MUSCULAR]
        ),
        CategoryThreshold(
            math.inf,
            Category.LIKELY_UNNATURAL,
            CATEGORY_INTERPRETATIONS[Category.LIKELY_UNNATURAL],
        ),
    ),
    Sex.FEMALE: (
        CategoryThreshold(
            14, Category.BELOW_AVERAGE, CATEGORY_INTERPRETATIONS[Category.BELOW_AVERAGE]
        ),
        CategoryThreshold(16, Category.AVERAGE, CATEGORY_INTERPRETATIONS[Category.AVERAGE]),
        CategoryThreshold(
            18, Category.ABOVE_AVERAGE, CATEGORY_INTERPRETATIONS[Category.ABOVE_AVERAGE]
        ),
        CategoryThreshold(20, Category.EXCELLENT, CATEGORY_INTERPRETATIONS[Category.EXCELLENT]),
        CategoryThreshold(math.inf, Category.VERY_MUSCULAR, FEMALE_TOP_INTERPRETATION),
    ),
}

# Gauge display ranges (kg/m²), independent of the ladder bounds
GAUGE_RANGES = {
    Sex.MALE: (16, 26),
    Sex.FEMALE: (13, 22),
}

# Recommended input ranges for the sliders. Guidance only, never enforced by evaluate().
INPUT_RANGES = {
    "height_cm": {
        "label": "Height",
        "unit": "cm",
        "min": 130,
        "max": 230,
        "step": 1,
        "default": 175,
    },
    "weight_kg": {
        "label": "Weight",
        "unit": "kg",
        "min": 30.0,
        "max": 200.0,
        "step": 0.5,
        "default": 70.0,
    },
    "body_fat_percentage": {
        "label": "Body Fat",
        "unit": "%",
        "min": 3.0,
        "max": 50.0,
        "step": 0.1,
        "default": 15.0,
    },
}

DEFAULT_SEX = Sex.MALE

BATCH_COLUMNS = ["height_cm", "weight_kg", "body_fat_percentage", "sex"]

# JSON Schema for configuration validation
CONFIG_SCHEMA = {
    "type": "object",
    "required": ["sex", "height_cm", "weight_kg", "body_fat_percentage"],
    "properties": {
        "sex": {
            "type": "string",
            "pattern": "^(m|f|male|female|M|F|Male|Female|MALE|FEMALE)$",
        },
        "height_cm": {"type": "number", "minimum": 0, "maximum": 300},
        "weight_kg": {"type": "number", "minimum": 0, "maximum": 500},
        "body_fat_percentage": {"type": "number", "minimum": 0, "maximum": 100},
    },
    "additionalProperties": False,
}


# ---------------------------------------------------------------------------
# CORE CALCULATION LOGIC
# ---------------------------------------------------------------------------


def parse_sex(value):
    """
    Converts a user-friendly sex string to the Sex enum.

    Args:
        value (str or Sex): Sex as string (m, f, male, female - case insensitive)

    Returns:
        Sex: The parsed enum value

    Raises:
        ValueError: If the string is not recognized
    """
    if isinstance(value, Sex):
        return value
    return Sex.from_string(value)


def calculate_fat_free_mass(weight_kg, body_fat_percentage):
    """
    Calculates fat-free mass from total weight and body fat percentage.

    Args:
        weight_kg (float): Total body weight in kilograms.
        body_fat_percentage (float): Body fat on a 0-100 scale.

    Returns:
        float: Fat-free mass in kilograms. Not clamped; may be zero or negative
            for degenerate inputs.
    """
    fat_mass_kg = weight_kg * (body_fat_percentage / 100)
    return weight_kg - fat_mass_kg


def calculate_ffmi(fat_free_mass_kg, height_m):
    """Fat-free mass divided by height squared (kg/m²)."""
    return fat_free_mass_kg / (height_m * height_m)


def calculate_adjusted_ffmi(ffmi, height_m):
    """
    Normalizes FFMI to the 1.8 m reference height.

    Subjects shorter than the reference are corrected upward and taller
    subjects downward, offsetting the height bias of the raw ratio.
    """
    return ffmi + ADJUSTMENT_SLOPE * (REFERENCE_HEIGHT_M - height_m)


# ---------------------------------------------------------------------------
# CLASSIFICATION AND GAUGE MAPPING
# ---------------------------------------------------------------------------


def classify_ffmi(ffmi, sex):
    """
    Finds the category band for an FFMI value.

    Walks the sex-specific ladder and returns the first rung whose upper bound
    is strictly greater than ffmi, so a value sitting exactly on a boundary
    belongs to the band above it.

    Args:
        ffmi (float): Full-precision FFMI value.
        sex (Sex or str): Selects the male or female ladder.

    Returns:
        CategoryThreshold: The matching rung (category and interpretation).
    """
    thresholds = FFMI_THRESHOLDS[parse_sex(sex)]
    for threshold in thresholds:
        if ffmi < threshold.upper_bound:
            return threshold
    return thresholds[-1]


def gauge_percent(ffmi, sex):
    """
    Maps an FFMI value onto the gauge arc.

    Args:
        ffmi (float): FFMI value.
        sex (Sex or str): Selects the display range (16-26 male, 13-22 female).

    Returns:
        float: Position within the display range, clamped to 0-100.
    """
    range_min, range_max = GAUGE_RANGES[parse_sex(sex)]
    percentage = (ffmi - range_min) / (range_max - range_min) * 100
    return max(0.0, min(100.0, percentage))


def evaluate(metrics: BodyMetrics) -> FfmiResult:
    """
    Computes FFMI, adjusted FFMI, fat-free mass, category and gauge position.

    Total over its input: zero height, a non-positive fat-free mass or a
    missing (NaN) value returns the N/A sentinel instead of raising.

    Args:
        metrics (BodyMetrics): Height, weight, body fat and sex.

    Returns:
        FfmiResult: Full-precision result for the display layer.
    """
    if metrics.height_cm == 0:
        logger.debug("Height is zero, returning N/A result")
        return NOT_AVAILABLE_RESULT

    fat_free_mass_kg = calculate_fat_free_mass(
        metrics.weight_kg, metrics.body_fat_percentage
    )
    # Written as "not > 0" so a missing (NaN) value also lands here
    if not fat_free_mass_kg > 0:
        logger.debug(
            f"Fat-free mass {fat_free_mass_kg:.2f} kg is not positive, returning N/A result"
        )
        return NOT_AVAILABLE_RESULT

    height_m = metrics.height_m
    ffmi = calculate_ffmi(fat_free_mass_kg, height_m)
    if not math.isfinite(ffmi):
        logger.debug(f"FFMI {ffmi} is not finite, returning N/A result")
        return NOT_AVAILABLE_RESULT

    threshold = classify_ffmi(ffmi, metrics.sex)

    return FfmiResult(
        ffmi=ffmi,
        adjusted_ffmi=calculate_adjusted_ffmi(ffmi, height_m),
        fat_free_mass_kg=fat_free_mass_kg,
        category=threshold.category,
        interpretation=threshold.interpretation,
        gauge_percent=gauge_percent(ffmi, metrics.sex),
    )


def evaluate_from_values(height_cm, weight_kg, body_fat_percentage, sex):
    """Convenience wrapper building BodyMetrics from raw widget values."""
    metrics = BodyMetrics(
        height_cm=float(height_cm),
        weight_kg=float(weight_kg),
        body_fat_percentage=float(body_fat_percentage),
        sex=parse_sex(sex),
    )
    return evaluate(metrics)


def format_result(result):
    """
    Formats a result for display with two decimals.

    Rounding happens here only; classification has already used the full
    precision values.

    Returns:
        dict: String values for ffmi, adjusted_ffmi and fat_free_mass_kg, plus
            category label, interpretation and gauge_percent.
    """
    return {
        "ffmi": f"{result.ffmi:.2f}",
        "adjusted_ffmi": f"{result.adjusted_ffmi:.2f}",
        "fat_free_mass_kg": f"{result.fat_free_mass_kg:.2f}",
        "category": result.category.label,
        "interpretation": result.interpretation,
        "gauge_percent": result.gauge_percent,
    }


# ---------------------------------------------------------------------------
# INPUT VALIDATION AND EXPLANATIONS
# ---------------------------------------------------------------------------


def validate_user_input(field_name, value):
    """
    Validates user input for real-time feedback in the web interface.

    Values outside the recommended ranges are reported but still evaluated.

    Args:
        field_name (str): Name of the field being validated
        value: The value to validate

    Returns:
        tuple: (is_valid, error_message)
    """
    if field_name == "sex":
        try:
            parse_sex(value)
            return True, ""
        except ValueError:
            return False, "Please choose male or female"

    if field_name in INPUT_RANGES:
        input_range = INPUT_RANGES[field_name]
        try:
            number = float(value)
        except (ValueError, TypeError):
            return False, "Please enter a valid number"
        if number < input_range["min"] or number > input_range["max"]:
            return (
                False,
                f"{input_range['label']} is outside the recommended range "
                f"({input_range['min']}-{input_range['max']} {input_range['unit']})",
            )
        return True, ""

    return True, ""


def get_metric_explanations():
    """
    Returns explanatory text for the header, info panel and tooltips.

    Returns:
        dict: Dictionary with explanations for different metrics
    """
    return {
        "header_info": {
            "title": "FFMI Calculator",
            "subtitle": "Calculate your Fat-Free Mass Index.",
        },
        "about": {
            "title": "About FFMI",
            "paragraphs": [
                "The Fat-Free Mass Index (FFMI) is a measurement that relates your muscle mass to your height. "
                "It's a more accurate indicator of muscularity than BMI because it accounts for body fat percentage.",
                "**Calculation:** It's calculated by dividing your fat-free mass (in kg) by the square of your "
                "height (in meters).",
                "**Adjusted FFMI:** This version normalizes the score for individuals who are taller or shorter "
                "than average (1.8m or 5'11\"), providing a more comparable metric.",
                "The index is useful for tracking muscle gain or loss over time and assessing one's level of "
                "muscular development.",
            ],
        },
        "tooltips": {
            "sex": "Biological sex selects the reference ranges used for classification.",
            "height_cm": "Standing height in centimeters.",
            "weight_kg": "Total body weight in kilograms.",
            "body_fat_percentage": "Percentage of total body weight that is fat mass.",
            "ffmi": "FFMI: fat-free mass (kg) divided by height (m) squared.",
            "adjusted_ffmi": "FFMI normalized to a 1.8 m reference height.",
            "fat_free_mass_kg": "Total weight minus estimated fat mass.",
        },
    }


# ---------------------------------------------------------------------------
# BATCH EVALUATION
# ---------------------------------------------------------------------------


def evaluate_batch(df):
    """
    Evaluates every row of a DataFrame in one vectorized pass.

    Args:
        df (pd.DataFrame): Must contain height_cm, weight_kg,
            body_fat_percentage and sex columns.

    Returns:
        pd.DataFrame: Copy of the input with ffmi, adjusted_ffmi,
            fat_free_mass_kg, category, interpretation and gauge_percent added.
            Rows match evaluate() applied one at a time.

    Raises:
        ValueError: If a required column is missing or a sex value is unrecognized.
    """
    missing = [col for col in BATCH_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    heights_cm = df["height_cm"].to_numpy(dtype=float)
    weights_kg = df["weight_kg"].to_numpy(dtype=float)
    body_fat = df["body_fat_percentage"].to_numpy(dtype=float)
    sexes = np.array([parse_sex(value) for value in df["sex"]], dtype=object)

    fat_free_mass = calculate_fat_free_mass(weights_kg, body_fat)
    heights_m = heights_cm / 100

    with np.errstate(divide="ignore", invalid="ignore"):
        # Same N/A policy as evaluate(): NaN fails every comparison
        valid = (heights_cm != 0) & (fat_free_mass > 0)
        raw_ffmi = calculate_ffmi(fat_free_mass, heights_m)
        valid &= np.isfinite(raw_ffmi)
        ffmi = np.where(valid, raw_ffmi, 0.0)
        adjusted = np.where(valid, calculate_adjusted_ffmi(ffmi, heights_m), 0.0)

    categories = np.full(len(df), Category.NOT_AVAILABLE.label, dtype=object)
    interpretations = np.full(len(df), "", dtype=object)
    gauge = np.zeros(len(df))

    for sex in Sex:
        mask = valid & (sexes == sex)
        if not mask.any():
            continue
        thresholds = FFMI_THRESHOLDS[sex]
        # side="right" puts a value equal to a bound in the band above it
        bounds = np.array([t.upper_bound for t in thresholds[:-1]])
        indices = np.searchsorted(bounds, ffmi[mask], side="right")
        categories[mask] = [thresholds[i].category.label for i in indices]
        interpretations[mask] = [thresholds[i].interpretation for i in indices]

        range_min, range_max = GAUGE_RANGES[sex]
        gauge[mask] = np.clip(
            (ffmi[mask] - range_min) / (range_max - range_min) * 100, 0.0, 100.0
        )

    logger.info(
        f"Evaluated {len(df)} rows ({int((~valid).sum())} returned N/A)"
    )

    results = df.copy()
    results["fat_free_mass_kg"] = np.where(valid, fat_free_mass, 0.0)
    results["ffmi"] = ffmi
    results["adjusted_ffmi"] = adjusted
    results["category"] = categories
    results["interpretation"] = interpretations
    results["gauge_percent"] = gauge
    return results


# ---------------------------------------------------------------------------
# PLOTTING LOGIC
# ---------------------------------------------------------------------------

GAUGE_BAR_COLOR = "#22d3ee"
GAUGE_STEP_COLORS = [
    "#334155",
    "#3f4a63",
    "#4c4f86",
    "#5b54a8",
    "#7c5ce0",
    "#8b5cf6",
]


def create_plotly_gauge(result, sex):
    """
    Creates a Plotly gauge for an FFMI result.

    The axis spans the sex's gauge display range and the background steps
    show the category bands that fall inside it. The bar fill corresponds to
    result.gauge_percent.

    Args:
        result (FfmiResult): Evaluation result
        sex (Sex or str): Selects the display range and category bands

    Returns:
        plotly.graph_objects.Figure: Interactive plotly figure
    """
    sex = parse_sex(sex)
    range_min, range_max = GAUGE_RANGES[sex]

    steps = []
    lower = range_min
    for i, threshold in enumerate(FFMI_THRESHOLDS[sex]):
        upper = min(threshold.upper_bound, range_max)
        if upper > lower:
            steps.append(
                {
                    "range": [lower, upper],
                    "color": GAUGE_STEP_COLORS[i % len(GAUGE_STEP_COLORS)],
                    "name": threshold.category.label,
                }
            )
            lower = upper

    fig = go.Figure(
        go.Indicator(
            mode="gauge+number",
            value=result.ffmi,
            number={"valueformat": ".2f", "suffix": " FFMI"},
            title={"text": result.category.label},
            gauge={
                "axis": {"range": [range_min, range_max]},
                "bar": {"color": GAUGE_BAR_COLOR},
                "steps": steps,
            },
        )
    )
    fig.update_layout(
        height=260,
        margin={"l": 30, "r": 30, "t": 50, "b": 10},
        paper_bgcolor="rgba(0,0,0,0)",
    )
    return fig


# ---------------------------------------------------------------------------
# DATA LOADING AND ORCHESTRATION
# ---------------------------------------------------------------------------


def load_config_json(config_path, quiet=False):
    """
    Loads and validates a JSON configuration file.

    Args:
        config_path (str): Path to the JSON configuration file.
        quiet (bool): If True, suppress print statements

    Returns:
        dict: Configuration dictionary with sex, height_cm, weight_kg and
            body_fat_percentage.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        json.JSONDecodeError: If the JSON is malformed.
        ValidationError: If the JSON doesn't match the required schema.
    """
    if not quiet:
        print(f"Loading configuration from {config_path}...")

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        config = json.load(f)

    # Validate against JSON schema
    validate(config, CONFIG_SCHEMA)

    logger.debug(f"Loaded config {config_path}: {config}")
    return config


def extract_metrics_from_config(config):
    """
    Builds BodyMetrics from a validated configuration dictionary.

    Raises:
        ValueError: If the sex value is not recognized
    """
    return convert_dict_to_body_metrics(config)


def load_batch_csv(csv_path):
    """
    Loads a CSV of measurements for batch evaluation.

    Raises:
        FileNotFoundError: If the CSV file doesn't exist.
        ValueError: If a required column is missing.
    """
    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"Batch file not found: {csv_path}")

    df = pd.read_csv(csv_path)
    missing = [col for col in BATCH_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")
    return df


def print_result_report(metrics, result):
    """Prints a plain-text report for a single evaluation."""
    display = format_result(result)

    print("Inputs:")
    print(f"  - Sex: {metrics.sex.value}")
    print(f"  - Height: {metrics.height_cm} cm")
    print(f"  - Weight: {metrics.weight_kg} kg")
    print(f"  - Body Fat: {metrics.body_fat_percentage}%")
    print()
    print("Results:")
    print(f"  - FFMI: {display['ffmi']}")
    print(f"  - Adjusted FFMI: {display['adjusted_ffmi']}")
    print(f"  - Fat-Free Mass: {display['fat_free_mass_kg']} kg")
    print(f"  - Category: {display['category']}")
    if display["interpretation"]:
        print(f"    {display['interpretation']}")
    print(f"  - Gauge: {display['gauge_percent']:.0f}%")


def run_analysis(config_path="example_config.json", metrics=None, return_results=False):
    """
    Evaluates one set of measurements and prints a report.

    Args:
        config_path (str): Path to JSON configuration file (ignored when
            metrics is given)
        metrics (BodyMetrics): Measurements supplied directly, e.g. from CLI flags
        return_results (bool): If True, returns the FfmiResult instead of printing

    Returns:
        int or FfmiResult: Exit code (0 for success, 1 for error) if
            return_results=False, otherwise the evaluation result
    """
    if not return_results:
        print("FFMI Calculator")
        print("=" * 40)

    try:
        if metrics is None:
            config = load_config_json(config_path, quiet=return_results)
            metrics = extract_metrics_from_config(config)

        result = evaluate(metrics)
        if return_results:
            return result

        print_result_report(metrics, result)
        return 0

    except (
        FileNotFoundError,
        json.JSONDecodeError,
        ValidationError,
        KeyError,
        ValueError,
    ) as e:
        if return_results:
            raise e
        else:
            print(f"Error: {e}")
            print(f"\nPlease check your configuration file: {config_path}")
            return 1


def run_batch_analysis(csv_path, output_path=None, return_results=False):
    """
    Evaluates every row of a CSV file.

    Args:
        csv_path (str): Input CSV with height_cm, weight_kg,
            body_fat_percentage and sex columns
        output_path (str): Optional CSV path for the results
        return_results (bool): If True, returns the results DataFrame

    Returns:
        int or pd.DataFrame: Exit code if return_results=False, otherwise the
            results DataFrame
    """
    try:
        df_results = evaluate_batch(load_batch_csv(csv_path))
    except (FileNotFoundError, pd.errors.ParserError, ValueError) as e:
        if return_results:
            raise e
        else:
            print(f"Error: {e}")
            print(f"\nPlease check your batch file: {csv_path}")
            return 1

    if output_path:
        df_results.to_csv(output_path, index=False)
        logger.info(f"Wrote {len(df_results)} results to {output_path}")

    if return_results:
        return df_results

    df_display = df_results[BATCH_COLUMNS + ["ffmi", "adjusted_ffmi", "category"]].copy()
    for col in ["ffmi", "adjusted_ffmi"]:
        df_display[col] = df_display[col].map(lambda x: f"{x:.2f}")
    print(df_display.to_string(index=False))
    return 0
