#!/usr/bin/env python3
"""
FFMI Calculator - Main CLI Script

This is the command-line entry point for the FFMI Calculator. It evaluates a
single set of measurements (from a JSON config file or from flags) or a CSV
batch, and delegates the calculation logic to the core module.
"""

import argparse
import logging
import os

from core import (
    INPUT_RANGES,
    parse_sex,
    run_analysis,
    run_batch_analysis,
    validate_user_input,
)
from shared_models import BodyMetrics


def build_parser():
    """Builds the argument parser."""
    parser = argparse.ArgumentParser(
        description="FFMI Calculator - Fat-Free Mass Index and muscularity category",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_analysis.py                                  # Use example_config.json
  python run_analysis.py my_config.json                  # Use custom config
  python run_analysis.py --height 175 --weight 70 --body-fat 15 --sex male
  python run_analysis.py --batch people.csv --output results.csv

JSON config format:
  {
    "sex": "male",
    "height_cm": 175,
    "weight_kg": 70,
    "body_fat_percentage": 15
  }
        """,
    )

    parser.add_argument(
        "config_file",
        nargs="?",
        default="example_config.json",
        help="Path to JSON configuration file (default: example_config.json)",
    )

    parser.add_argument("--height", type=float, help="Height in centimeters")
    parser.add_argument("--weight", type=float, help="Weight in kilograms")
    parser.add_argument(
        "--body-fat", dest="body_fat", type=float, help="Body fat percentage (0-100)"
    )
    parser.add_argument(
        "--sex",
        default="male",
        help="Sex: male/female/m/f (default: male)",
    )

    parser.add_argument(
        "--batch",
        "-b",
        help="CSV file with height_cm, weight_kg, body_fat_percentage and sex columns",
    )
    parser.add_argument(
        "--output",
        "-o",
        help="Write batch results to this CSV file",
    )

    parser.add_argument(
        "--help-config",
        action="store_true",
        help="Show detailed help about the JSON configuration format",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv=None):
    """Main CLI function with comprehensive argument parsing."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.help_config:
        show_config_help()
        return 0

    if args.batch:
        return run_batch_analysis(args.batch, output_path=args.output)

    direct_values = [args.height, args.weight, args.body_fat]
    if any(value is not None for value in direct_values):
        if not all(value is not None for value in direct_values):
            print("Error: --height, --weight and --body-fat must be given together.")
            return 1
        try:
            sex = parse_sex(args.sex)
        except ValueError as e:
            print(f"Error: {e}")
            return 1
        metrics = BodyMetrics(
            height_cm=args.height,
            weight_kg=args.weight,
            body_fat_percentage=args.body_fat,
            sex=sex,
        )
        warn_out_of_range(metrics)
        return run_analysis(metrics=metrics)

    # Validate config file exists
    if not os.path.exists(args.config_file):
        print(f"Error: Configuration file not found: {args.config_file}")
        print()
        print("Run with --help-config to see the expected JSON format,")
        print("or pass --height, --weight and --body-fat directly.")
        return 1

    return run_analysis(config_path=args.config_file)


def warn_out_of_range(metrics):
    """Print a warning for each value outside its recommended range."""
    for field_name in INPUT_RANGES:
        is_valid, message = validate_user_input(field_name, getattr(metrics, field_name))
        if not is_valid:
            print(f"Warning: {message}")


def show_config_help():
    """Show detailed help about the JSON configuration format."""
    height = INPUT_RANGES["height_cm"]
    weight = INPUT_RANGES["weight_kg"]
    body_fat = INPUT_RANGES["body_fat_percentage"]
    help_text = f"""
JSON Configuration Format
=========================

The configuration file should be a JSON file with the following structure:

{{
  "sex": "<male|female|m|f>",
  "height_cm": <height in centimeters>,
  "weight_kg": <weight in kilograms>,
  "body_fat_percentage": <body fat percentage>
}}

Field Descriptions:
------------------
  - sex: "male", "female", "m", or "f" (case insensitive)
  - height_cm: Height in centimeters (recommended {height['min']}-{height['max']})
  - weight_kg: Weight in kilograms (recommended {weight['min']}-{weight['max']})
  - body_fat_percentage: Body fat on a 0-100 scale (recommended {body_fat['min']}-{body_fat['max']})

Notes:
- Values outside the recommended ranges are still evaluated
- A height of 0, or a body fat of 100% or more, reports the category as N/A

Batch CSV Format
================

height_cm,weight_kg,body_fat_percentage,sex
175,70,15,male
165,55,20,female
    """
    print(help_text)


if __name__ == "__main__":
    exit(main())
