#!/usr/bin/env python3
"""
FFMI Calculator - Streamlit Web Application

This web interface collects height, weight, body fat and sex through sliders
and re-evaluates the core engine on every change. Features include:
- Sex selector and three bounded input sliders
- Gauge showing where the FFMI sits in the typical range
- Category, interpretation, adjusted FFMI and fat-free mass
- Explanation of how FFMI is calculated

Run with: streamlit run webapp.py
"""

import logging

import streamlit as st

# Import core analysis functions
from core import (
    DEFAULT_SEX,
    INPUT_RANGES,
    create_plotly_gauge,
    evaluate_from_values,
    format_result,
    get_metric_explanations,
    parse_sex,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEX_OPTIONS = ["Male", "Female"]

# Configure page
st.set_page_config(
    page_title="FFMI Calculator - Fat-Free Mass Index",
    page_icon="💪",
    layout="centered",
)


def load_css():
    """Inject the slate/cyan theme used by the results card."""
    st.markdown(
        """
    <style>
    div[data-testid="stMetricValue"] { color: #22d3ee; }
    .ffmi-interpretation { color: #cbd5e1; font-size: 0.9rem; }
    </style>
    """,
        unsafe_allow_html=True,
    )


def display_header():
    """Display the application header."""
    explanations = get_metric_explanations()
    st.title(explanations["header_info"]["title"])
    st.caption(explanations["header_info"]["subtitle"])


def slider_for(field_name):
    """Render a slider bounded by the recommended input range for a field."""
    input_range = INPUT_RANGES[field_name]
    return st.slider(
        f"{input_range['label']} ({input_range['unit']})",
        min_value=input_range["min"],
        max_value=input_range["max"],
        value=input_range["default"],
        step=input_range["step"],
        key=field_name,
        help=get_metric_explanations()["tooltips"][field_name],
    )


def display_input_form():
    """
    Display the sex selector and measurement sliders.

    Returns:
        dict: Current widget values keyed like BodyMetrics fields
    """
    tooltips = get_metric_explanations()["tooltips"]
    sex_label = st.radio(
        "Biological Sex",
        SEX_OPTIONS,
        index=SEX_OPTIONS.index(DEFAULT_SEX.value.title()),
        horizontal=True,
        key="sex",
        help=tooltips["sex"],
    )

    return {
        "sex": parse_sex(sex_label),
        "height_cm": slider_for("height_cm"),
        "weight_kg": slider_for("weight_kg"),
        "body_fat_percentage": slider_for("body_fat_percentage"),
    }


def display_results(inputs):
    """Evaluate the current inputs and render the results card."""
    result = evaluate_from_values(**inputs)
    display = format_result(result)
    logger.debug(f"Rendered {display['category']} for {inputs}")

    st.subheader("Your Results")
    st.plotly_chart(
        create_plotly_gauge(result, inputs["sex"]), use_container_width=True
    )

    st.metric("FFMI", display["ffmi"])
    st.subheader(display["category"])
    if display["interpretation"]:
        st.markdown(
            f'<p class="ffmi-interpretation">{display["interpretation"]}</p>',
            unsafe_allow_html=True,
        )

    col1, col2 = st.columns(2)
    with col1:
        st.metric("Adjusted FFMI", display["adjusted_ffmi"])
    with col2:
        st.metric("Fat-Free Mass", f"{display['fat_free_mass_kg']} kg")

    return result


def display_about_panel():
    """Display the explanation of FFMI and adjusted FFMI."""
    about = get_metric_explanations()["about"]
    with st.expander(f"ℹ️ {about['title']}", expanded=False):
        for paragraph in about["paragraphs"]:
            st.markdown(paragraph)


def main():
    """Main application function."""
    load_css()
    display_header()

    with st.container(border=True):
        inputs = display_input_form()

    with st.container(border=True):
        display_results(inputs)

    display_about_panel()


if __name__ == "__main__":
    main()
