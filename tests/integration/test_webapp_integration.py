"""
Streamlit AppTest integration tests for the FFMI Calculator web app.

Run with: python -m pytest tests/integration/test_webapp_integration.py -v
"""

from pathlib import Path

import pytest
import streamlit.testing.v1 as testing

APP_PATH = str(Path(__file__).resolve().parents[2] / "webapp.py")


def metric_values(at):
    return {metric.label: metric.value for metric in at.metric}


def subheader_values(at):
    return [subheader.value for subheader in at.subheader]


class TestWebAppIntegration:
    """Integration tests for the Streamlit webapp using AppTest framework."""

    @pytest.fixture
    def app(self):
        """Create AppTest instance for the webapp."""
        return testing.AppTest.from_file(APP_PATH, default_timeout=10)

    def test_webapp_loads_successfully(self, app):
        at = app.run()

        assert len(at.title) > 0, "App title should be present"
        assert at.title[0].value == "FFMI Calculator"
        assert (
            len(at.exception) == 0
        ), f"No exceptions should occur on load, found: {[e.value for e in at.exception]}"

    def test_default_inputs(self, app):
        at = app.run()

        assert at.radio(key="sex").value == "Male"
        assert at.slider(key="height_cm").value == 175
        assert at.slider(key="weight_kg").value == 70.0
        assert at.slider(key="body_fat_percentage").value == 15.0

        metrics = metric_values(at)
        assert metrics["FFMI"] == "19.43"
        assert metrics["Adjusted FFMI"] == "19.73"
        assert metrics["Fat-Free Mass"] == "59.50 kg"
        assert "Average" in subheader_values(at)

    def test_slider_changes_recompute(self, app):
        at = app.run()

        at.slider(key="height_cm").set_value(180)
        at.slider(key="weight_kg").set_value(100.0)
        at.slider(key="body_fat_percentage").set_value(8.0)
        at = at.run()

        assert metric_values(at)["FFMI"] == "28.40"
        assert "Likely Unnatural" in subheader_values(at)
        assert len(at.exception) == 0

    def test_switching_sex_uses_female_ladder(self, app):
        at = app.run()

        at.radio(key="sex").set_value("Female")
        at.slider(key="height_cm").set_value(165)
        at.slider(key="weight_kg").set_value(55.0)
        at.slider(key="body_fat_percentage").set_value(20.0)
        at = at.run()

        assert metric_values(at)["FFMI"] == "16.16"
        assert "Above Average" in subheader_values(at)

    def test_interpretation_rendered(self, app):
        at = app.run()

        markdown_text = " ".join(md.value for md in at.markdown)
        assert "A healthy and typical amount of muscle mass." in markdown_text

    def test_about_panel_present(self, app):
        at = app.run()

        assert len(at.expander) == 1
        markdown_text = " ".join(md.value for md in at.markdown)
        assert "Fat-Free Mass Index (FFMI)" in markdown_text
