# tests/ui/test_smoke.py
"""Smoke tests for the Streamlit app."""

from unittest.mock import AsyncMock, patch

from streamlit.testing.v1 import AppTest


def test_app_renders_scenario_selection():
    """First run shows the catalog."""
    with patch(
        "ui.api_client.APIClient.list_scenarios",
        new=AsyncMock(return_value={"deadline_negotiation": "Release Deadline Negotiation"}),
    ):
        at = AppTest.from_file("../../ui/streamlit_app.py", default_timeout=10)
        at.run()

    assert not at.exception
    assert at.header[0].value == "Choose a scenario"
    assert at.button[0].label == "Release Deadline Negotiation"
