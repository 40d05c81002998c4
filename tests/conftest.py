"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from playwright.async_api import Page

from dashcheck.models.config import OracleConfig, SettleConfig
from dashcheck.models.scenario import Scenario
from dashcheck.models.state import ChartStateSnapshot
from dashcheck.models.verdict import InteractionResult, RunResult, ScenarioVerdict
from dashcheck.state.summarizers import summarize_page

from fake_dashboard import (
    FakeDashboard,
    checkbox_group,
    enhanced_select,
    highcharts_chart,
    plotly_div,
    slider_control,
)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def oracle_config() -> OracleConfig:
    """Config with every wait shortened so tests never sleep for real."""
    return OracleConfig(
        post_navigation_wait_ms=0,
        ready_timeout_ms=0,
        ready_poll_ms=50,
        extra_ready_wait_ms=100,
        settle=SettleConfig(
            filter=10, slider=10, input_var=10, linked_inputs=10, show_when_toggle=10,
            tab_click=10, sidebar_toggle=10, modal_toggle=10, tooltip_hover=10,
        ),
        capture_screenshots=False,
    )


@pytest.fixture
def temp_config_file(oracle_config: OracleConfig, tmp_path: Path) -> Path:
    """Write the test config to a temporary file."""
    path = tmp_path / "dashcheck-config.json"
    oracle_config.save(path)
    return path


# ============================================================================
# Scenario Fixtures
# ============================================================================


@pytest.fixture
def scenario() -> Scenario:
    """A filter scenario over a highcharter + plotly page."""
    return Scenario(
        id="regional_sales",
        url="http://localhost:8000/sales.html",
        source_type="generated",
        backend="mixed",
        required_selectors=[".dashboard"],
        required_texts=["Regional Sales"],
        interaction_plan=["filter"],
        expect_chart_backend=["highcharter", "plotly"],
        expect_filter_effect=True,
        min_non_empty_charts_expected=2,
    )


@pytest.fixture
def manifest_file(tmp_path: Path) -> Path:
    data = {
        "defaults": {"check_show_when_consistency": True, "min_category_matches": 1},
        "scenarios": [
            {"id": "sales", "url_path": "sales.html", "modes": ["smoke", "full"],
             "source_type": "generated", "interaction_plan": "filter"},
            {"id": "deep", "url_path": "deep.html", "modes": ["full"], "source_type": "docs"},
            {"id": "docs_home", "url": "http://docs.local/index.html", "source_type": "docs"},
        ],
    }
    path = tmp_path / "scenarios.json"
    path.write_text(json.dumps(data))
    return path


# ============================================================================
# Page Fixtures
# ============================================================================


REGION_SALES = {"North": [5, 3], "South": [2, 8], "East": [4, 4]}


def render_sales(page: FakeDashboard) -> None:
    """Charts show the summed sales of the checked regions."""
    live = page.live_values()
    regions = live.get("region") or []
    ys = [sum(REGION_SALES[r][i] for r in regions) for i in range(2)]
    year = live.get("year", "2020")
    page.instances = {
        "highcharter": [highcharts_chart("hc-sales", ys)],
        "plotly": [plotly_div("plotly-sales", [y * 10 for y in ys])],
    }
    page.slider_text = f"Year: {year}"
    page.titles = [f"Sales in {year}"]


@pytest.fixture
def sales_page() -> FakeDashboard:
    """Two charts driven by a region checkbox group and a year slider."""
    page = FakeDashboard(
        controls=[
            checkbox_group("c1", "region", ["North", "South", "East"], checked=["North"]),
            slider_control("c2", "year", 2020, 2024, 2020),
        ],
        render=render_sales,
        body="Regional   Sales overview",
        selectors={".dashboard": 1},
    )
    page.probe = {"widgets": 2, "highcharts_series": [1], "plotly_traces": [1]}
    return page


@pytest.fixture
def edu_page() -> FakeDashboard:
    """Enhanced single select bound to ``edu`` and one block shown unless edu is Grad."""
    return FakeDashboard(
        controls=[enhanced_select("c1", "edu", ["HS", "Grad"], selected=["HS"])],
        show_when=[{"key": "not-grad", "condition": '{"op":"neq","var":"edu","val":"Grad"}',
                    "visible": True}],
        selectors={".dashboard": 1},
    )


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "http://localhost:8000/sales.html"
    page.screenshot = AsyncMock()
    page.goto = AsyncMock()
    page.evaluate = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    return page


# ============================================================================
# Result Fixtures
# ============================================================================


@pytest.fixture
def empty_snapshot() -> ChartStateSnapshot:
    return summarize_page({})


@pytest.fixture
def scenario_verdict(empty_snapshot: ChartStateSnapshot) -> ScenarioVerdict:
    return ScenarioVerdict(
        id="regional_sales",
        backend="highcharter",
        url="http://localhost:8000/sales.html",
        failures=["Missing required selector: .missing-thing"],
        interaction_results=[InteractionResult(kind="filter", performed=True, changed=True)],
        initial_state=empty_snapshot,
        final_state=empty_snapshot,
    )


@pytest.fixture
def run_result(scenario_verdict: ScenarioVerdict) -> RunResult:
    passing = scenario_verdict.model_copy(update={"id": "ok", "failures": []})
    return RunResult(
        run_id="run_abc12345",
        mode="smoke",
        started_at="2026-01-01T00:00:00Z",
        completed_at="2026-01-01T00:01:00Z",
        total=2,
        passed=1,
        failed=1,
        duration_seconds=60.0,
        verdicts=[scenario_verdict, passing],
    )
