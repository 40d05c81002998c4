"""Tests for per-scenario evidence collection."""

from unittest.mock import AsyncMock, Mock

import pytest

from dashcheck.executor.evidence_collector import EvidenceCollector


@pytest.fixture
def collector(tmp_path) -> EvidenceCollector:
    return EvidenceCollector(tmp_path / "run_abc12345", "regional_sales")


def _listeners(collector: EvidenceCollector) -> dict:
    registered = {}
    page = Mock()
    page.on = Mock(side_effect=lambda event, handler: registered.setdefault(event, handler))
    collector.attach(page)
    return registered


class TestLayout:
    def test_run_dir_subfolders(self, collector, tmp_path):
        run_dir = tmp_path / "run_abc12345"
        assert (run_dir / "console").is_dir()
        assert (run_dir / "screenshots").is_dir()
        assert collector.console_path == run_dir / "console" / "regional_sales.log"
        assert collector.screenshot_path == run_dir / "screenshots" / "regional_sales.png"


class TestConsoleTranscript:
    def test_console_and_page_errors(self, collector):
        handlers = _listeners(collector)

        handlers["console"](Mock(type="warning", text="Highcharts: series data is empty"))
        handlers["pageerror"](RuntimeError("HTMLWidgets is not defined"))

        assert collector.console_lines == [
            "[warning] Highcharts: series data is empty",
            "[pageerror] HTMLWidgets is not defined",
        ]

    def test_written_one_line_per_message(self, collector):
        collector.console_lines = ["[error] Failed to load resource", "[log] ready"]

        path = collector.write_console_log()

        assert path == str(collector.console_path)
        assert collector.console_path.read_text().splitlines() == [
            "[error] Failed to load resource", "[log] ready",
        ]

    def test_empty_transcript_still_written(self, collector):
        collector.write_console_log()
        assert collector.console_path.read_text() == ""


@pytest.mark.asyncio
class TestScreenshot:
    async def test_full_page_capture(self, collector):
        page = AsyncMock()

        path = await collector.capture_screenshot(page)

        assert path == str(collector.screenshot_path)
        page.screenshot.assert_awaited_once_with(path=str(collector.screenshot_path), full_page=True)

    async def test_failure_returns_none(self, collector):
        page = AsyncMock()
        page.screenshot = AsyncMock(side_effect=RuntimeError("Target page has been closed"))

        assert await collector.capture_screenshot(page) is None


class TestForbiddenMatches:
    def test_literal_case_insensitive(self, collector):
        collector.console_lines = ["[error] Uncaught ReferenceError: HTMLWidgets is not defined"]

        assert collector.forbidden_matches(["referenceerror", "404", ""]) == ["referenceerror"]

    def test_patterns_are_not_regex(self, collector):
        collector.console_lines = ["[warning] value out of range"]

        assert collector.forbidden_matches(["out.*range", "[warning"]) == ["[warning"]

    def test_no_transcript(self, collector):
        assert collector.forbidden_matches(["error"]) == []
