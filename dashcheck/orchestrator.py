"""Run orchestrator — executes scenarios in isolated browser contexts and reports."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path

from playwright.async_api import BrowserContext, async_playwright

from dashcheck.browser.dashboard_page import DashboardPage
from dashcheck.executor.evidence_collector import EvidenceCollector
from dashcheck.executor.scenario_runner import ScenarioRunner
from dashcheck.models.config import OracleConfig
from dashcheck.models.scenario import Scenario
from dashcheck.models.verdict import RunResult, ScenarioVerdict
from dashcheck.reporter.json_report import append_ndjson, generate_json_report

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs a batch of scenarios against live pages."""

    def __init__(self, config: OracleConfig, output_dir: str | Path | None = None):
        self.config = config
        self.run_id = f"run_{uuid.uuid4().hex[:8]}"
        self.output_dir = Path(output_dir or config.report_output_dir)
        self.run_dir = self.output_dir / self.run_id

    def run(self, scenarios: list[Scenario], mode: str = "") -> RunResult:
        """Execute scenarios and write the run report."""
        return asyncio.run(self.execute(scenarios, mode))

    async def execute(self, scenarios: list[Scenario], mode: str = "") -> RunResult:
        started_at = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        start_time = time.time()
        total = len(scenarios)
        self.run_dir.mkdir(parents=True, exist_ok=True)
        ndjson_path = self.run_dir / "results.ndjson"
        logger.info("Starting run %s (%d scenarios)", self.run_id, total)

        async with async_playwright() as p:
            logger.debug("Launching Chromium (headless=%s)", self.config.headless)
            browser = await p.chromium.launch(headless=self.config.headless)

            semaphore = asyncio.Semaphore(self.config.max_parallel_scenarios)

            async def _run_one(index: int, scenario: Scenario) -> ScenarioVerdict:
                async with semaphore:
                    logger.info("Running scenario [%d/%d]: %s", index + 1, total, scenario.id)
                    context = None
                    try:
                        context = await browser.new_context(viewport={
                            "width": self.config.viewport.width,
                            "height": self.config.viewport.height,
                        })
                        verdict = await self._run_scenario(context, scenario)
                    except Exception as e:
                        logger.error("Scenario %s failed outside the runner: %s", scenario.id, e)
                        verdict = ScenarioVerdict(
                            id=scenario.id,
                            source_type=scenario.source_type,
                            backend=scenario.backend,
                            url=scenario.url,
                            failures=[f"Scenario runtime error: {e}"],
                        )
                    finally:
                        if context is not None:
                            await self._close_context(context, scenario.id)
                    append_ndjson(verdict, ndjson_path)
                    return verdict

            verdicts = list(await asyncio.gather(
                *(_run_one(i, s) for i, s in enumerate(scenarios))
            ))

            await browser.close()

        duration = time.time() - start_time
        run_result = RunResult(
            run_id=self.run_id,
            mode=mode,
            started_at=started_at,
            completed_at=time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            total=len(verdicts),
            passed=sum(1 for v in verdicts if v.status == "pass"),
            failed=sum(1 for v in verdicts if v.status == "fail"),
            duration_seconds=round(duration, 2),
            verdicts=verdicts,
        )
        generate_json_report(run_result, self.run_dir / "results.json")
        logger.info("Run complete: %d passed, %d failed (%.1fs)",
                    run_result.passed, run_result.failed, duration)
        return run_result

    async def _close_context(self, context: BrowserContext, scenario_id: str) -> None:
        try:
            await context.close()
        except Exception as e:
            logger.warning("Failed to close browser context for %s: %s", scenario_id, e)

    async def _run_scenario(self, context: BrowserContext, scenario: Scenario) -> ScenarioVerdict:
        """Run one scenario, then attach screenshot, console log and console-pattern failures."""
        page = await context.new_page()
        evidence = EvidenceCollector(self.run_dir, scenario.id)
        evidence.attach(page)

        verdict = await ScenarioRunner(DashboardPage(page), scenario, self.config).run()
        failures = list(verdict.failures)

        screenshot_path = None
        if self.config.capture_screenshots:
            screenshot_path = await evidence.capture_screenshot(page)
            if screenshot_path is None:
                failures.append("Screenshot capture failed")

        console_log_path = evidence.write_console_log()
        patterns = sorted(set(self.config.forbidden_console_patterns)
                          | set(scenario.forbidden_console_patterns))
        for pattern in evidence.forbidden_matches(patterns):
            logger.warning("[%s] Forbidden console pattern matched: %s", scenario.id, pattern)
            failures.append(f"Forbidden console pattern matched: {pattern}")

        return verdict.model_copy(update={
            "failures": failures,
            "screenshot_path": screenshot_path,
            "console_log_path": console_log_path,
        })
