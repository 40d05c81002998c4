"""Scenario runner — turns one scenario into a structured verdict.

Phases run strictly in order: navigate, wait for charts, baseline checks,
the interaction plan, expectation checks, final-state checks, verdict.
Expected mismatches accumulate as failure strings; only an exception
aborts the remaining phases, and it becomes one more failure.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from dashcheck.browser.environment import PageEnvironment
from dashcheck.conditions.consistency import ShowWhenElement, check_consistency
from dashcheck.executor.page_checks import category_coverage_failure, run_content_checks
from dashcheck.interaction.synthesizer import InteractionSynthesizer
from dashcheck.interaction.waits import await_condition, settle
from dashcheck.models.config import OracleConfig
from dashcheck.models.scenario import InteractionKind, Scenario
from dashcheck.models.state import ChartStateSnapshot
from dashcheck.models.verdict import InteractionResult, PropagationCheck, ScenarioVerdict
from dashcheck.state.summarizers import (
    backend_visibility_failures,
    capture_snapshot,
    count_non_empty,
    is_ready,
)
from dashcheck.trackers.titles import capture_titles, unresolved_placeholders

logger = logging.getLogger(__name__)

# Failure wording per interaction kind: label, and message when nothing changed.
_INTERACTION_LABELS = {
    InteractionKind.FILTER: ("Filter", None),
    InteractionKind.SLIDER: ("Slider", None),
    InteractionKind.LINKED_INPUTS: ("Linked-input", "Linked-input interaction did not update child options."),
    InteractionKind.TAB_CLICK: ("Tab-click", "Tab-click interaction did not change active tab."),
    InteractionKind.SIDEBAR_TOGGLE: ("Sidebar-toggle", None),
    InteractionKind.MODAL_TOGGLE: ("Modal-toggle", "Modal-toggle interaction did not open a modal."),
    InteractionKind.TOOLTIP_HOVER: ("Tooltip-hover", None),
    InteractionKind.SHOW_WHEN_TOGGLE: (
        "Show-when", "Show-when interaction did not change visible conditional blocks.",
    ),
}

# Interactions whose dynamic text/titles count toward scenario-level expectations.
_TEXT_CANDIDATES = [InteractionKind.SHOW_WHEN_TOGGLE, InteractionKind.SLIDER, InteractionKind.FILTER]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ScenarioRunner:
    """Runs one scenario against a page environment."""

    def __init__(self, env: PageEnvironment, scenario: Scenario, config: OracleConfig | None = None):
        self.env = env
        self.scenario = scenario
        self.config = config or OracleConfig()
        self.synthesizer = InteractionSynthesizer(env, scenario, self.config)
        self.failures: list[str] = []
        self.results: list[InteractionResult] = []
        self.propagation: list[PropagationCheck] = []
        self.diagnostics: dict = {}
        self.initial_state: ChartStateSnapshot | None = None
        self.final_state: ChartStateSnapshot | None = None

    def fail(self, message: str) -> None:
        logger.warning("[%s] %s", self.scenario.id, message)
        self.failures.append(message)

    async def run(self) -> ScenarioVerdict:
        started_at = _now()
        start = time.time()
        logger.info("Running scenario %s (%s)", self.scenario.id, self.scenario.url)
        try:
            await self._navigate()
            await self._wait_ready()
            await self._baseline()
            await self._interact()
            await self._expectations()
            await self._final()
        except Exception as e:
            logger.error("Scenario %s aborted: %s", self.scenario.id, e)
            self.failures.append(f"Scenario runtime error: {e}")

        verdict = ScenarioVerdict(
            id=self.scenario.id,
            source_type=self.scenario.source_type,
            backend=self.scenario.backend,
            url=self.scenario.url,
            started_at=started_at,
            ended_at=_now(),
            duration_ms=int((time.time() - start) * 1000),
            failures=list(self.failures),
            interaction_results=self.results,
            input_propagation=self.propagation,
            initial_state=self.initial_state,
            final_state=self.final_state,
            diagnostics=self.diagnostics,
        )
        logger.info("[%s] %s: %d failure(s) in %dms",
                    verdict.status.upper(), self.scenario.id, len(verdict.failures), verdict.duration_ms)
        return verdict

    # --- phases --------------------------------------------------------------

    async def _navigate(self) -> None:
        url = self.scenario.url or self.scenario.url_path
        await self.env.goto(url, self.config.navigation_timeout_ms)
        await settle(self.env.wait, self.config.post_navigation_wait_ms)

    async def _wait_ready(self) -> None:
        async def charts_ready() -> bool:
            return is_ready(await self.env.readiness_probe())

        ready = await await_condition(
            charts_ready, self.config.ready_timeout_ms, self.config.ready_poll_ms, self.env.wait,
        )
        self.diagnostics["charts_ready"] = ready
        if not ready:
            logger.info("Charts not ready for %s, waiting %dms more",
                        self.scenario.id, self.config.extra_ready_wait_ms)
            await settle(self.env.wait, self.config.extra_ready_wait_ms)

    async def _baseline(self) -> None:
        for message in await run_content_checks(self.env, self.scenario):
            self.fail(message)
        self.initial_state = await capture_snapshot(self.env)
        for message in backend_visibility_failures(self.initial_state, self.scenario.expect_chart_backend):
            self.fail(message)
        await self._check_show_when("baseline")

    async def _interact(self) -> None:
        for kind in self.scenario.interaction_plan:
            result = await self.synthesizer.perform(kind)
            self.results.append(result)
            label, unchanged_message = _INTERACTION_LABELS[kind]
            if not result.performed:
                self.fail(f"{label} interaction could not be performed.")
            elif unchanged_message and not result.changed:
                self.fail(unchanged_message)
            if kind == InteractionKind.SHOW_WHEN_TOGGLE and result.performed:
                await self._check_show_when("show_when_toggle")

    async def _expectations(self) -> None:
        scenario = self.scenario
        if scenario.expect_filter_effect:
            self._expect_effect(InteractionKind.FILTER, "filter")
        if scenario.all_charts_change_on_filter:
            self._expect_all_backends(InteractionKind.FILTER, "Filter")
        if scenario.expect_slider_effect:
            self._expect_effect(InteractionKind.SLIDER, "slider")
        if scenario.all_charts_change_on_slider:
            self._expect_all_backends(InteractionKind.SLIDER, "Slider")
        if scenario.expect_dynamic_text_effect:
            self._expect_dynamic_text()
        if scenario.expect_dynamic_title_effect:
            self._expect_dynamic_title()
        if scenario.all_input_vars_affect_all_charts:
            await self._validate_input_propagation()

    async def _final(self) -> None:
        scenario = self.scenario
        self.final_state = await capture_snapshot(self.env)
        for message in backend_visibility_failures(self.final_state, scenario.expect_chart_backend):
            self.fail(message)

        if scenario.min_non_empty_charts_expected is not None:
            non_empty = count_non_empty(self.final_state, scenario.expect_chart_backend)
            if non_empty < scenario.min_non_empty_charts_expected:
                self.fail(f"Expected at least {scenario.min_non_empty_charts_expected} "
                          f"non-empty chart(s), but detected {non_empty}.")

        if scenario.required_categories:
            labels = await self.env.category_labels()
            self.diagnostics["category_labels"] = labels
            message = category_coverage_failure(labels, scenario.required_categories,
                                                scenario.min_category_matches)
            if message:
                self.fail(message)

        if scenario.max_large_empty_cards is not None:
            cards = await self.env.large_empty_cards(
                scenario.large_empty_card_min_height, scenario.large_empty_card_min_width,
            )
            self.diagnostics["large_empty_cards"] = {"count": len(cards), "cards": cards}
            if len(cards) > scenario.max_large_empty_cards:
                self.fail(f"Detected {len(cards)} large visible empty card(s); "
                          f"expected <= {scenario.max_large_empty_cards}.")

        await self._check_show_when("final")

        if scenario.require_titles_resolved:
            unresolved = unresolved_placeholders(await capture_titles(self.env))
            if unresolved:
                self.fail(f"Chart title(s) contain unresolved placeholders: {' | '.join(unresolved)}.")

    # --- helpers -------------------------------------------------------------

    def _performed(self, *kinds: InteractionKind) -> list[InteractionResult]:
        """Performed results of the given kinds, by kind order then plan order."""
        return [r for k in kinds for r in self.results if r.kind == k.value and r.performed]

    def _expect_effect(self, kind: InteractionKind, name: str) -> None:
        performed = self._performed(kind)
        if not performed:
            self.fail(f"Expected {name} effect, but {name} action was not performed.")
        elif not any(r.changed for r in performed):
            self.fail(f"Expected {name} effect, but chart/widget state did not change.")

    def _expect_all_backends(self, kind: InteractionKind, label: str) -> None:
        for result in self._performed(kind):
            if result.backend_change is not None and not result.backend_change.ok:
                self.fail(f"{label} interaction did not affect all chart widgets "
                          f"({result.backend_change.summary()}).")

    def _text_candidates(self) -> list[InteractionResult]:
        return self._performed(*_TEXT_CANDIDATES)

    def _expect_dynamic_text(self) -> None:
        candidates = self._text_candidates()
        if not candidates:
            self.fail("Expected dynamic text effect, but no eligible interaction was performed.")
            return
        if any(c.dynamic_text and c.dynamic_text.changed for c in candidates):
            return
        first = candidates[0].dynamic_text
        mode = ("configured selector text" if first and first.mode == "selectors"
                else "slider-linked text")
        self.fail(f"Expected dynamic text effect, but {mode} did not change.")

    def _expect_dynamic_title(self) -> None:
        candidates = [c for c in self._text_candidates() if c.dynamic_title is not None]
        if not candidates:
            self.fail("Expected dynamic title effect, but no eligible interaction was performed.")
        elif not any(c.dynamic_title.changed for c in candidates):
            self.fail("Expected dynamic title effect, but chart titles did not change.")

    async def _validate_input_propagation(self) -> None:
        for var in await self.synthesizer.input_variables():
            check = await self.synthesizer.perform_for_variable(var)
            self.propagation.append(check)
            if not check.performed:
                self.fail(f"Input '{var}' could not be interacted with for propagation validation.")
            elif check.backend_change is None or not check.backend_change.ok:
                summary = check.backend_change.summary() if check.backend_change else "no-backend-comparison"
                self.fail(f"Input '{var}' did not affect all chart widgets ({summary}).")

    async def _check_show_when(self, phase: str) -> None:
        if not self.scenario.check_show_when_consistency:
            return
        elements = [ShowWhenElement.model_validate(e) for e in await self.env.show_when_elements()]
        if not elements:
            return
        controls = await self.synthesizer.discover()
        mismatches = check_consistency(elements, controls)
        self.diagnostics.setdefault("show_when", {})[phase] = [m.model_dump() for m in mismatches]
        for m in mismatches:
            if m.expected is None:
                self.fail(f"Show-when condition on '{m.key}' could not be parsed ({phase}): {m.error}")
            else:
                self.fail(f"Show-when visibility mismatch ({phase}): '{m.key}' should be "
                          f"{'visible' if m.expected else 'hidden'} but is "
                          f"{'visible' if m.actual else 'hidden'}.")
