"""Interaction synthesizer — discovers controls and drives one interaction at a time."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from dashcheck.browser.environment import PageEnvironment
from dashcheck.conditions.evaluator import ConditionError, condition_hints, condition_variables
from dashcheck.interaction.controls import (
    FILTER_PRIORITY,
    ControlChange,
    ControlDescriptor,
    ControlShape,
)
from dashcheck.interaction.options import child_option_signature, resolve_current, resolve_options
from dashcheck.interaction.policies import choose_change, pick_target, slider_policy
from dashcheck.interaction.waits import settle
from dashcheck.models.config import OracleConfig
from dashcheck.models.scenario import InteractionKind, Scenario
from dashcheck.models.verdict import InteractionResult, PropagationCheck
from dashcheck.state.summarizers import capture_snapshot, compare_expected_backend_changes
from dashcheck.trackers.dynamic_text import build_dynamic_text_result, capture_dynamic_text
from dashcheck.trackers.titles import build_title_result, capture_titles

logger = logging.getLogger(__name__)

# (performed, detail, observations)
ActionOutcome = tuple[bool, str, dict]


class InteractionSynthesizer:
    """Performs scenario interactions against a page environment.

    Chart-affecting interactions (filter, slider, per-variable changes) are
    measured: snapshot, dynamic text and titles are captured before the
    change and again after the configured settle delay.
    """

    def __init__(self, env: PageEnvironment, scenario: Scenario, config: OracleConfig):
        self.env = env
        self.scenario = scenario
        self.config = config

    async def perform(self, kind: InteractionKind | str) -> InteractionResult:
        kind = InteractionKind(kind)
        logger.info("Interaction: %s", kind.value)
        match kind:
            case InteractionKind.FILTER:
                result = await self._measured(kind.value, self._filter_action, self.config.settle.filter)
            case InteractionKind.SLIDER:
                result = await self._measured(kind.value, self._slider_action, self.config.settle.slider)
            case InteractionKind.LINKED_INPUTS:
                result = await self._linked_inputs()
            case InteractionKind.TAB_CLICK:
                result = await self._tab_click()
            case InteractionKind.SIDEBAR_TOGGLE:
                result = await self._sidebar_toggle()
            case InteractionKind.MODAL_TOGGLE:
                result = await self._modal_toggle()
            case InteractionKind.TOOLTIP_HOVER:
                result = await self._tooltip_hover()
            case InteractionKind.SHOW_WHEN_TOGGLE:
                result = await self._show_when_toggle()
        logger.debug("  %s: performed=%s changed=%s detail=%s",
                     kind.value, result.performed, result.changed, result.detail)
        return result

    # --- discovery -----------------------------------------------------------

    async def discover(self) -> list[ControlDescriptor]:
        controls = []
        for raw in await self.env.list_controls():
            try:
                controls.append(ControlDescriptor.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping unreadable control %s: %s", raw.get("ref"), e)
        return controls

    async def input_variables(self) -> list[str]:
        """Distinct filter variables of visible controls, in document order."""
        names: list[str] = []
        for control in await self.discover():
            if control.filter_var and control.visible and control.filter_var not in names:
                names.append(control.filter_var)
        return names

    async def _apply_first(
        self,
        controls: list[ControlDescriptor],
        var: Optional[str] = None,
        hints: Optional[list[str]] = None,
        jump_sliders: bool = False,
        require_visible: bool = True,
    ) -> Optional[ControlChange]:
        """Walk shapes in priority order and apply the first possible change."""
        for shape in FILTER_PRIORITY:
            for control in controls:
                if control.shape != shape:
                    continue
                if var is not None and not control.bound_to(var):
                    continue
                if control.disabled or (require_visible and not control.is_candidate()):
                    continue
                if var is None and shape == ControlShape.SLIDER and not control.filter_var:
                    continue
                change = choose_change(control, hints, jump_sliders=jump_sliders)
                if change is not None and await self.env.apply_change(change):
                    return change
        return None

    # --- measured interactions ----------------------------------------------

    async def _measured(
        self,
        kind: str,
        action: Callable[[], Awaitable[ActionOutcome]],
        settle_ms: int,
    ) -> InteractionResult:
        selectors = self.scenario.dynamic_text_selectors
        text_before = await capture_dynamic_text(self.env, selectors)
        titles_before = await capture_titles(self.env)
        before = await capture_snapshot(self.env)

        performed, detail, observations = await action()
        if performed:
            await settle(self.env.wait, settle_ms)

        after = await capture_snapshot(self.env)
        text_after = await capture_dynamic_text(self.env, selectors)
        titles_after = await capture_titles(self.env)

        expected = self.scenario.explicit_backends
        return InteractionResult(
            kind=kind,
            performed=performed,
            detail=detail,
            changed=before.signature_for(expected) != after.signature_for(expected),
            before=before,
            after=after,
            backend_change=compare_expected_backend_changes(before, after, self.scenario.expect_chart_backend),
            dynamic_text=build_dynamic_text_result(text_before, text_after),
            dynamic_title=build_title_result(titles_before, titles_after),
            observations=observations,
        )

    async def _filter_action(self) -> ActionOutcome:
        controls = await self.discover()
        preferred = self.scenario.preferred_filter_var
        if preferred:
            change = await self._apply_first(controls, var=preferred)
            if change:
                return True, f"{change.detail}-preferred", {"ref": change.ref, "filter_var": preferred}
            logger.debug("No changeable control bound to '%s', trying any control", preferred)
        change = await self._apply_first(controls)
        if change:
            return True, change.detail, {"ref": change.ref}
        return False, "no-changeable-control", {}

    async def _slider_action(self) -> ActionOutcome:
        sliders = [c for c in await self.discover()
                   if c.shape == ControlShape.SLIDER and not c.disabled and c.visible]
        if not sliders:
            return False, "no-slider", {}
        slider = sliders[0]
        preferred = self.scenario.preferred_slider_var
        if preferred:
            slider = next((s for s in sliders if s.filter_var == preferred), slider)
        change = slider_policy(slider)
        if change is None:
            return False, "slider-no-alt-value", {"filter_var": slider.filter_var}
        if not await self.env.apply_change(change):
            return False, "slider-not-applied", {"filter_var": slider.filter_var}
        return True, "slider-changed", {
            "filter_var": slider.filter_var, "before": slider.value, "after": change.value,
        }

    async def perform_for_variable(self, var: str) -> PropagationCheck:
        """Change the control bound to ``var`` and compare every expected backend."""
        settle_ms = self.config.settle.input_var

        async def action() -> ActionOutcome:
            change = await self._apply_first(await self.discover(), var=var)
            if change is None:
                return False, "unsupported-or-locked", {}
            return True, f"{change.detail}-var-changed", {"ref": change.ref}

        result = await self._measured("input_var", action, settle_ms)
        return PropagationCheck(
            filter_var=var,
            performed=result.performed,
            detail=result.detail,
            changed=result.changed,
            backend_change=result.backend_change,
        )

    # --- layout interactions -------------------------------------------------

    async def _linked_inputs(self) -> InteractionResult:
        kind = InteractionKind.LINKED_INPUTS.value
        controls = await self.discover()
        parents = [c for c in controls if c.shape == ControlShape.SELECT and c.linked_child_id]
        if not parents:
            return InteractionResult(kind=kind, detail="no-linked-wrapper")

        for parent in parents:
            child = _by_element_id(controls, parent.linked_child_id)
            if child is None or child.ref == parent.ref:
                continue
            options = resolve_options(parent)
            if len(options) < 2 and len(parent.options_by_parent) > len(options):
                options = [str(k) for k in parent.options_by_parent]
            if len(options) < 2:
                continue

            before = child_option_signature(child)
            current = resolve_current(parent)
            target = pick_target(options, current[0] if current else "") or options[0]
            change = ControlChange(ref=parent.ref, operation="select", detail="parent-changed",
                                   **({"values": [target]} if parent.multiple else {"value": target}))
            if not await self.env.apply_change(change):
                continue
            await settle(self.env.wait, self.config.settle.linked_inputs)

            child_after = _by_element_id(await self.discover(), parent.linked_child_id)
            after = child_option_signature(child_after) if child_after else ""
            return InteractionResult(
                kind=kind,
                performed=True,
                detail="parent-changed",
                changed=before != after,
                observations={"child_id": parent.linked_child_id, "parent_value": target,
                              "before": before, "after": after},
            )
        return InteractionResult(kind=kind, detail="insufficient-parent-options")

    async def _tab_click(self) -> InteractionResult:
        kind = InteractionKind.TAB_CLICK.value
        before = await self.env.active_tab()
        if not await self.env.click_inactive_tab():
            return InteractionResult(kind=kind, detail="no-secondary-tab")
        await settle(self.env.wait, self.config.settle.tab_click)
        after = await self.env.active_tab()
        return InteractionResult(
            kind=kind, performed=True, detail="tab-click",
            changed=(before or "") != (after or ""),
            observations={"before": before, "after": after},
        )

    async def _sidebar_toggle(self) -> InteractionResult:
        kind = InteractionKind.SIDEBAR_TOGGLE.value
        before = await self.env.sidebar_expanded()
        if not await self.env.click_sidebar_toggle():
            return InteractionResult(kind=kind, detail="no-sidebar-toggle")
        await settle(self.env.wait, self.config.settle.sidebar_toggle)
        middle = await self.env.sidebar_expanded()
        await self.env.click_sidebar_toggle()
        await settle(self.env.wait, self.config.settle.sidebar_toggle)
        after = await self.env.sidebar_expanded()
        return InteractionResult(
            kind=kind, performed=True, detail="sidebar-toggle",
            changed=(before or "") != (middle or "") or (middle or "") != (after or ""),
            observations={"before": before, "middle": middle, "after": after},
        )

    async def _modal_toggle(self) -> InteractionResult:
        kind = InteractionKind.MODAL_TOGGLE.value
        before = await self.env.modal_visible()
        if not await self.env.open_modal():
            return InteractionResult(kind=kind, detail="no-modal-trigger")
        await settle(self.env.wait, self.config.settle.modal_toggle)
        opened = await self.env.modal_visible()
        await self.env.close_modal()
        await settle(self.env.wait, self.config.settle.modal_toggle)
        closed = not await self.env.modal_visible()
        return InteractionResult(
            kind=kind, performed=True, detail="modal-open-close",
            changed=opened and not before,
            observations={"opened": opened, "closed": closed},
        )

    async def _tooltip_hover(self) -> InteractionResult:
        kind = InteractionKind.TOOLTIP_HOVER.value
        before = await self.env.visible_tooltips()
        if not await self.env.hover_tooltip_target():
            return InteractionResult(kind=kind, detail="no-tooltip-target")
        await settle(self.env.wait, self.config.settle.tooltip_hover)
        after = await self.env.visible_tooltips()
        return InteractionResult(
            kind=kind, performed=True, detail="tooltip-hover", changed=after > before,
            observations={"before": before, "after": after},
        )

    async def _show_when_toggle(self) -> InteractionResult:
        kind = InteractionKind.SHOW_WHEN_TOGGLE.value
        elements = await self.env.show_when_elements()
        if not elements:
            return InteractionResult(kind=kind, detail="no-show-when-elements")

        selectors = self.scenario.dynamic_text_selectors
        text_before = await capture_dynamic_text(self.env, selectors)
        variables: list[str] = []
        hints: dict[str, list[str]] = {}
        for element in elements:
            try:
                for name in condition_variables(element.get("condition") or ""):
                    if name not in variables:
                        variables.append(name)
                condition_hints(element.get("condition") or "", hints)
            except ConditionError as e:
                logger.debug("Ignoring unparsable condition on %s: %s", element.get("key"), e)

        controls = await self.discover()
        detail = "no-compatible-input-for-show-when"
        performed = False
        for name in variables:
            if await self._apply_first(controls, var=name, hints=hints.get(name),
                                       jump_sliders=True, require_visible=False):
                performed, detail = True, f"changed:{name}"
                break
        else:
            fallback = next((c.filter_var for c in controls if c.filter_var), None)
            if fallback and await self._apply_first(controls, var=fallback, jump_sliders=True,
                                                    require_visible=False):
                performed, detail = True, f"fallback:{fallback}"

        if performed:
            await settle(self.env.wait, self.config.settle.show_when_toggle)
        after_elements = await self.env.show_when_elements()
        text_after = await capture_dynamic_text(self.env, selectors)

        before_sig, before_count = _visible_signature(elements)
        after_sig, after_count = _visible_signature(after_elements)
        return InteractionResult(
            kind=kind,
            performed=performed,
            detail=detail,
            changed=before_sig != after_sig or before_count != after_count,
            dynamic_text=build_dynamic_text_result(text_before, text_after),
            observations={
                "before": before_count, "after": after_count,
                "before_signature": before_sig, "after_signature": after_sig,
            },
        )


def _by_element_id(controls: list[ControlDescriptor], element_id: str) -> Optional[ControlDescriptor]:
    return next((c for c in controls if c.element_id == element_id), None)


def _visible_signature(elements: list[dict]) -> tuple[str, int]:
    shown = [e for e in elements if e.get("visible")]
    return "|".join(f"{e.get('key', '')}::{e.get('condition', '')}" for e in shown), len(shown)
