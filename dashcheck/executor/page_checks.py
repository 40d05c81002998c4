"""Page checks — evaluates content expectations against the rendered page."""

from __future__ import annotations

import logging
import re

from dashcheck.browser.environment import PageEnvironment
from dashcheck.models.scenario import Scenario

logger = logging.getLogger(__name__)


class CheckResult:
    def __init__(self, passed: bool, message: str = ""):
        self.passed = passed
        self.message = message


def normalize_text(value: str) -> str:
    """Collapse whitespace and lowercase, the way page text is matched."""
    return re.sub(r"\s+", " ", str(value or "")).strip().lower()


async def check_page(env: PageEnvironment, check_type: str, target: str) -> CheckResult:
    """Evaluate a single content check and return the result."""
    logger.debug("Checking %s: %s", check_type, target)
    match check_type:
        case "required_selector":
            return await _check_required_selector(env, target)
        case "required_text":
            return await _check_required_text(env, target)
        case "forbidden_text":
            return await _check_forbidden_text(env, target)
        case _:
            return CheckResult(False, f"Unknown page check: {check_type}")


async def _check_required_selector(env: PageEnvironment, selector: str) -> CheckResult:
    if await env.count_selector(selector) > 0:
        return CheckResult(True, f"Selector '{selector}' present")
    return CheckResult(False, f"Missing required selector: {selector}")


async def _check_required_text(env: PageEnvironment, text: str) -> CheckResult:
    if normalize_text(text) in normalize_text(await env.body_text()):
        return CheckResult(True, f"Text '{text}' present")
    return CheckResult(False, f"Missing required text: {text}")


async def _check_forbidden_text(env: PageEnvironment, text: str) -> CheckResult:
    if normalize_text(text) in normalize_text(await env.body_text()):
        return CheckResult(False, f"Forbidden text present: {text}")
    return CheckResult(True, f"Text '{text}' absent")


async def run_content_checks(env: PageEnvironment, scenario: Scenario) -> list[str]:
    """Failure messages for the scenario's selector and text expectations."""
    checks = (
        [("required_selector", s) for s in scenario.required_selectors]
        + [("required_text", t) for t in scenario.required_texts]
        + [("forbidden_text", t) for t in scenario.forbidden_texts if t]
    )
    failures = []
    for check_type, target in checks:
        result = await check_page(env, check_type, target)
        if not result.passed:
            logger.warning("%s", result.message)
            failures.append(result.message)
    return failures


def category_coverage_failure(labels: list[str], required: list[str], min_matches: int) -> str | None:
    """Failure message when chart axes show too few of the required categories."""
    if not required:
        return None
    matched = [c for c in required if c in labels]
    needed = min(min_matches, len(required))
    if len(matched) >= needed:
        return None
    found = ", ".join(labels) or "none"
    return (f"Expected at least {needed} of the required categories on chart axes, "
            f"but matched {len(matched)} (found: {found}).")
