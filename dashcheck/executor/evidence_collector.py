"""Evidence collector — console transcript and screenshot for one scenario.

Files land in the run directory as ``console/{scenario_id}.log`` and
``screenshots/{scenario_id}.png``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from playwright.async_api import ConsoleMessage, Page

logger = logging.getLogger(__name__)


class EvidenceCollector:

    def __init__(self, run_dir: Path, scenario_id: str):
        self.scenario_id = scenario_id
        self.console_path = run_dir / "console" / f"{scenario_id}.log"
        self.screenshot_path = run_dir / "screenshots" / f"{scenario_id}.png"
        self.console_path.parent.mkdir(parents=True, exist_ok=True)
        self.screenshot_path.parent.mkdir(parents=True, exist_ok=True)
        self.console_lines: list[str] = []

    def attach(self, page: Page) -> None:
        """Record console messages and uncaught page errors from now on."""
        page.on("console", self._on_console)
        page.on("pageerror", self._on_page_error)

    def _on_console(self, msg: ConsoleMessage) -> None:
        self.console_lines.append(f"[{msg.type}] {msg.text}")

    def _on_page_error(self, error: Exception) -> None:
        self.console_lines.append(f"[pageerror] {error}")

    async def capture_screenshot(self, page: Page) -> Optional[str]:
        """Full-page screenshot; None when the page could not be captured."""
        try:
            await page.screenshot(path=str(self.screenshot_path), full_page=True)
        except Exception as e:
            logger.warning("[%s] Screenshot capture failed: %s", self.scenario_id, e)
            return None
        return str(self.screenshot_path)

    def write_console_log(self) -> str:
        self.console_path.write_text("".join(f"{line}\n" for line in self.console_lines))
        return str(self.console_path)

    def forbidden_matches(self, patterns: list[str]) -> list[str]:
        """Patterns found as literal, case-insensitive substrings of the transcript."""
        transcript = "\n".join(self.console_lines).lower()
        return [p for p in patterns if p and p.lower() in transcript]
