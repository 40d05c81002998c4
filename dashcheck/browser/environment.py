"""The page environment the oracle reads from and acts on.

The hosting page owns every widget registry; the oracle only sees it
through this interface. ``DashboardPage`` implements it over a live
Playwright page, and tests substitute an in-memory dashboard.
"""

from __future__ import annotations

from typing import Optional, Protocol

from dashcheck.interaction.controls import ControlChange


class PageEnvironment(Protocol):
    # Navigation and time
    async def goto(self, url: str, timeout_ms: int) -> None: ...

    async def wait(self, ms: int) -> None: ...

    # Backend registries
    async def list_instances(self, kind: str) -> list[dict]: ...

    async def readiness_probe(self) -> dict: ...

    # Inputs
    async def list_controls(self) -> list[dict]: ...

    async def apply_change(self, change: ControlChange) -> bool: ...

    async def show_when_elements(self) -> list[dict]: ...

    # Text and titles
    async def body_text(self) -> str: ...

    async def count_selector(self, selector: str) -> int: ...

    async def slider_value_text(self) -> str: ...

    async def selector_text(self, selectors: list[str]) -> str: ...

    async def chart_titles(self) -> list[str]: ...

    async def category_labels(self) -> list[str]: ...

    async def large_empty_cards(self, min_height: float, min_width: float) -> list[dict]: ...

    # Layout interactions
    async def active_tab(self) -> Optional[str]: ...

    async def click_inactive_tab(self) -> bool: ...

    async def sidebar_expanded(self) -> Optional[str]: ...

    async def click_sidebar_toggle(self) -> bool: ...

    async def open_modal(self) -> bool: ...

    async def modal_visible(self) -> bool: ...

    async def close_modal(self) -> None: ...

    async def visible_tooltips(self) -> int: ...

    async def hover_tooltip_target(self) -> bool: ...
