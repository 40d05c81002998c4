"""Before/after capture of text the dashboard rewrites in response to inputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from dashcheck.models.verdict import DynamicTextResult


class TextSource(Protocol):
    async def slider_value_text(self) -> str: ...

    async def selector_text(self, selectors: list[str]) -> str: ...


@dataclass(frozen=True)
class DynamicTextSnapshot:
    mode: str
    text: str
    slider_text: str
    selectors_text: str


async def capture_dynamic_text(env: TextSource, selectors: list[str]) -> DynamicTextSnapshot:
    """Configured selectors take precedence over slider value displays."""
    slider_text = await env.slider_value_text()
    if not selectors:
        return DynamicTextSnapshot("slider_values", slider_text, slider_text, "")
    selectors_text = await env.selector_text(selectors)
    return DynamicTextSnapshot("selectors", selectors_text, slider_text, selectors_text)


def build_dynamic_text_result(before: DynamicTextSnapshot, after: DynamicTextSnapshot) -> DynamicTextResult:
    return DynamicTextResult(
        mode=before.mode or after.mode,
        before=before.text,
        after=after.text,
        changed=before.text != after.text,
        before_slider_text=before.slider_text,
        after_slider_text=after.slider_text,
        before_selectors_text=before.selectors_text,
        after_selectors_text=after.selectors_text,
    )
