"""Chart title tracking and placeholder resolution."""

from __future__ import annotations

import re
from typing import Protocol

from dashcheck.models.verdict import DynamicTitleResult

# Template tokens such as "{country}" that should have been substituted.
PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][\w.]*)\}")


class TitleSource(Protocol):
    async def chart_titles(self) -> list[str]: ...


async def capture_titles(env: TitleSource) -> list[str]:
    titles = await env.chart_titles()
    return [t.strip() for t in titles if t and t.strip()]


def unresolved_placeholders(titles: list[str]) -> list[str]:
    """Titles that still carry a ``{name}`` placeholder."""
    return [t for t in titles if PLACEHOLDER_RE.search(t)]


def build_title_result(before: list[str], after: list[str]) -> DynamicTitleResult:
    return DynamicTitleResult(
        before=before,
        after=after,
        changed=before != after,
        unresolved=unresolved_placeholders(after),
    )
