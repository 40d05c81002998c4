"""Scenario descriptors consumed by the scenario runner."""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_MODES = ["smoke", "full"]


class InteractionKind(str, Enum):
    FILTER = "filter"
    SLIDER = "slider"
    LINKED_INPUTS = "linked_inputs"
    TAB_CLICK = "tab_click"
    SIDEBAR_TOGGLE = "sidebar_toggle"
    MODAL_TOGGLE = "modal_toggle"
    TOOLTIP_HOVER = "tooltip_hover"
    SHOW_WHEN_TOGGLE = "show_when_toggle"


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class Scenario(BaseModel):
    """One declarative, self-contained dashboard check."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    url: str = ""
    url_path: str = ""
    source_type: str = ""
    backend: str = ""
    modes: list[str] = Field(default_factory=lambda: list(DEFAULT_MODES))

    # Baseline content checks
    required_selectors: list[str] = Field(default_factory=list)
    required_texts: list[str] = Field(default_factory=list)
    forbidden_texts: list[str] = Field(default_factory=list)
    forbidden_console_patterns: list[str] = Field(default_factory=list)

    # Interactions, in order
    interaction_plan: list[InteractionKind] = Field(default_factory=list)

    # Backend expectations (backend kind names or "mixed")
    expect_chart_backend: list[str] = Field(default_factory=list)

    # Expectation flags
    expect_filter_effect: bool = False
    expect_slider_effect: bool = False
    expect_dynamic_text_effect: bool = False
    expect_dynamic_title_effect: bool = False
    require_all_charts_change_on_filter: bool = False
    require_all_charts_change_on_slider: bool = False
    require_all_input_vars_affect_all_charts: bool = False
    require_all_inputs_affect_all_charts: bool = False
    require_titles_resolved: bool = False
    check_show_when_consistency: bool = True

    # Final-state thresholds
    min_non_empty_charts_expected: Optional[int] = None
    max_large_empty_cards: Optional[int] = None
    large_empty_card_min_height: float = 180
    large_empty_card_min_width: float = 260
    required_categories: list[str] = Field(default_factory=list)
    min_category_matches: int = 2

    # Interaction targeting
    preferred_filter_var: Optional[str] = None
    preferred_slider_var: Optional[str] = None
    dynamic_text_selectors: list[str] = Field(default_factory=list)

    @field_validator(
        "modes", "required_selectors", "required_texts", "forbidden_texts",
        "forbidden_console_patterns", "interaction_plan", "expect_chart_backend",
        "required_categories", "dynamic_text_selectors",
        mode="before",
    )
    @classmethod
    def wrap_scalars(cls, v: Any) -> list:
        return _as_list(v)

    @field_validator("preferred_filter_var", "preferred_slider_var", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_url(self) -> "Scenario":
        if not self.url and not self.url_path:
            raise ValueError(f"Scenario '{self.id}' needs a url or url_path")
        return self

    @property
    def all_charts_change_on_filter(self) -> bool:
        return self.require_all_inputs_affect_all_charts or self.require_all_charts_change_on_filter

    @property
    def all_charts_change_on_slider(self) -> bool:
        return self.require_all_inputs_affect_all_charts or self.require_all_charts_change_on_slider

    @property
    def all_input_vars_affect_all_charts(self) -> bool:
        return (self.require_all_inputs_affect_all_charts
                or self.require_all_input_vars_affect_all_charts)

    @property
    def explicit_backends(self) -> list[str]:
        """Declared backend kinds, empty when unspecified or ``mixed``."""
        if not self.expect_chart_backend or "mixed" in self.expect_chart_backend:
            return []
        return [str(b) for b in self.expect_chart_backend]


class ScenarioManifest(BaseModel):
    """A manifest of scenarios sharing a set of defaults."""

    defaults: dict[str, Any] = Field(default_factory=dict)
    scenarios: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def load(cls, path: str | Path) -> "ScenarioManifest":
        """Load a manifest from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Scenario manifest not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def resolve(
        self,
        mode: str = "smoke",
        base_url: str = "",
        include_source_types: list[str] | None = None,
    ) -> list[Scenario]:
        """Filter by mode and source type, apply defaults, and build scenarios."""
        resolved: list[Scenario] = []
        for raw in self.scenarios:
            modes = _as_list(raw.get("modes")) or DEFAULT_MODES
            if mode not in modes:
                logger.debug("Skipping %s: not in mode %s", raw.get("id"), mode)
                continue
            if include_source_types is not None and raw.get("source_type") \
                    and raw.get("source_type") not in include_source_types:
                logger.debug("Skipping %s: source type %s excluded",
                             raw.get("id"), raw.get("source_type"))
                continue

            merged = dict(raw)
            for key, value in self.defaults.items():
                if merged.get(key) is None:
                    merged[key] = value
            if not merged.get("url") and merged.get("url_path") and base_url:
                merged["url"] = base_url.rstrip("/") + "/" + str(merged["url_path"]).lstrip("/")
            resolved.append(Scenario(**merged))
        return resolved
