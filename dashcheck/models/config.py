"""Configuration models for the dashboard oracle."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field


class ViewportConfig(BaseModel):
    width: int = 1440
    height: int = 900


class SettleConfig(BaseModel):
    """Waits (ms) after each kind of page mutation before state is re-read.

    Values are empirical for the Quarto/htmlwidgets rendering stack and may
    need tuning for slower chart libraries.
    """
    filter: int = 1200
    slider: int = 1200
    input_var: int = 1200
    linked_inputs: int = 1000
    show_when_toggle: int = 900
    tab_click: int = 700
    sidebar_toggle: int = 500
    modal_toggle: int = 600
    tooltip_hover: int = 600


class OracleConfig(BaseModel):
    # Browser
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    headless: bool = True

    # Navigation and readiness
    navigation_timeout_ms: int = 45000
    post_navigation_wait_ms: int = 1200
    ready_timeout_ms: int = 4000
    ready_poll_ms: int = 250
    extra_ready_wait_ms: int = 3000

    # Interaction settle delays
    settle: SettleConfig = Field(default_factory=SettleConfig)

    # Execution limits
    max_parallel_scenarios: int = 2

    # Evidence and reporting
    capture_screenshots: bool = True
    report_output_dir: str = "./dashcheck-reports"
    forbidden_console_patterns: list[str] = Field(default_factory=list)

    @classmethod
    def load(cls, path: str | Path) -> "OracleConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
