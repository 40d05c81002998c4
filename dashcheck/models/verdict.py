"""Interaction results and scenario verdicts produced by the runner."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field

from dashcheck.models.state import BackendChangeComparison, ChartStateSnapshot


class DynamicTextResult(BaseModel):
    mode: str = "slider_values"  # slider_values, selectors
    before: str = ""
    after: str = ""
    changed: bool = False
    before_slider_text: str = ""
    after_slider_text: str = ""
    before_selectors_text: str = ""
    after_selectors_text: str = ""


class DynamicTitleResult(BaseModel):
    before: list[str] = Field(default_factory=list)
    after: list[str] = Field(default_factory=list)
    changed: bool = False
    unresolved: list[str] = Field(default_factory=list)  # titles still carrying {placeholders}


class InteractionResult(BaseModel):
    """Outcome of one executed interaction."""
    kind: str
    performed: bool = False
    detail: str = ""
    changed: bool = False
    before: Optional[ChartStateSnapshot] = None
    after: Optional[ChartStateSnapshot] = None
    backend_change: Optional[BackendChangeComparison] = None
    dynamic_text: Optional[DynamicTextResult] = None
    dynamic_title: Optional[DynamicTitleResult] = None
    observations: dict[str, Any] = Field(default_factory=dict)


class PropagationCheck(BaseModel):
    """Result of driving one input variable for the all-inputs-affect-all-charts check."""
    filter_var: str
    performed: bool = False
    detail: str = ""
    changed: bool = False
    backend_change: Optional[BackendChangeComparison] = None


class ScenarioVerdict(BaseModel):
    id: str
    source_type: str = ""
    backend: str = ""
    url: str = ""
    started_at: str = ""
    ended_at: str = ""
    duration_ms: int = 0
    failures: list[str] = Field(default_factory=list)
    interaction_results: list[InteractionResult] = Field(default_factory=list)  # plan order
    input_propagation: list[PropagationCheck] = Field(default_factory=list)
    initial_state: Optional[ChartStateSnapshot] = None
    final_state: Optional[ChartStateSnapshot] = None
    diagnostics: dict[str, Any] = Field(default_factory=dict)
    screenshot_path: Optional[str] = None
    console_log_path: Optional[str] = None

    @computed_field
    @property
    def status(self) -> str:
        return "fail" if self.failures else "pass"


class RunResult(BaseModel):
    run_id: str
    mode: str = ""
    started_at: str
    completed_at: str
    total: int = 0
    passed: int = 0
    failed: int = 0
    duration_seconds: float = 0.0
    verdicts: list[ScenarioVerdict] = Field(default_factory=list)
