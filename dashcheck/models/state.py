"""Chart/table state snapshots and their comparisons."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BackendKind(str, Enum):
    """Widget families whose in-page objects can be summarized.

    highcharter: series-chart instances (``Highcharts.charts``)
    plotly: declarative JSON charts (``div.data`` traces)
    echarts4r: instance-API charts (``echarts.getInstanceByDom``)
    ggiraph: vector-graphics chart roots
    leaflet: tile-map containers
    tables: generic HTML tables
    """
    HIGHCHARTER = "highcharter"
    PLOTLY = "plotly"
    ECHARTS4R = "echarts4r"
    GGIRAPH = "ggiraph"
    LEAFLET = "leaflet"
    TABLES = "tables"


# Fixed composite order and the prefix each kind contributes.
COMPOSITE_ORDER: list[tuple[BackendKind, str]] = [
    (BackendKind.HIGHCHARTER, "hc"),
    (BackendKind.PLOTLY, "plotly"),
    (BackendKind.ECHARTS4R, "echarts"),
    (BackendKind.GGIRAPH, "girafe"),
    (BackendKind.LEAFLET, "leaflet"),
    (BackendKind.TABLES, "tables"),
]

CHART_BACKENDS: list[str] = [
    BackendKind.HIGHCHARTER.value,
    BackendKind.PLOTLY.value,
    BackendKind.ECHARTS4R.value,
    BackendKind.GGIRAPH.value,
    BackendKind.LEAFLET.value,
]


# --- Point records -----------------------------------------------------------

@dataclass(frozen=True)
class PairPoint:
    x: Any
    y: Any


@dataclass(frozen=True)
class ScalarPoint:
    value: Any

    @property
    def x(self) -> Any:
        return None

    @property
    def y(self) -> Any:
        return self.value


@dataclass(frozen=True)
class KeyedPoint:
    fields: dict = field(default_factory=dict)

    @property
    def x(self) -> Any:
        return self.fields.get("x")

    @property
    def y(self) -> Any:
        if "y" in self.fields:
            return self.fields["y"]
        return self.fields.get("value")


PointRecord = PairPoint | ScalarPoint | KeyedPoint


# --- Snapshots ---------------------------------------------------------------

class ChartEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    signature: str
    non_empty: bool = False


class BackendSummary(BaseModel):
    """Aggregate state of every widget of one backend kind."""
    model_config = ConfigDict(frozen=True)

    count: int = 0
    visible: int = 0
    non_empty: int = 0
    entries: list[ChartEntry] = Field(default_factory=list)
    signature: str = ""


class ChartStateSnapshot(BaseModel):
    """Page-level state: one summary per backend kind plus a composite signature."""
    model_config = ConfigDict(frozen=True)

    backends: dict[str, BackendSummary] = Field(default_factory=dict)
    signature: str = ""

    def backend(self, kind: BackendKind | str) -> BackendSummary:
        key = kind.value if isinstance(kind, BackendKind) else str(kind)
        return self.backends.get(key) or BackendSummary()

    def signature_for(self, expected: list[str] | None = None) -> str:
        """Signature restricted to the expected backends (tables always included).

        With no explicit expectation the composite signature is returned.
        """
        if not expected or "mixed" in expected:
            return self.signature
        parts = [f"{name}:{self.backend(name).signature}" for name in expected]
        parts.append(f"tables:{self.backend(BackendKind.TABLES).signature}")
        return "||".join(parts)

    def active_backends(self) -> list[str]:
        """Chart backends with at least one instance."""
        return [name for name in CHART_BACKENDS if self.backend(name).count > 0]


class BackendChange(BaseModel):
    backend: str
    total_before: int = 0
    total_after: int = 0
    compared: int = 0
    changed: int = 0
    unchanged_keys: list[str] = Field(default_factory=list)


class BackendChangeComparison(BaseModel):
    """Answers: did every comparable entry of every expected backend change?"""
    ok: bool = True
    per_backend: list[BackendChange] = Field(default_factory=list)
    failed: list[BackendChange] = Field(default_factory=list)
    empty: list[BackendChange] = Field(default_factory=list)

    def summary(self) -> str:
        if not self.per_backend:
            return "no-backend-comparison"
        return ", ".join(f"{c.backend}:{c.changed}/{c.compared}" for c in self.per_backend)
