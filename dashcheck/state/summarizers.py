"""Backend state summarizers and page snapshots.

Each summarizer takes the raw dump the page environment returns for one
backend kind (a list of plain dicts) and reduces it to a ``BackendSummary``.
Everything here is pure except ``capture_snapshot``, which reads the dumps
from the environment first.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from dashcheck.models.state import (
    CHART_BACKENDS,
    COMPOSITE_ORDER,
    BackendChange,
    BackendChangeComparison,
    BackendKind,
    BackendSummary,
    ChartEntry,
    ChartStateSnapshot,
    KeyedPoint,
    PairPoint,
    PointRecord,
    ScalarPoint,
)
from dashcheck.state.canonical import hash_string, signature

logger = logging.getLogger(__name__)

TABLE_SAMPLE_ROWS = 5

# Fallback key prefixes for entries without a DOM id.
_KEY_PREFIX = {
    BackendKind.HIGHCHARTER: "highchart",
    BackendKind.PLOTLY: "plotly",
    BackendKind.ECHARTS4R: "echarts",
    BackendKind.GGIRAPH: "girafe",
    BackendKind.LEAFLET: "leaflet",
    BackendKind.TABLES: "table",
}

PLOTLY_SIGNED_FIELDS = ["x", "y", "z", "values", "labels", "q1", "q3", "median"]
PLOTLY_COUNTED_FIELDS = PLOTLY_SIGNED_FIELDS + ["lowerfence", "upperfence"]


class InstanceSource(Protocol):
    """Anything that can dump the live in-page instances of a backend kind."""

    async def list_instances(self, kind: str) -> list[dict]: ...


def entry_key(kind: BackendKind, raw: dict, index: int) -> str:
    raw_id = raw.get("id") if isinstance(raw, dict) else None
    if raw_id:
        return str(raw_id)
    return f"{_KEY_PREFIX[kind]}-{index + 1}"


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


# --- Point normalization ----------------------------------------------------

def to_point_record(raw: Any) -> PointRecord:
    """Normalize one point of any shape into a ``PointRecord``."""
    if isinstance(raw, (list, tuple)):
        x = raw[0] if len(raw) > 0 else None
        y = raw[1] if len(raw) > 1 else None
        return PairPoint(x=x, y=y)
    if isinstance(raw, dict):
        return KeyedPoint(fields=dict(raw))
    return ScalarPoint(value=raw)


def highcharts_points(series: dict) -> list[PointRecord]:
    """Point records of one series: rendered points, then data, then option data."""
    source = (_list(series.get("points"))
              or _list(series.get("data"))
              or _list(series.get("options_data")))
    return [to_point_record(p) for p in source]


# --- Per-kind summarizers ---------------------------------------------------

def summarize_highcharts(instances: list[dict]) -> BackendSummary:
    entries: list[ChartEntry] = []
    visible = 0
    for index, chart in enumerate(instances):
        key = entry_key(BackendKind.HIGHCHARTER, chart, index)
        if chart.get("visible"):
            visible += 1
        parts = []
        has_data = False
        for series in _list(chart.get("series")):
            records = highcharts_points(series)
            xs = _list(series.get("xData")) or [r.x for r in records]
            ys = _list(series.get("yData")) or [r.y for r in records]
            count = max(len(xs), len(ys), len(records))
            hidden = series.get("visible") is False or series.get("options_visible") is False
            has_data = has_data or count > 0
            parts.append(
                f"{series.get('type') or 'series'}:{series.get('name') or 'series'}:"
                f"{'hidden' if hidden else 'shown'}:{count}:{signature(xs)}:{signature(ys)}"
            )
        entries.append(ChartEntry(key=key, signature=f"{key}=>{'|'.join(parts)}", non_empty=has_data))
    return _aggregate(entries, count=len(instances), visible=visible)


def summarize_plotly(instances: list[dict]) -> BackendSummary:
    entries: list[ChartEntry] = []
    visible = 0
    for index, div in enumerate(instances):
        key = entry_key(BackendKind.PLOTLY, div, index)
        if div.get("visible"):
            visible += 1
        parts = []
        has_data = False
        for trace in _list(div.get("traces")):
            count = max(len(_list(trace.get(f))) for f in PLOTLY_COUNTED_FIELDS)
            hidden = str(trace.get("visible") or "").lower() == "legendonly"
            has_data = has_data or count > 0
            sigs = ":".join(signature(_list(trace.get(f))) for f in PLOTLY_SIGNED_FIELDS)
            parts.append(f"{trace.get('type') or 'trace'}:{'hidden' if hidden else 'shown'}:{count}:{sigs}")
        entries.append(ChartEntry(key=key, signature=f"{key}=>{'|'.join(parts)}", non_empty=has_data))
    return _aggregate(entries, count=len(instances), visible=visible)


def _dataset_sizes(option: dict) -> list[int]:
    raw = option.get("dataset")
    datasets = raw if isinstance(raw, list) else ([raw] if raw else [])
    sizes = []
    for ds in datasets:
        source = ds.get("source") if isinstance(ds, dict) else None
        sizes.append(max(0, len(source) - 1) if isinstance(source, list) and source else 0)
    return sizes


def echarts_point_count(series: dict, dataset_sizes: list[int]) -> int:
    data = _list(series.get("data"))
    if data:
        return len(data)
    index = series.get("datasetIndex")
    if isinstance(index, (int, float)) and not isinstance(index, bool) and 0 <= index < len(dataset_sizes):
        return dataset_sizes[int(index)]
    return max(dataset_sizes) if dataset_sizes else 0


def summarize_echarts(instances: list[dict]) -> BackendSummary:
    entries: list[ChartEntry] = []
    visible = 0
    for index, inst in enumerate(instances):
        key = entry_key(BackendKind.ECHARTS4R, inst, index)
        if inst.get("visible"):
            visible += 1
        option = inst.get("option") if isinstance(inst.get("option"), dict) else {}
        option_hash = hash_string(json.dumps(option, separators=(",", ":"), default=str))
        sizes = _dataset_sizes(option)
        parts = []
        has_data = False
        for series in _list(option.get("series")):
            count = echarts_point_count(series, sizes)
            hidden = series.get("show") is False
            has_data = has_data or count > 0
            parts.append(
                f"{series.get('type') or 'series'}:{'hidden' if hidden else 'shown'}:{count}:"
                f"{signature(_list(series.get('data')))}"
            )
        entries.append(ChartEntry(
            key=key, signature=f"{key}=>{option_hash}:{'|'.join(parts)}", non_empty=has_data,
        ))
    return _aggregate(entries, count=len(instances), visible=visible)


def _summarize_counted(kind: BackendKind, instances: list[dict], field: str) -> BackendSummary:
    entries = []
    visible = 0
    for index, node in enumerate(instances):
        key = entry_key(kind, node, index)
        if node.get("visible"):
            visible += 1
        n = int(node.get(field) or 0)
        entries.append(ChartEntry(key=key, signature=f"{key}=>{n}", non_empty=n > 0))
    return _aggregate(entries, count=len(instances), visible=visible)


def summarize_ggiraph(instances: list[dict]) -> BackendSummary:
    return _summarize_counted(BackendKind.GGIRAPH, instances, "shapes")


def summarize_leaflet(instances: list[dict]) -> BackendSummary:
    return _summarize_counted(BackendKind.LEAFLET, instances, "layers")


def summarize_tables(instances: list[dict]) -> BackendSummary:
    """Tables hash the first rows' cell text; row count is tracked on its own.

    Rows flagged ``placeholder`` (a data table's "no data" row) are skipped.
    """
    entries = []
    visible = 0
    for index, table in enumerate(instances):
        if table.get("visible"):
            visible += 1
        rows = [r for r in _list(table.get("rows")) if not r.get("placeholder")]
        sample = "|".join(
            "||".join(str(c).strip() for c in _list(r.get("cells")))
            for r in rows[:TABLE_SAMPLE_ROWS]
        )
        sig = f"{table.get('id') or 'table'}:{len(rows)}:{hash_string(sample)}"
        entries.append(ChartEntry(
            key=entry_key(BackendKind.TABLES, table, index), signature=sig, non_empty=bool(rows),
        ))
    return _aggregate(entries, count=len(instances), visible=visible)


def _aggregate(entries: list[ChartEntry], count: int, visible: int) -> BackendSummary:
    return BackendSummary(
        count=count,
        visible=visible,
        non_empty=sum(1 for e in entries if e.non_empty),
        entries=entries,
        signature="||".join(e.signature for e in entries),
    )


SUMMARIZERS = {
    BackendKind.HIGHCHARTER: summarize_highcharts,
    BackendKind.PLOTLY: summarize_plotly,
    BackendKind.ECHARTS4R: summarize_echarts,
    BackendKind.GGIRAPH: summarize_ggiraph,
    BackendKind.LEAFLET: summarize_leaflet,
    BackendKind.TABLES: summarize_tables,
}


# --- Snapshots --------------------------------------------------------------

def summarize_page(raw_by_kind: dict[str, list[dict]]) -> ChartStateSnapshot:
    """Build the composite snapshot from per-kind raw dumps."""
    backends: dict[str, BackendSummary] = {}
    for kind, _prefix in COMPOSITE_ORDER:
        backends[kind.value] = SUMMARIZERS[kind](raw_by_kind.get(kind.value) or [])
    composite = "||".join(
        f"{prefix}:{backends[kind.value].signature}" for kind, prefix in COMPOSITE_ORDER
    )
    return ChartStateSnapshot(backends=backends, signature=composite)


async def capture_snapshot(env: InstanceSource) -> ChartStateSnapshot:
    """Read every backend kind from the page and summarize it."""
    raw = {}
    for kind, _prefix in COMPOSITE_ORDER:
        raw[kind.value] = await env.list_instances(kind.value)
    snapshot = summarize_page(raw)
    logger.debug("Captured snapshot: %s", {k: v.count for k, v in snapshot.backends.items()})
    return snapshot


def is_ready(probe: dict) -> bool:
    """Best-effort "charts finished rendering" check over a readiness probe.

    ``probe`` carries ``widgets`` (HTML widget container count),
    ``highcharts_series`` (series count per chart), ``plotly_traces`` (trace
    count per plot div) and ``echarts_markers`` (initialized instance nodes).
    """
    if not probe.get("widgets"):
        return True
    hc = probe.get("highcharts_series") or []
    if hc and all(n > 0 for n in hc):
        return True
    plotly = probe.get("plotly_traces") or []
    if plotly and all(n > 0 for n in plotly):
        return True
    return bool(probe.get("echarts_markers"))


# --- Comparisons ------------------------------------------------------------

def resolve_expected_backends(snapshot: ChartStateSnapshot, declared: list[str] | None) -> list[str]:
    """Declared backends, or the chart kinds present in ``snapshot`` when unspecified/mixed."""
    if declared and "mixed" not in declared:
        return [str(b) for b in declared]
    return snapshot.active_backends()


def compare_backend_entries(before: ChartStateSnapshot, after: ChartStateSnapshot, backend: str) -> BackendChange:
    """Match entries by key, falling back to position, and count signature changes."""
    before_entries = before.backend(backend).entries
    after_entries = after.backend(backend).entries
    after_by_key = {e.key: e.signature for e in after_entries}
    compared = changed = 0
    unchanged: list[str] = []
    for index, entry in enumerate(before_entries):
        if entry.key in after_by_key:
            after_sig = after_by_key[entry.key]
        elif index < len(after_entries):
            after_sig = after_entries[index].signature
        else:
            continue
        compared += 1
        if after_sig != entry.signature:
            changed += 1
        else:
            unchanged.append(entry.key)
    return BackendChange(
        backend=backend,
        total_before=len(before_entries),
        total_after=len(after_entries),
        compared=compared,
        changed=changed,
        unchanged_keys=unchanged,
    )


def compare_expected_backend_changes(
    before: ChartStateSnapshot,
    after: ChartStateSnapshot,
    declared: list[str] | None = None,
) -> BackendChangeComparison:
    per_backend = [
        compare_backend_entries(before, after, b)
        for b in resolve_expected_backends(before, declared)
    ]
    failed = [c for c in per_backend if c.total_before > 0 and 0 < c.compared and c.changed < c.compared]
    empty = [c for c in per_backend if c.total_before > 0 and c.compared == 0]
    return BackendChangeComparison(
        ok=not failed and not empty, per_backend=per_backend, failed=failed, empty=empty,
    )


def count_non_empty(snapshot: ChartStateSnapshot, declared: list[str] | None = None) -> int:
    if not declared or "mixed" in declared:
        names = CHART_BACKENDS
    else:
        names = declared
    return sum(snapshot.backend(n).non_empty for n in names)


def backend_visibility_failures(snapshot: ChartStateSnapshot, declared: list[str] | None) -> list[str]:
    """Failure messages for declared backends that are absent or invisible."""
    if not declared:
        return []
    if "mixed" in declared:
        if any(snapshot.backend(k).count > 0 and snapshot.backend(k).visible > 0 for k in CHART_BACKENDS):
            return []
        return ["No visible chart/widget detected for mixed backend expectation."]
    failures = []
    for backend in declared:
        summary = snapshot.backend(backend)
        if summary.count < 1:
            failures.append(f"Expected backend '{backend}' was not detected on page.")
        elif summary.visible < 1:
            failures.append(f"Expected backend '{backend}' has no visible chart/widget.")
    return failures
