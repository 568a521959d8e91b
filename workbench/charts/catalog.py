"""Chart kinds offered by the visualization console and their column roles."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from workbench.errors import MappingError
from workbench.services.metadata import CATEGORICAL, NUMERICAL, TEMPORAL, ProjectMetadata


class ChartKind(str, Enum):
    HISTOGRAM = "histogram"
    DENSITY_PLOT = "density_plot"
    BOX_PLOT = "box_plot"
    PIE_CHART = "pie_chart"
    SCATTER = "scatter"
    LINE_CHART = "line_chart"
    AREA_CHART = "area_chart"
    BAR_CHART = "bar_chart"
    VIOLIN_PLOT = "violin_plot"
    HEXBIN_PLOT = "hexbin_plot"
    BUBBLE_CHART = "bubble_chart"
    STACKED_BAR_CHART = "stacked_bar_chart"
    HEATMAP = "heatmap"

    @classmethod
    def parse(cls, raw: Any) -> "ChartKind":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw))
        except ValueError:
            raise MappingError(f"Unknown chart type {raw!r}.") from None


ANY_TYPE = (NUMERICAL, CATEGORICAL, TEMPORAL)
GROUPING = (CATEGORICAL, TEMPORAL)


@dataclass(frozen=True)
class RoleRequirement:
    role: str
    label: str
    types: Tuple[str, ...]
    multi: bool = False
    min_count: int = 1
    optional: bool = False


@dataclass(frozen=True)
class ChartSpec:
    kind: ChartKind
    label: str
    analysis: str
    requires: Tuple[RoleRequirement, ...]


def _req(role: str, label: str, *types: str, **kwargs: Any) -> RoleRequirement:
    return RoleRequirement(role, label, tuple(types), **kwargs)


CATALOG: Dict[ChartKind, ChartSpec] = {
    spec.kind: spec
    for spec in (
        ChartSpec(ChartKind.HISTOGRAM, "Histogram", "univariate", (_req("x_axis", "Value", NUMERICAL),)),
        ChartSpec(ChartKind.DENSITY_PLOT, "Density Plot", "univariate", (_req("x_axis", "Value", NUMERICAL),)),
        ChartSpec(ChartKind.BOX_PLOT, "Box Plot", "univariate", (_req("y_axis", "Value", NUMERICAL),)),
        ChartSpec(ChartKind.PIE_CHART, "Pie Chart", "univariate", (_req("names", "Category", CATEGORICAL),)),
        ChartSpec(
            ChartKind.SCATTER,
            "Scatter Plot",
            "bivariate",
            (_req("x_axis", "X Axis", NUMERICAL), _req("y_axis", "Y Axis", NUMERICAL)),
        ),
        ChartSpec(
            ChartKind.LINE_CHART,
            "Line Chart",
            "bivariate",
            (
                _req("x_axis", "X Axis", NUMERICAL, optional=True),
                _req("y_axis", "Y Axis", NUMERICAL, optional=True),
                _req("time_axis", "Time Axis", TEMPORAL, optional=True),
            ),
        ),
        ChartSpec(
            ChartKind.AREA_CHART,
            "Area Chart",
            "bivariate",
            (_req("time_axis", "Time Axis", TEMPORAL), _req("y_axis", "Value", NUMERICAL)),
        ),
        ChartSpec(
            ChartKind.BAR_CHART,
            "Bar Chart",
            "bivariate",
            (_req("x_axis", "X Axis", *ANY_TYPE), _req("y_axis", "Y Axis", *ANY_TYPE)),
        ),
        ChartSpec(
            ChartKind.VIOLIN_PLOT,
            "Violin Plot",
            "bivariate",
            (_req("x_axis", "X Axis", *ANY_TYPE), _req("y_axis", "Y Axis", *ANY_TYPE)),
        ),
        ChartSpec(
            ChartKind.HEXBIN_PLOT,
            "Hexbin Plot",
            "bivariate",
            (_req("x_axis", "X Axis", NUMERICAL), _req("y_axis", "Y Axis", NUMERICAL)),
        ),
        ChartSpec(
            ChartKind.BUBBLE_CHART,
            "Bubble Chart",
            "multivariate",
            (
                _req("x_axis", "X Axis", NUMERICAL),
                _req("y_axis", "Y Axis", NUMERICAL),
                _req("size", "Bubble Size", NUMERICAL),
            ),
        ),
        ChartSpec(
            ChartKind.STACKED_BAR_CHART,
            "Stacked Bar Chart",
            "multivariate",
            (
                _req("x_axis", "X Axis", *ANY_TYPE),
                _req("y_axis", "Y Axis", *ANY_TYPE),
                _req("color", "Stack By", *ANY_TYPE),
            ),
        ),
        ChartSpec(
            ChartKind.HEATMAP,
            "Correlation Heatmap",
            "multivariate",
            (_req("columns", "Columns", NUMERICAL, multi=True, min_count=2),),
        ),
    )
}

ONE_NUMERIC_ONE_GROUP = (ChartKind.BAR_CHART, ChartKind.STACKED_BAR_CHART, ChartKind.VIOLIN_PLOT)


def charts_for(analysis: str) -> List[ChartSpec]:
    return [spec for spec in CATALOG.values() if spec.analysis == analysis]


def _column_type(metadata: ProjectMetadata, column: str) -> str:
    declared = metadata.column_type(column)
    if declared is None:
        raise MappingError(f"Column {column!r} does not exist in this project.")
    return declared


def validate_mapping(kind: Any, mapping: Mapping[str, Any], metadata: ProjectMetadata) -> Dict[str, Any]:
    """Check a role -> column(s) mapping for ``kind``; returns the cleaned mapping."""
    kind = ChartKind.parse(kind.value if isinstance(kind, ChartKind) else kind)
    spec = CATALOG[kind]
    known = {req.role for req in spec.requires}
    cleaned: Dict[str, Any] = {}

    for role, value in mapping.items():
        if role not in known:
            raise MappingError(f"{spec.label} has no {role!r} role.")
        if value in (None, "", []):
            continue
        cleaned[role] = list(value) if isinstance(value, (list, tuple)) else str(value)

    for req in spec.requires:
        value = cleaned.get(req.role)
        if value is None:
            if not req.optional:
                raise MappingError("Please complete all required column mappings.")
            continue
        columns = value if isinstance(value, list) else [value]
        if req.multi and len(columns) < req.min_count:
            raise MappingError(f"{req.label} needs at least {req.min_count} columns.")
        if not req.multi and isinstance(value, list):
            raise MappingError(f"{req.label} takes a single column.")
        for column in columns:
            declared = _column_type(metadata, column)
            if declared not in req.types:
                raise MappingError(f"{req.label} must be {' or '.join(req.types)}; {column!r} is {declared}.")

    if kind == ChartKind.LINE_CHART:
        has_x, has_y, has_time = ("x_axis" in cleaned), ("y_axis" in cleaned), ("time_axis" in cleaned)
        if not ((has_x and has_y and not has_time) or (has_time and (has_x != has_y))):
            raise MappingError(
                "Line Chart requires either two Numerical Axes OR one Temporal Axis and one Numerical Axis."
            )

    if kind in ONE_NUMERIC_ONE_GROUP:
        x_type = _column_type(metadata, cleaned["x_axis"])
        y_type = _column_type(metadata, cleaned["y_axis"])
        if x_type == NUMERICAL and y_type == NUMERICAL:
            raise MappingError(
                "Bar/Violin Chart requires one Numerical and one Categorical/Temporal column. "
                "Cannot select two Numerical columns."
            )
        if x_type in GROUPING and y_type in GROUPING:
            raise MappingError(
                "Bar/Violin Chart requires one Numerical and one Categorical/Temporal column. "
                "Cannot select two Categorical/Temporal columns."
            )

    if kind == ChartKind.STACKED_BAR_CHART and _column_type(metadata, cleaned["color"]) != CATEGORICAL:
        raise MappingError("Color/Stack By column must be categorical.")

    return cleaned


def default_title(kind: Any, mapping: Mapping[str, Any]) -> str:
    kind_name = kind.value if isinstance(kind, ChartKind) else str(kind)
    subject = mapping.get("x_axis") or mapping.get("names") or "Data"
    if isinstance(subject, list):
        subject = ", ".join(subject)
    return f"{kind_name} of {subject}"


__all__ = [
    "ChartKind",
    "RoleRequirement",
    "ChartSpec",
    "CATALOG",
    "charts_for",
    "validate_mapping",
    "default_title",
]
