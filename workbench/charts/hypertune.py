"""Chart tuning: a closed option schema per chart kind and the
regenerate-vs-restyle split.

Options that change computed geometry (binning, hexbin grid, palette
assignment) need the chart service to run again. Everything else is applied
to a copy of the last payload the service returned.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from workbench.charts.catalog import ChartKind
from workbench.charts.chart import Chart
from workbench.errors import ValidationError

logger = logging.getLogger("workbench.charts")

# Effects
TITLE = "title"
PALETTE = "palette"
BINNING = "binning"
GRID = "grid"
MARKER = "marker"
LINE = "line"
LAYOUT = "layout"
AXIS_RANGE = "axis_range"

REGENERATING_EFFECTS = frozenset({PALETTE, BINNING, GRID})

LINE_STYLES = ("solid", "dot", "dash", "longdash", "dashdot", "longdashdot")
BAR_MODES = ("group", "stack", "overlay", "relative")
PALETTES = ("plotly", "viridis", "cividis", "plasma", "pastel", "dark24", "set2")


@dataclass(frozen=True)
class TuningOption:
    key: str
    label: str
    control: str
    effect: str
    default: Any = None
    choices: Tuple[str, ...] = ()

    @property
    def regenerates(self) -> bool:
        return self.effect in REGENERATING_EFFECTS


CUSTOM_TITLE = TuningOption("custom_title", "Chart Title", "text", TITLE, "")
COLOR_PALETTE = TuningOption("color_palette", "Color Palette", "select", PALETTE, "plotly", PALETTES)
NBINS = TuningOption("nbins", "Number of Bins", "number_input", BINNING, "")
GRIDSIZE = TuningOption("gridsize", "Grid Size", "number_input", GRID, 30)
MARKER_SIZE = TuningOption("marker_size", "Marker Size", "range_input", MARKER, 8)
OPACITY = TuningOption("opacity", "Opacity", "range_input", MARKER, 0.8)
LINE_WIDTH = TuningOption("line_width", "Line Width", "range_input", LINE, 2)
LINE_STYLE = TuningOption("line_style", "Line Style", "select", LINE, "solid", LINE_STYLES)
BARMODE = TuningOption("barmode", "Bar Mode", "select", LAYOUT, "group", BAR_MODES)

AXIS_SCALING = tuple(
    TuningOption(f"{axis}_range_{end}", f"{axis.upper()} Axis {end.title()}", "number_input", AXIS_RANGE, "")
    for axis in ("x", "y")
    for end in ("min", "max")
)

_AXES = (
    ChartKind.HISTOGRAM,
    ChartKind.SCATTER,
    ChartKind.BUBBLE_CHART,
    ChartKind.LINE_CHART,
    ChartKind.AREA_CHART,
    ChartKind.BAR_CHART,
    ChartKind.VIOLIN_PLOT,
    ChartKind.DENSITY_PLOT,
    ChartKind.HEXBIN_PLOT,
)

_SPECIFIC: Dict[ChartKind, Tuple[TuningOption, ...]] = {
    ChartKind.HISTOGRAM: (NBINS,),
    ChartKind.SCATTER: (MARKER_SIZE, OPACITY),
    ChartKind.BUBBLE_CHART: (MARKER_SIZE, OPACITY),
    ChartKind.LINE_CHART: (LINE_STYLE, LINE_WIDTH, OPACITY),
    ChartKind.AREA_CHART: (LINE_STYLE, LINE_WIDTH, OPACITY),
    ChartKind.BAR_CHART: (BARMODE,),
    ChartKind.STACKED_BAR_CHART: (BARMODE,),
    ChartKind.HEXBIN_PLOT: (GRIDSIZE,),
}

_NO_PALETTE = (ChartKind.HEATMAP,)


def options_for(kind: ChartKind) -> Tuple[TuningOption, ...]:
    general = (CUSTOM_TITLE,) if kind in _NO_PALETTE else (CUSTOM_TITLE, COLOR_PALETTE)
    axes = AXIS_SCALING if kind in _AXES else ()
    return general + _SPECIFIC.get(kind, ()) + axes


def sections_for(kind: ChartKind) -> Dict[str, Tuple[TuningOption, ...]]:
    """Options grouped the way the tuning console lays them out."""
    opts = {o.key: o for o in options_for(kind)}
    sections = {
        "General Style": tuple(o for k, o in opts.items() if k in ("custom_title", "color_palette")),
        "Appearance": tuple(o for o in opts.values() if o.effect in (MARKER, LINE)),
        "Data / Layout Options": tuple(o for o in opts.values() if o.effect in (BINNING, GRID, LAYOUT)),
        "Axis Scaling (Override Auto)": tuple(o for o in opts.values() if o.effect == AXIS_RANGE),
    }
    return {name: group for name, group in sections.items() if group}


REGENERATION_KEYS = frozenset(o.key for o in (COLOR_PALETTE, NBINS, GRIDSIZE))


def validate_params(kind: ChartKind, params: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {o.key: o for o in options_for(kind)}
    unknown = sorted(set(params) - set(allowed))
    if unknown:
        raise ValidationError(f"Unsupported tuning options for {kind.value}: {', '.join(unknown)}.")
    for key, value in params.items():
        option = allowed[key]
        if option.choices and value not in (None, "") and value not in option.choices:
            raise ValidationError(f"{option.label} must be one of {', '.join(option.choices)}.")
    return dict(params)


def requires_regeneration(previous: Mapping[str, Any], params: Mapping[str, Any]) -> bool:
    return any(key in params and params[key] != previous.get(key) for key in REGENERATION_KEYS)


def _number(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool) or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(value) or math.isinf(value) else value


def is_declarative(payload: Any) -> bool:
    return isinstance(payload, Mapping) and "data" in payload and "layout" in payload


def apply_cosmetic_overrides(
    payload: Mapping[str, Any],
    params: Mapping[str, Any],
    kind: Optional[ChartKind] = None,
) -> Dict[str, Any]:
    """Return a restyled deep copy of ``payload``; the input is never touched."""
    out = copy.deepcopy(dict(payload))
    layout = out.setdefault("layout", {})
    traces = out.setdefault("data", [])
    supported = {o.key for o in options_for(kind)} if kind is not None else None

    def wants(key: str) -> bool:
        return supported is None or key in supported

    title = params.get("custom_title")
    if title not in (None, "") and wants("custom_title"):
        old = layout.get("title")
        layout["title"] = {"text": str(title)}
        if isinstance(old, dict) and old.get("font") is not None:
            layout["title"]["font"] = old["font"]

    for axis in ("x", "y"):
        keys = (f"{axis}_range_min", f"{axis}_range_max")
        if not wants(keys[0]) or not any(k in params for k in keys):
            continue
        lo, hi = (_number(params.get(k)) for k in keys)
        ax = layout.setdefault(f"{axis}axis", {})
        if lo is not None and hi is not None:
            ax["range"] = [lo, hi]
            ax["autorange"] = False
        else:
            ax.pop("range", None)
            ax["autorange"] = True

    if wants("barmode") and "barmode" in params:
        if params.get("barmode"):
            layout["barmode"] = params["barmode"]
        else:
            layout.pop("barmode", None)

    size = _number(params.get("marker_size")) if wants("marker_size") else None
    opacity = _number(params.get("opacity")) if wants("opacity") else None
    width = _number(params.get("line_width")) if wants("line_width") else None
    dash = params.get("line_style") if wants("line_style") else None
    trace_opacity = kind in (ChartKind.LINE_CHART, ChartKind.AREA_CHART)

    for trace in traces:
        if size is not None:
            trace.setdefault("marker", {})["size"] = size
        if opacity is not None:
            trace.setdefault("marker", {})["opacity"] = opacity
            if trace_opacity:
                trace["opacity"] = opacity
        if width is not None:
            trace.setdefault("line", {})["width"] = width
        if dash:
            trace.setdefault("line", {})["dash"] = dash

    return out


class ChartTuner:
    """Apply tuning params to a chart, regenerating only when needed."""

    def __init__(self, api: Any, token: Optional[str] = None):
        self.api = api
        self.token = token

    def apply_tuning(self, chart: Chart, params: Mapping[str, Any]) -> bool:
        """Returns True when the chart service was called again."""
        kind = ChartKind.parse(chart.chart_type)
        params = validate_params(kind, params)

        regenerate = requires_regeneration(chart.hypertune_params, params) or not is_declarative(
            chart.base_payload
        )
        if regenerate:
            result = self.api.generate_chart(
                chart.project_id, kind.value, chart.column_mapping, params, self.token
            )
            chart.base_payload = result["chart_data"]
            chart.analysis_text = result.get("analysis_text", chart.analysis_text)
            logger.info("Regenerated chart %s on the server.", chart.id)

        if is_declarative(chart.base_payload):
            chart.chart_payload = apply_cosmetic_overrides(chart.base_payload, params, kind)
        else:
            chart.chart_payload = chart.base_payload
        chart.hypertune_params = dict(params)
        return regenerate


__all__ = [
    "TuningOption",
    "REGENERATION_KEYS",
    "options_for",
    "sections_for",
    "validate_params",
    "requires_regeneration",
    "is_declarative",
    "apply_cosmetic_overrides",
    "ChartTuner",
]
