"""Chart endpoints: catalogue, generation, export import and tuning."""

from __future__ import annotations

from flask import jsonify

from workbench.charts.catalog import CATALOG, ChartKind
from workbench.charts.chart import Chart
from workbench.charts.hypertune import sections_for
from workbench.errors import ValidationError

from . import bp, get_sessions
from .helpers import json_body, require


def _option(o):
    return {
        "key": o.key,
        "label": o.label,
        "control": o.control,
        "default": o.default,
        "choices": list(o.choices),
        "regenerates": o.regenerates,
    }


@bp.route("/catalog/charts", methods=["GET"])
def chart_catalog():
    out = []
    for kind, spec in CATALOG.items():
        out.append(
            {
                "key": kind.value,
                "label": spec.label,
                "analysis": spec.analysis,
                "requires": [
                    {
                        "role": r.role,
                        "label": r.label,
                        "types": list(r.types),
                        "multi": r.multi,
                        "min_count": r.min_count,
                        "optional": r.optional,
                    }
                    for r in spec.requires
                ],
                "tuning": {
                    name: [_option(o) for o in group] for name, group in sections_for(kind).items()
                },
            }
        )
    return jsonify({"charts": out})


@bp.route("/dashboards/<session_id>/charts", methods=["POST"])
def add_chart(session_id: str):
    payload = json_body()
    session = get_sessions().get(session_id)
    exported = payload.get("export")
    if exported is not None:
        if not isinstance(exported, dict):
            raise ValidationError("'export' must be a chart configuration object.")
        chart = Chart.from_export(exported, session.project_id)
        ChartKind.parse(chart.chart_type)
        if chart.chart_payload is None:
            raise ValidationError("Exported chart carries no chart data.")
        chart = session.add_chart(chart)
    else:
        columns = payload.get("columns") or {}
        if not isinstance(columns, dict):
            raise ValidationError("'columns' must map roles to columns.")
        chart = session.generate_chart(
            str(require(payload, "chart_type")),
            columns,
            payload.get("hypertune_params") or {},
        )
    return jsonify(chart.render()), 201


@bp.route("/dashboards/<session_id>/charts/<chart_id>", methods=["GET"])
def chart_state(session_id: str, chart_id: str):
    return jsonify(get_sessions().get(session_id).chart(chart_id).render())


@bp.route("/dashboards/<session_id>/charts/<chart_id>/tuning", methods=["POST"])
def tune_chart(session_id: str, chart_id: str):
    params = json_body().get("params") or {}
    if not isinstance(params, dict):
        raise ValidationError("'params' must be an object.")
    session = get_sessions().get(session_id)
    regenerated = session.tune_chart(chart_id, params)
    return jsonify({"regenerated": regenerated, "chart": session.chart(chart_id).render()})
