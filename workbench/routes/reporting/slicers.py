"""Slicer endpoints: add, rebind, edit, clear and link."""

from __future__ import annotations

from flask import jsonify

from workbench.errors import ValidationError

from . import bp, get_sessions
from .helpers import json_body, require, string_list


@bp.route("/dashboards/<session_id>/slicers", methods=["POST"])
def add_slicer(session_id: str):
    payload = json_body()
    session = get_sessions().get(session_id)
    widget = session.add_slicer(str(require(payload, "kind")), payload.get("data_type"))
    return jsonify(widget.render()), 201


@bp.route("/dashboards/<session_id>/slicers/<slicer_id>", methods=["GET"])
def slicer_state(session_id: str, slicer_id: str):
    return jsonify(get_sessions().get(session_id).widget(slicer_id).render())


@bp.route("/dashboards/<session_id>/slicers/<slicer_id>/column", methods=["PUT"])
def reconfigure_slicer(session_id: str, slicer_id: str):
    payload = json_body()
    session = get_sessions().get(session_id)
    column = payload.get("column") or None
    widget = session.reconfigure_slicer(
        slicer_id,
        str(column) if column is not None else None,
        payload.get("data_type"),
        columns=string_list(payload, "columns"),
        linked_chart_ids=string_list(payload, "linked_chart_ids"),
    )
    return jsonify({"widget": widget.render(), "titles": session.titles()})


@bp.route("/dashboards/<session_id>/slicers/<slicer_id>/input", methods=["POST"])
def slicer_input(session_id: str, slicer_id: str):
    payload = json_body()
    if "input" not in payload:
        raise ValidationError("Missing 'input'.")
    session = get_sessions().get(session_id)
    out = session.slicer_input(slicer_id, payload["input"])
    out["titles"] = session.titles()
    return jsonify(out)


@bp.route("/dashboards/<session_id>/slicers/<slicer_id>/value", methods=["PUT"])
def set_slicer_value(session_id: str, slicer_id: str):
    payload = json_body()
    if "value" not in payload:
        raise ValidationError("Missing 'value'.")
    session = get_sessions().get(session_id)
    session.set_slicer_value(slicer_id, payload["value"])
    return jsonify({"widget": session.widget(slicer_id).render(), "titles": session.titles()})


@bp.route("/dashboards/<session_id>/slicers/<slicer_id>/clear", methods=["POST"])
def clear_slicer(session_id: str, slicer_id: str):
    session = get_sessions().get(session_id)
    session.clear_slicer(slicer_id)
    return jsonify({"widget": session.widget(slicer_id).render(), "titles": session.titles()})


@bp.route("/dashboards/<session_id>/slicers/<slicer_id>/links", methods=["PUT"])
def link_slicer(session_id: str, slicer_id: str):
    payload = json_body()
    chart_ids = string_list(payload, "chart_ids")
    if chart_ids is None:
        raise ValidationError("Missing 'chart_ids'.")
    session = get_sessions().get(session_id)
    session.link_slicer(slicer_id, chart_ids)
    return jsonify({"widget": session.widget(slicer_id).render(), "titles": session.titles()})
