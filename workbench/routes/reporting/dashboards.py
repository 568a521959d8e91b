"""Dashboard mount/unmount and read-only views."""

from __future__ import annotations

from flask import jsonify

from . import bp, get_sessions
from .helpers import bearer_token, json_body, require


@bp.route("/dashboards", methods=["POST"])
def mount_dashboard():
    payload = json_body()
    project_id = str(require(payload, "project_id"))
    session = get_sessions().open(project_id, bearer_token())
    return jsonify(session.snapshot()), 201


@bp.route("/dashboards/<session_id>", methods=["GET"])
def dashboard_state(session_id: str):
    return jsonify(get_sessions().get(session_id).snapshot())


@bp.route("/dashboards/<session_id>", methods=["DELETE"])
def unmount_dashboard(session_id: str):
    get_sessions().close(session_id)
    return jsonify({"ok": True})


@bp.route("/dashboards/<session_id>/titles", methods=["GET"])
def chart_titles(session_id: str):
    session = get_sessions().get(session_id)
    return jsonify({"titles": session.titles(), "errors": dict(session.bindings.errors)})


@bp.route("/dashboards/<session_id>/filters", methods=["GET"])
def combined_filters(session_id: str):
    return jsonify(get_sessions().get(session_id).filters())


@bp.route("/dashboards/<session_id>/items/<item_id>", methods=["DELETE"])
def remove_item(session_id: str, item_id: str):
    session = get_sessions().get(session_id)
    session.remove_item(item_id)
    return jsonify({"ok": True, "titles": session.titles()})
