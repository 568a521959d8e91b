"""Grid layout updates."""

from __future__ import annotations

from flask import jsonify

from workbench.errors import ValidationError

from . import bp, get_sessions
from .helpers import json_body


@bp.route("/dashboards/<session_id>/layout", methods=["PUT"])
def update_layout(session_id: str):
    session = get_sessions().get(session_id)
    entries = json_body().get("layout")
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise ValidationError("'layout' must be a list of grid items.")
    return jsonify({"layout": session.update_layout(entries)})


@bp.route("/dashboards/<session_id>/items/<item_id>", methods=["PATCH"])
def place_item(session_id: str, item_id: str):
    session = get_sessions().get(session_id)
    return jsonify(session.place_item(item_id, json_body()))
