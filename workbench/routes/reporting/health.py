"""Healthcheck endpoint."""

from __future__ import annotations

from flask import current_app, jsonify

from . import bp, get_sessions


@bp.route("/health", methods=["GET"])
def health():
    return (
        jsonify(
            {
                "ok": True,
                "dashboards": len(get_sessions()),
                "api_url": current_app.config["API_URL"],
                "count_backend": current_app.config["COUNT_BACKEND"],
            }
        ),
        200,
    )
