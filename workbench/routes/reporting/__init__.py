"""Reporting dashboard blueprint package."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("reporting", __name__)


def get_api():
    from flask import current_app

    return current_app.extensions["api"]


def get_sessions():
    from flask import current_app

    return current_app.extensions["sessions"]


from . import charts, dashboards, health, layout, slicers  # noqa: E402,F401

__all__ = ["bp", "get_api", "get_sessions"]
