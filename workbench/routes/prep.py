"""Data-preparation endpoints: impute, remove, recode and outlier handling."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify

from workbench.errors import ValidationError
from workbench.services.prep import PrepConsole

from .reporting import get_api
from .reporting.helpers import bearer_token, json_body, require, string_list

prep_bp = Blueprint("prep", __name__, url_prefix="/projects/<project_id>/prep")
logger = logging.getLogger("workbench.prep")


def _console(project_id: str) -> PrepConsole:
    api = get_api()
    token = bearer_token()
    metadata = api.project_metadata(project_id, token)
    return PrepConsole(api, project_id, metadata, token)


@prep_bp.route("/columns", methods=["GET"])
def columns(project_id: str):
    metadata = get_api().project_metadata(project_id, bearer_token())
    return jsonify(
        {
            "columns": [c.name for c in metadata.columns],
            "missing": [c.name for c in metadata.missing_columns()],
            "total_missing": metadata.total_missing(),
            "metadata": metadata.to_dict(),
        }
    )


@prep_bp.route("/impute", methods=["POST"])
def impute(project_id: str):
    payload = json_body()
    result = _console(project_id).impute(
        str(require(payload, "column")),
        str(require(payload, "method")),
        payload.get("constant_value"),
    )
    logger.info("Imputed %s in project %s", payload["column"], project_id)
    return jsonify(result)


@prep_bp.route("/remove-column", methods=["POST"])
def remove_column(project_id: str):
    payload = json_body()
    result = _console(project_id).remove_column(str(require(payload, "column")))
    logger.info("Removed %s from project %s", payload["column"], project_id)
    return jsonify(result)


@prep_bp.route("/detect-outliers", methods=["POST"])
def detect_outliers(project_id: str):
    payload = json_body()
    return jsonify(_console(project_id).detect_outliers(str(require(payload, "column"))))


@prep_bp.route("/treat-outliers", methods=["POST"])
def treat_outliers(project_id: str):
    payload = json_body()
    result = _console(project_id).treat_outliers(
        str(require(payload, "column")), str(require(payload, "method"))
    )
    return jsonify(result)


@prep_bp.route("/recode", methods=["POST"])
def recode(project_id: str):
    payload = json_body()
    old_values = string_list(payload, "old_values")
    if old_values is None:
        raise ValidationError("Missing 'old_values'.")
    result = _console(project_id).recode(
        str(require(payload, "column")), old_values, str(payload.get("new_value") or "")
    )
    return jsonify(result)


@prep_bp.route("/bulk-impute", methods=["POST"])
def bulk_impute(project_id: str):
    payload = json_body()
    constants = payload.get("constants") or {}
    if not isinstance(constants, dict):
        raise ValidationError("'constants' must map column types to values.")
    result = _console(project_id).bulk_impute(
        str(payload.get("strategy") or ""),
        string_list(payload, "columns"),
        constants,
    )
    return jsonify(result.to_dict()), (200 if result.ok else 502)


@prep_bp.route("/bulk-outliers", methods=["POST"])
def bulk_outliers(project_id: str):
    payload = json_body()
    result = _console(project_id).bulk_treat_outliers(
        str(payload.get("method") or ""), string_list(payload, "columns")
    )
    return jsonify(result.to_dict()), (200 if result.ok else 502)


__all__ = ["prep_bp"]
