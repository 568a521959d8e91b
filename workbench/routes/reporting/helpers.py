"""Shared helper functions for reporting routes."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from flask import jsonify, request

from workbench.errors import ValidationError, WorkbenchError


def bearer_token() -> Optional[str]:
    """The caller's Authorization header, forwarded as-is to the API."""
    return request.headers.get("Authorization") or None


def json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def require(payload: Dict[str, Any], key: str) -> Any:
    value = payload.get(key)
    if value in (None, ""):
        raise ValidationError(f"Missing {key!r}.")
    return value


def string_list(payload: Dict[str, Any], key: str) -> Optional[List[str]]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{key!r} must be a list.")
    return [str(v) for v in value]


def error_response(exc: WorkbenchError):
    return jsonify(exc.to_dict()), exc.status_code


__all__ = ["bearer_token", "json_body", "require", "string_list", "error_response"]
