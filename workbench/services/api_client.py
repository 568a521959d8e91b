"""HTTP client for the remote workbench API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import requests

from workbench.errors import RequestError
from workbench.services.metadata import ProjectMetadata

logger = logging.getLogger("workbench.api")


class ApiClient:
    """Shape and issue every request the dashboard makes to the API.

    The client never interprets statistics or chart geometry; it only builds
    request bodies, forwards the caller's bearer token and unwraps the
    documented response fields.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    # ---------- transport ----------

    def _headers(self, token: Optional[str]) -> Dict[str, str]:
        if not token:
            return {}
        if token.lower().startswith("bearer "):
            return {"Authorization": token}
        return {"Authorization": f"Bearer {token}"}

    def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self.session.request(
                method, url, headers=self._headers(token), json=json, timeout=self.timeout
            )
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            detail = _error_detail(e.response)
            logger.warning("%s %s failed with %s: %s", method, path, status, detail)
            raise RequestError(detail or f"Request to {path} failed.", status=status, detail=detail) from e
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise RequestError(f"Could not reach the workbench API ({path}).") from e
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise RequestError(f"Request to {path} failed.") from e

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise RequestError(f"Malformed response from {path}.", status=resp.status_code) from e

    # ---------- projects ----------

    def get_project(self, project_id: str, token: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", f"/projects/{_segment(project_id)}/", token)

    def project_metadata(self, project_id: str, token: Optional[str] = None) -> ProjectMetadata:
        project = self.get_project(project_id, token)
        project.setdefault("id", project_id)
        return ProjectMetadata.from_project(project)

    def unique_values(self, project_id: str, column: str, token: Optional[str] = None) -> List[str]:
        path = f"/projects/{_segment(project_id)}/unique-values/{_segment(column)}/"
        data = self._request("GET", path, token)
        return [str(v) for v in data.get("unique_values") or []]

    def raw_data(self, project_id: str, token: Optional[str] = None) -> List[Dict[str, Any]]:
        data = self._request("GET", f"/projects/{_segment(project_id)}/raw-data/", token)
        return list(data.get("raw_data") or [])

    def filtered_count(
        self, project_id: str, payload: Mapping[str, Any], token: Optional[str] = None
    ) -> int:
        path = f"/projects/{_segment(project_id)}/filtered-count/"
        data = self._request("POST", path, token, json=payload)
        try:
            return int(data["count"])
        except (KeyError, TypeError, ValueError) as e:
            raise RequestError("Filtered-count response carried no integer count.") from e

    # ---------- charts ----------

    def generate_chart(
        self,
        project_id: str,
        chart_type: str,
        columns: Mapping[str, Any],
        hypertune_params: Mapping[str, Any],
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "project_id": project_id,
            "chart_type": chart_type,
            "columns": dict(columns),
            "hypertune_params": dict(hypertune_params),
        }
        data = self._request("POST", "/generate-chart/", token, json=payload)
        if "chart_data" not in data:
            raise RequestError("Chart service returned no chart data.")
        return {"chart_data": data["chart_data"], "analysis_text": data.get("analysis_text") or ""}

    # ---------- data preparation ----------

    def impute(
        self,
        project_id: str,
        column: str,
        method: str,
        constant_value: Any = None,
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "project_id": project_id,
            "column_name": column,
            "method": method,
            "constant_value": constant_value if method == "constant" else None,
        }
        return self._request("POST", "/projects/impute/", token, json=payload)

    def remove_column(self, project_id: str, column: str, token: Optional[str] = None) -> Dict[str, Any]:
        payload = {"project_id": project_id, "column_name": column}
        return self._request("POST", "/projects/remove-column/", token, json=payload)

    def detect_outliers(self, project_id: str, column: str, token: Optional[str] = None) -> Dict[str, Any]:
        payload = {"project_id": project_id, "column_name": column}
        return self._request("POST", "/projects/detect-outliers/", token, json=payload)

    def treat_outliers(
        self, project_id: str, column: str, method: str, token: Optional[str] = None
    ) -> Dict[str, Any]:
        payload = {"project_id": project_id, "column_name": column, "method": method}
        return self._request("POST", "/projects/treat-outliers/", token, json=payload)

    def recode_column(
        self,
        project_id: str,
        column: str,
        recode_map: Mapping[str, str],
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {"project_id": project_id, "column_name": column, "recode_map": dict(recode_map)}
        return self._request("POST", "/recode-column/", token, json=payload)


def _segment(value: Any) -> str:
    """Quote one path segment so slashes and query characters stay inside it."""
    return quote(str(value), safe="")


def _error_detail(resp: Optional[requests.Response]) -> Optional[str]:
    if resp is None:
        return None
    try:
        body = resp.json()
    except ValueError:
        return resp.text or None
    if isinstance(body, dict):
        for key in ("detail", "error", "message"):
            if body.get(key):
                return str(body[key])
    return None


__all__ = ["ApiClient"]
