"""Saved charts placed on a dashboard."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from workbench.charts.catalog import default_title


@dataclass
class Chart:
    """A generated chart plus the state needed to retitle and retune it.

    ``base_payload`` is the last payload returned by the chart service;
    ``chart_payload`` is what is currently shown (base plus cosmetic tuning).
    """

    chart_type: str
    column_mapping: Dict[str, Any]
    chart_payload: Any
    project_id: str = ""
    hypertune_params: Dict[str, Any] = field(default_factory=dict)
    analysis_text: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    base_payload: Any = None
    count: Optional[int] = None

    def __post_init__(self) -> None:
        if self.base_payload is None:
            self.base_payload = copy.deepcopy(self.chart_payload)

    @classmethod
    def from_export(cls, config: Mapping[str, Any], project_id: str = "") -> "Chart":
        """Build a chart from the config the visualization console exports."""
        payload = config.get("chartData", config.get("chart_payload"))
        kwargs: Dict[str, Any] = {
            "chart_type": str(config.get("chartType") or config.get("chart_type") or ""),
            "column_mapping": dict(config.get("columnMapping") or config.get("column_mapping") or {}),
            "chart_payload": payload,
            "project_id": str(config.get("projectId") or config.get("project_id") or project_id),
            "hypertune_params": dict(config.get("hypertuneParams") or config.get("hypertune_params") or {}),
            "analysis_text": str(config.get("analysisText") or config.get("analysis_text") or ""),
        }
        if config.get("id") is not None:
            kwargs["id"] = str(config["id"])
        return cls(**kwargs)

    @property
    def is_image(self) -> bool:
        return isinstance(self.chart_payload, str) and self.chart_payload.startswith("data:image")

    def base_title(self) -> str:
        custom = self.hypertune_params.get("custom_title")
        if custom:
            return str(custom)
        return default_title(self.chart_type, self.column_mapping)

    def display_title(self, count: Optional[int] = None) -> str:
        count = self.count if count is None else count
        base = self.base_title()
        return base if count is None else f"{base} (n={count})"

    def render(self) -> Dict[str, Any]:
        """Payload for the browser with the row-count title overlaid."""
        title = self.display_title()
        out: Dict[str, Any] = {
            "id": self.id,
            "chart_type": self.chart_type,
            "column_mapping": self.column_mapping,
            "hypertune_params": self.hypertune_params,
            "analysis_text": self.analysis_text,
            "count": self.count,
            "title": title,
        }
        if isinstance(self.chart_payload, Mapping):
            payload = dict(self.chart_payload)
            layout = dict(payload.get("layout") or {})
            layout["title"] = {"text": title, "font": {"size": 14}}
            payload["layout"] = layout
            out["chart_data"] = payload
        else:
            out["chart_data"] = self.chart_payload
        return out


__all__ = ["Chart"]
