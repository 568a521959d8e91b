"""Project metadata as returned by the workbench API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

NUMERICAL = "numerical"
CATEGORICAL = "categorical"
TEMPORAL = "temporal"


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    type: str
    missing_count: int = 0
    unique_values: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ColumnDescriptor":
        unique = raw.get("unique_values")
        return cls(
            name=str(raw["name"]),
            type=str(raw.get("type") or "").lower(),
            missing_count=int(raw.get("missing_count") or 0),
            unique_values=int(unique) if isinstance(unique, (int, float)) else None,
        )


@dataclass(frozen=True)
class ProjectMetadata:
    """Ordered column descriptors plus row/column counts for one project."""

    project_id: str
    rows: int = 0
    cols: int = 0
    columns: Tuple[ColumnDescriptor, ...] = field(default_factory=tuple)
    title: str = ""

    @classmethod
    def from_project(cls, project: Mapping[str, Any]) -> "ProjectMetadata":
        meta = project.get("metadata_json") or {}
        columns = tuple(ColumnDescriptor.from_dict(c) for c in meta.get("metadata") or [])
        return cls(
            project_id=str(project.get("id", "")),
            rows=int(meta.get("rows") or 0),
            cols=int(meta.get("cols") or len(columns)),
            columns=columns,
            title=str(project.get("title") or ""),
        )

    def column(self, name: str) -> Optional[ColumnDescriptor]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def column_type(self, name: str) -> Optional[str]:
        col = self.column(name)
        return col.type if col else None

    def names(self, of_type: Optional[str] = None) -> List[str]:
        return [c.name for c in self.columns if of_type is None or c.type == of_type]

    def missing_columns(self) -> List[ColumnDescriptor]:
        return [c for c in self.columns if c.missing_count > 0]

    def total_missing(self) -> int:
        return sum(c.missing_count for c in self.columns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "title": self.title,
            "rows": self.rows,
            "cols": self.cols,
            "metadata": [
                {
                    "name": c.name,
                    "type": c.type,
                    "missing_count": c.missing_count,
                    "unique_values": c.unique_values,
                }
                for c in self.columns
            ],
        }


__all__ = [
    "NUMERICAL",
    "CATEGORICAL",
    "TEMPORAL",
    "ColumnDescriptor",
    "ProjectMetadata",
]
