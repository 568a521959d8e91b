# filter_params.py
import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

Bound = Optional[float]


def _quote(col: str) -> str:
    return '"' + str(col).replace('"', '""') + '"'


@dataclass(frozen=True)
class FilterDescriptor:
    """Combined AND of every slicer on a dashboard.

    ``selections`` holds categorical IN-sets, ``ranges`` inclusive numeric
    bounds, ``column_sets`` the picks of column selectors keyed by slicer id.
    Column sets never narrow rows; they only travel with the descriptor so the
    charts they drive can read them.
    """

    selections: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    ranges: Dict[str, Tuple[Bound, Bound]] = field(default_factory=dict)
    column_sets: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    # -------- combination --------
    def with_selection(self, column: str, values: Iterable[Any]) -> "FilterDescriptor":
        """AND an ``column IN values`` term. Two terms on a column intersect."""
        incoming = {str(v) for v in values if v is not None}
        if column in self.selections:
            incoming &= set(self.selections[column])
        selections = dict(self.selections)
        selections[column] = tuple(sorted(incoming))
        return replace(self, selections=selections)

    def with_range(self, column: str, lo: Bound, hi: Bound) -> "FilterDescriptor":
        """AND an inclusive ``lo <= column <= hi`` term using the set bounds."""
        if lo is None and hi is None:
            return self
        if column in self.ranges:
            cur_lo, cur_hi = self.ranges[column]
            lo = cur_lo if lo is None else (lo if cur_lo is None else max(lo, cur_lo))
            hi = cur_hi if hi is None else (hi if cur_hi is None else min(hi, cur_hi))
        ranges = dict(self.ranges)
        ranges[column] = (lo, hi)
        return replace(self, ranges=ranges)

    def with_column_set(self, slicer_id: str, columns: Iterable[str]) -> "FilterDescriptor":
        column_sets = dict(self.column_sets)
        column_sets[slicer_id] = tuple(sorted({str(c) for c in columns}))
        return replace(self, column_sets=column_sets)

    # -------- inspection / serialization --------
    @property
    def is_empty(self) -> bool:
        return not (self.selections or self.ranges or self.column_sets)

    @property
    def filters_rows(self) -> bool:
        return bool(self.selections or self.ranges)

    def to_payload(self) -> Dict[str, Any]:
        """Row constraints in the shape the filtered-count service expects."""
        return {
            "selections": {col: list(self.selections[col]) for col in sorted(self.selections)},
            "ranges": {
                col: {"min": self.ranges[col][0], "max": self.ranges[col][1]}
                for col in sorted(self.ranges)
            },
        }

    def to_dict(self) -> Dict[str, Any]:
        out = self.to_payload()
        out["column_sets"] = {k: list(self.column_sets[k]) for k in sorted(self.column_sets)}
        return out

    def cache_key(self) -> str:
        return json.dumps(self.to_payload(), sort_keys=True, separators=(",", ":"))

    # -------- pandas path --------
    def apply(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Return the rows of ``df`` matching the row constraints (pandas).

        Categorical columns are compared as strings, range columns are coerced
        to numbers; values that fail to coerce never match a bound.
        """
        out = df

        for col, vals in self.selections.items():
            if col in out.columns:
                out = out[out[col].astype(str).isin(list(vals))]

        for col, (lo, hi) in self.ranges.items():
            if col not in out.columns:
                continue
            series = pd.to_numeric(out[col], errors="coerce")
            mask = series.notna()
            if lo is not None:
                mask &= series >= lo
            if hi is not None:
                mask &= series <= hi
            out = out[mask]

        return out

    # -------- SQL helpers --------
    def to_sql_where(
        self,
        available_columns: Optional[Iterable[str]] = None,
    ) -> Tuple[str, List[Any]]:
        """
        Build a safe SQL WHERE clause and its parameters (DuckDB compatible).

        INTERSECTION (AND) of:
          - categorical selections as IN-lists over VARCHAR casts
          - numeric ranges (inclusive) over DOUBLE casts
        """
        where: List[str] = []
        params: List[Any] = []

        cols = set(available_columns) if available_columns is not None else None

        for col in sorted(self.selections):
            if cols is not None and col not in cols:
                continue
            vals = self.selections[col]
            if not vals:
                where.append("FALSE")
                continue
            placeholders = ",".join(["?"] * len(vals))
            where.append(f"CAST({_quote(col)} AS VARCHAR) IN ({placeholders})")
            params.extend(vals)

        for col in sorted(self.ranges):
            if cols is not None and col not in cols:
                continue
            lo, hi = self.ranges[col]
            expr = f"TRY_CAST({_quote(col)} AS DOUBLE)"
            if lo is not None and hi is not None:
                where.append(f"{expr} BETWEEN ? AND ?")
                params.extend([lo, hi])
            elif lo is not None:
                where.append(f"{expr} >= ?")
                params.append(lo)
            elif hi is not None:
                where.append(f"{expr} <= ?")
                params.append(hi)

        clause = " AND ".join(where) if where else "1=1"
        return clause, params


NO_FILTER = FilterDescriptor()

__all__ = ["Bound", "FilterDescriptor", "NO_FILTER"]
