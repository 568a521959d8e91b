"""Shared filter state for one dashboard session."""

from __future__ import annotations

import logging
import math
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from workbench.errors import (
    InvalidColumnType,
    NotFound,
    SlicerNotConfigured,
    TypeMismatch,
    ValidationError,
)
from workbench.services.metadata import CATEGORICAL, NUMERICAL, ProjectMetadata
from workbench.utils.filter_params import NO_FILTER, Bound, FilterDescriptor

logger = logging.getLogger("workbench.reporting")

# -------------------------
# Slicer kinds and states
# -------------------------
CATEGORICAL_LIST = "categorical_list"
NUMERICAL_RANGE = "numerical_range"
COLUMN_SELECTOR = "column_selector"

ALLOWED_TYPES: Dict[str, Tuple[str, ...]] = {
    CATEGORICAL_LIST: (CATEGORICAL,),
    NUMERICAL_RANGE: (NUMERICAL,),
    COLUMN_SELECTOR: (NUMERICAL, CATEGORICAL),
}

UNCONFIGURED = "unconfigured"
CONFIGURED_EMPTY = "configured_empty"
CONFIGURED_ACTIVE = "configured_active"


@dataclass(frozen=True)
class NumericRange:
    """Inclusive numeric bounds; ``None`` on either side means unbounded."""

    min: Bound = None
    max: Bound = None

    @property
    def is_unbounded(self) -> bool:
        return self.min is None and self.max is None

    def to_dict(self) -> Dict[str, Bound]:
        return {"min": self.min, "max": self.max}


@dataclass
class Slicer:
    id: str
    kind: str
    data_type: str
    bound_column: Optional[str] = None
    value: Any = None
    linked_chart_ids: List[str] = field(default_factory=list)
    available_columns: Tuple[str, ...] = ()

    @property
    def configured(self) -> bool:
        if self.kind == COLUMN_SELECTOR:
            return bool(self.available_columns)
        return self.bound_column is not None

    @property
    def is_empty(self) -> bool:
        if self.kind == NUMERICAL_RANGE:
            return self.value.is_unbounded
        return not self.value

    def to_dict(self) -> Dict[str, Any]:
        if self.kind == NUMERICAL_RANGE:
            value: Any = self.value.to_dict()
        else:
            value = sorted(self.value)
        return {
            "id": self.id,
            "kind": self.kind,
            "data_type": self.data_type,
            "bound_column": self.bound_column,
            "available_columns": list(self.available_columns),
            "value": value,
            "linked_chart_ids": list(self.linked_chart_ids),
        }


@dataclass(frozen=True)
class FilterChange:
    """Emitted after a registry mutation has been fully applied."""

    slicer_id: str
    reason: str
    chart_ids: Tuple[str, ...] = ()


def empty_value(kind: str) -> Any:
    return NumericRange() if kind == NUMERICAL_RANGE else frozenset()


def parse_bound(raw: Any) -> Bound:
    """Parse one range bound. Blank means unbounded; junk raises ``ValueError``."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, bool):
        raise ValueError("booleans are not numeric bounds")
    value = float(raw)
    if math.isnan(value) or math.isinf(value):
        raise ValueError("bound must be finite")
    return value


class FilterRegistry:
    """Every slicer placed on a dashboard, its binding and its selection.

    Listeners registered with ``subscribe`` are called with a ``FilterChange``
    once a mutation is complete, never in the middle of one.
    """

    def __init__(self, metadata: ProjectMetadata):
        self.metadata = metadata
        self._slicers: "OrderedDict[str, Slicer]" = OrderedDict()
        self._listeners: List[Callable[[FilterChange], None]] = []

    # ---------- listeners ----------

    def subscribe(self, callback: Callable[[FilterChange], None]) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[FilterChange], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _emit(self, slicer_id: str, reason: str, chart_ids: Iterable[str]) -> None:
        change = FilterChange(slicer_id, reason, tuple(dict.fromkeys(chart_ids)))
        for callback in list(self._listeners):
            callback(change)

    # ---------- lookup ----------

    def get(self, slicer_id: str) -> Slicer:
        try:
            return self._slicers[slicer_id]
        except KeyError:
            raise NotFound(f"Unknown slicer {slicer_id!r}.") from None

    def __contains__(self, slicer_id: object) -> bool:
        return slicer_id in self._slicers

    def __len__(self) -> int:
        return len(self._slicers)

    def slicers(self) -> List[Slicer]:
        return list(self._slicers.values())

    def slicers_linked_to(self, chart_id: str) -> List[str]:
        return [s.id for s in self._slicers.values() if chart_id in s.linked_chart_ids]

    def state(self, slicer_id: str) -> str:
        slicer = self.get(slicer_id)
        if not slicer.configured:
            return UNCONFIGURED
        return CONFIGURED_EMPTY if slicer.is_empty else CONFIGURED_ACTIVE

    # ---------- validation ----------

    def validate_column(self, kind: str, column: str, data_type: str) -> None:
        """Raise ``InvalidColumnType`` unless ``column`` may back a ``kind`` slicer."""
        if data_type not in ALLOWED_TYPES.get(kind, ()):
            raise InvalidColumnType(f"A {kind} slicer cannot filter {data_type} columns.")
        declared = self.metadata.column_type(column)
        if declared is None:
            raise InvalidColumnType(f"Column {column!r} does not exist in this project.")
        if declared != data_type:
            raise InvalidColumnType(f"Column {column!r} is {declared}, not {data_type}.")

    def _coerce_value(self, slicer: Slicer, raw: Any) -> Any:
        if slicer.kind == NUMERICAL_RANGE:
            if isinstance(raw, NumericRange):
                return raw
            if not isinstance(raw, Mapping) or not set(raw) <= {"min", "max"}:
                raise TypeMismatch("A range slicer takes a {min, max} pair.")
            try:
                return NumericRange(parse_bound(raw.get("min")), parse_bound(raw.get("max")))
            except (TypeError, ValueError):
                raise ValidationError("Range bounds must be numbers.") from None

        if isinstance(raw, (str, bytes, Mapping, NumericRange)) or not isinstance(
            raw, (list, tuple, set, frozenset)
        ):
            raise TypeMismatch(f"A {slicer.kind} slicer takes a collection of values.")
        values = frozenset(str(v) for v in raw)
        if slicer.kind == COLUMN_SELECTOR:
            unknown = values - set(slicer.available_columns)
            if unknown:
                raise ValidationError(f"Columns not offered by this selector: {sorted(unknown)}.")
        return values

    # ---------- mutations ----------

    def register_slicer(
        self, kind: str, data_type: Optional[str] = None, slicer_id: Optional[str] = None
    ) -> str:
        if kind not in ALLOWED_TYPES:
            raise ValidationError(f"Unknown slicer kind {kind!r}.")
        data_type = data_type or ALLOWED_TYPES[kind][0]
        if data_type not in ALLOWED_TYPES[kind]:
            raise ValidationError(f"A {kind} slicer cannot filter {data_type} columns.")
        slicer_id = slicer_id or uuid.uuid4().hex
        if slicer_id in self._slicers:
            raise ValidationError(f"Slicer {slicer_id!r} already exists.")
        self._slicers[slicer_id] = Slicer(slicer_id, kind, data_type, value=empty_value(kind))
        logger.debug("Registered %s slicer %s", kind, slicer_id)
        self._emit(slicer_id, "registered", ())
        return slicer_id

    def reconfigure(self, slicer_id: str, new_column: Optional[str], new_data_type: str) -> None:
        """Bind ``slicer_id`` to another column, resetting its selection.

        Passing ``None`` as the column returns the slicer to the unconfigured
        state. Links to charts are kept. Linked charts are always refreshed,
        even though an empty selection leaves their predicate unchanged.
        """
        slicer = self.get(slicer_id)
        if slicer.kind == COLUMN_SELECTOR:
            columns = [] if new_column is None else [new_column]
            self.configure_column_selector(slicer_id, columns, new_data_type)
            return
        if new_column is not None:
            self.validate_column(slicer.kind, new_column, new_data_type)
        elif new_data_type not in ALLOWED_TYPES[slicer.kind]:
            raise InvalidColumnType(f"A {slicer.kind} slicer cannot filter {new_data_type} columns.")
        slicer.bound_column = new_column
        slicer.data_type = new_data_type
        slicer.value = empty_value(slicer.kind)
        self._emit(slicer_id, "reconfigured", slicer.linked_chart_ids)

    def configure_column_selector(
        self,
        slicer_id: str,
        columns: Iterable[str],
        data_type: str,
        linked_chart_ids: Optional[Iterable[str]] = None,
    ) -> None:
        slicer = self.get(slicer_id)
        if slicer.kind != COLUMN_SELECTOR:
            raise TypeMismatch("Only column selectors take a list of columns.")
        if data_type not in ALLOWED_TYPES[slicer.kind]:
            raise InvalidColumnType(f"A column selector cannot list {data_type} columns.")
        columns = tuple(dict.fromkeys(str(c) for c in columns))
        for column in columns:
            self.validate_column(slicer.kind, column, data_type)
        previous = list(slicer.linked_chart_ids)
        slicer.available_columns = columns
        slicer.data_type = data_type
        slicer.value = empty_value(slicer.kind)
        if linked_chart_ids is not None:
            slicer.linked_chart_ids = list(dict.fromkeys(linked_chart_ids))
        self._emit(slicer_id, "reconfigured", previous + slicer.linked_chart_ids)

    def set_value(self, slicer_id: str, new_value: Any) -> Any:
        slicer = self.get(slicer_id)
        if not slicer.configured:
            raise SlicerNotConfigured("Choose a column before filtering.")
        slicer.value = self._coerce_value(slicer, new_value)
        self._emit(slicer_id, "value", slicer.linked_chart_ids)
        return slicer.value

    def clear(self, slicer_id: str) -> None:
        slicer = self.get(slicer_id)
        slicer.value = empty_value(slicer.kind)
        self._emit(slicer_id, "cleared", slicer.linked_chart_ids)

    def link_charts(self, slicer_id: str, chart_ids: Iterable[str]) -> None:
        slicer = self.get(slicer_id)
        previous = list(slicer.linked_chart_ids)
        slicer.linked_chart_ids = list(dict.fromkeys(chart_ids))
        self._emit(slicer_id, "linked", previous + slicer.linked_chart_ids)

    def unlink_chart(self, chart_id: str) -> List[str]:
        """Drop a deleted chart from every slicer; returns the slicers touched."""
        touched = []
        for slicer in self._slicers.values():
            if chart_id in slicer.linked_chart_ids:
                slicer.linked_chart_ids.remove(chart_id)
                touched.append(slicer.id)
        return touched

    def remove_slicer(self, slicer_id: str) -> None:
        slicer = self.get(slicer_id)
        del self._slicers[slicer_id]
        logger.debug("Removed slicer %s", slicer_id)
        self._emit(slicer_id, "removed", slicer.linked_chart_ids)

    # ---------- predicate ----------

    def get_combined_predicate_descriptor(
        self, slicer_ids: Optional[Iterable[str]] = None
    ) -> FilterDescriptor:
        """AND of every slicer, or of ``slicer_ids`` only when given.

        An empty categorical selection imposes no constraint; so does an
        unbounded range or a column selector with nothing ticked.
        """
        if slicer_ids is None:
            chosen = list(self._slicers.values())
        else:
            wanted = set(slicer_ids)
            chosen = [s for s in self._slicers.values() if s.id in wanted]

        descriptor = NO_FILTER
        for slicer in chosen:
            if not slicer.configured or slicer.is_empty:
                continue
            if slicer.kind == CATEGORICAL_LIST:
                descriptor = descriptor.with_selection(slicer.bound_column, slicer.value)
            elif slicer.kind == NUMERICAL_RANGE:
                descriptor = descriptor.with_range(slicer.bound_column, slicer.value.min, slicer.value.max)
            else:
                descriptor = descriptor.with_column_set(slicer.id, slicer.value)
        return descriptor

    def with_value(self, slicer_id: str, **changes: Bound) -> NumericRange:
        """Copy of a range slicer's value with some bounds replaced."""
        slicer = self.get(slicer_id)
        if slicer.kind != NUMERICAL_RANGE:
            raise TypeMismatch("Only range slicers have bounds.")
        return replace(slicer.value, **changes)


__all__ = [
    "CATEGORICAL_LIST",
    "NUMERICAL_RANGE",
    "COLUMN_SELECTOR",
    "ALLOWED_TYPES",
    "UNCONFIGURED",
    "CONFIGURED_EMPTY",
    "CONFIGURED_ACTIVE",
    "NumericRange",
    "Slicer",
    "FilterChange",
    "FilterRegistry",
    "empty_value",
    "parse_bound",
]
