"""Slicer widgets: per-widget UI state on top of the shared registry."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from workbench.errors import SlicerNotConfigured, TypeMismatch, ValidationError
from workbench.reporting.registry import (
    CATEGORICAL_LIST,
    COLUMN_SELECTOR,
    NUMERICAL_RANGE,
    FilterRegistry,
    NumericRange,
    Slicer,
    parse_bound,
)
from workbench.services.api_client import ApiClient
from workbench.services.metadata import CATEGORICAL, NUMERICAL

logger = logging.getLogger("workbench.reporting")

RANGE_FIELDS = ("min", "max")


class SlicerWidget:
    """Common behaviour of the three slicer widgets.

    A widget renders a JSON view model for the browser, turns raw user input
    into a new selection and writes it to the registry. All shared state
    lives in the registry; the widget only keeps what the browser shows.
    """

    kind: str = ""
    label: str = ""

    def __init__(
        self,
        slicer_id: str,
        registry: FilterRegistry,
        api: Optional[ApiClient] = None,
        project_id: Optional[str] = None,
        token: Optional[str] = None,
        max_options: int = 500,
    ):
        self.slicer_id = slicer_id
        self.registry = registry
        self.api = api
        self.project_id = project_id
        self.token = token
        self.max_options = max_options
        self.error: Optional[str] = None

    @property
    def slicer(self) -> Slicer:
        return self.registry.get(self.slicer_id)

    def column_choices(self) -> List[str]:
        """Project columns whose declared type matches this slicer."""
        return self.registry.metadata.names(self.slicer.data_type)

    def render(self) -> Dict[str, Any]:
        slicer = self.slicer
        return {
            "id": slicer.id,
            "kind": slicer.kind,
            "label": self.label,
            "data_type": slicer.data_type,
            "column": slicer.bound_column,
            "column_choices": self.column_choices(),
            "state": self.registry.state(slicer.id),
            "linked_chart_ids": list(slicer.linked_chart_ids),
            "error": self.error,
        }

    def on_user_input(self, raw: Any) -> Any:
        raise NotImplementedError

    def reconfigure(self, column: Optional[str], data_type: Optional[str] = None, **kwargs: Any) -> None:
        self.registry.reconfigure(self.slicer_id, column, data_type or self.slicer.data_type)

    def clear(self) -> None:
        self.registry.clear(self.slicer_id)


class CategoricalListSlicer(SlicerWidget):
    kind = CATEGORICAL_LIST
    label = "LIST SLICER"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.options: List[str] = []
        self.truncated = False

    def fetch_options(self, column: Optional[str]) -> List[str]:
        """Distinct values of ``column`` from the unique-values service."""
        if not column or self.api is None:
            return []
        return self.api.unique_values(self.project_id, column, self.token)

    def reconfigure(
        self,
        column: Optional[str],
        data_type: Optional[str] = None,
        options: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        data_type = data_type or CATEGORICAL
        if column is not None:
            self.registry.validate_column(self.kind, column, data_type)
        if options is None:
            options = self.fetch_options(column)
        self.registry.reconfigure(self.slicer_id, column, data_type)
        options = list(options) if column else []
        self.truncated = len(options) > self.max_options
        self.options = options[: self.max_options]
        self.error = None

    def on_user_input(self, raw: Any) -> frozenset:
        """Toggle one value in or out of the selection."""
        if isinstance(raw, Mapping):
            raw = raw.get("value")
        if raw is None or isinstance(raw, (list, tuple, set, dict)):
            raise TypeMismatch("A list slicer toggles one value at a time.")
        value = str(raw)
        current = set(self.slicer.value)
        if value in current:
            current.discard(value)
        else:
            current.add(value)
        self.error = None
        return self.registry.set_value(self.slicer_id, current)

    def render(self) -> Dict[str, Any]:
        out = super().render()
        selected = self.slicer.value
        out["options"] = [{"value": v, "checked": v in selected} for v in self.options]
        out["selected"] = sorted(selected)
        out["truncated"] = self.truncated
        return out


class NumericalRangeSlicer(SlicerWidget):
    """Min/max inputs.

    Text that does not parse as a number stays in the input for display but
    never reaches the registry; the last well-formed bound is kept.
    """

    kind = NUMERICAL_RANGE
    label = "RANGE SLICER"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.raw_text: Dict[str, str] = {"min": "", "max": ""}
        self.invalid: set = set()

    def reconfigure(self, column: Optional[str], data_type: Optional[str] = None, **kwargs: Any) -> None:
        self.registry.reconfigure(self.slicer_id, column, data_type or NUMERICAL)
        self.raw_text = {"min": "", "max": ""}
        self.invalid = set()
        self.error = None

    def clear(self) -> None:
        super().clear()
        self.raw_text = {"min": "", "max": ""}
        self.invalid = set()

    def on_user_input(self, raw: Any) -> Optional[NumericRange]:
        if not isinstance(raw, Mapping) or raw.get("field") not in RANGE_FIELDS:
            raise TypeMismatch("A range edit names a field ('min' or 'max') and its text.")
        if not self.slicer.configured:
            raise SlicerNotConfigured("Choose a column before filtering.")
        field_name = raw["field"]
        text = "" if raw.get("text") is None else str(raw.get("text"))
        self.raw_text[field_name] = text

        try:
            bound = parse_bound(text)
        except (TypeError, ValueError):
            self.invalid.add(field_name)
            logger.debug("Rejected %s=%r on slicer %s", field_name, text, self.slicer_id)
            return None

        self.invalid.discard(field_name)
        new_range = self.registry.with_value(self.slicer_id, **{field_name: bound})
        return self.registry.set_value(self.slicer_id, new_range)

    def render(self) -> Dict[str, Any]:
        out = super().render()
        out["inputs"] = dict(self.raw_text)
        out["invalid"] = sorted(self.invalid)
        out["value"] = self.slicer.value.to_dict()
        return out


class ColumnSelectorSlicer(SlicerWidget):
    """Checkbox list of columns that drives which columns linked charts show."""

    kind = COLUMN_SELECTOR
    label = "COLUMN SELECTOR"

    def reconfigure(
        self,
        column: Optional[str] = None,
        data_type: Optional[str] = None,
        columns: Optional[Iterable[str]] = None,
        linked_chart_ids: Optional[Iterable[str]] = None,
        **kwargs: Any,
    ) -> None:
        if columns is None:
            columns = [] if column is None else [column]
        self.registry.configure_column_selector(
            self.slicer_id, columns, data_type or self.slicer.data_type, linked_chart_ids
        )
        self.error = None

    def on_user_input(self, raw: Any) -> frozenset:
        if isinstance(raw, Mapping):
            raw = raw.get("column")
        if not isinstance(raw, str):
            raise TypeMismatch("A column selector toggles one column name at a time.")
        slicer = self.slicer
        if raw not in slicer.available_columns:
            raise ValidationError(f"Column {raw!r} is not offered by this selector.")
        current = set(slicer.value)
        if raw in current:
            current.discard(raw)
        else:
            current.add(raw)
        return self.registry.set_value(self.slicer_id, current)

    def render(self) -> Dict[str, Any]:
        out = super().render()
        slicer = self.slicer
        out["columns"] = [
            {"name": c, "checked": c in slicer.value} for c in slicer.available_columns
        ]
        out["linked_charts"] = len(slicer.linked_chart_ids)
        return out


WIDGETS = {
    CATEGORICAL_LIST: CategoricalListSlicer,
    NUMERICAL_RANGE: NumericalRangeSlicer,
    COLUMN_SELECTOR: ColumnSelectorSlicer,
}


def widget_for(slicer: Slicer, registry: FilterRegistry, **kwargs: Any) -> SlicerWidget:
    try:
        cls = WIDGETS[slicer.kind]
    except KeyError:
        raise ValidationError(f"Unknown slicer kind {slicer.kind!r}.") from None
    return cls(slicer.id, registry, **kwargs)


__all__ = [
    "SlicerWidget",
    "CategoricalListSlicer",
    "NumericalRangeSlicer",
    "ColumnSelectorSlicer",
    "WIDGETS",
    "widget_for",
]
