"""One mounted reporting dashboard: slicers, charts and layout in lockstep."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from workbench.charts.catalog import ChartKind, validate_mapping
from workbench.charts.chart import Chart
from workbench.charts.hypertune import ChartTuner, is_declarative, requires_regeneration, validate_params
from workbench.errors import NotFound, RequestError, ValidationError
from workbench.reporting.bindings import ChartBindingManager, PendingCount
from workbench.reporting.layout import (
    CHART,
    COLUMN_SELECTOR_ITEM,
    SLICER_LIST,
    SLICER_RANGE,
    LayoutStore,
)
from workbench.reporting.registry import (
    CATEGORICAL_LIST,
    COLUMN_SELECTOR,
    NUMERICAL_RANGE,
    FilterRegistry,
)
from workbench.reporting.slicers import SlicerWidget, widget_for
from workbench.services.metadata import ProjectMetadata

logger = logging.getLogger("workbench.reporting")

WIDGET_KINDS = {
    SLICER_LIST: CATEGORICAL_LIST,
    SLICER_RANGE: NUMERICAL_RANGE,
    COLUMN_SELECTOR_ITEM: COLUMN_SELECTOR,
}


class DashboardSession:
    """State of a reporting tab from mount to unmount.

    Every public mutation runs under ``_lock`` together with the propagation
    it triggers, so the binding manager never sees half an update. Remote
    calls (unique values, chart generation, row counts) are made outside the
    lock; count answers are applied afterwards and dropped when superseded.
    """

    def __init__(
        self,
        project_id: str,
        metadata: ProjectMetadata,
        api: Any,
        counter: Any,
        token: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
        session_id: Optional[str] = None,
    ):
        config = config or {}
        self.id = session_id or uuid.uuid4().hex
        self.project_id = project_id
        self.metadata = metadata
        self.api = api
        self.token = token
        self.max_options = int(config.get("UNIQUE_VALUES_MAX", 500))
        self.registry = FilterRegistry(metadata)
        self.bindings = ChartBindingManager(
            self.registry, counter, sink=self._on_count, auto_flush=False
        )
        self.layout = LayoutStore(config.get("GRID_COLS", 12), config.get("WIDGET_SIZES"))
        self.tuner = ChartTuner(api, token)
        self.charts: Dict[str, Chart] = {}
        self.widgets: Dict[str, SlicerWidget] = {}
        self._lock = threading.RLock()

    # ---------- plumbing ----------

    def _on_count(self, chart_id: str, count: int) -> None:
        chart = self.charts.get(chart_id)
        if chart is not None:
            chart.count = count

    def _mutate(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            result = fn(*args, **kwargs)
            pending = self.bindings.drain()
        self._resolve(pending)
        return result

    def _resolve(self, pending: List[PendingCount]) -> None:
        for item in pending:
            try:
                count = self.bindings.fetch(item)
            except RequestError as e:
                logger.warning("Count refresh failed for chart %s: %s", item.chart_id, e)
                with self._lock:
                    self.bindings.fail_refresh(item.ticket, item.chart_id, e)
                continue
            with self._lock:
                self.bindings.complete_refresh(item.ticket, item.chart_id, count)

    def widget(self, slicer_id: str) -> SlicerWidget:
        try:
            return self.widgets[slicer_id]
        except KeyError:
            raise NotFound(f"Unknown slicer {slicer_id!r}.") from None

    def chart(self, chart_id: str) -> Chart:
        try:
            return self.charts[chart_id]
        except KeyError:
            raise NotFound(f"Unknown chart {chart_id!r}.") from None

    # ---------- slicers ----------

    def add_slicer(self, item_kind: str, data_type: Optional[str] = None) -> SlicerWidget:
        """Place a slicer widget; its registry entry shares the layout id."""
        if item_kind not in WIDGET_KINDS:
            raise ValidationError(f"{item_kind!r} is not a slicer widget.")

        def _add() -> SlicerWidget:
            slicer_id = self.registry.register_slicer(WIDGET_KINDS[item_kind], data_type)
            try:
                self.layout.add(slicer_id, item_kind)
            except ValidationError:
                self.registry.remove_slicer(slicer_id)
                raise
            widget = widget_for(
                self.registry.get(slicer_id),
                self.registry,
                api=self.api,
                project_id=self.project_id,
                token=self.token,
                max_options=self.max_options,
            )
            self.widgets[slicer_id] = widget
            return widget

        return self._mutate(_add)

    def reconfigure_slicer(
        self,
        slicer_id: str,
        column: Optional[str],
        data_type: Optional[str] = None,
        columns: Optional[Iterable[str]] = None,
        linked_chart_ids: Optional[Iterable[str]] = None,
    ) -> SlicerWidget:
        widget = self.widget(slicer_id)
        data_type = data_type or widget.slicer.data_type
        kwargs: Dict[str, Any] = {}
        if widget.kind == CATEGORICAL_LIST:
            if column is not None:
                self.registry.validate_column(widget.kind, column, data_type)
            kwargs["options"] = widget.fetch_options(column)
        elif widget.kind == COLUMN_SELECTOR:
            if linked_chart_ids is not None:
                linked_chart_ids = list(linked_chart_ids)
                self._check_charts(linked_chart_ids)
            kwargs["columns"] = columns
            kwargs["linked_chart_ids"] = linked_chart_ids
        self._mutate(widget.reconfigure, column, data_type, **kwargs)
        return widget

    def slicer_input(self, slicer_id: str, raw: Any) -> Dict[str, Any]:
        widget = self.widget(slicer_id)
        accepted = self._mutate(widget.on_user_input, raw)
        return {"accepted": accepted is not None, "widget": widget.render()}

    def set_slicer_value(self, slicer_id: str, value: Any) -> None:
        self.widget(slicer_id)
        self._mutate(self.registry.set_value, slicer_id, value)

    def clear_slicer(self, slicer_id: str) -> None:
        self._mutate(self.widget(slicer_id).clear)

    def link_slicer(self, slicer_id: str, chart_ids: Iterable[str]) -> None:
        chart_ids = list(chart_ids)
        self.widget(slicer_id)
        self._check_charts(chart_ids)
        self._mutate(self.registry.link_charts, slicer_id, chart_ids)

    def _check_charts(self, chart_ids: Iterable[str]) -> None:
        missing = [c for c in chart_ids if c not in self.charts]
        if missing:
            raise NotFound(f"Unknown chart(s): {', '.join(missing)}.")

    # ---------- charts ----------

    def add_chart(self, chart: Chart) -> Chart:
        def _add() -> Chart:
            if chart.id in self.charts:
                raise ValidationError(f"Chart {chart.id!r} is already on this dashboard.")
            self.layout.add(chart.id, CHART)
            self.charts[chart.id] = chart
            self.bindings.track(chart.id)
            return chart

        return self._mutate(_add)

    def generate_chart(
        self,
        chart_type: str,
        column_mapping: Mapping[str, Any],
        hypertune_params: Optional[Mapping[str, Any]] = None,
    ) -> Chart:
        kind = ChartKind.parse(chart_type)
        mapping = validate_mapping(kind, column_mapping, self.metadata)
        params = validate_params(kind, hypertune_params or {})
        result = self.api.generate_chart(self.project_id, kind.value, mapping, params, self.token)
        chart = Chart(
            chart_type=kind.value,
            column_mapping=mapping,
            chart_payload=result["chart_data"],
            project_id=self.project_id,
            hypertune_params=params,
            analysis_text=result.get("analysis_text", ""),
        )
        logger.info("Generated %s chart %s for project %s", kind.value, chart.id, self.project_id)
        return self.add_chart(chart)

    def tune_chart(self, chart_id: str, params: Mapping[str, Any]) -> bool:
        with self._lock:
            chart = self.chart(chart_id)
            kind = ChartKind.parse(chart.chart_type)
            params = validate_params(kind, params)
            remote = requires_regeneration(chart.hypertune_params, params) or not is_declarative(
                chart.base_payload
            )
            if not remote:
                return self.tuner.apply_tuning(chart, params)
        # The chart service call runs without the lock; a chart removed
        # meanwhile is simply not written back.
        staged = Chart(
            chart_type=chart.chart_type,
            column_mapping=dict(chart.column_mapping),
            chart_payload=chart.chart_payload,
            project_id=chart.project_id,
            hypertune_params=dict(chart.hypertune_params),
            analysis_text=chart.analysis_text,
            id=chart.id,
            base_payload=chart.base_payload,
        )
        regenerated = self.tuner.apply_tuning(staged, params)
        with self._lock:
            if chart_id in self.charts:
                chart.base_payload = staged.base_payload
                chart.chart_payload = staged.chart_payload
                chart.hypertune_params = staged.hypertune_params
                chart.analysis_text = staged.analysis_text
        return regenerated

    # ---------- removal ----------

    def remove_item(self, item_id: str) -> None:
        """Remove a widget from the grid and its registry entry or chart."""

        def _remove() -> None:
            item = self.layout.get(item_id)
            if item.kind == CHART:
                self.registry.unlink_chart(item_id)
                self.bindings.untrack(item_id)
                self.charts.pop(item_id, None)
            else:
                self.registry.remove_slicer(item_id)
                self.widgets.pop(item_id, None)
            self.layout.remove(item_id)

        self._mutate(_remove)

    # ---------- layout ----------

    def update_layout(self, entries: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        with self._lock:
            return [item.to_dict() for item in self.layout.apply_grid(entries)]

    def place_item(self, item_id: str, geometry: Mapping[str, Any]) -> Dict[str, Any]:
        with self._lock:
            return self.layout.place(item_id, geometry).to_dict()

    # ---------- views ----------

    def titles(self) -> Dict[str, str]:
        with self._lock:
            return {cid: chart.display_title() for cid, chart in self.charts.items()}

    def filters(self) -> Dict[str, Any]:
        with self._lock:
            return self.registry.get_combined_predicate_descriptor().to_dict()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "id": self.id,
                "project_id": self.project_id,
                "metadata": self.metadata.to_dict(),
                "layout": [item.to_dict() for item in self.layout.items()],
                "slicers": [w.render() for w in self.widgets.values()],
                "charts": [c.render() for c in self.charts.values()],
                "errors": dict(self.bindings.errors),
                "filters": self.registry.get_combined_predicate_descriptor().to_dict(),
            }

    def close(self) -> None:
        with self._lock:
            for chart_id in list(self.charts):
                self.bindings.untrack(chart_id)
            self.registry.unsubscribe(self.bindings.on_predicate_changed)
            self.charts.clear()
            self.widgets.clear()
        counter = getattr(self.bindings.counter, "counter", None)
        if hasattr(counter, "close"):
            counter.close()


__all__ = ["DashboardSession", "WIDGET_KINDS"]
