"""Keep chart titles in sync with the slicers linked to them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from workbench.errors import RequestError
from workbench.reporting.registry import FilterChange, FilterRegistry
from workbench.reporting.sequencing import SequenceCounter, Ticket
from workbench.utils.filter_params import FilterDescriptor

logger = logging.getLogger("workbench.reporting")

Sink = Callable[[str, int], None]


@dataclass(frozen=True)
class PendingCount:
    """A count request that has been issued but not yet answered."""

    ticket: Ticket
    chart_id: str
    descriptor: FilterDescriptor


class ChartBindingManager:
    """Refresh the row count shown in each linked chart's title.

    A chart's count is taken under the AND of the slicers linked to it; a
    slicer with no linked charts affects nothing, and a chart with no linked
    slicers shows the unfiltered count. Only the title is refreshed, never the
    chart payload.

    With ``auto_flush`` the count call is made right away. Without it, issued
    requests queue up in ``drain()`` so a caller holding a lock can make the
    remote calls after releasing it and hand the answers back through
    ``complete_refresh``.
    """

    def __init__(
        self,
        registry: FilterRegistry,
        counter: Any,
        sink: Optional[Sink] = None,
        sequencer: Optional[SequenceCounter] = None,
        auto_flush: bool = True,
    ):
        self.registry = registry
        self.counter = counter
        self.sink = sink
        self.sequencer = sequencer or SequenceCounter()
        self.auto_flush = auto_flush
        self.counts: Dict[str, int] = {}
        self.errors: Dict[str, str] = {}
        self._charts: List[str] = []
        self._pending: List[PendingCount] = []
        registry.subscribe(self.on_predicate_changed)

    # ---------- charts on the page ----------

    @property
    def charts(self) -> List[str]:
        return list(self._charts)

    def track(self, chart_id: str, refresh: bool = True) -> None:
        if chart_id not in self._charts:
            self._charts.append(chart_id)
        if refresh:
            self._queue([chart_id])

    def untrack(self, chart_id: str) -> None:
        if chart_id in self._charts:
            self._charts.remove(chart_id)
        self.counts.pop(chart_id, None)
        self.errors.pop(chart_id, None)
        self.sequencer.forget(self._stream(chart_id))
        self._pending = [p for p in self._pending if p.chart_id != chart_id]

    def descriptor_for(self, chart_id: str) -> FilterDescriptor:
        return self.registry.get_combined_predicate_descriptor(
            self.registry.slicers_linked_to(chart_id)
        )

    # ---------- propagation ----------

    def on_predicate_changed(self, change: FilterChange) -> None:
        self._queue(change.chart_ids)

    def _queue(self, chart_ids: Iterable[str]) -> None:
        for chart_id in dict.fromkeys(chart_ids):
            if chart_id in self._charts:
                self._pending.append(self.begin_refresh(chart_id))
        if self.auto_flush:
            self.flush()

    @staticmethod
    def _stream(chart_id: str) -> str:
        return f"count:{chart_id}"

    def begin_refresh(self, chart_id: str) -> PendingCount:
        ticket = self.sequencer.issue(self._stream(chart_id))
        return PendingCount(ticket, chart_id, self.descriptor_for(chart_id))

    def drain(self) -> List[PendingCount]:
        pending, self._pending = self._pending, []
        return pending

    def fetch(self, pending: PendingCount) -> int:
        """Run the count query for ``pending``. Safe to call without any lock."""
        return self.counter.count(pending.descriptor)

    def complete_refresh(self, ticket: Ticket, chart_id: str, count: int) -> bool:
        if chart_id not in self._charts or not self.sequencer.accept(ticket):
            return False
        self.counts[chart_id] = count
        self.errors.pop(chart_id, None)
        if self.sink is not None:
            self.sink(chart_id, count)
        return True

    def fail_refresh(self, ticket: Ticket, chart_id: str, error: RequestError) -> bool:
        if chart_id not in self._charts or not self.sequencer.accept(ticket):
            return False
        self.errors[chart_id] = str(error)
        return True

    def flush(self) -> None:
        for pending in self.drain():
            try:
                count = self.fetch(pending)
            except RequestError as e:
                logger.warning("Count refresh failed for chart %s: %s", pending.chart_id, e)
                self.fail_refresh(pending.ticket, pending.chart_id, e)
                continue
            self.complete_refresh(pending.ticket, pending.chart_id, count)


__all__ = ["ChartBindingManager", "PendingCount"]
