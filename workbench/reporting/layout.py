"""Dashboard grid placement."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from workbench.errors import NotFound, ValidationError

CHART = "chart"
SLICER_LIST = "slicer_list"
SLICER_RANGE = "slicer_range"
COLUMN_SELECTOR_ITEM = "column_selector"

ITEM_KINDS = (CHART, SLICER_LIST, SLICER_RANGE, COLUMN_SELECTOR_ITEM)

DEFAULT_SIZES: Dict[str, Tuple[int, int]] = {
    CHART: (6, 4),
    SLICER_LIST: (3, 4),
    SLICER_RANGE: (3, 2),
    COLUMN_SELECTOR_ITEM: (3, 4),
}


@dataclass
class LayoutItem:
    i: str
    kind: str
    x: int
    y: int
    w: int
    h: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class LayoutStore:
    """Placement and sizing of widgets on a fixed-width grid."""

    def __init__(self, cols: int = 12, sizes: Optional[Mapping[str, Tuple[int, int]]] = None):
        self.cols = cols
        self.sizes = dict(DEFAULT_SIZES)
        if sizes:
            self.sizes.update({k: tuple(v) for k, v in sizes.items()})
        self._items: "OrderedDict[str, LayoutItem]" = OrderedDict()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> LayoutItem:
        try:
            return self._items[item_id]
        except KeyError:
            raise NotFound(f"Unknown dashboard item {item_id!r}.") from None

    def items(self) -> List[LayoutItem]:
        return list(self._items.values())

    def bottom(self) -> int:
        return max((it.y + it.h for it in self._items.values()), default=0)

    def _clamp(self, x: int, y: int, w: int, h: int) -> Tuple[int, int, int, int]:
        w = min(max(int(w), 1), self.cols)
        h = max(int(h), 1)
        x = min(max(int(x), 0), self.cols - w)
        y = max(int(y), 0)
        return x, y, w, h

    def add(self, item_id: str, kind: str, w: Optional[int] = None, h: Optional[int] = None) -> LayoutItem:
        """Place a new item at the left edge, below everything else."""
        if kind not in ITEM_KINDS:
            raise ValidationError(f"Unknown dashboard item kind {kind!r}.")
        if item_id in self._items:
            raise ValidationError(f"Dashboard item {item_id!r} already exists.")
        dw, dh = self.sizes[kind]
        x, y, w, h = self._clamp(0, self.bottom(), w or dw, h or dh)
        item = LayoutItem(item_id, kind, x, y, w, h)
        self._items[item_id] = item
        return item

    def move(self, item_id: str, x: int, y: int) -> LayoutItem:
        item = self.get(item_id)
        item.x, item.y, item.w, item.h = self._clamp(x, y, item.w, item.h)
        return item

    def resize(self, item_id: str, w: int, h: int) -> LayoutItem:
        item = self.get(item_id)
        item.x, item.y, item.w, item.h = self._clamp(item.x, item.y, w, h)
        return item

    def place(self, item_id: str, geometry: Mapping[str, Any]) -> LayoutItem:
        """Move and/or resize one item; keys missing from ``geometry`` keep their value."""
        item = self.get(item_id)
        try:
            given = {k: int(geometry[k]) for k in ("x", "y", "w", "h") if geometry.get(k) is not None}
        except (TypeError, ValueError):
            raise ValidationError(f"Bad geometry for dashboard item {item_id!r}.") from None
        if "w" in given or "h" in given:
            item = self.resize(item_id, given.get("w", item.w), given.get("h", item.h))
        if "x" in given or "y" in given:
            item = self.move(item_id, given.get("x", item.x), given.get("y", item.y))
        return item

    def apply_grid(self, entries: Iterable[Mapping[str, Any]]) -> List[LayoutItem]:
        """Take a full layout as reported by the grid after a drag or resize."""
        for entry in entries:
            item_id = str(entry.get("i"))
            if item_id not in self._items:
                continue
            item = self._items[item_id]
            try:
                x, y, w, h = (int(entry.get(k, getattr(item, k))) for k in ("x", "y", "w", "h"))
            except (TypeError, ValueError):
                raise ValidationError(f"Bad geometry for dashboard item {item_id!r}.") from None
            item.x, item.y, item.w, item.h = self._clamp(x, y, w, h)
        return self.items()

    def remove(self, item_id: str) -> LayoutItem:
        item = self.get(item_id)
        del self._items[item_id]
        return item


__all__ = [
    "CHART",
    "SLICER_LIST",
    "SLICER_RANGE",
    "COLUMN_SELECTOR_ITEM",
    "ITEM_KINDS",
    "LayoutItem",
    "LayoutStore",
]
