"""Chart slot lifecycle.

The dashboard has two chart slots, ``trend`` and ``category``. Each holds at most one live chart
handle. Showing a new chart in a slot destroys the old handle first, synchronously, and only
then creates the replacement.
"""
import dataclasses
import enum
import logging
from typing import Callable, Dict, List, Optional, Protocol


class ChartSlot(enum.StrEnum):
    Trend = 'trend'
    Category = 'category'


class ChartKind(enum.StrEnum):
    Line = 'line'
    Pie = 'pie'


@dataclasses.dataclass(frozen=True)
class ChartSeries:
    label: str
    values: List[float]
    color: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class ChartSpec:
    """Everything needed to draw one chart.

    Attributes:
        kind: The chart type.
        labels: The x-axis labels (line) or slice labels (pie).
        series: The data series. A pie chart uses the first one.
        title: Optional chart title.
    """
    kind: ChartKind
    labels: List[str]
    series: List[ChartSeries]
    title: str = ''


class ChartHandle(Protocol):
    def destroy(self) -> None:
        ...


ChartFactory = Callable[[ChartSlot, ChartSpec], ChartHandle]


class ChartLifecycleManager:
    """
    Keeps at most one live chart handle per slot.

    Args:
        factory: Creates a handle from a slot and a spec.

    """

    def __init__(self, factory: ChartFactory) -> None:
        self.factory = factory
        self._handles: Dict[ChartSlot, ChartHandle] = {}

    def handle(self, slot: ChartSlot) -> Optional[ChartHandle]:
        return self._handles.get(ChartSlot(slot))

    def show(self, slot: ChartSlot, spec: ChartSpec) -> ChartHandle:
        """
        Replaces the chart in ``slot``.

        Errors raised while destroying the previous handle propagate, and no new chart is
        created in that case.

        """
        slot = ChartSlot(slot)
        previous = self._handles.get(slot)
        if previous is not None:
            previous.destroy()
            del self._handles[slot]

        handle = self.factory(slot, spec)
        self._handles[slot] = handle
        logging.debug(f'Chart slot "{slot}" now shows a {spec.kind} chart')
        return handle

    def clear(self) -> None:
        """Destroys every live handle."""
        while self._handles:
            slot, handle = self._handles.popitem()
            handle.destroy()
            logging.debug(f'Chart slot "{slot}" cleared')
