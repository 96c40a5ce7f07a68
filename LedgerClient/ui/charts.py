"""Custom-painted chart widgets and the Qt chart factory.

:func:`chart_factory` creates a chart widget for a :class:`LedgerClient.core.charts.ChartSpec`
inside the host widget of a slot and returns a :class:`QtChartHandle` that removes it again.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from PySide6 import QtCore, QtGui, QtWidgets

from . import ui
from ..core.charts import ChartKind, ChartSlot, ChartSpec
from ..core.normalize import fmt


@dataclass(slots=True)
class PieSlice:
    label: str
    value: float
    color: QtGui.QColor
    start_qt: int
    span_qt: int


def pie_slices(spec: ChartSpec, palette: List[QtGui.QColor]) -> List[PieSlice]:
    """Returns the slices of a pie chart in Qt's 1/16th degree units.

    Negative and zero values are skipped. Rounding leftovers go to the largest slice so the
    slices always close the circle.
    """
    values = spec.series[0].values if spec.series else []
    items = [(label, float(v)) for label, v in zip(spec.labels, values) if v and float(v) > 0]
    total = sum(v for _, v in items)
    if not items or total <= 0:
        return []

    qt_circle = 360 * 16
    rotation_qt = 90 * 16
    spans = [int(round(v / total * qt_circle)) for _, v in items]
    leftover = qt_circle - sum(spans)
    if leftover:
        largest = max(range(len(items)), key=lambda i: items[i][1])
        spans[largest] += leftover

    cursor = 0
    slices = []
    for n, ((label, value), span_qt) in enumerate(zip(items, spans)):
        slices.append(PieSlice(
            label=label,
            value=value,
            color=palette[n % len(palette)],
            start_qt=(cursor + rotation_qt) % qt_circle,
            span_qt=span_qt,
        ))
        cursor += span_qt
    return slices


class BaseChartView(QtWidgets.QWidget):
    """Base widget painting a :class:`ChartSpec`."""

    def __init__(self, spec: ChartSpec, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent=parent)
        self.spec = spec
        self.setMinimumHeight(ui.Size.Section(2.0))
        self.setSizePolicy(QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Expanding)
        self.setAttribute(QtCore.Qt.WA_NoSystemBackground)

    def sizeHint(self) -> QtCore.QSize:
        return QtCore.QSize(ui.Size.DefaultWidth(0.6), ui.Size.Section(2.5))

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:
        painter = QtGui.QPainter(self)
        painter.setRenderHint(QtGui.QPainter.Antialiasing)
        try:
            self.paint_chart(painter, self.rect().adjusted(
                ui.Size.Margin(0.5), ui.Size.Margin(0.5), -ui.Size.Margin(0.5), -ui.Size.Margin(0.5)
            ))
        finally:
            painter.end()

    def paint_chart(self, painter: QtGui.QPainter, rect: QtCore.QRect) -> None:
        raise NotImplementedError

    def paint_empty(self, painter: QtGui.QPainter, rect: QtCore.QRect) -> None:
        font, _ = ui.Font.ThinFont(ui.Size.MediumText())
        painter.setFont(font)
        painter.setPen(ui.Color.DisabledText())
        painter.drawText(rect, QtCore.Qt.AlignCenter, 'No data')

    def paint_legend(self, painter: QtGui.QPainter, rect: QtCore.QRect,
                     items: List[tuple]) -> int:
        """Paints ``(label, color)`` legend items in a row at the top. Returns the height used."""
        font, metrics = ui.Font.MediumFont(ui.Size.SmallText())
        painter.setFont(font)
        x = rect.left()
        box = ui.Size.Indicator(2.0)
        for label, color in items:
            painter.setPen(QtCore.Qt.NoPen)
            painter.setBrush(color)
            painter.drawRoundedRect(QtCore.QRect(x, rect.top() + 2, box, box), 2, 2)
            x += box + ui.Size.Indicator(1.0)
            painter.setPen(ui.Color.Text())
            painter.drawText(QtCore.QPoint(x, rect.top() + metrics.ascent()), label)
            x += metrics.horizontalAdvance(label) + ui.Size.Margin(0.8)
        return metrics.height() + ui.Size.Indicator(1.0)


class LineChartView(BaseChartView):
    """Line chart with one line per series and period labels on the x axis."""

    def paint_chart(self, painter: QtGui.QPainter, rect: QtCore.QRect) -> None:
        palette = ui.chart_palette()
        series = [s for s in self.spec.series if s.values]
        if not self.spec.labels or not series:
            self.paint_empty(painter, rect)
            return

        legend_h = self.paint_legend(
            painter, rect, [(s.label, palette[n % len(palette)]) for n, s in enumerate(series)])

        font, metrics = ui.Font.ThinFont(ui.Size.SmallText())
        painter.setFont(font)

        values = [float(v) for s in series for v in s.values]
        lo = min(0.0, min(values))
        hi = max(values)
        if hi == lo:
            hi = lo + 1.0

        axis_w = max(metrics.horizontalAdvance(fmt(hi)), metrics.horizontalAdvance(fmt(lo)))
        plot = rect.adjusted(axis_w + ui.Size.Indicator(2.0), legend_h, 0, -metrics.height() - 4)
        if plot.width() <= 0 or plot.height() <= 0:
            return

        # grid
        painter.setPen(QtGui.QPen(ui.Color.Background(), ui.Size.Separator()))
        for i in range(5):
            y = plot.bottom() - plot.height() * i / 4
            painter.drawLine(QtCore.QPointF(plot.left(), y), QtCore.QPointF(plot.right(), y))
            painter.setPen(ui.Color.SecondaryText())
            value = lo + (hi - lo) * i / 4
            painter.drawText(
                QtCore.QRectF(rect.left(), y - metrics.height() / 2, axis_w, metrics.height()),
                QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter, fmt(value))
            painter.setPen(QtGui.QPen(ui.Color.Background(), ui.Size.Separator()))

        n = len(self.spec.labels)
        step = plot.width() / max(1, n - 1)

        def point(i: int, v: float) -> QtCore.QPointF:
            x = plot.left() + (step * i if n > 1 else plot.width() / 2)
            y = plot.bottom() - (v - lo) / (hi - lo) * plot.height()
            return QtCore.QPointF(x, y)

        painter.setPen(ui.Color.SecondaryText())
        for i, label in enumerate(self.spec.labels):
            p = point(i, lo)
            w = metrics.horizontalAdvance(label)
            painter.drawText(QtCore.QPointF(p.x() - w / 2, rect.bottom()), label)

        for idx, s in enumerate(series):
            color = palette[idx % len(palette)]
            pen = QtGui.QPen(color, ui.Size.Separator(2.0))
            painter.setPen(pen)
            points = [point(i, float(v)) for i, v in enumerate(s.values[:n])]
            if len(points) > 1:
                painter.drawPolyline(points)
            painter.setBrush(color)
            for p in points:
                painter.drawEllipse(p, ui.Size.Indicator(0.6), ui.Size.Indicator(0.6))
            painter.setBrush(QtCore.Qt.NoBrush)


class PieChartView(BaseChartView):
    """Pie chart of the first series."""

    def paint_chart(self, painter: QtGui.QPainter, rect: QtCore.QRect) -> None:
        slices = pie_slices(self.spec, ui.chart_palette())
        if not slices:
            self.paint_empty(painter, rect)
            return

        legend_h = self.paint_legend(painter, rect, [(s.label, s.color) for s in slices])
        area = rect.adjusted(0, legend_h, 0, 0)
        side = min(area.width(), area.height())
        if side <= 0:
            return
        pie_rect = QtCore.QRect(0, 0, side, side)
        pie_rect.moveCenter(area.center())

        painter.setPen(QtGui.QPen(ui.Color.VeryDarkBackground(), ui.Size.Separator(1.5)))
        for s in slices:
            painter.setBrush(s.color)
            painter.drawPie(pie_rect, s.start_qt, s.span_qt)


class QtChartHandle:
    """Owns one chart widget placed in a host widget's layout."""

    def __init__(self, widget: BaseChartView) -> None:
        self.widget: Optional[BaseChartView] = widget

    @property
    def alive(self) -> bool:
        return self.widget is not None

    def destroy(self) -> None:
        if self.widget is None:
            return
        widget, self.widget = self.widget, None
        parent = widget.parentWidget()
        if parent is not None and parent.layout() is not None:
            parent.layout().removeWidget(widget)
        widget.hide()
        widget.setParent(None)
        widget.deleteLater()


CHART_VIEWS = {
    ChartKind.Line: LineChartView,
    ChartKind.Pie: PieChartView,
}


def chart_factory(hosts: Dict[ChartSlot, QtWidgets.QWidget]) -> Callable[[ChartSlot, ChartSpec], QtChartHandle]:
    """Returns a factory creating chart widgets inside the given slot hosts.

    Each host must have a layout.
    """
    def create(slot: ChartSlot, spec: ChartSpec) -> QtChartHandle:
        host = hosts[slot]
        widget = CHART_VIEWS[spec.kind](spec, parent=host)
        host.layout().addWidget(widget)
        widget.show()
        logging.debug(f'Created {spec.kind} chart in slot "{slot}"')
        return QtChartHandle(widget)

    return create
