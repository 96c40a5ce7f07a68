"""UI styling utilities for LedgerClient.

This module provides:
    - Font: font weights used across the UI
    - Theme: supported UI themes (light, dark)
    - Size: standardized size constants and scaling logic
    - Color: standardized color palette for widgets, themes and charts
    - init_stylesheet / apply_theme: expand and apply the application style sheet
    - RoundedRowDelegate: table delegate drawing rounded selection backgrounds
"""
import enum
import logging
import math
import os
import re
from typing import List, Optional

from PySide6 import QtWidgets, QtGui, QtCore


class Font(enum.Enum):
    """Enumeration of font weights."""

    BlackFont = QtGui.QFont.Black
    BoldFont = QtGui.QFont.DemiBold
    MediumFont = QtGui.QFont.Normal
    ThinFont = QtGui.QFont.Light

    def __call__(self, size):
        """
        Returns a QFont and its metrics for the given size.

        Args:
            size (float|int): The desired pixel size.

        Returns:
            tuple: (QFont, QFontMetrics)
        """
        font = QtGui.QFont(QtWidgets.QApplication.font())
        font.setPixelSize(max(1, int(size)))
        font.setWeight(self.value)
        return font, QtGui.QFontMetrics(font)


class Theme(enum.StrEnum):
    Light = 'light'
    Dark = 'dark'


class Size(enum.Enum):
    """Enumeration of size values used for UI scaling."""
    SmallText = 11.0
    MediumText = 12.0
    LargeText = 16.0
    Indicator = 4.0
    Separator = 1.0
    Margin = 18.0
    Section = 86.0
    RowHeight = 34.0
    DefaultWidth = 640.0
    DefaultHeight = 480.0

    def __new__(cls, value):
        obj = object.__new__(cls)
        obj._value_ = float(value)
        return obj

    def __call__(self, multiplier=1.0, apply_scale=True):
        """
        Returns the scaled size value.

        Args:
            multiplier (float): A multiplier to apply to the size.
            apply_scale (bool): If True, applies UI scaling factors.

        Returns:
            int: The scaled size.
        """
        if apply_scale:
            return round(self.size(self._value_) * float(multiplier))
        return round(self._value_ * float(multiplier))

    @classmethod
    def size(cls, value, ui_scale_factor=1.0, dpi=72.0):
        """Scale a value by DPI and UI scale factor."""
        return math.ceil(float(value) * (float(dpi) / 72.0)) * float(ui_scale_factor)


class Color(enum.Enum):
    """Enumeration of colours used across the UI."""

    Transparent = {
        Theme.Light.value: (0, 0, 0, 0),
        Theme.Dark.value: (0, 0, 0, 0),
    }
    VeryDarkBackground = {
        Theme.Light.value: (245, 246, 250),
        Theme.Dark.value: (11, 16, 32),
    }
    DarkBackground = {
        Theme.Light.value: (232, 235, 243),
        Theme.Dark.value: (18, 26, 51),
    }
    Background = {
        Theme.Light.value: (210, 215, 228),
        Theme.Dark.value: (31, 42, 82),
    }
    DisabledText = {
        Theme.Light.value: (120, 120, 120),
        Theme.Dark.value: (120, 128, 160),
    }
    SecondaryText = {
        Theme.Light.value: (70, 75, 95),
        Theme.Dark.value: (184, 192, 221),
    }
    Text = {
        Theme.Light.value: (30, 30, 30),
        Theme.Dark.value: (233, 236, 241),
    }
    Blue = {
        Theme.Light.value: (0, 80, 160),
        Theme.Dark.value: (88, 138, 220),
    }
    Red = {
        Theme.Light.value: (179, 64, 64),
        Theme.Dark.value: (229, 114, 114),
    }
    Green = {
        Theme.Light.value: (40, 150, 100),
        Theme.Dark.value: (90, 200, 155),
    }
    Yellow = {
        Theme.Light.value: (200, 120, 0),
        Theme.Dark.value: (253, 166, 1),
    }

    @classmethod
    def _get_theme(cls):
        from ..settings import lib
        theme = lib.settings['theme']
        if theme not in [f.value for f in Theme]:
            theme = Theme.Dark.value
        return theme

    def __new__(cls, v):
        if not isinstance(v, dict):
            raise ValueError(f'Invalid color value: {v}. Must be a dictionary, got {type(v)}: {v}')
        obj = object.__new__(cls)
        obj._value_ = v
        return obj

    def __call__(self, qss=False):
        """
        Returns a QColor or CSS rgba string.

        Args:
            qss (bool): If True, returns a CSS rgba string suitable for QSS.

        Returns:
            QColor or str: A QColor instance if qss=False, otherwise a CSS rgba string.
        """
        theme = self._get_theme()
        if theme not in self._value_:
            theme = Theme.Dark.value

        color = QtGui.QColor(*self._value_[theme])
        if not qss:
            return color

        return self.rgb(color)

    @staticmethod
    def rgb(color):
        """Returns the CSS rgba string for a QColor."""
        rgb = [str(f) for f in color.getRgb()]
        return f'rgba({",".join(rgb)})'


def chart_palette() -> List[QtGui.QColor]:
    """Returns the series colours used by the charts, in order."""
    base = [Color.Green(), Color.Red(), Color.Blue(), Color.Yellow()]
    extra = [QtGui.QColor.fromHsv((37 * i + 200) % 360, 140, 210) for i in range(8)]
    return base + extra


def init_stylesheet() -> str:
    """Loads and expands the application style sheet.

    The template is ``config/stylesheet.qss``. Tokens written as ``<token>`` are replaced by
    font families, theme colours and scaled sizes, e.g. ``<Text>`` or ``<Margin@0.5>``.

    Returns:
        str: The style sheet.

    """
    if not QtWidgets.QApplication.instance():
        raise RuntimeError('init_stylesheet() must be called after a QApplication is initiated.')

    from ..settings import lib
    if not os.path.isfile(lib.settings.stylesheet_path):
        raise FileNotFoundError(f'Style sheet file not found: {lib.settings.stylesheet_path}')

    with open(lib.settings.stylesheet_path, 'r', encoding='utf-8') as f:
        qss = f.read()

    kwargs = {}

    for item in Font:
        font, _ = item(Size.MediumText())
        kwargs[item.name] = font.family()

    for item in Color:
        key = item.name
        if key in kwargs:
            raise KeyError(f'Key {key} already set!')
        kwargs[key] = Color.rgb(item())

    for item in Size:
        for i in [float(f) / 10.0 for f in range(1, 101)]:
            key = f'{item.name}@{i:.1f}'
            if key in kwargs:
                raise KeyError(f'Key {key} already set!')
            kwargs[key] = round(item() * i)

    # Tokens are defined as "<token>" in the stylesheet file
    for match in re.finditer(r'<(.*?)>', qss):
        key = match.group(1)
        if key not in kwargs:
            raise KeyError(f'Key {key} not found in kwargs!')
        qss = qss.replace(f'<{key}>', str(kwargs[key]))

    if re.search(r'<(.*?)>', qss):
        raise RuntimeError('Not all tokens were replaced!')

    return qss


def apply_theme() -> None:
    """Set the style sheet for the entire app.

    This function should be called after the QApplication is created.

    """
    if not QtWidgets.QApplication.instance():
        raise RuntimeError('apply_theme() must be called after a QApplication is initiated.')

    if os.environ.get('LEDGERCLIENT_DISABLE_STYLESHEET', '').lower() in ['1', 'true', 'yes']:
        logging.warning('Stylesheet disabled by environment variable.')
        return

    qss = init_stylesheet()
    QtWidgets.QApplication.instance().setStyleSheet(qss)

    for widget in QtWidgets.QApplication.instance().topLevelWidgets():
        widget.setStyleSheet(qss)
        widget.update()


class RoundedRowDelegate(QtWidgets.QStyledItemDelegate):
    """Delegate that draws rounded-corner backgrounds for selected row cells."""

    def __init__(self, first_column: int = 0, last_column: int = -1,
                 parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent=parent)

        self._first_column = first_column
        self._last_column = last_column

    def paint(self, painter: QtGui.QPainter, option: QtWidgets.QStyleOptionViewItem,
              index: QtCore.QModelIndex) -> None:
        selected = option.state & QtWidgets.QStyle.State_Selected

        painter.save()
        painter.setRenderHint(QtGui.QPainter.Antialiasing)
        painter.setPen(QtCore.Qt.NoPen)
        color = Color.Background() if selected else Color.Transparent()
        painter.setBrush(color)

        column = index.column()
        last_column = index.model().columnCount() + self._last_column

        o = Size.Indicator(1.5)
        half = option.rect.width() // 2
        rect1 = QtCore.QRect(option.rect)
        rect2 = QtCore.QRect(option.rect)

        if column == self._first_column:
            painter.drawRoundedRect(rect1.adjusted(0, 0, -half + o, 0), o, o)
            painter.fillRect(rect2.adjusted(half, 0, 0, 0), color)
        elif column == last_column:
            painter.drawRoundedRect(rect1.adjusted(half, 0, 0, 0), o, o)
            painter.fillRect(rect2.adjusted(0, 0, -half + o, 0), color)
        else:
            painter.fillRect(option.rect, color)
        painter.restore()

        super().paint(painter, option, index)


def set_error_text(label: QtWidgets.QLabel, text: str) -> None:
    """Shows ``text`` in ``label`` using the error colour."""
    label.setStyleSheet(f'color: {Color.Red(qss=True)};')
    label.setText(text)


def set_status_text(label: QtWidgets.QLabel, text: str) -> None:
    label.setStyleSheet(f'color: {Color.SecondaryText(qss=True)};')
    label.setText(text)


def error_text(ex: Exception) -> str:
    """Returns the user-facing text of an exception."""
    from ..status.status import BaseStatusException
    if isinstance(ex, BaseStatusException):
        return ex.message or ex.status_message
    return f'{ex}'
