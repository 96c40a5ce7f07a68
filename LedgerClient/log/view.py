"""Log viewer dialog showing the messages kept by :class:`LedgerClient.log.log.TankHandler`."""
import logging

from PySide6 import QtCore, QtWidgets

from .log import TankHandler
from ..ui import ui

LEVELS = {
    'Debug': logging.DEBUG,
    'Info': logging.INFO,
    'Warning': logging.WARNING,
    'Error': logging.ERROR,
}


def get_handler() -> TankHandler:
    """Returns the TankHandler from the root logger or raises RuntimeError."""
    handlers = [h for h in logging.getLogger().handlers if isinstance(h, TankHandler)]
    if not handlers:
        raise RuntimeError('TankHandler not found in root logger')
    if len(handlers) > 1:
        raise RuntimeError('Multiple TankHandlers found in root logger')
    return handlers[0]


class LogDialog(QtWidgets.QDialog):
    """Read-only list of log messages with a level filter."""

    def __init__(self, parent=None):
        super().__init__(parent=parent)
        self.setWindowTitle('Logs')
        self.setMinimumSize(ui.Size.DefaultWidth(1.2), ui.Size.DefaultHeight(1.0))

        self.level_combo = None
        self.text = None

        self._create_ui()
        self._connect_signals()

    def _create_ui(self):
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(1.0)
        self.layout().setContentsMargins(o, o, o, o)
        self.layout().setSpacing(ui.Size.Margin(0.5))

        row = QtWidgets.QHBoxLayout()
        self.level_combo = QtWidgets.QComboBox(self)
        self.level_combo.addItems(list(LEVELS))
        self.level_combo.setCurrentText('Info')
        row.addWidget(QtWidgets.QLabel('Level', self))
        row.addWidget(self.level_combo)
        row.addStretch(1)
        self.refresh_button = QtWidgets.QPushButton('Refresh', self)
        self.clear_button = QtWidgets.QPushButton('Clear', self)
        row.addWidget(self.refresh_button)
        row.addWidget(self.clear_button)
        self.layout().addLayout(row)

        self.text = QtWidgets.QPlainTextEdit(self)
        self.text.setReadOnly(True)
        self.text.setLineWrapMode(QtWidgets.QPlainTextEdit.NoWrap)
        self.layout().addWidget(self.text, 1)

    def _connect_signals(self):
        self.level_combo.currentTextChanged.connect(self.init_data)
        self.refresh_button.clicked.connect(self.init_data)
        self.clear_button.clicked.connect(self.clear_logs)

    @QtCore.Slot()
    def init_data(self):
        level = LEVELS.get(self.level_combo.currentText(), logging.INFO)
        try:
            messages = get_handler().get_logs(level)
        except RuntimeError as ex:
            messages = [f'{ex}']
        self.text.setPlainText('\n'.join(messages))
        self.text.verticalScrollBar().setValue(self.text.verticalScrollBar().maximum())

    @QtCore.Slot()
    def clear_logs(self):
        get_handler().clear_logs()
        self.init_data()

    def showEvent(self, event):
        super().showEvent(event)
        self.init_data()
