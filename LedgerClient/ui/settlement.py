"""Settlement plan dialog.

Shows the default plan of the selected ledger on open. The advanced section generates a plan
with a custom :class:`LedgerClient.data.settlement.SettlementConfig`.
"""
from typing import Optional

from PySide6 import QtCore, QtWidgets

from . import ui
from ..core import models, worker
from ..data.settlement import SettlementConfig, SettlementView
from ..status import status


class SettlementDialog(QtWidgets.QDialog):
    """
    Args:
        state: The :class:`LedgerClient.core.state.LedgerState`.
        presenter: The :class:`LedgerClient.data.settlement.SettlementPresenter`.

    """

    def __init__(self, state, presenter, parent=None):
        super().__init__(parent=parent)
        self.state = state
        self.presenter = presenter

        self.setWindowTitle('Settlement plan')
        self.setMinimumSize(ui.Size.DefaultWidth(0.9), ui.Size.DefaultHeight(0.8))

        self.message_label = None
        self.table = None
        self.advanced_toggle = None
        self.advanced_widget = None
        self.rounding_combo = None
        self.max_transfer_editor = None
        self.force_min_cost_flow_toggle = None
        self.threshold_editor = None
        self.generate_button = None

        self._create_ui()
        self._connect_signals()

    def _create_ui(self):
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(1.0)
        self.layout().setContentsMargins(o, o, o, o)
        self.layout().setSpacing(ui.Size.Margin(0.5))

        self.message_label = QtWidgets.QLabel('', self)
        self.message_label.setWordWrap(True)
        self.layout().addWidget(self.message_label)

        self.table = QtWidgets.QTableWidget(0, 3, self)
        self.table.setHorizontalHeaderLabels(['From', 'To', 'Amount'])
        self.table.horizontalHeader().setSectionResizeMode(QtWidgets.QHeaderView.Stretch)
        self.table.verticalHeader().setVisible(False)
        self.table.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        self.layout().addWidget(self.table, 1)

        self.advanced_toggle = QtWidgets.QCheckBox('Advanced options', self)
        self.layout().addWidget(self.advanced_toggle)

        self.advanced_widget = QtWidgets.QWidget(self)
        form = QtWidgets.QFormLayout(self.advanced_widget)
        form.setContentsMargins(0, 0, 0, 0)

        self.rounding_combo = QtWidgets.QComboBox(self.advanced_widget)
        for r in models.RoundingStrategy:
            self.rounding_combo.addItem(r.value, r)
        form.addRow('Rounding', self.rounding_combo)

        self.max_transfer_editor = QtWidgets.QLineEdit(self.advanced_widget)
        self.max_transfer_editor.setPlaceholderText('No limit')
        form.addRow('Max transfer amount', self.max_transfer_editor)

        self.force_min_cost_flow_toggle = QtWidgets.QCheckBox(self.advanced_widget)
        form.addRow('Force min-cost flow', self.force_min_cost_flow_toggle)

        self.threshold_editor = QtWidgets.QLineEdit(self.advanced_widget)
        self.threshold_editor.setPlaceholderText('Server default')
        form.addRow('Min-cost flow threshold', self.threshold_editor)

        self.advanced_widget.setVisible(False)
        self.layout().addWidget(self.advanced_widget)

        row = QtWidgets.QHBoxLayout()
        row.addStretch(1)
        self.generate_button = QtWidgets.QPushButton('Generate', self)
        close_button = QtWidgets.QPushButton('Close', self)
        close_button.clicked.connect(self.reject)
        row.addWidget(self.generate_button)
        row.addWidget(close_button)
        self.layout().addLayout(row)

    def _connect_signals(self):
        self.advanced_toggle.toggled.connect(self.advanced_widget.setVisible)
        self.generate_button.clicked.connect(self.generate)

    def showEvent(self, event):
        super().showEvent(event)
        self.init_data()

    @QtCore.Slot()
    def init_data(self) -> None:
        ui.set_status_text(self.message_label, 'Loading settlement plan...')
        worker.submit(
            self.presenter.load_default_plan(self.state.current_ledger_id),
            on_result=self.set_view,
            on_error=self.on_error,
        )

    @QtCore.Slot()
    def generate(self) -> None:
        if not self.advanced_toggle.isChecked():
            self.init_data()
            return

        try:
            config = SettlementConfig.from_form(
                rounding_strategy=self.rounding_combo.currentData(),
                max_transfer_amount=self.max_transfer_editor.text(),
                force_min_cost_flow=self.force_min_cost_flow_toggle.isChecked(),
                min_cost_flow_threshold=self.threshold_editor.text(),
            )
        except status.ValidationException as ex:
            self.on_error(ex)
            return

        ui.set_status_text(self.message_label, 'Generating settlement plan...')
        worker.submit(
            self.presenter.generate_plan(self.state.current_ledger_id, config),
            on_result=self.set_view,
            on_error=self.on_error,
        )

    @QtCore.Slot(object)
    def set_view(self, view: Optional[SettlementView]) -> None:
        self.table.setRowCount(0)
        if view is None:
            ui.set_status_text(self.message_label, '')
            return
        ui.set_status_text(self.message_label, view.message)
        for row in view.rows:
            n = self.table.rowCount()
            self.table.insertRow(n)
            self.table.setItem(n, 0, QtWidgets.QTableWidgetItem(row.from_name))
            self.table.setItem(n, 1, QtWidgets.QTableWidgetItem(row.to_name))
            item = QtWidgets.QTableWidgetItem(row.amount)
            item.setTextAlignment(QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter)
            self.table.setItem(n, 2, item)

    @QtCore.Slot(object)
    def on_error(self, ex: Exception) -> None:
        self.table.setRowCount(0)
        ui.set_error_text(self.message_label, ui.error_text(ex))
