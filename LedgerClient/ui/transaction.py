"""Transaction editor and transaction detail dialogs.

The editor collects one transaction with its splits. While editing, the amounts the server will
book per member are previewed with :func:`LedgerClient.core.splits.preview_allocation`.
"""
import logging
from typing import List, Optional

from PySide6 import QtCore, QtWidgets

from . import ui
from ..core import models, worker
from ..core.normalize import fmt
from ..core.splits import AllocationError, SplitRow, build_splits, preview_allocation
from ..data import data

DATETIME_FORMAT = 'yyyy-MM-ddTHH:mm:ss'


class SplitColumns:
    Name = 0
    Value = 1
    Preview = 2


class SplitTable(QtWidgets.QTableWidget):
    """One row per ledger member: an inclusion checkbox, the share value and the preview."""
    rowsChanged = QtCore.Signal()

    def __init__(self, parent=None):
        super().__init__(0, 3, parent=parent)
        self.setHorizontalHeaderLabels(['Member', 'Value', 'Booked'])
        self.horizontalHeader().setSectionResizeMode(QtWidgets.QHeaderView.Stretch)
        self.verticalHeader().setVisible(False)
        self.setSelectionMode(QtWidgets.QAbstractItemView.NoSelection)
        self.itemChanged.connect(self.rowsChanged)

    def set_members(self, members: List[models.Member]) -> None:
        self.blockSignals(True)
        try:
            self.setRowCount(0)
            for member in members:
                row = self.rowCount()
                self.insertRow(row)

                item = QtWidgets.QTableWidgetItem(member.name or f'User {member.user_id}')
                item.setFlags(QtCore.Qt.ItemIsEnabled | QtCore.Qt.ItemIsUserCheckable)
                item.setCheckState(QtCore.Qt.Checked)
                item.setData(QtCore.Qt.UserRole, member.user_id)
                self.setItem(row, SplitColumns.Name, item)

                self.setItem(row, SplitColumns.Value, QtWidgets.QTableWidgetItem(''))

                item = QtWidgets.QTableWidgetItem('')
                item.setFlags(QtCore.Qt.ItemIsEnabled)
                item.setTextAlignment(QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter)
                self.setItem(row, SplitColumns.Preview, item)
        finally:
            self.blockSignals(False)
        self.rowsChanged.emit()

    def set_value_editable(self, editable: bool) -> None:
        self.blockSignals(True)
        try:
            for row in range(self.rowCount()):
                item = self.item(row, SplitColumns.Value)
                flags = QtCore.Qt.ItemIsEnabled
                if editable:
                    flags |= QtCore.Qt.ItemIsEditable
                item.setFlags(flags)
        finally:
            self.blockSignals(False)

    def rows(self) -> List[SplitRow]:
        result = []
        for row in range(self.rowCount()):
            name = self.item(row, SplitColumns.Name)
            value = self.item(row, SplitColumns.Value)
            result.append(SplitRow(
                user_id=name.data(QtCore.Qt.UserRole),
                name=name.text(),
                included=name.checkState() == QtCore.Qt.Checked,
                value=value.text() if value else '',
            ))
        return result

    def set_preview(self, amounts: dict) -> None:
        self.blockSignals(True)
        try:
            for row in range(self.rowCount()):
                user_id = self.item(row, SplitColumns.Name).data(QtCore.Qt.UserRole)
                amount = amounts.get(user_id)
                self.item(row, SplitColumns.Preview).setText(fmt(amount) if amount is not None else '')
        finally:
            self.blockSignals(False)


class TransactionEditor(QtWidgets.QDialog):
    """
    Creates a transaction in the selected ledger.

    Args:
        state: The :class:`LedgerClient.core.state.LedgerState`.
        loader: The :class:`LedgerClient.core.state.LedgerLoader`.

    """

    def __init__(self, state, loader, parent=None):
        super().__init__(parent=parent)
        self.state = state
        self.loader = loader

        self.setWindowTitle('Add transaction')
        self.setMinimumWidth(ui.Size.DefaultWidth(1.0))

        self.type_combo = None
        self.amount_editor = None
        self.currency_editor = None
        self.datetime_editor = None
        self.payer_combo = None
        self.category_combo = None
        self.note_editor = None
        self.method_combo = None
        self.rounding_combo = None
        self.tail_combo = None
        self.split_table = None
        self.preview_label = None
        self.status_label = None
        self.submit_button = None

        self._create_ui()
        self._connect_signals()
        self.init_data()

    def _create_ui(self):
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(1.0)
        self.layout().setContentsMargins(o, o, o, o)
        self.layout().setSpacing(ui.Size.Margin(0.5))

        form = QtWidgets.QFormLayout()

        self.type_combo = QtWidgets.QComboBox(self)
        for t in models.TransactionType:
            self.type_combo.addItem(t.value, t)
        self.type_combo.setCurrentIndex(self.type_combo.findData(models.TransactionType.Expense))
        form.addRow('Type', self.type_combo)

        self.amount_editor = QtWidgets.QLineEdit(self)
        self.amount_editor.setPlaceholderText('0.00')
        form.addRow('Amount', self.amount_editor)

        self.currency_editor = QtWidgets.QLineEdit(self)
        form.addRow('Currency', self.currency_editor)

        self.datetime_editor = QtWidgets.QDateTimeEdit(QtCore.QDateTime.currentDateTime(), self)
        self.datetime_editor.setCalendarPopup(True)
        self.datetime_editor.setDisplayFormat('yyyy-MM-dd HH:mm')
        form.addRow('Date', self.datetime_editor)

        self.payer_combo = QtWidgets.QComboBox(self)
        form.addRow('Payer', self.payer_combo)

        self.category_combo = QtWidgets.QComboBox(self)
        form.addRow('Category', self.category_combo)

        self.note_editor = QtWidgets.QLineEdit(self)
        form.addRow('Note', self.note_editor)

        self.method_combo = QtWidgets.QComboBox(self)
        for m in models.SplitMethod:
            self.method_combo.addItem(m.value, m)
        form.addRow('Split', self.method_combo)

        self.rounding_combo = QtWidgets.QComboBox(self)
        for r in models.RoundingStrategy:
            self.rounding_combo.addItem(r.value, r)
        form.addRow('Rounding', self.rounding_combo)

        self.tail_combo = QtWidgets.QComboBox(self)
        for t in models.TailAllocation:
            self.tail_combo.addItem(t.value, t)
        form.addRow('Tail allocation', self.tail_combo)

        self.layout().addLayout(form)

        self.split_table = SplitTable(parent=self)
        self.layout().addWidget(self.split_table, 1)

        self.preview_label = QtWidgets.QLabel('', self)
        self.preview_label.setObjectName('Secondary')
        self.preview_label.setWordWrap(True)
        self.layout().addWidget(self.preview_label)

        self.status_label = QtWidgets.QLabel('', self)
        self.status_label.setWordWrap(True)
        self.layout().addWidget(self.status_label)

        row = QtWidgets.QHBoxLayout()
        row.addStretch(1)
        cancel_button = QtWidgets.QPushButton('Cancel', self)
        cancel_button.clicked.connect(self.reject)
        self.submit_button = QtWidgets.QPushButton('Save', self)
        self.submit_button.setDefault(True)
        row.addWidget(cancel_button)
        row.addWidget(self.submit_button)
        self.layout().addLayout(row)

    def _connect_signals(self):
        self.submit_button.clicked.connect(self.submit)
        self.method_combo.currentIndexChanged.connect(self.method_changed)
        self.amount_editor.textChanged.connect(self.update_preview)
        self.payer_combo.currentIndexChanged.connect(self.update_preview)
        self.rounding_combo.currentIndexChanged.connect(self.update_preview)
        self.tail_combo.currentIndexChanged.connect(self.update_preview)
        self.split_table.rowsChanged.connect(self.update_preview)

    @QtCore.Slot()
    def init_data(self) -> None:
        from ..settings import lib

        meta = self.state.meta
        currency = (meta.base_currency if meta else None) or lib.settings['default_currency'] or 'USD'
        self.currency_editor.setText(currency)

        self.payer_combo.blockSignals(True)
        self.payer_combo.clear()
        for member in self.state.members:
            self.payer_combo.addItem(self.state.member_name(member.user_id), member.user_id)
        if self.state.user is not None:
            idx = self.payer_combo.findData(self.state.user.id)
            if idx >= 0:
                self.payer_combo.setCurrentIndex(idx)
        self.payer_combo.blockSignals(False)

        self.category_combo.clear()
        self.category_combo.addItem('Uncategorized', None)
        for category in self.state.categories:
            self.category_combo.addItem(category.name, category.id)

        self.split_table.set_members(self.state.members)
        self.method_changed()

    def method(self) -> models.SplitMethod:
        return self.method_combo.currentData()

    @QtCore.Slot()
    def method_changed(self) -> None:
        self.split_table.set_value_editable(self.method() != models.SplitMethod.Equal)
        self.update_preview()

    @QtCore.Slot()
    def update_preview(self) -> None:
        """Shows the amount each included member will be booked for."""
        splits = build_splits(self.method(), self.split_table.rows())
        if not splits or not self.amount_editor.text().strip():
            self.split_table.set_preview({})
            self.preview_label.setText('')
            return

        try:
            amounts = preview_allocation(
                self.method(),
                splits,
                self.amount_editor.text().strip(),
                payer_id=self.payer_combo.currentData(),
                tail_allocation=self.tail_combo.currentData(),
                rounding_strategy=self.rounding_combo.currentData(),
                creator_id=self.state.user.id if self.state.user else None,
            )
        except AllocationError as ex:
            self.split_table.set_preview({})
            self.preview_label.setText(f'{ex}')
            return

        self.split_table.set_preview(amounts)
        self.preview_label.setText(
            f'Booked total: {fmt(sum(amounts.values()))} {self.currency_editor.text().strip()}'
        )

    @QtCore.Slot()
    def submit(self) -> None:
        splits = build_splits(self.method(), self.split_table.rows())
        coro = self.loader.submit_transaction(
            self.type_combo.currentData(),
            self.amount_editor.text(),
            self.datetime_editor.dateTime().toString(DATETIME_FORMAT),
            self.payer_combo.currentData(),
            splits=splits,
            currency=self.currency_editor.text(),
            note=self.note_editor.text(),
            category_id=self.category_combo.currentData(),
            rounding_strategy=self.rounding_combo.currentData(),
            tail_allocation=self.tail_combo.currentData(),
        )
        ui.set_status_text(self.status_label, 'Saving...')
        self.submit_button.setEnabled(False)
        worker.submit(coro, on_result=self.on_success, on_error=self.on_error)

    @QtCore.Slot(object)
    def on_success(self, result: object) -> None:
        logging.debug('Transaction saved')
        self.submit_button.setEnabled(True)
        self.accept()

    @QtCore.Slot(object)
    def on_error(self, ex: Exception) -> None:
        self.submit_button.setEnabled(True)
        ui.set_error_text(self.status_label, ui.error_text(ex))


class TransactionDetailDialog(QtWidgets.QDialog):
    """Read-only view of one transaction and its booked splits."""

    def __init__(self, state, detail: models.TransactionDetail, parent=None):
        super().__init__(parent=parent)
        self.state = state
        self.detail = detail

        self.setWindowTitle(f'Transaction {detail.id}')
        self.setMinimumWidth(ui.Size.DefaultWidth(0.8))

        self._create_ui()

    def _create_ui(self):
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(1.0)
        self.layout().setContentsMargins(o, o, o, o)
        self.layout().setSpacing(ui.Size.Margin(0.5))

        form = QtWidgets.QFormLayout()
        for label, value in data.transaction_detail_fields(self.detail, self.state):
            value_label = QtWidgets.QLabel(value, self)
            value_label.setTextInteractionFlags(QtCore.Qt.TextSelectableByMouse)
            form.addRow(label, value_label)
        self.layout().addLayout(form)

        splits_label = QtWidgets.QLabel('Splits', self)
        splits_label.setObjectName('Title')
        self.layout().addWidget(splits_label)

        lines = data.transaction_detail_lines(self.detail)
        if not lines:
            empty = QtWidgets.QLabel('No splits.', self)
            empty.setObjectName('Secondary')
            self.layout().addWidget(empty)

        for line in lines:
            main = QtWidgets.QLabel(line.main, self)
            sub = QtWidgets.QLabel(line.sub, self)
            sub.setObjectName('Secondary')
            self.layout().addWidget(main)
            self.layout().addWidget(sub)

        self.layout().addStretch(1)
        buttons = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Close, self)
        buttons.rejected.connect(self.reject)
        self.layout().addWidget(buttons)


def show_transaction_detail(state, loader, transaction_id: int,
                            parent: Optional[QtWidgets.QWidget] = None) -> None:
    """Fetches a transaction and shows it in a :class:`TransactionDetailDialog`."""

    @QtCore.Slot(object)
    def on_result(detail: Optional[models.TransactionDetail]) -> None:
        if detail is None:
            return
        dialog = TransactionDetailDialog(state, detail, parent=parent)
        dialog.setAttribute(QtCore.Qt.WA_DeleteOnClose)
        dialog.open()

    worker.submit(loader.load_transaction_detail(transaction_id), on_result=on_result)
