"""Ledger management dialogs: creating a ledger, managing its members and setting its budget."""
import logging

from PySide6 import QtCore, QtWidgets

from . import ui
from ..core import worker
from ..data.model import IdRole, MembersModel

LEDGER_TYPES = ['GROUP_BALANCE', 'PERSONAL', 'BUSINESS']

DEFAULT_CATEGORIES = ['Food', 'Transport', 'Housing', 'Utilities', 'Entertainment']


class BaseFormDialog(QtWidgets.QDialog):
    """Dialog with a form, a status label and Cancel / OK buttons.

    Subclasses add their rows in :meth:`_create_form` and implement :meth:`submit`.
    """

    def __init__(self, title: str, state=None, loader=None, parent=None):
        super().__init__(parent=parent)
        self.state = state
        self.loader = loader
        self.setWindowTitle(title)
        self.setMinimumWidth(ui.Size.DefaultWidth(0.7))

        self.form = None
        self.status_label = None
        self.ok_button = None

        self._create_ui()
        self._connect_signals()

    def _create_ui(self):
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(1.0)
        self.layout().setContentsMargins(o, o, o, o)
        self.layout().setSpacing(ui.Size.Margin(0.5))

        self.form = QtWidgets.QFormLayout()
        self.layout().addLayout(self.form)
        self._create_form()

        self.status_label = QtWidgets.QLabel('', self)
        self.status_label.setWordWrap(True)
        self.layout().addWidget(self.status_label)

        row = QtWidgets.QHBoxLayout()
        row.addStretch(1)
        cancel_button = QtWidgets.QPushButton('Cancel', self)
        cancel_button.clicked.connect(self.reject)
        self.ok_button = QtWidgets.QPushButton('Save', self)
        self.ok_button.setDefault(True)
        row.addWidget(cancel_button)
        row.addWidget(self.ok_button)
        self.layout().addLayout(row)

    def _create_form(self):
        pass

    def _connect_signals(self):
        self.ok_button.clicked.connect(self.submit)

    @QtCore.Slot()
    def submit(self) -> None:
        raise NotImplementedError

    def run(self, coro, message: str = 'Saving...') -> None:
        ui.set_status_text(self.status_label, message)
        self.ok_button.setEnabled(False)
        worker.submit(coro, on_result=self.on_success, on_error=self.on_error)

    @QtCore.Slot(object)
    def on_success(self, result: object) -> None:
        self.ok_button.setEnabled(True)
        self.accept()

    @QtCore.Slot(object)
    def on_error(self, ex: Exception) -> None:
        self.ok_button.setEnabled(True)
        ui.set_error_text(self.status_label, ui.error_text(ex))


class NewLedgerDialog(BaseFormDialog):
    """Creates a ledger with its initial expense categories."""

    def __init__(self, loader, parent=None):
        super().__init__('New ledger', loader=loader, parent=parent)

    def _create_form(self):
        from ..settings import lib

        self.name_editor = QtWidgets.QLineEdit(self)
        self.form.addRow('Name', self.name_editor)

        self.type_combo = QtWidgets.QComboBox(self)
        self.type_combo.addItems(LEDGER_TYPES)
        self.form.addRow('Type', self.type_combo)

        self.currency_editor = QtWidgets.QLineEdit(lib.settings['default_currency'] or 'USD', self)
        self.form.addRow('Base currency', self.currency_editor)

        self.share_start_editor = QtWidgets.QDateEdit(QtCore.QDate.currentDate(), self)
        self.share_start_editor.setCalendarPopup(True)
        self.share_start_editor.setDisplayFormat('yyyy-MM-dd')
        self.form.addRow('Share start', self.share_start_editor)

        self.category_editor = QtWidgets.QLineEdit(self)
        self.category_editor.setPlaceholderText('Type a category and press Enter')
        self.form.addRow('Categories', self.category_editor)

        self.category_list = QtWidgets.QListWidget(self)
        self.category_list.setToolTip('Double-click a category to remove it')
        self.category_list.addItems(DEFAULT_CATEGORIES)
        self.form.addRow('', self.category_list)

    def _connect_signals(self):
        super()._connect_signals()
        self.category_editor.returnPressed.connect(self.add_category)
        self.category_list.itemDoubleClicked.connect(
            lambda item: self.category_list.takeItem(self.category_list.row(item))
        )

    def categories(self):
        return [self.category_list.item(n).text() for n in range(self.category_list.count())]

    @QtCore.Slot()
    def add_category(self) -> None:
        name = self.category_editor.text().strip()
        self.category_editor.clear()
        if not name:
            return
        if name.lower() in (c.lower() for c in self.categories()):
            ui.set_status_text(self.status_label, f'"{name}" is already added.')
            return
        self.category_list.addItem(name)

    @QtCore.Slot()
    def submit(self) -> None:
        self.run(self.loader.create_ledger(
            self.name_editor.text(),
            self.type_combo.currentText(),
            self.currency_editor.text(),
            self.share_start_editor.date().toString('yyyy-MM-dd'),
            self.categories(),
        ))


class BudgetDialog(BaseFormDialog):
    """Sets the ledger-wide monthly budget."""

    def __init__(self, state, loader, parent=None):
        super().__init__('Monthly budget', state=state, loader=loader, parent=parent)

    def _create_form(self):
        year, month = self.state.filter.budget_period()
        period = QtWidgets.QLabel(f'{year}-{month:02d}', self)
        self.form.addRow('Month', period)

        self.amount_editor = QtWidgets.QLineEdit(self)
        self.amount_editor.setPlaceholderText('0.00')
        self.form.addRow('Limit', self.amount_editor)

    @QtCore.Slot()
    def submit(self) -> None:
        self.run(self.loader.set_ledger_budget(self.amount_editor.text()))


class MembersDialog(QtWidgets.QDialog):
    """Lists the members of the selected ledger, and adds or removes them."""

    def __init__(self, state, loader, parent=None):
        super().__init__(parent=parent)
        self.state = state
        self.loader = loader

        self.setWindowTitle('Members')
        self.setMinimumSize(ui.Size.DefaultWidth(0.8), ui.Size.DefaultHeight(0.8))

        self.view = None
        self.email_editor = None
        self.add_button = None
        self.remove_button = None
        self.status_label = None

        self._create_ui()
        self._connect_signals()
        self.view.model().init_data(self.state.members)

    def _create_ui(self):
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(1.0)
        self.layout().setContentsMargins(o, o, o, o)
        self.layout().setSpacing(ui.Size.Margin(0.5))

        self.view = QtWidgets.QTableView(self)
        self.view.setModel(MembersModel(parent=self.view))
        self.view.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectRows)
        self.view.setSelectionMode(QtWidgets.QAbstractItemView.SingleSelection)
        self.view.horizontalHeader().setStretchLastSection(True)
        self.view.verticalHeader().setVisible(False)
        self.view.setItemDelegate(ui.RoundedRowDelegate(parent=self.view))
        self.layout().addWidget(self.view, 1)

        row = QtWidgets.QHBoxLayout()
        self.email_editor = QtWidgets.QLineEdit(self)
        self.email_editor.setPlaceholderText('Email of the user to add')
        self.add_button = QtWidgets.QPushButton('Add', self)
        self.remove_button = QtWidgets.QPushButton('Remove selected', self)
        row.addWidget(self.email_editor, 1)
        row.addWidget(self.add_button)
        row.addWidget(self.remove_button)
        self.layout().addLayout(row)

        self.status_label = QtWidgets.QLabel('', self)
        self.status_label.setWordWrap(True)
        self.layout().addWidget(self.status_label)

    def _connect_signals(self):
        self.state.membersChanged.connect(self.view.model().init_data)
        self.add_button.clicked.connect(self.add_member)
        self.email_editor.returnPressed.connect(self.add_member)
        self.remove_button.clicked.connect(self.remove_member)

    @QtCore.Slot()
    def add_member(self) -> None:
        email = self.email_editor.text()
        ui.set_status_text(self.status_label, 'Adding member...')
        worker.submit(
            self.loader.add_member(email),
            on_result=self.member_added,
            on_error=self.on_error,
        )

    @QtCore.Slot(object)
    def member_added(self, user_id: object) -> None:
        self.email_editor.clear()
        ui.set_status_text(self.status_label, f'Added user {user_id}.')

    @QtCore.Slot()
    def remove_member(self) -> None:
        index = self.view.selectionModel().currentIndex()
        if not index.isValid():
            ui.set_error_text(self.status_label, 'Please select a member first.')
            return
        user_id = index.data(IdRole)
        logging.debug(f'Removing user {user_id}')
        ui.set_status_text(self.status_label, 'Removing member...')
        worker.submit(
            self.loader.remove_member(user_id),
            on_result=lambda _: ui.set_status_text(self.status_label, f'Removed user {user_id}.'),
            on_error=self.on_error,
        )

    @QtCore.Slot(object)
    def on_error(self, ex: Exception) -> None:
        ui.set_error_text(self.status_label, ui.error_text(ex))
