"""Main window composition and UI entry points for LedgerClient.

This module defines:
    - show(): initialize and display the main window
    - ValueCard: a titled total on the dashboard
    - MainWindow: the ledger toolbar, the dashboard, and the filtered transaction list

The window owns the client-side objects of one signed-in session: the
:class:`LedgerClient.core.state.LedgerState`, its :class:`LedgerClient.core.state.LedgerLoader`,
the :class:`LedgerClient.core.charts.ChartLifecycleManager` and the
:class:`LedgerClient.data.settlement.SettlementPresenter`.
"""
import logging
from typing import Optional

from PySide6 import QtCore, QtGui, QtWidgets

from . import ui
from .charts import chart_factory
from .ledger import BudgetDialog, MembersDialog, NewLedgerDialog
from .login import LoginDialog
from .settlement import SettlementDialog
from .transaction import TransactionEditor, show_transaction_detail
from ..core import models, worker
from ..core.api import ApiClient
from ..core.charts import ChartLifecycleManager, ChartSlot
from ..core.session import SessionStore
from ..core.state import LedgerLoader, LedgerState, TransactionFilter
from ..data import data
from ..data.model import ArApModel, IdRole, MerchantsModel, TransactionsModel
from ..data.settlement import SettlementPresenter
from ..log.view import LogDialog
from ..settings.lib import app_name
from ..ui.actions import signals

widget = None


def show(session: Optional[SessionStore] = None, client: Optional[ApiClient] = None) -> 'MainWindow':
    global widget

    if widget is None:
        widget = MainWindow(session=session, client=client)

    widget.show()
    return widget


def _table_view(model: QtCore.QAbstractItemModel, parent: QtWidgets.QWidget) -> QtWidgets.QTableView:
    view = QtWidgets.QTableView(parent)
    model.setParent(view)
    view.setModel(model)
    view.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectRows)
    view.setSelectionMode(QtWidgets.QAbstractItemView.SingleSelection)
    view.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
    view.setShowGrid(False)
    view.verticalHeader().setVisible(False)
    view.horizontalHeader().setStretchLastSection(True)
    view.horizontalHeader().setSectionResizeMode(QtWidgets.QHeaderView.Stretch)
    view.setItemDelegate(ui.RoundedRowDelegate(parent=view))
    return view


class ValueCard(QtWidgets.QFrame):
    """A titled value, e.g. the income total."""

    def __init__(self, title: str, parent=None):
        super().__init__(parent=parent)
        self.setObjectName('Card')

        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(0.6)
        self.layout().setContentsMargins(o, o, o, o)

        label = QtWidgets.QLabel(title, self)
        label.setObjectName('Secondary')
        self.layout().addWidget(label)

        self.value_label = QtWidgets.QLabel('-', self)
        self.value_label.setObjectName('Value')
        self.layout().addWidget(self.value_label)

    def set_value(self, text: str, color: Optional[QtGui.QColor] = None) -> None:
        self.value_label.setText(text)
        if color is None:
            self.value_label.setStyleSheet('')
        else:
            self.value_label.setStyleSheet(f'color: {ui.Color.rgb(color)};')


class ChartCard(QtWidgets.QFrame):
    """Host of one chart slot. The chart widget itself is owned by the chart manager."""

    def __init__(self, title: str, parent=None):
        super().__init__(parent=parent)
        self.setObjectName('Card')
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(0.6)
        self.layout().setContentsMargins(o, o, o, o)

        label = QtWidgets.QLabel(title, self)
        label.setObjectName('Secondary')
        self.layout().addWidget(label)


class MainWindow(QtWidgets.QMainWindow):
    """
    The dashboard of the selected ledger.

    Args:
        session: The session store. A new one is created when omitted.
        client: The api client. A new one is created when omitted.

    """

    def __init__(self, session: Optional[SessionStore] = None, client: Optional[ApiClient] = None,
                 parent=None):
        super().__init__(parent=parent)
        self.setWindowTitle(app_name)
        self.setObjectName('LedgerClientMainWindow')

        self.session = session or SessionStore()
        self.client = client or ApiClient(self.session)
        self.state = LedgerState(parent=self)
        self.loader = LedgerLoader(self.client, self.state)
        self.presenter = SettlementPresenter(self.client)

        self._login_dialog: Optional[LoginDialog] = None

        # Dashboard updates are coalesced: analytics and budget status arrive separately
        self._dashboard_timer = QtCore.QTimer(self)
        self._dashboard_timer.setSingleShot(True)
        self._dashboard_timer.setInterval(0)

        self.toolbar: QtWidgets.QToolBar
        self.ledger_combo: QtWidgets.QComboBox
        self.logs_action: QtGui.QAction
        self.user_label: QtWidgets.QLabel
        self.meta_label: QtWidgets.QLabel
        self.income_card: ValueCard
        self.expense_card: ValueCard
        self.net_card: ValueCard
        self.range_label: QtWidgets.QLabel
        self.alert_label: QtWidgets.QLabel
        self.banner_label: QtWidgets.QLabel
        self.budget_button: QtWidgets.QPushButton
        self.badges_layout: QtWidgets.QHBoxLayout
        self.chart_hosts: dict
        self.arap_view: QtWidgets.QTableView
        self.merchants_view: QtWidgets.QTableView
        self.date_toggle: QtWidgets.QCheckBox
        self.date_from_editor: QtWidgets.QDateEdit
        self.date_to_editor: QtWidgets.QDateEdit
        self.type_filter_combo: QtWidgets.QComboBox
        self.apply_filter_button: QtWidgets.QPushButton
        self.transactions_view: QtWidgets.QTableView
        self.delete_button: QtWidgets.QPushButton

        self._create_ui()
        self.charts = ChartLifecycleManager(chart_factory(self.chart_hosts))
        self._init_actions()
        self._connect_signals()

    def _create_ui(self) -> None:
        central = QtWidgets.QWidget(self)
        layout = QtWidgets.QVBoxLayout(central)
        margin = ui.Size.Margin(1.0)
        layout.setContentsMargins(margin, margin * 0.5, margin, margin)
        layout.setSpacing(margin * 0.5)

        scroll = QtWidgets.QScrollArea(self)
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QtWidgets.QFrame.NoFrame)
        scroll.setWidget(central)
        self.setCentralWidget(scroll)

        self.toolbar = QtWidgets.QToolBar(self)
        self.toolbar.setObjectName('LedgerClientToolBar')
        self.toolbar.setMovable(False)
        self.addToolBar(QtCore.Qt.TopToolBarArea, self.toolbar)

        self.ledger_combo = QtWidgets.QComboBox(self)
        self.ledger_combo.setMinimumWidth(ui.Size.DefaultWidth(0.35))
        self.ledger_combo.setPlaceholderText('No ledgers')
        self.toolbar.addWidget(self.ledger_combo)

        # Header
        row = QtWidgets.QHBoxLayout()
        self.meta_label = QtWidgets.QLabel(data.ledger_meta_label(None), central)
        self.meta_label.setObjectName('Secondary')
        self.user_label = QtWidgets.QLabel('', central)
        self.user_label.setObjectName('Secondary')
        row.addWidget(self.meta_label, 1)
        row.addWidget(self.user_label, 0)
        layout.addLayout(row)

        # Totals
        row = QtWidgets.QHBoxLayout()
        self.income_card = ValueCard('Income', central)
        self.expense_card = ValueCard('Expense', central)
        self.net_card = ValueCard('Net', central)
        for card in (self.income_card, self.expense_card, self.net_card):
            row.addWidget(card, 1)
        layout.addLayout(row)

        self.range_label = QtWidgets.QLabel('', central)
        self.range_label.setObjectName('Secondary')
        layout.addWidget(self.range_label)

        self.alert_label = QtWidgets.QLabel(data.NO_ALERT_MESSAGE, central)
        self.alert_label.setWordWrap(True)
        layout.addWidget(self.alert_label)

        row = QtWidgets.QHBoxLayout()
        self.banner_label = QtWidgets.QLabel(data.NO_EXPENSE_MESSAGE, central)
        self.banner_label.setWordWrap(True)
        self.budget_button = QtWidgets.QPushButton('Edit budget', central)
        row.addWidget(self.banner_label, 1)
        row.addWidget(self.budget_button, 0)
        layout.addLayout(row)

        self.badges_layout = QtWidgets.QHBoxLayout()
        self.badges_layout.setSpacing(ui.Size.Indicator(1.5))
        layout.addLayout(self.badges_layout)

        # Charts
        row = QtWidgets.QHBoxLayout()
        self.chart_hosts = {
            ChartSlot.Trend: ChartCard('Income / Expense', central),
            ChartSlot.Category: ChartCard('Expense by category', central),
        }
        row.addWidget(self.chart_hosts[ChartSlot.Trend], 3)
        row.addWidget(self.chart_hosts[ChartSlot.Category], 2)
        layout.addLayout(row)

        # AR/AP and merchants
        row = QtWidgets.QHBoxLayout()
        self.arap_view = _table_view(ArApModel(), central)
        self.merchants_view = _table_view(MerchantsModel(), central)
        row.addWidget(self.arap_view, 3)
        row.addWidget(self.merchants_view, 2)
        layout.addLayout(row)

        # Filter bar
        row = QtWidgets.QHBoxLayout()
        self.date_toggle = QtWidgets.QCheckBox('Date range', central)
        today = QtCore.QDate.currentDate()
        self.date_from_editor = QtWidgets.QDateEdit(QtCore.QDate(today.year(), today.month(), 1), central)
        self.date_to_editor = QtWidgets.QDateEdit(today, central)
        for editor in (self.date_from_editor, self.date_to_editor):
            editor.setCalendarPopup(True)
            editor.setDisplayFormat('yyyy-MM-dd')
            editor.setEnabled(False)
        self.type_filter_combo = QtWidgets.QComboBox(central)
        self.type_filter_combo.addItem('All types', '')
        for t in models.TransactionType:
            self.type_filter_combo.addItem(t.value, t.value)
        self.apply_filter_button = QtWidgets.QPushButton('Apply', central)
        self.delete_button = QtWidgets.QPushButton('Delete selected', central)

        row.addWidget(self.date_toggle)
        row.addWidget(self.date_from_editor)
        row.addWidget(self.date_to_editor)
        row.addWidget(self.type_filter_combo)
        row.addWidget(self.apply_filter_button)
        row.addStretch(1)
        row.addWidget(self.delete_button)
        layout.addLayout(row)

        self.transactions_view = _table_view(TransactionsModel(), central)
        self.transactions_view.setMinimumHeight(ui.Size.Section(3.0))
        layout.addWidget(self.transactions_view, 1)

        self.setStatusBar(QtWidgets.QStatusBar(self))

    def _init_actions(self) -> None:
        def _add(text: str, slot, tip: str = '') -> QtGui.QAction:
            action = QtGui.QAction(text, self)
            action.setToolTip(tip or text)
            action.triggered.connect(slot)
            self.toolbar.addAction(action)
            return action

        _add('New ledger', signals.showLedgerEditor, 'Create a new ledger')
        _add('Members', signals.showMembers, 'Manage the members of the ledger')
        _add('Settlement', signals.showSettlement, 'Show who pays whom')
        _add('Add transaction', signals.showTransactionEditor, 'Add a transaction to the ledger')

        spacer = QtWidgets.QWidget(self)
        spacer.setSizePolicy(QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Preferred)
        self.toolbar.addWidget(spacer)

        self.logs_action = _add('Logs', self.show_logs, 'Show the application logs')
        _add('Server', signals.openServer, 'Open the server address in the browser')
        _add('Sign out', signals.logoutRequested, 'Sign out')

    def _connect_signals(self) -> None:
        self.state.userChanged.connect(self.set_user)
        self.state.ledgersChanged.connect(self.set_ledgers)
        self.state.ledgerSelected.connect(self.ledger_selected)
        self.state.metaChanged.connect(self.set_meta)
        self.state.transactionsChanged.connect(self.transactions_view.model().init_data)
        self.state.analyticsChanged.connect(self._dashboard_timer.start)
        self.state.budgetChanged.connect(self._dashboard_timer.start)
        self.state.cleared.connect(self.clear)
        self._dashboard_timer.timeout.connect(self.update_dashboard)

        self.ledger_combo.activated.connect(self.ledger_activated)
        self.budget_button.clicked.connect(self.edit_budget)
        self.date_toggle.toggled.connect(self.date_from_editor.setEnabled)
        self.date_toggle.toggled.connect(self.date_to_editor.setEnabled)
        self.apply_filter_button.clicked.connect(self.apply_filter)
        self.delete_button.clicked.connect(self.delete_transaction)
        self.transactions_view.doubleClicked.connect(self.show_transaction)

        signals.initializationRequested.connect(self.initialize)
        signals.authenticated.connect(self.initialize)
        signals.authenticationRequested.connect(self.sign_in)
        signals.logoutRequested.connect(self.sign_out)
        signals.error.connect(self.show_error)

        signals.showLogs.connect(self.flag_logs)
        signals.showLedgerEditor.connect(self.show_ledger_editor)
        signals.showMembers.connect(self.show_members)
        signals.showSettlement.connect(self.show_settlement)
        signals.showTransactionEditor.connect(self.show_transaction_editor)

    def sizeHint(self) -> QtCore.QSize:
        return QtCore.QSize(ui.Size.DefaultWidth(2.0), ui.Size.DefaultHeight(1.8))

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:
        self.charts.clear()
        super().closeEvent(event)

    @QtCore.Slot()
    def initialize(self) -> None:
        """Loads the signed-in user and the ledger list."""
        if not self.session.is_authenticated():
            self.sign_in()
            return
        logging.debug('Loading ledgers')
        worker.submit(self.loader.load_current_user())
        worker.submit(self.loader.load_ledgers())

    @QtCore.Slot()
    def sign_in(self) -> None:
        """Forgets all ledger data and shows the sign-in dialog."""
        worker.submit(self.loader.reset())
        if self._login_dialog is not None and self._login_dialog.isVisible():
            return
        self._login_dialog = LoginDialog(self.session, self.client, parent=self)
        self._login_dialog.accepted.connect(signals.authenticated)
        self._login_dialog.open()

    @QtCore.Slot()
    def sign_out(self) -> None:
        self.session.logout()

    @QtCore.Slot()
    def clear(self) -> None:
        self.charts.clear()
        self.ledger_combo.clear()
        self.user_label.setText('')
        self.meta_label.setText(data.ledger_meta_label(None))
        for view in (self.transactions_view, self.arap_view, self.merchants_view):
            view.model().clear_data()
        self._set_dashboard(data.derive_dashboard(None, []), charts=False)

    @QtCore.Slot(str)
    def show_error(self, message: str) -> None:
        self.statusBar().showMessage(message, 8000)

    @QtCore.Slot(object)
    def set_user(self, user: models.UserProfile) -> None:
        self.user_label.setText(f'Signed in as {user.name or f"User {user.id}"}')

    @QtCore.Slot(object)
    def set_ledgers(self, ledgers) -> None:
        self.ledger_combo.blockSignals(True)
        try:
            self.ledger_combo.clear()
            for ledger in ledgers:
                self.ledger_combo.addItem(data.ledger_label(ledger), ledger.id)
        finally:
            self.ledger_combo.blockSignals(False)

    @QtCore.Slot(object)
    def ledger_selected(self, ledger_id: Optional[int]) -> None:
        self.ledger_combo.blockSignals(True)
        try:
            self.ledger_combo.setCurrentIndex(self.ledger_combo.findData(ledger_id) if ledger_id else -1)
        finally:
            self.ledger_combo.blockSignals(False)
        if ledger_id is None:
            self.meta_label.setText(data.ledger_meta_label(None))

    @QtCore.Slot(int)
    def ledger_activated(self, index: int) -> None:
        ledger_id = self.ledger_combo.itemData(index)
        if ledger_id is None or ledger_id == self.state.current_ledger_id:
            return
        worker.submit(self.loader.select_ledger(ledger_id))

    @QtCore.Slot(object)
    def set_meta(self, meta: models.LedgerMeta) -> None:
        self.meta_label.setText(data.ledger_meta_label(meta))

    @QtCore.Slot()
    def update_dashboard(self) -> None:
        self._set_dashboard(data.derive_dashboard(self.state.analytics, self.state.budget_items))

    def _set_dashboard(self, view: data.DashboardView, charts: bool = True) -> None:
        self.income_card.set_value(view.income_text, ui.Color.Green())
        self.expense_card.set_value(view.expense_text, ui.Color.Red())
        net = view.totals.net
        if isinstance(net, float) and net < 0:
            self.net_card.set_value(view.net_text, ui.Color.Red())
        else:
            self.net_card.set_value(view.net_text)

        self.range_label.setText(view.range_text)
        if view.alert == data.NO_ALERT_MESSAGE:
            ui.set_status_text(self.alert_label, view.alert)
        else:
            self.alert_label.setStyleSheet(f'color: {ui.Color.Yellow(qss=True)};')
            self.alert_label.setText(view.alert)
        self.banner_label.setText(view.banner)

        while self.badges_layout.count():
            item = self.badges_layout.takeAt(0)
            if item.widget():
                item.widget().deleteLater()
        for badge in view.badges:
            label = QtWidgets.QLabel(badge.text, self)
            label.setObjectName('WarningBadge' if badge.warning else 'Badge')
            self.badges_layout.addWidget(label)
        self.badges_layout.addStretch(1)

        self.arap_view.model().init_data(view.arap)
        self.merchants_view.model().init_data(view.merchants)

        if charts:
            self.charts.show(ChartSlot.Trend, view.trend)
            self.charts.show(ChartSlot.Category, view.category)

    def current_filter(self) -> TransactionFilter:
        if self.date_toggle.isChecked():
            date_from = self.date_from_editor.date().toString('yyyy-MM-dd')
            date_to = self.date_to_editor.date().toString('yyyy-MM-dd')
        else:
            date_from = date_to = None
        return TransactionFilter(
            date_from=date_from,
            date_to=date_to,
            type=self.type_filter_combo.currentData() or None,
        )

    @QtCore.Slot()
    def apply_filter(self) -> None:
        worker.submit(self.loader.load_transactions(self.current_filter()))

    def selected_transaction_id(self) -> Optional[int]:
        index = self.transactions_view.selectionModel().currentIndex()
        if not index.isValid():
            return None
        return index.data(IdRole)

    @QtCore.Slot(QtCore.QModelIndex)
    def show_transaction(self, index: QtCore.QModelIndex) -> None:
        transaction_id = index.data(IdRole)
        if transaction_id is None:
            return
        show_transaction_detail(self.state, self.loader, transaction_id, parent=self)

    @QtCore.Slot()
    def delete_transaction(self) -> None:
        transaction_id = self.selected_transaction_id()
        if transaction_id is None:
            self.show_error('Please select a transaction first.')
            return
        res = QtWidgets.QMessageBox.question(
            self, 'Delete transaction', f'Delete transaction {transaction_id}?',
            QtWidgets.QMessageBox.Yes | QtWidgets.QMessageBox.No,
        )
        if res != QtWidgets.QMessageBox.Yes:
            return
        worker.submit(self.loader.delete_transaction(transaction_id))

    def _open(self, dialog: QtWidgets.QDialog) -> None:
        dialog.setAttribute(QtCore.Qt.WA_DeleteOnClose)
        dialog.open()

    def _require_ledger(self) -> bool:
        if self.state.current_ledger_id is None:
            self.show_error('Please select a ledger first.')
            return False
        return True

    @QtCore.Slot()
    def flag_logs(self) -> None:
        self.logs_action.setText('Logs •')

    @QtCore.Slot()
    def show_logs(self) -> None:
        self.logs_action.setText('Logs')
        self._open(LogDialog(parent=self))

    @QtCore.Slot()
    def show_ledger_editor(self) -> None:
        self._open(NewLedgerDialog(self.loader, parent=self))

    @QtCore.Slot()
    def show_members(self) -> None:
        if self._require_ledger():
            self._open(MembersDialog(self.state, self.loader, parent=self))

    @QtCore.Slot()
    def show_settlement(self) -> None:
        if self._require_ledger():
            self._open(SettlementDialog(self.state, self.presenter, parent=self))

    @QtCore.Slot()
    def show_transaction_editor(self) -> None:
        if self._require_ledger():
            self._open(TransactionEditor(self.state, self.loader, parent=self))

    @QtCore.Slot()
    def edit_budget(self) -> None:
        if self._require_ledger():
            self._open(BudgetDialog(self.state, self.loader, parent=self))
