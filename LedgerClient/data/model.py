"""Qt table models for the dashboard tables.

- :class:`TransactionsModel` – the filtered transaction list.
- :class:`ArApModel` – accounts receivable / payable per member.
- :class:`MerchantsModel` – top merchants.
- :class:`MembersModel` – the members of the selected ledger.

The models only display what :class:`LedgerClient.core.state.LedgerState` holds, and reset
whenever the corresponding state signal fires.
"""
import enum
from typing import Any, List, Optional

from PySide6 import QtCore, QtGui

from . import data
from ..core import models
from ..core.normalize import fmt
from ..ui import ui

IdRole = QtCore.Qt.UserRole + 1


class BaseTableModel(QtCore.QAbstractTableModel):
    """Table model over a list of rows. Subclasses define ``headers`` and :meth:`display`."""
    headers: List[str] = []
    right_aligned: tuple = ()

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent=parent)
        self._data: List[Any] = []

    @QtCore.Slot(object)
    def init_data(self, rows: List[Any]) -> None:
        self.beginResetModel()
        self._data = list(rows or [])
        self.endResetModel()

    @QtCore.Slot()
    def clear_data(self) -> None:
        self.beginResetModel()
        self._data = []
        self.endResetModel()

    def row_data(self, row: int) -> Any:
        return self._data[row]

    def rowCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self._data)

    def columnCount(self, parent: QtCore.QModelIndex = QtCore.QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self.headers)

    def display(self, item: Any, column: int) -> str:
        raise NotImplementedError

    def item_id(self, item: Any) -> Any:
        return None

    def foreground(self, item: Any, column: int) -> Optional[QtGui.QColor]:
        return None

    def data(self, index: QtCore.QModelIndex, role: int = QtCore.Qt.DisplayRole) -> Any:
        if not index.isValid() or index.row() >= len(self._data):
            return None
        item = self._data[index.row()]
        column = index.column()

        if role in (QtCore.Qt.DisplayRole, QtCore.Qt.ToolTipRole):
            return self.display(item, column)
        if role == QtCore.Qt.TextAlignmentRole:
            if column in self.right_aligned:
                return int(QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter)
            return int(QtCore.Qt.AlignLeft | QtCore.Qt.AlignVCenter)
        if role == QtCore.Qt.ForegroundRole:
            return self.foreground(item, column)
        if role == IdRole:
            return self.item_id(item)
        return None

    def headerData(self, section: int, orientation: QtCore.Qt.Orientation,
                   role: int = QtCore.Qt.DisplayRole) -> Any:
        if orientation == QtCore.Qt.Horizontal and role == QtCore.Qt.DisplayRole:
            if 0 <= section < len(self.headers):
                return self.headers[section]
        return None


class TransactionColumns(enum.IntEnum):
    Date = 0
    Type = 1
    Note = 2
    Amount = 3


class TransactionsModel(BaseTableModel):
    headers = ['Date', 'Type', 'Note', 'Amount']
    right_aligned = (TransactionColumns.Amount,)

    def display(self, item: models.Transaction, column: int) -> str:
        if column == TransactionColumns.Date:
            return (item.occurred_at or '')[:10]
        if column == TransactionColumns.Type:
            return item.type or ''
        if column == TransactionColumns.Note:
            return item.note or ''
        if column == TransactionColumns.Amount:
            return f'{fmt(item.total_amount)} {item.currency or ""}'.strip()
        return ''

    def item_id(self, item: models.Transaction) -> Any:
        return item.id

    def foreground(self, item: models.Transaction, column: int) -> Optional[QtGui.QColor]:
        if column != TransactionColumns.Amount:
            return None
        if item.type == models.TransactionType.Income:
            return ui.Color.Green()
        if item.type == models.TransactionType.Expense:
            return ui.Color.Red()
        return None


class ArApModel(BaseTableModel):
    headers = ['User', 'AR', 'AP', 'Net']
    right_aligned = (1, 2, 3)

    def display(self, item: data.ArApRow, column: int) -> str:
        return (item.user_name, item.ar, item.ap, item.net)[column]

    def foreground(self, item: data.ArApRow, column: int) -> Optional[QtGui.QColor]:
        if column != 3 or item.net == '-':
            return None
        return ui.Color.Red() if item.net.startswith('-') else ui.Color.Green()


class MerchantsModel(BaseTableModel):
    headers = ['Merchant', 'Amount']
    right_aligned = (1,)

    def display(self, item: tuple, column: int) -> str:
        return item[column]


class MembersModel(BaseTableModel):
    headers = ['Name', 'Role']

    def display(self, item: models.Member, column: int) -> str:
        if column == 0:
            return f'{item.name or ""} [User {item.user_id}]'.strip()
        return item.role or ''

    def item_id(self, item: models.Member) -> Any:
        return item.user_id
