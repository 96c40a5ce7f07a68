"""Application-wide Qt signals and utility slots for LedgerClient.

This module provides:
    - open_server slot: opens the configured ledger server address in the browser.
    - Signals: custom Qt signals for the session lifecycle,
      error reporting and UI actions (showLogs, showSettlement, showMembers).

Ledger data itself is never kept here; it lives in :class:`LedgerClient.core.state.LedgerState`.
"""
import logging

from PySide6 import QtCore, QtGui


@QtCore.Slot()
def open_server() -> None:
    """
    Opens the configured server address in the default browser.
    """
    from ..settings import lib

    url: str = lib.settings.base_url
    logging.debug(f'Opening server address: {url}')
    QtGui.QDesktopServices.openUrl(QtCore.QUrl(url))


class Signals(QtCore.QObject):
    """Centralized Qt signals for session and UI events."""
    initializationRequested = QtCore.Signal()

    # Session lifecycle
    authenticationRequested = QtCore.Signal()
    authenticated = QtCore.Signal()
    logoutRequested = QtCore.Signal()

    openServer = QtCore.Signal()

    showLogs = QtCore.Signal()
    showSettlement = QtCore.Signal()
    showMembers = QtCore.Signal()
    showTransactionEditor = QtCore.Signal()
    showLedgerEditor = QtCore.Signal()

    error = QtCore.Signal(str)

    def __init__(self):
        super().__init__()
        self._connect_signals()

    def _connect_signals(self):
        self.openServer.connect(open_server)


signals = Signals()
