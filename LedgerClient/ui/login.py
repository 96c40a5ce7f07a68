"""Sign-in dialog.

:func:`ensure_signed_in` runs it at start-up when no session token is stored, before the main
window is built. The main window opens it again whenever the session is revoked.
"""
import logging

from PySide6 import QtCore, QtWidgets

from . import ui
from ..core import worker


class LoginDialog(QtWidgets.QDialog):
    """Sign in, or register and sign in.

    Args:
        session: The :class:`LedgerClient.core.session.SessionStore`.
        client: The :class:`LedgerClient.core.api.ApiClient`.
    """

    def __init__(self, session, client, parent=None):
        super().__init__(parent=parent)
        self.session = session
        self.client = client

        self.setWindowTitle('Sign in')
        self.setModal(True)
        self.setMinimumWidth(ui.Size.DefaultWidth(0.6))

        self.server_label = None
        self.name_editor = None
        self.email_editor = None
        self.password_editor = None
        self.status_label = None
        self.login_button = None
        self.register_button = None

        self._create_ui()
        self._connect_signals()

    def _create_ui(self):
        QtWidgets.QVBoxLayout(self)
        o = ui.Size.Margin(1.0)
        self.layout().setContentsMargins(o, o, o, o)
        self.layout().setSpacing(ui.Size.Margin(0.5))

        title = QtWidgets.QLabel('Ledger', self)
        title.setObjectName('Title')
        self.layout().addWidget(title)

        from ..settings import lib
        self.server_label = QtWidgets.QLabel(lib.settings.base_url, self)
        self.server_label.setObjectName('Secondary')
        self.layout().addWidget(self.server_label)

        form = QtWidgets.QFormLayout()
        self.name_editor = QtWidgets.QLineEdit(self)
        self.name_editor.setPlaceholderText('Only needed to register')
        self.email_editor = QtWidgets.QLineEdit(self)
        self.email_editor.setPlaceholderText('you@example.com')
        self.password_editor = QtWidgets.QLineEdit(self)
        self.password_editor.setEchoMode(QtWidgets.QLineEdit.Password)
        form.addRow('Name', self.name_editor)
        form.addRow('Email', self.email_editor)
        form.addRow('Password', self.password_editor)
        self.layout().addLayout(form)

        self.status_label = QtWidgets.QLabel('', self)
        self.status_label.setWordWrap(True)
        self.layout().addWidget(self.status_label)

        row = QtWidgets.QHBoxLayout()
        row.addStretch(1)
        self.register_button = QtWidgets.QPushButton('Register', self)
        self.login_button = QtWidgets.QPushButton('Sign in', self)
        self.login_button.setDefault(True)
        row.addWidget(self.register_button)
        row.addWidget(self.login_button)
        self.layout().addLayout(row)

    def _connect_signals(self):
        self.login_button.clicked.connect(self.login)
        self.register_button.clicked.connect(self.register)
        self.password_editor.returnPressed.connect(self.login)

    def set_busy(self, busy: bool) -> None:
        self.login_button.setEnabled(not busy)
        self.register_button.setEnabled(not busy)

    @QtCore.Slot()
    def login(self) -> None:
        ui.set_status_text(self.status_label, 'Signing in...')
        self.set_busy(True)
        worker.submit(
            self.session.login(self.client, self.email_editor.text(), self.password_editor.text()),
            on_result=self.on_success,
            on_error=self.on_error,
        )

    @QtCore.Slot()
    def register(self) -> None:
        ui.set_status_text(self.status_label, 'Registering...')
        self.set_busy(True)
        worker.submit(
            self.session.register(
                self.client,
                self.name_editor.text(),
                self.email_editor.text(),
                self.password_editor.text(),
            ),
            on_result=self.on_success,
            on_error=self.on_error,
        )

    @QtCore.Slot(object)
    def on_success(self, token: object) -> None:
        self.set_busy(False)
        if not self.session.is_authenticated():
            ui.set_error_text(self.status_label, 'Login failed.')
            return
        logging.debug('Sign-in dialog accepted.')
        self.password_editor.clear()
        self.accept()

    @QtCore.Slot(object)
    def on_error(self, ex: Exception) -> None:
        self.set_busy(False)
        ui.set_error_text(self.status_label, ui.error_text(ex))


def ensure_signed_in(session, client) -> bool:
    """Shows the sign-in dialog modally unless a session token is already stored.

    Args:
        session: The :class:`LedgerClient.core.session.SessionStore`.
        client: The :class:`LedgerClient.core.api.ApiClient` used to sign in.

    Returns:
        bool: True when a session is available afterwards.

    """
    if session.is_authenticated():
        return True

    logging.debug('No session token stored, signing in first.')
    dialog = LoginDialog(session, client)
    try:
        dialog.exec()
    finally:
        dialog.deleteLater()
    return session.is_authenticated()
