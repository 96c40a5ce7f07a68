"""
LedgerClient: desktop client for a shared-ledger service.

This package provides:

- :mod:`LedgerClient.core` – The client-side state engine: api client, session, ledger state, split allocation and chart lifecycle.
- :mod:`LedgerClient.data` – Dashboard derivations (:func:`LedgerClient.data.data.derive_dashboard`), settlement plans and Qt table models.
- :mod:`LedgerClient.ui` – A PySide6-based UI with the dashboard, custom-painted charts and editors.
- :mod:`LedgerClient.settings` – Client configuration schema, validation and persistence.
- :mod:`LedgerClient.log` – In-app logging with a log viewer.

Use :func:`LedgerClient.exec_` to launch the application.
"""
import sys

from PySide6 import QtCore

# Fail on Python < 3.11
if not (sys.version_info.major == 3 and sys.version_info.minor >= 11):
    raise RuntimeError('LedgerClient requires Python 3.11 or higher.')

__version__ = '0.1.0'
__description__ = 'LedgerClient: desktop client for a shared-ledger service.'

from .log import log

log.setup_logging()


def exec_() -> None:
    """Launch the LedgerClient GUI application and enter its event loop.

    The main window, the ledger state and every loader are built only after a session exists:
    without a stored token the sign-in dialog runs first.
    """
    import concurrent.futures
    import logging

    from .core import worker
    from .core.api import ApiClient
    from .core.session import SessionStore
    from .ui import app, login, main
    from .ui.actions import signals

    application = app.Application(sys.argv)
    session = SessionStore()
    client = ApiClient(session)

    if login.ensure_signed_in(session, client):
        main.show(session=session, client=client)
        # Ask components to load their data
        QtCore.QTimer.singleShot(100, signals.initializationRequested)
        code = application.exec()
    else:
        logging.info('Sign-in cancelled, exiting.')
        code = 0

    try:
        worker.wait(client.aclose(), timeout=5.0)
    except concurrent.futures.TimeoutError:
        logging.warning('Timed out closing the HTTP client.')
    worker.shutdown()
    sys.exit(code)


if __name__ == '__main__':
    exec_()
