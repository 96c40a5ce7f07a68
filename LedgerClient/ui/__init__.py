"""
UI package: application actions, main application setup, theming, and widgets.

This package provides:

- :mod:`LedgerClient.ui.actions` – Application-wide Qt signals and utility slots.
- :mod:`LedgerClient.ui.app` – QApplication subclass and setup functions for high-DPI.
- :mod:`LedgerClient.ui.main` – Main window composition and the dashboard.
- :mod:`LedgerClient.ui.ui` – Styling constants for fonts, sizes, and colors.
- :mod:`LedgerClient.ui.charts` – Custom-painted line and pie charts and the chart factory.
- :mod:`LedgerClient.ui.login` – The sign-in dialog.
- :mod:`LedgerClient.ui.transaction` – The transaction editor and detail dialogs.
- :mod:`LedgerClient.ui.ledger` – Ledger, member and budget dialogs.
- :mod:`LedgerClient.ui.settlement` – The settlement plan dialog.
"""
