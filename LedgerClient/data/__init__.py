"""
LedgerClient data package: dashboard derivations, settlement plans and table models.

This package provides:

- :mod:`LedgerClient.data.data` – Pure derivations of the dashboard (totals, trend, categories, budget alert and banner, AR/AP) from the ledger state, using pandas.
- :mod:`LedgerClient.data.settlement` – Fetching and rendering settlement plans (:class:`LedgerClient.data.settlement.SettlementPresenter`).
- :mod:`LedgerClient.data.model` – Qt table models for transactions, AR/AP, merchants and members.
"""
