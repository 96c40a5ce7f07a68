"""
Core package for LedgerClient providing the client-side state engine.

This package includes:

- :mod:`LedgerClient.core.models` – Canonical record types.
- :mod:`LedgerClient.core.normalize` – Conversion of server payloads into the canonical types.
- :mod:`LedgerClient.core.api` – The asynchronous HTTP client and its revocation policy.
- :mod:`LedgerClient.core.session` – Session token storage, sign-in and registration.
- :mod:`LedgerClient.core.state` – The ledger state and its refresh orchestration.
- :mod:`LedgerClient.core.splits` – Split payloads and allocation previews.
- :mod:`LedgerClient.core.charts` – Chart slot lifecycle.
- :mod:`LedgerClient.core.worker` – The background asyncio event loop thread.
"""
