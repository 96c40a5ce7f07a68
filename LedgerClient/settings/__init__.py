"""
Settings package: client configuration schema, validation and persistence.

- :mod:`LedgerClient.settings.lib` – :class:`LedgerClient.settings.lib.SettingsAPI` and the ``settings`` instance.
"""
