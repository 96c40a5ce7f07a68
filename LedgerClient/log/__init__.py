"""
Logging subsystem for application logging.

Modules:

- :mod:`LedgerClient.log.log` – Root logger setup, Qt message bridge and the in-memory :class:`TankHandler`.
"""
