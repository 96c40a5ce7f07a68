"""Test package. Runs Qt headless and keeps configuration files out of the real user profile."""
import os

from PySide6 import QtCore

os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')
os.environ.setdefault('LEDGERCLIENT_DISABLE_STYLESHEET', '1')
QtCore.QStandardPaths.setTestModeEnabled(True)
