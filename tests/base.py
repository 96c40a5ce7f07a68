"""Unittest base classes for creating a clean test environment."""
import json
import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import unittest

import httpx
from PySide6 import QtCore, QtWidgets

from LedgerClient.core.api import ApiClient
from LedgerClient.core.session import SessionStore
from LedgerClient.settings import lib

BASE_URL = 'http://ledger.test:8081/'

Route = Union[Dict[str, Any], str, Callable[[httpx.Request], httpx.Response]]


@contextmanager
def mute_ui_signals():
    from LedgerClient.ui.actions import signals
    blocker = QtCore.QSignalBlocker(signals)  # blocks every signal in `signals`
    try:
        yield
    finally:
        del blocker


class FakeServer:
    """In-process ledger service used through :class:`httpx.MockTransport`.

    Routes are keyed by ``(method, path)``. Every handled request is kept in :attr:`requests`.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Tuple[int, Route]] = {}
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self.handler)

    def add(self, method: str, path: str, data: Any = None, status_code: int = 200,
            body: Optional[Route] = None) -> None:
        """Registers a response. Without ``body`` the response is the success envelope of ``data``."""
        if body is None:
            body = {'success': True, 'data': data}
        self.routes[(method, path)] = (status_code, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, text=f'No route for {key}')

        status_code, body = self.routes[key]
        if callable(body):
            return body(request)
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)

    def last(self, method: str, path: str) -> httpx.Request:
        for request in reversed(self.requests):
            if request.method == method and request.url.path == path:
                return request
        raise AssertionError(f'No {method} {path} request was sent')

    def count(self, method: str, path: str) -> int:
        return len([r for r in self.requests if r.method == method and r.url.path == path])

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content.decode('utf-8'))


class BaseTestCase(unittest.TestCase):
    """Base test case that sets up and tears down a clean config directory."""

    config_paths: lib.ConfigPaths

    def setUp(self) -> None:
        """Set up a clean config directory and reinitialize the settings."""
        # Ensure a QApplication is available
        if not QtWidgets.QApplication.instance():
            QtWidgets.QApplication([])  # type: ignore
            logging.debug('QtWidgets.QApplication initialized for tests.')

        self.config_paths = lib.ConfigPaths()
        config_dir: Path = self.config_paths.config_dir
        if config_dir.exists():
            shutil.rmtree(config_dir)
            logging.debug(f'Removed config directory {config_dir}')

        # Reinitialize settings API
        lib.settings = lib.SettingsAPI()
        logging.debug('SettingsAPI reinitialized.')

    def tearDown(self) -> None:
        config_dir: Path = self.config_paths.config_dir
        if config_dir.exists():
            shutil.rmtree(config_dir)
            logging.debug(f'Removed test config directory {config_dir}')


class BaseApiTestCase(BaseTestCase, unittest.IsolatedAsyncioTestCase):
    """Base test case with a fake server, a session store and an api client."""

    def setUp(self) -> None:
        super().setUp()
        self.tmp_dir = tempfile.mkdtemp(prefix='ledgerclient_test_')
        self.signed_out: List[bool] = []

        self.server = FakeServer()
        self.session = SessionStore(
            token_path=Path(self.tmp_dir) / 'session.json',
            on_signed_out=lambda: self.signed_out.append(True),
        )
        self.client = ApiClient(self.session, base_url=BASE_URL, transport=self.server.transport)

    async def asyncTearDown(self) -> None:
        await self.client.aclose()

    def tearDown(self) -> None:
        shutil.rmtree(self.tmp_dir, ignore_errors=True)
        super().tearDown()
