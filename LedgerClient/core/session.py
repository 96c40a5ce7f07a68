"""Session token storage and the sign-in / sign-out flows.

The access token is kept in ``auth/session.json`` inside the client config directory, under
the key ``ledger_access_token``. It survives application restarts and is removed on logout or
whenever the server answers 401.
"""
import json
import logging
import pathlib
import threading
from typing import Callable, Optional

from . import normalize
from ..status import status

TOKEN_KEY: str = 'ledger_access_token'


def request_sign_in() -> None:
    """Asks the application to show the sign-in dialog."""
    from ..ui.actions import signals
    signals.authenticationRequested.emit()


class SessionStore:
    """
    Holds the current access token.

    Args:
        token_path: Where the token is persisted. Defaults to ``settings.session_path``.
        on_signed_out: Called after logout and revocation. Defaults to :func:`request_sign_in`.

    """

    def __init__(self, token_path: Optional[pathlib.Path] = None,
                 on_signed_out: Optional[Callable[[], None]] = None) -> None:
        self._lock = threading.Lock()
        self._token_path = token_path
        self._on_signed_out = on_signed_out or request_sign_in
        self._token: Optional[str] = None
        self._loaded = False

    @property
    def token_path(self) -> pathlib.Path:
        if self._token_path is None:
            from ..settings import lib
            return lib.settings.session_path
        return pathlib.Path(self._token_path)

    @property
    def token(self) -> Optional[str]:
        with self._lock:
            if not self._loaded:
                self._token = self._read_token()
                self._loaded = True
            return self._token

    def _read_token(self) -> Optional[str]:
        path = self.token_path
        if not path.exists():
            return None
        try:
            with path.open('r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as ex:
            logging.error(f'Failed to read the stored session, removing it: {ex}')
            path.unlink(missing_ok=True)
            return None
        token = data.get(TOKEN_KEY) if isinstance(data, dict) else None
        return token or None

    def is_authenticated(self) -> bool:
        """True when a token is stored. Does not contact the server."""
        return bool(self.token)

    def set_token(self, token: str) -> None:
        path = self.token_path
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            with path.open('w', encoding='utf-8') as f:
                json.dump({TOKEN_KEY: token}, f)
            self._token = token
            self._loaded = True
        logging.debug(f'Session token saved to {path}.')

    def clear(self) -> None:
        with self._lock:
            self.token_path.unlink(missing_ok=True)
            self._token = None
            self._loaded = True

    def revoke(self) -> None:
        """Drops the token after the server rejected it and requests a new sign-in."""
        logging.warning('Session revoked by the server.')
        self.clear()
        self._on_signed_out()

    def logout(self) -> None:
        logging.debug('Signing out.')
        self.clear()
        self._on_signed_out()

    async def login(self, client, email: str, password: str) -> str:
        """
        Signs in with e-mail and password and stores the returned token.

        Args:
            client: The :class:`LedgerClient.core.api.ApiClient` to use.
            email: The account e-mail.
            password: The account password.

        Returns:
            str: The access token.

        Raises:
            status.ValidationException: If either field is blank. No request is sent.
            status.LoginFailedException: If the server did not return a token.

        """
        email = (email or '').strip()
        password = (password or '').strip()
        if not email or not password:
            raise status.ValidationException('Email and password are required.')

        data = await client.post('/api/v1/auth/login', {'email': email, 'password': password})
        if isinstance(data, str):
            token = data
        else:
            token = normalize.pick(data, 'access_token')
        if not token:
            raise status.LoginFailedException('No access token returned.')

        self.set_token(token)
        logging.info(f'Signed in as {email}.')
        return token

    async def register(self, client, name: str, email: str, password: str) -> str:
        """Creates an account and signs in with it.

        Raises:
            status.ValidationException: If any field is blank.
        """
        name = (name or '').strip()
        email = (email or '').strip()
        password = (password or '').strip()
        if not name or not email or not password:
            raise status.ValidationException('Name, email and password are required for registration.')

        await client.post('/api/v1/auth/register', {'name': name, 'email': email, 'password': password})
        logging.info(f'Registered {email}.')
        return await self.login(client, email, password)
