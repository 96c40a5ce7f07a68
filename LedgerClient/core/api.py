"""Asynchronous HTTP client for the ledger service.

Every request goes through :meth:`ApiClient.request`, which owns the response envelope
``{success, data?, message?}`` and the revocation policy: a 401 from any endpoint clears the
session and asks the user to sign in again.

The client carries no retry and no timeout. One user action issues exactly one request.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from ..status import status

AUTH_HEADER: str = 'X-Auth-Token'


class ApiClient:
    """
    Wraps an :class:`httpx.AsyncClient` bound to the configured server.

    Args:
        session: The :class:`LedgerClient.core.session.SessionStore` providing the token.
        base_url: The server address. Defaults to ``settings.base_url``.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`.

    """

    def __init__(self, session, base_url: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.session = session
        self._base_url: Optional[str] = base_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        """The server address with a single trailing slash removed."""
        if self._base_url is None:
            from ..settings import lib
            url = lib.settings.base_url
        else:
            url = self._base_url
        return url.removesuffix('/')

    def url(self, path: str) -> str:
        return f'{self.base_url}{path}'

    def headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        token = self.session.token
        if token:
            headers[AUTH_HEADER] = token
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=None, transport=self._transport)
            logging.debug('HTTP client created.')
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def request(self, method: str, path: str, body: Any = None,
                      params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Issues one request and unwraps the response envelope.

        Args:
            method: The HTTP verb.
            path: The endpoint path, starting with ``/``.
            body: Optional JSON body.
            params: Optional query parameters. ``None`` values are dropped.

        Returns:
            The envelope's ``data``, or ``None`` for empty responses and revoked sessions.

        Raises:
            status.RequestFailedException: On a non-2xx status or an unreadable body.
            status.ApplicationErrorException: When the envelope reports ``success: false``.
            status.ServiceUnavailableException: When the server cannot be reached.

        """
        url = self.url(path)
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ''}

        logging.debug(f'{method} {url} params={params}')
        try:
            response = await self._get_client().request(
                method,
                url,
                json=body,
                params=params or None,
                headers=self.headers(),
            )
        except httpx.HTTPError as ex:
            raise status.ServiceUnavailableException(f'{method} {path}: {ex}') from ex

        if response.status_code == 401:
            logging.warning(f'{method} {path} returned 401, the session was revoked.')
            self.session.revoke()
            return None

        if not response.is_success:
            raise status.RequestFailedException(response.status_code, response.text)

        if response.status_code == 204 or not response.content:
            return None

        try:
            payload = response.json()
        except ValueError as ex:
            raise status.RequestFailedException(response.status_code) from ex

        if isinstance(payload, dict) and payload.get('success') is False:
            raise status.ApplicationErrorException(payload.get('message'))

        if isinstance(payload, dict):
            return payload.get('data')
        return payload

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request('GET', path, params=params)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request('POST', path, body=body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request('PUT', path, body=body)

    async def delete(self, path: str) -> Any:
        return await self.request('DELETE', path)
