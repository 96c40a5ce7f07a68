"""
Tests for LedgerClient.core.api and LedgerClient.core.session against an in-process fake server.

Run:
    python -m unittest tests.test_api
"""
import json

import httpx

from LedgerClient.core import session as session_module
from LedgerClient.core.api import AUTH_HEADER, ApiClient
from LedgerClient.core.session import SessionStore
from LedgerClient.settings import lib
from LedgerClient.status import status
from tests.base import BaseApiTestCase


class ApiClientTests(BaseApiTestCase):

    async def test_base_url_trailing_slash_is_trimmed(self):
        self.server.add('GET', '/api/v1/ledgers/mine', {'items': []})
        self.server.add('GET', '/api/v1/users/me', {'id': 1})

        await self.client.get('/api/v1/ledgers/mine')
        await self.client.get('/api/v1/users/me')

        urls = [str(r.url) for r in self.server.requests]
        self.assertEqual(urls, [
            'http://ledger.test:8081/api/v1/ledgers/mine',
            'http://ledger.test:8081/api/v1/users/me',
        ])
        for url in urls:
            self.assertNotIn('//api', url)

    def test_base_url_defaults_to_settings(self):
        client = ApiClient(self.session)
        self.assertEqual(lib.settings.base_url, 'http://localhost:8081/')
        self.assertEqual(client.base_url, 'http://localhost:8081')
        self.assertEqual(client.url('/api/v1/users/me'), 'http://localhost:8081/api/v1/users/me')

    async def test_returns_envelope_data(self):
        self.server.add('GET', '/api/v1/users/me', {'id': 1, 'name': 'Ann'})
        data = await self.client.get('/api/v1/users/me')
        self.assertEqual(data, {'id': 1, 'name': 'Ann'})

    async def test_no_token_no_header(self):
        self.server.add('GET', '/api/v1/users/me', {'id': 1})
        await self.client.get('/api/v1/users/me')
        self.assertNotIn(AUTH_HEADER, self.server.requests[-1].headers)

    async def test_token_header(self):
        self.session.set_token('abc')
        self.server.add('GET', '/api/v1/users/me', {'id': 1})
        await self.client.get('/api/v1/users/me')
        self.assertEqual(self.server.requests[-1].headers[AUTH_HEADER], 'abc')

    async def test_blank_params_are_dropped(self):
        self.server.add('GET', '/api/v1/ledgers/1/transactions', {'items': []})
        await self.client.get('/api/v1/ledgers/1/transactions', params={'page': 1, 'from': None, 'type': ''})
        self.assertEqual(dict(self.server.requests[-1].url.params), {'page': '1'})

    async def test_401_revokes_session(self):
        self.session.set_token('abc')
        self.server.add('GET', '/api/v1/users/me', status_code=401, body='Unauthorized')

        data = await self.client.get('/api/v1/users/me')

        self.assertIsNone(data)
        self.assertFalse(self.session.is_authenticated())
        self.assertFalse(self.session.token_path.exists())
        self.assertEqual(self.signed_out, [True])

    async def test_non_success_status_raises(self):
        self.server.add('GET', '/api/v1/users/me', status_code=500, body='boom')
        with self.assertRaises(status.RequestFailedException) as ctx:
            await self.client.get('/api/v1/users/me')
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.body, 'boom')

    async def test_unreadable_body_raises(self):
        self.server.add('GET', '/api/v1/users/me', body='not json')
        with self.assertRaises(status.RequestFailedException) as ctx:
            await self.client.get('/api/v1/users/me')
        self.assertEqual(ctx.exception.status_code, 200)

    async def test_application_error_carries_server_message(self):
        self.server.add('POST', '/api/v1/ledgers', body={'success': False, 'message': 'Name taken'})
        with self.assertRaises(status.ApplicationErrorException) as ctx:
            await self.client.post('/api/v1/ledgers', {'name': 'x'})
        self.assertEqual(ctx.exception.server_message, 'Name taken')
        self.assertEqual(ctx.exception.message, 'Name taken')

    async def test_empty_response_is_none(self):
        self.server.add('DELETE', '/api/v1/ledgers/1/transactions/2',
                        body=lambda request: httpx.Response(204))
        self.assertIsNone(await self.client.delete('/api/v1/ledgers/1/transactions/2'))

    async def test_connection_error_is_service_unavailable(self):
        def fail(request):
            raise httpx.ConnectError('refused', request=request)

        self.server.add('GET', '/api/v1/users/me', body=fail)
        with self.assertRaises(status.ServiceUnavailableException):
            await self.client.get('/api/v1/users/me')

    async def test_json_body_is_sent(self):
        self.server.add('POST', '/api/v1/ledgers', {'ledger_id': 3})
        await self.client.post('/api/v1/ledgers', {'name': 'Home'})
        request = self.server.last('POST', '/api/v1/ledgers')
        self.assertEqual(json.loads(request.content), {'name': 'Home'})


class SessionTests(BaseApiTestCase):

    async def test_login_stores_token_and_next_request_carries_it(self):
        self.server.add('POST', '/api/v1/auth/login', {'access_token': 'tok-1', 'refresh_token': 'r'})
        self.server.add('GET', '/api/v1/users/me', {'id': 1})

        token = await self.session.login(self.client, ' ann@example.com ', 'secret')

        self.assertEqual(token, 'tok-1')
        self.assertEqual(self.server.body(self.server.last('POST', '/api/v1/auth/login')),
                         {'email': 'ann@example.com', 'password': 'secret'})

        await self.client.get('/api/v1/users/me')
        self.assertEqual(self.server.last('GET', '/api/v1/users/me').headers[AUTH_HEADER], 'tok-1')

    async def test_login_accepts_camel_case_token(self):
        self.server.add('POST', '/api/v1/auth/login', {'accessToken': 'tok-2'})
        self.assertEqual(await self.session.login(self.client, 'a@b.c', 'pw'), 'tok-2')

    async def test_login_requires_fields_before_request(self):
        with self.assertRaises(status.ValidationException):
            await self.session.login(self.client, '  ', 'pw')
        with self.assertRaises(status.ValidationException):
            await self.session.login(self.client, 'a@b.c', '')
        self.assertEqual(self.server.requests, [])

    async def test_login_without_token_fails(self):
        self.server.add('POST', '/api/v1/auth/login', {})
        with self.assertRaises(status.LoginFailedException):
            await self.session.login(self.client, 'a@b.c', 'pw')
        self.assertFalse(self.session.is_authenticated())

    async def test_register_then_login(self):
        self.server.add('POST', '/api/v1/auth/register', {'user_id': 5})
        self.server.add('POST', '/api/v1/auth/login', {'access_token': 'tok-3'})

        token = await self.session.register(self.client, 'Ann', 'a@b.c', 'pw')

        self.assertEqual(token, 'tok-3')
        self.assertEqual(self.server.body(self.server.last('POST', '/api/v1/auth/register')),
                         {'name': 'Ann', 'email': 'a@b.c', 'password': 'pw'})

    async def test_register_requires_name(self):
        with self.assertRaises(status.ValidationException):
            await self.session.register(self.client, '', 'a@b.c', 'pw')
        self.assertEqual(self.server.requests, [])

    def test_token_survives_a_new_store(self):
        self.session.set_token('persisted')
        store = SessionStore(token_path=self.session.token_path)
        self.assertEqual(store.token, 'persisted')
        with open(self.session.token_path, 'r', encoding='utf-8') as f:
            self.assertEqual(json.load(f), {session_module.TOKEN_KEY: 'persisted'})

    def test_corrupt_session_file_is_removed(self):
        self.session.token_path.write_text('{not json', encoding='utf-8')
        store = SessionStore(token_path=self.session.token_path)
        self.assertFalse(store.is_authenticated())
        self.assertFalse(self.session.token_path.exists())

    def test_logout_clears_and_signals(self):
        self.session.set_token('abc')
        self.session.logout()
        self.assertFalse(self.session.is_authenticated())
        self.assertEqual(self.signed_out, [True])

    def test_default_sign_out_requests_sign_in(self):
        from LedgerClient.ui.actions import signals

        requested = []

        def _slot() -> None:
            requested.append(True)

        signals.authenticationRequested.connect(_slot)
        try:
            store = SessionStore(token_path=self.session.token_path)
            store.set_token('abc')
            store.revoke()
        finally:
            signals.authenticationRequested.disconnect(_slot)
        self.assertEqual(requested, [True])
