"""
Tests for LedgerClient.core.state: the refresh unit, per-leg failures and stale responses.

Run:
    python -m unittest tests.test_state
"""
import datetime
import unittest

import httpx

from LedgerClient.core import models
from LedgerClient.core.state import LedgerLoader, LedgerState, TransactionFilter
from LedgerClient.status import status
from tests.base import BaseApiTestCase, BaseTestCase

LEDGERS = {'items': [
    {'ledger_id': 1, 'name': 'Home', 'ledger_type': 'GROUP_BALANCE', 'base_currency': 'USD'},
    {'ledger_id': 2, 'name': 'Trip', 'ledger_type': 'GROUP_BALANCE', 'base_currency': 'EUR'},
]}


def members(*names):
    return {'items': [{'user_id': n + 1, 'name': name, 'role': 'EDITOR'} for n, name in enumerate(names)]}


class FilterTests(unittest.TestCase):

    def test_params(self):
        f = TransactionFilter(date_from='2024-03-01', date_to='2024-03-31', type='EXPENSE')
        self.assertEqual(f.to_params(200), {
            'page': 1, 'size': 200,
            'from': '2024-03-01T00:00:00', 'to': '2024-03-31T23:59:59', 'type': 'EXPENSE',
        })
        self.assertEqual(TransactionFilter().to_params(50), {'page': 1, 'size': 50})

    def test_budget_period(self):
        self.assertEqual(TransactionFilter(date_from='2024-03-15').budget_period(), (2024, 3))
        today = datetime.date(2025, 11, 2)
        self.assertEqual(TransactionFilter().budget_period(today), (2025, 11))
        self.assertEqual(TransactionFilter(date_from='bogus').budget_period(today), (2025, 11))


class LoaderTests(BaseApiTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.session.set_token('tok')
        self.state = LedgerState()
        self.loader = LedgerLoader(self.client, self.state)

        self.loaded = []
        self.state.ledgerLoaded.connect(self.loaded.append)

    def add_ledger_routes(self, ledger_id, names=('Ann', 'Bob')):
        prefix = f'/api/v1/ledgers/{ledger_id}'
        self.server.add('GET', f'{prefix}/members', members(*names))
        self.server.add('GET', prefix, {
            'ledger_type': 'GROUP_BALANCE', 'base_currency': 'USD', 'role': 'OWNER',
            'categories': [{'id': 5, 'name': 'Food'}, {'category_id': 6, 'name': 'Rent'}],
        })
        self.server.add('GET', f'{prefix}/transactions', {'items': [
            {'transaction_id': 11, 'type': 'EXPENSE', 'amount_total': '12.50', 'payer_id': 1,
             'txn_at': [2024, 3, 2, 10, 0], 'currency': 'USD'},
        ]})
        self.server.add('GET', f'{prefix}/analytics/overview', {
            'currency': 'USD', 'total_income': 100, 'total_expense': 40, 'net_balance': 60,
        })
        self.server.add('GET', f'{prefix}/budgets/status', {'items': [
            {'budget_id': 1, 'limit_amount': 100, 'spent_amount': 40, 'ratio': 0.4, 'status': 'OK'},
        ]})

    async def test_load_current_user(self):
        self.server.add('GET', '/api/v1/users/me', {'id': 3, 'name': 'Ann'})
        user = await self.loader.load_current_user()
        self.assertEqual(user, models.UserProfile(id=3, name='Ann'))
        self.assertEqual(self.state.user, user)

    async def test_load_current_user_failure_keeps_state(self):
        self.server.add('GET', '/api/v1/users/me', status_code=500, body='boom')
        self.assertIsNone(await self.loader.load_current_user())
        self.assertIsNone(self.state.user)

    async def test_load_ledgers_selects_first(self):
        self.server.add('GET', '/api/v1/ledgers/mine', LEDGERS)
        self.add_ledger_routes(1)

        ledgers = await self.loader.load_ledgers()

        self.assertEqual([l.id for l in ledgers], [1, 2])
        self.assertEqual(self.state.current_ledger_id, 1)
        self.assertEqual([m.name for m in self.state.members], ['Ann', 'Bob'])
        self.assertEqual([c.id for c in self.state.categories], [5, 6])
        self.assertEqual(self.state.meta.role, 'OWNER')
        self.assertEqual(self.state.transactions[0].total_amount, 12.5)
        self.assertEqual(self.state.transactions[0].occurred_at, '2024-03-02T10:00:00')
        self.assertEqual(self.state.analytics.net_balance, 60.0)
        self.assertEqual(self.state.budget_items[0].status, 'OK')
        self.assertEqual(self.loaded, [1])

    async def test_load_ledgers_keeps_previous_selection(self):
        self.server.add('GET', '/api/v1/ledgers/mine', LEDGERS)
        self.add_ledger_routes(2)
        self.state.current_ledger_id = 2

        await self.loader.load_ledgers()

        self.assertEqual(self.state.current_ledger_id, 2)
        self.assertEqual(self.server.count('GET', '/api/v1/ledgers/1/members'), 0)

    async def test_no_ledgers_clears_selection(self):
        self.server.add('GET', '/api/v1/ledgers/mine', {'items': []})
        self.state.current_ledger_id = 7

        self.assertEqual(await self.loader.load_ledgers(), [])
        self.assertIsNone(self.state.current_ledger_id)
        self.assertEqual(self.loaded, [])

    async def test_failed_leg_keeps_previous_slice(self):
        self.add_ledger_routes(1)
        await self.loader.select_ledger(1)
        self.assertEqual(len(self.state.transactions), 1)

        self.add_ledger_routes(1, names=('Ann', 'Bob', 'Cid'))
        self.server.add('GET', '/api/v1/ledgers/1/transactions', status_code=500, body='boom')

        self.assertTrue(await self.loader.select_ledger(1))
        self.assertEqual(len(self.state.transactions), 1)
        self.assertEqual(len(self.state.members), 3)
        self.assertEqual(self.loaded, [1, 1])

    async def test_stale_response_is_discarded(self):
        self.add_ledger_routes(1)

        def members_route(request):
            # a newer selection starts while this response is in flight
            self.state.begin_selection(2)
            return httpx.Response(200, json={'success': True, 'data': members('Late')})

        self.server.add('GET', '/api/v1/ledgers/1/members', body=members_route)

        self.assertFalse(await self.loader.select_ledger(1))
        self.assertEqual(self.state.members, [])
        self.assertEqual(self.state.transactions, [])
        self.assertIsNone(self.state.analytics)
        self.assertEqual(self.server.count('GET', '/api/v1/ledgers/1/analytics/overview'), 0)
        self.assertEqual(self.loaded, [])

    async def test_reset_makes_responses_stale(self):
        self.add_ledger_routes(1)

        def meta_route(request):
            self.state.reset()
            return httpx.Response(200, json={'success': True, 'data': {'ledger_type': 'PERSONAL'}})

        self.server.add('GET', '/api/v1/ledgers/1', body=meta_route)
        cleared = []
        self.state.cleared.connect(lambda: cleared.append(True))

        self.assertFalse(await self.loader.select_ledger(1))
        self.assertEqual(cleared, [True])
        self.assertIsNone(self.state.meta)
        self.assertIsNone(self.state.current_ledger_id)

    async def test_revoked_session_stops_applying(self):
        self.add_ledger_routes(1)
        self.server.add('GET', '/api/v1/ledgers/1/members', status_code=401, body='')

        await self.loader.select_ledger(1)

        self.assertFalse(self.session.is_authenticated())
        self.assertEqual(self.signed_out, [True])
        self.assertEqual(self.state.members, [])
        self.assertIsNone(self.state.analytics)
        self.assertEqual(self.state.budget_items, [])

    async def test_filter_params_are_sent(self):
        self.add_ledger_routes(1)
        await self.loader.select_ledger(1)

        f = TransactionFilter(date_from='2024-02-10', date_to='2024-02-20', type='INCOME')
        await self.loader.load_transactions(f)

        request = self.server.last('GET', '/api/v1/ledgers/1/transactions')
        self.assertEqual(request.url.params['from'], '2024-02-10T00:00:00')
        self.assertEqual(request.url.params['to'], '2024-02-20T23:59:59')
        self.assertEqual(request.url.params['type'], 'INCOME')
        self.assertEqual(request.url.params['size'], '200')

        budget = self.server.last('GET', '/api/v1/ledgers/1/budgets/status')
        self.assertEqual(budget.url.params['year'], '2024')
        self.assertEqual(budget.url.params['month'], '2')
        analytics = self.server.last('GET', '/api/v1/ledgers/1/analytics/overview')
        self.assertEqual(analytics.url.params['months'], '3')

    async def test_load_transactions_without_analytics(self):
        self.add_ledger_routes(1)
        await self.loader.select_ledger(1)
        await self.loader.load_transactions(refresh_analytics=False)
        self.assertEqual(self.server.count('GET', '/api/v1/ledgers/1/analytics/overview'), 1)
        self.assertEqual(self.server.count('GET', '/api/v1/ledgers/1/transactions'), 2)

    async def test_operations_require_ledger(self):
        with self.assertRaises(status.ValidationException):
            await self.loader.load_transactions()
        with self.assertRaises(status.ValidationException):
            await self.loader.add_member('a@b.c')
        with self.assertRaises(status.ValidationException):
            await self.loader.set_ledger_budget('10')
        self.assertEqual(self.server.requests, [])

    async def test_submit_transaction(self):
        self.add_ledger_routes(1)
        await self.loader.select_ledger(1)
        self.server.add('POST', '/api/v1/ledgers/1/transactions', {'transaction_id': 12})

        splits = [
            models.Split(user_id=1, method=models.SplitMethod.Exact, share_value=10.0),
            models.Split(user_id=2, method=models.SplitMethod.Exact, share_value=2.5),
        ]
        result = await self.loader.submit_transaction(
            models.TransactionType.Expense, '12.50', '2024-03-02T10:00:00', 1,
            splits=splits, currency=' EUR ', note=' lunch ', category_id='5',
        )

        self.assertEqual(result, {'transaction_id': 12})
        body = self.server.body(self.server.last('POST', '/api/v1/ledgers/1/transactions'))
        self.assertEqual(body, {
            'type': 'EXPENSE',
            'amount_total': 12.5,
            'currency': 'EUR',
            'txn_at': '2024-03-02T10:00:00',
            'payer_id': 1,
            'note': 'lunch',
            'category_id': 5,
            'rounding_strategy': 'ROUND_HALF_UP',
            'tail_allocation': 'PAYER',
            'splits': [
                {'user_id': 1, 'split_method': 'EXACT', 'share_value': 10.0, 'included': True},
                {'user_id': 2, 'split_method': 'EXACT', 'share_value': 2.5, 'included': True},
            ],
        })
        self.assertEqual(self.server.count('GET', '/api/v1/ledgers/1/transactions'), 2)

    async def test_submit_transaction_defaults(self):
        self.add_ledger_routes(1)
        self.state.current_ledger_id = 1
        self.server.add('POST', '/api/v1/ledgers/1/transactions', {'transaction_id': 1})

        await self.loader.submit_transaction('INCOME', 5, '2024-03-02T10:00:00', 2)

        body = self.server.body(self.server.last('POST', '/api/v1/ledgers/1/transactions'))
        self.assertEqual(body['currency'], 'USD')
        self.assertIsNone(body['category_id'])
        self.assertEqual(body['splits'], [])

    async def test_submit_transaction_rejects_bad_amount(self):
        self.state.current_ledger_id = 1
        for amount in ('0', '-3', 'abc', ''):
            with self.assertRaises(status.ValidationException):
                await self.loader.submit_transaction('EXPENSE', amount, '2024-03-02T10:00:00', 1)
        self.assertEqual(self.server.requests, [])

    async def test_delete_transaction(self):
        self.add_ledger_routes(1)
        self.state.current_ledger_id = 1
        self.server.add('DELETE', '/api/v1/ledgers/1/transactions/11', status_code=204, body='')

        await self.loader.delete_transaction(11)

        self.assertEqual(self.server.count('DELETE', '/api/v1/ledgers/1/transactions/11'), 1)
        self.assertEqual(self.server.count('GET', '/api/v1/ledgers/1/transactions'), 1)

    async def test_load_transaction_detail(self):
        self.state.current_ledger_id = 1
        self.server.add('GET', '/api/v1/ledgers/1/transactions/11', {
            'transaction_id': 11, 'ledger_id': 1, 'amountTotal': 9, 'roundingStrategy': 'TRIM_TO_UNIT',
            'splits': [{'user_id': 1, 'split_method': 'EQUAL', 'share_value': 0, 'computed_amount': 4.5}],
        })

        detail = await self.loader.load_transaction_detail(11)

        self.assertEqual(detail.id, 11)
        self.assertEqual(detail.total_amount, 9.0)
        self.assertEqual(detail.rounding_strategy, 'TRIM_TO_UNIT')
        self.assertEqual(detail.splits[0].computed_amount, 4.5)

    async def test_add_member(self):
        self.add_ledger_routes(1)
        self.state.current_ledger_id = 1
        self.server.add('GET', '/api/v1/user-lookup', {'user_id': 9})
        self.server.add('POST', '/api/v1/ledgers/1/members', {})

        self.assertEqual(await self.loader.add_member(' new@example.com '), 9)

        lookup = self.server.last('GET', '/api/v1/user-lookup')
        self.assertEqual(lookup.url.params['email'], 'new@example.com')
        body = self.server.body(self.server.last('POST', '/api/v1/ledgers/1/members'))
        self.assertEqual(body, {'user_id': 9, 'role': 'EDITOR'})
        self.assertEqual(len(self.state.members), 2)

    async def test_add_member_unknown_user(self):
        self.state.current_ledger_id = 1
        self.server.add('GET', '/api/v1/user-lookup', {})

        with self.assertRaises(status.ValidationException):
            await self.loader.add_member('nobody@example.com')
        with self.assertRaises(status.ValidationException):
            await self.loader.add_member('  ')
        self.assertEqual(self.server.count('POST', '/api/v1/ledgers/1/members'), 0)

    async def test_remove_member(self):
        self.add_ledger_routes(1, names=('Ann',))
        self.state.current_ledger_id = 1
        self.server.add('DELETE', '/api/v1/ledgers/1/members/2', status_code=204, body='')

        await self.loader.remove_member(2)

        self.assertEqual(self.server.count('DELETE', '/api/v1/ledgers/1/members/2'), 1)
        self.assertEqual([m.name for m in self.state.members], ['Ann'])

    async def test_create_ledger(self):
        self.server.add('POST', '/api/v1/ledgers', {'ledger_id': 3})
        self.server.add('GET', '/api/v1/ledgers/mine', {'items': []})

        await self.loader.create_ledger(
            ' Flat ', 'GROUP_BALANCE', 'usd ', '2024-01-01', ['Food', 'food', ' Rent ', '', 'FOOD'],
        )

        body = self.server.body(self.server.last('POST', '/api/v1/ledgers'))
        self.assertEqual(body, {
            'name': 'Flat',
            'ledger_type': 'GROUP_BALANCE',
            'base_currency': 'usd',
            'share_start_date': '2024-01-01',
            'categories': [
                {'name': 'Food', 'kind': 'EXPENSE', 'is_active': True},
                {'name': 'Rent', 'kind': 'EXPENSE', 'is_active': True},
            ],
        })
        self.assertEqual(self.server.count('GET', '/api/v1/ledgers/mine'), 1)

    async def test_create_ledger_validation(self):
        with self.assertRaises(status.ValidationException):
            await self.loader.create_ledger(' ', 'PERSONAL', 'USD', None, ['Food'])
        with self.assertRaises(status.ValidationException):
            await self.loader.create_ledger('Flat', 'PERSONAL', 'USD', None, [' ', ''])
        self.assertEqual(self.server.requests, [])

    async def test_set_ledger_budget(self):
        self.add_ledger_routes(1)
        self.state.current_ledger_id = 1
        self.state.filter = TransactionFilter(date_from='2024-05-01')
        self.server.add('POST', '/api/v1/ledgers/1/budgets', {})

        await self.loader.set_ledger_budget('250')

        body = self.server.body(self.server.last('POST', '/api/v1/ledgers/1/budgets'))
        self.assertEqual(body, {'category_id': None, 'year': 2024, 'month': 5, 'limit_amount': 250.0})
        self.assertEqual(self.server.count('GET', '/api/v1/ledgers/1/budgets/status'), 1)

    async def test_set_ledger_budget_rejects_non_positive(self):
        self.state.current_ledger_id = 1
        for amount in ('0', '-1', 'x'):
            with self.assertRaises(status.ValidationException):
                await self.loader.set_ledger_budget(amount)
        self.assertEqual(self.server.requests, [])


class StateTests(BaseTestCase):

    def test_names(self):
        state = LedgerState()
        state.set_members([models.Member(user_id=1, name='Ann', role=None), models.Member(2, None, None)])
        state.set_meta(models.LedgerMeta(None, None, None, [models.Category(5, 'Food')]))
        self.assertEqual(state.member_name(1), 'Ann')
        self.assertEqual(state.member_name(2), 'User 2')
        self.assertEqual(state.member_name(3), 'User 3')
        self.assertEqual(state.category_name(5), 'Food')
        self.assertIsNone(state.category_name(6))

    def test_reset(self):
        state = LedgerState()
        state.begin_selection(4)
        state.filter = TransactionFilter(type='EXPENSE')
        generation = state.generation

        state.reset()

        self.assertFalse(state.is_current(generation))
        self.assertIsNone(state.current_ledger_id)
        self.assertEqual(state.filter, TransactionFilter())
