"""
Tests for LedgerClient.data.settlement.

Run:
    python -m unittest tests.test_settlement
"""
import unittest

from LedgerClient.core import models
from LedgerClient.data.settlement import (
    SETTLED_MESSAGE, SettlementConfig, SettlementPresenter, TransferRow, render_plan,
)
from LedgerClient.status import status
from tests.base import BaseApiTestCase

PATH = '/api/v1/ledgers/4/settlement-plan'

PLAN = {
    'currency': 'EUR',
    'transfers': [
        {'from_user_id': 2, 'to_user_id': 1, 'amount': 12.5, 'from_user_name': 'Bob', 'to_user_name': 'Ann'},
        {'fromUserId': 3, 'toUserId': 1, 'amount': '7'},
    ],
}


class RenderTests(unittest.TestCase):

    def test_settled(self):
        view = render_plan(models.SettlementPlan(currency='EUR'))
        self.assertTrue(view.settled)
        self.assertEqual(view.message, SETTLED_MESSAGE)
        self.assertEqual(view.currency, 'EUR')

    def test_rows(self):
        plan = models.SettlementPlan(currency='USD', transfer_count=5, transfers=[
            models.SettlementTransfer(from_user_id=1, to_user_id=2, amount=3.456, from_user_name='Ann'),
        ])
        view = render_plan(plan)
        self.assertFalse(view.settled)
        self.assertEqual(view.message, 'Currency: USD • Transfers: 5')
        self.assertEqual(view.rows, [TransferRow(from_name='Ann', to_name='User 2', amount='3.46 USD')])


class ConfigTests(unittest.TestCase):

    def test_from_form(self):
        config = SettlementConfig.from_form('TRIM_TO_UNIT', '100', True, '12')
        self.assertEqual(config.to_payload(), {
            'rounding_strategy': 'TRIM_TO_UNIT',
            'max_transfer_amount': 100.0,
            'force_min_cost_flow': True,
            'min_cost_flow_threshold': 12,
            'payment_channels': None,
            'currency_rates': None,
        })

    def test_blank_fields_are_unset(self):
        config = SettlementConfig.from_form()
        self.assertEqual(config.rounding_strategy, 'ROUND_HALF_UP')
        self.assertIsNone(config.max_transfer_amount)
        self.assertIsNone(config.min_cost_flow_threshold)

    def test_invalid_number(self):
        with self.assertRaises(status.ValidationException):
            SettlementConfig.from_form(max_transfer_amount='lots')
        with self.assertRaises(status.ValidationException):
            SettlementConfig.from_form(min_cost_flow_threshold='x')


class PresenterTests(BaseApiTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.session.set_token('tok')
        self.presenter = SettlementPresenter(self.client)

    async def test_requires_ledger(self):
        with self.assertRaises(status.ValidationException):
            await self.presenter.load_default_plan(None)
        with self.assertRaises(status.ValidationException):
            await self.presenter.generate_plan(None, SettlementConfig())
        self.assertEqual(self.server.requests, [])

    async def test_default_plan(self):
        self.server.add('GET', PATH, PLAN)

        view = await self.presenter.load_default_plan(4)

        self.assertEqual(view.message, 'Currency: EUR • Transfers: 2')
        self.assertEqual(view.rows, [
            TransferRow(from_name='Bob', to_name='Ann', amount='12.50 EUR'),
            TransferRow(from_name='User 3', to_name='User 1', amount='7.00 EUR'),
        ])

    async def test_generate_plan(self):
        self.server.add('POST', PATH, {'currency': 'EUR', 'transfers': []})
        config = SettlementConfig.from_form('NONE', '', False, '')

        view = await self.presenter.generate_plan(4, config)

        self.assertTrue(view.settled)
        body = self.server.body(self.server.last('POST', PATH))
        self.assertEqual(body['rounding_strategy'], 'NONE')
        self.assertIsNone(body['max_transfer_amount'])
        self.assertFalse(body['force_min_cost_flow'])

    async def test_server_error_propagates(self):
        self.server.add('GET', PATH, body={'success': False, 'message': 'Ledger not found'})
        with self.assertRaises(status.ApplicationErrorException) as cm:
            await self.presenter.load_default_plan(4)
        self.assertEqual(cm.exception.server_message, 'Ledger not found')

    async def test_revoked_session_is_not_settled(self):
        self.server.add('GET', PATH, status_code=401, body='Unauthorized')
        self.server.add('POST', PATH, status_code=401, body='Unauthorized')

        self.assertIsNone(await self.presenter.load_default_plan(4))
        self.assertEqual(self.signed_out, [True])

        self.session.set_token('tok')
        self.assertIsNone(await self.presenter.generate_plan(4, SettlementConfig()))
        self.assertFalse(self.session.is_authenticated())
