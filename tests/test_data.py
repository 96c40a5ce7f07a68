"""
Tests for the dashboard derivations in LedgerClient.data.data.

Run:
    python -m unittest tests.test_data
"""
import unittest

from LedgerClient.core import models
from LedgerClient.core.charts import ChartKind
from LedgerClient.core.state import LedgerState
from LedgerClient.data import data


def snapshot(total_income=None, total_expense=None, net_balance=None, **kwargs):
    return models.AnalyticsSnapshot(
        currency=kwargs.pop('currency', 'USD'),
        range_start=kwargs.pop('range_start', None),
        range_end=kwargs.pop('range_end', None),
        total_income=total_income,
        total_expense=total_expense,
        net_balance=net_balance,
        **kwargs,
    )


def budget(status, name=None, category_id=1, limit=100.0, spent=0.0, ratio=0.0):
    return models.BudgetStatusItem(
        budget_id=1, category_id=category_id, category_name=name,
        limit_amount=limit, spent_amount=spent, ratio=ratio, status=status,
    )


class AlertTests(unittest.TestCase):

    def test_exceeded_wins(self):
        items = [budget('NEAR_LIMIT', 'Food'), budget('EXCEEDED', 'Rent'), budget('EXCEEDED', None)]
        totals = data.Totals(income=0.0, expense=500.0, net=-500.0)
        self.assertEqual(
            data.alert_message(items, totals),
            'BUDGET_EXCEEDED: Categories over budget: Rent, Unnamed.',
        )

    def test_near_limit(self):
        items = [budget('OK', 'Fun'), budget('NEAR_LIMIT', 'Food')]
        totals = data.Totals(income=0.0, expense=500.0, net=-500.0)
        self.assertEqual(
            data.alert_message(items, totals),
            'BUDGET_NEAR_LIMIT: Categories near limit: Food.',
        )

    def test_spend_too_high(self):
        totals = data.Totals(income=20.0, expense=50.0, net=-30.0)
        self.assertEqual(
            data.alert_message([], totals),
            'SPEND_TOO_HIGH: Expenses (50.00) are greater than income (20.00).',
        )

    def test_no_alert(self):
        self.assertEqual(data.alert_message([], data.Totals(0.0, 0.0, 0.0)), data.NO_ALERT_MESSAGE)
        self.assertEqual(data.alert_message([], data.Totals(80.0, 50.0, 30.0)), data.NO_ALERT_MESSAGE)
        self.assertEqual(data.alert_message([], data.Totals(None, None, None)), data.NO_ALERT_MESSAGE)


class BannerTests(unittest.TestCase):

    def test_no_budgets(self):
        self.assertEqual(data.budget_banner([], 0.0), data.NO_EXPENSE_MESSAGE)
        self.assertEqual(data.budget_banner([], None), data.NO_EXPENSE_MESSAGE)
        self.assertEqual(data.budget_banner([], 12.5), '12.50 total expense (no budgets set)')

    def test_ledger_budget(self):
        items = [budget('OK', 'Food', limit=50.0, spent=10.0), budget('OK', category_id=None, limit=200.0, spent=50.0, ratio=0.25)]
        self.assertEqual(
            data.budget_banner(items, 80.0),
            '50.00 / 200.00\n(25.0% used [Expense/Budget])',
        )

    def test_ledger_budget_falls_back_to_expense_and_computed_ratio(self):
        items = [budget('OK', category_id=None, limit=200.0, spent=0.0, ratio=0.0)]
        self.assertEqual(
            data.budget_banner(items, 150.0),
            '150.00 / 200.00\n(75.0% used [Expense/Budget])',
        )

    def test_category_budgets(self):
        items = [
            budget('OK', 'Food', limit=100.0, spent=30.0),
            budget('EXCEEDED', 'Rent', limit=50.0, spent=60.0),
            budget('OK', 'Fun', limit=0.0, spent=5.0),
            budget('OK', 'Misc', limit=10.0, spent=1.0),
        ]
        self.assertEqual(
            data.budget_banner(items, 96.0),
            'Food: 30.00/100.00 (30.0% used, OK) | '
            'Rent: 60.00/50.00 (120.0% used, EXCEEDED) | '
            'Fun: 5.00/0.00 (0.0% used, OK) (+1 more)',
        )


class TotalsTests(unittest.TestCase):

    def trend(self):
        return [
            models.TrendPoint(period='2024-01', income=10.5, expense=4.0),
            models.TrendPoint(period='2024-02', income=20.0, expense='bogus'),
        ]

    def test_payload_totals_win(self):
        totals = data.get_totals(snapshot(100.0, 40.0, 55.0, trend=self.trend()))
        self.assertEqual(totals, data.Totals(income=100.0, expense=40.0, net=55.0))

    def test_fallback_to_trend(self):
        totals = data.get_totals(snapshot(trend=self.trend()))
        self.assertEqual(totals, data.Totals(income=30.5, expense=4.0, net=26.5))

    def test_empty_snapshot(self):
        self.assertEqual(data.get_totals(snapshot()), data.Totals(0.0, 0.0, 0.0))
        self.assertEqual(data.get_totals(None), data.Totals(None, None, None))

    def test_malformed_total_is_kept(self):
        totals = data.get_totals(snapshot('n/a', 10.0))
        self.assertEqual(totals.income, 'n/a')
        self.assertIsNone(totals.net)


class ChartDataTests(unittest.TestCase):

    def test_trend_spec(self):
        analytics = snapshot(trend=[
            models.TrendPoint(period='2024-01', income=10.0, expense=4.0),
            models.TrendPoint(period='2024-02', income='x', expense=6.5),
        ])
        spec = data.trend_spec(analytics)
        self.assertEqual(spec.kind, ChartKind.Line)
        self.assertEqual(spec.labels, ['2024-01', '2024-02'])
        self.assertEqual([s.label for s in spec.series], ['Income', 'Expense'])
        self.assertEqual(spec.series[0].values, [10.0, 0.0])
        self.assertEqual(spec.series[1].values, [4.0, 6.5])

    def test_empty_trend_spec(self):
        spec = data.trend_spec(None)
        self.assertEqual(spec.labels, [])
        self.assertEqual(spec.series[0].values, [])

    def test_category_spec(self):
        analytics = snapshot(by_category=[
            models.CategoryAmount(category_id=1, category_name='Food', amount=30.0, ratio=0.75),
            models.CategoryAmount(category_id=None, category_name=None, amount=10.0, ratio=0.25),
        ])
        spec = data.category_spec(analytics)
        self.assertEqual(spec.kind, ChartKind.Pie)
        self.assertEqual(spec.labels, ['Food', 'Other'])
        self.assertEqual(spec.series[0].values, [30.0, 10.0])


class TableTests(unittest.TestCase):

    def test_arap_net(self):
        analytics = snapshot(arap=[
            models.ArApEntry(user_id=1, user_name='Ann', ar=10.0, ap=3.0),
            models.ArApEntry(user_id=2, user_name=None, ar=0.0, ap=6.0),
            models.ArApEntry(user_id=3, user_name='Cid', ar='abc', ap=1.0),
        ])
        self.assertEqual(data.arap_rows(analytics), [
            data.ArApRow(user_name='Ann', ar='10.00', ap='3.00', net='7.00'),
            data.ArApRow(user_name='User 2', ar='0.00', ap='6.00', net='-6.00'),
            data.ArApRow(user_name='Cid', ar='abc', ap='1.00', net='-'),
        ])

    def test_merchants_and_badges(self):
        analytics = snapshot(
            top_merchants=[models.Merchant(label='Cafe', amount=12.345), models.Merchant(label=None, amount=1)],
            recommendations=[
                models.Recommendation(code='SAVE', message='Spend less', severity='WARNING'),
                models.Recommendation(code='OK', message='Fine', severity='INFO'),
            ],
        )
        self.assertEqual(data.merchant_rows(analytics), [('Cafe', '12.35'), ('', '1.00')])
        self.assertEqual(data.recommendation_badges(analytics), [
            data.Badge(text='SAVE: Spend less', warning=True),
            data.Badge(text='OK: Fine', warning=False),
        ])

    def test_range_label(self):
        analytics = snapshot(range_start='2024-01-01T00:00:00', range_end='2024-04-01T00:00:00')
        self.assertEqual(
            data.range_label(analytics),
            'Range: 2024-01-01T00:00:00  →  2024-04-01T00:00:00 (end exclusive)',
        )
        self.assertEqual(data.range_label(snapshot()), '')

    def test_meta_label(self):
        meta = models.LedgerMeta(type='GROUP_BALANCE', base_currency='EUR', role='OWNER')
        self.assertEqual(data.ledger_meta_label(meta), 'GROUP_BALANCE • EUR • Role: OWNER')
        self.assertIn('No ledgers', data.ledger_meta_label(None))


class DashboardTests(unittest.TestCase):

    def test_empty_dashboard(self):
        view = data.derive_dashboard(None, [])
        self.assertEqual((view.income_text, view.expense_text, view.net_text), ('-', '-', '-'))
        self.assertEqual(view.alert, data.NO_ALERT_MESSAGE)
        self.assertEqual(view.banner, data.NO_EXPENSE_MESSAGE)
        self.assertEqual(view.arap, [])

    def test_dashboard(self):
        analytics = snapshot(100.0, 140.0, None)
        view = data.derive_dashboard(analytics, [budget('OK', 'Food', limit=200.0, spent=140.0)])
        self.assertEqual(view.net_text, '-40.00')
        self.assertTrue(view.alert.startswith('SPEND_TOO_HIGH'))
        self.assertEqual(view.banner, 'Food: 140.00/200.00 (70.0% used, OK)')


class TransactionDetailTests(unittest.TestCase):

    def detail(self, **kwargs):
        fields = dict(
            id=11, occurred_at='2024-03-02T10:00:00', type='EXPENSE', currency='USD',
            total_amount=30.0, payer_id=1, category_id=5, note='dinner',
            rounding_strategy='ROUND_HALF_UP', tail_allocation=None,
        )
        fields.update(kwargs)
        return models.TransactionDetail(**fields)

    def test_lines(self):
        detail = self.detail(splits=[
            models.SplitView(user_id=1, user_name='Ann', method='PERCENT', share_value=50, computed_amount=15.0),
            models.SplitView(user_id=2, user_name=None, method='EQUAL', share_value=0, computed_amount=None),
        ])
        self.assertEqual(data.transaction_detail_lines(detail), [
            data.DetailLine(main='Ann – 15.00 USD', sub='PERCENT • value: 50%'),
            data.DetailLine(main='User 2 – 0 USD', sub='EQUAL • value: 0'),
        ])

    def test_fields(self):
        state = LedgerState()
        state.set_members([models.Member(user_id=1, name='Ann', role='OWNER')])
        fields = dict(data.transaction_detail_fields(self.detail(), state))
        self.assertEqual(fields['Payer'], 'Ann')
        self.assertEqual(fields['Amount'], '30.00 USD')
        self.assertEqual(fields['Category'], 'Uncategorized')
        self.assertEqual(fields['Tail allocation'], '-')
