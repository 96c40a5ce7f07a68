"""Dashboard derivations.

Everything the dashboard shows is a pure projection of :class:`LedgerClient.core.state.LedgerState`:
the trend and category chart series, the income / expense / net totals, the budget alert, the
budget banner, the AR/AP table, top merchants, recommendation badges and the transaction detail
lines. Nothing here fetches or mutates state.
"""
import dataclasses
from typing import Any, Iterable, List, Optional

import pandas as pd

from ..core import models
from ..core.charts import ChartKind, ChartSeries, ChartSpec
from ..core.normalize import as_float, fmt, is_number

TREND_DATA_COLUMNS = ['period', 'income', 'expense']
CATEGORY_DATA_COLUMNS = ['category', 'amount', 'ratio']

NO_ALERT_MESSAGE = 'No alerts. Your expenses do not exceed income in this period.'
NO_EXPENSE_MESSAGE = 'No expense yet'
BANNER_ITEM_LIMIT = 3


@dataclasses.dataclass(frozen=True)
class Totals:
    income: Optional[models.Number]
    expense: Optional[models.Number]
    net: Optional[models.Number]


@dataclasses.dataclass(frozen=True)
class ArApRow:
    user_name: str
    ar: str
    ap: str
    net: str


@dataclasses.dataclass(frozen=True)
class Badge:
    text: str
    warning: bool


@dataclasses.dataclass(frozen=True)
class DetailLine:
    main: str
    sub: str


@dataclasses.dataclass(frozen=True)
class DashboardView:
    """All derived dashboard values for one analytics snapshot and budget status."""
    totals: Totals
    income_text: str
    expense_text: str
    net_text: str
    range_text: str
    alert: str
    banner: str
    trend: ChartSpec
    category: ChartSpec
    arap: List[ArApRow]
    merchants: List[tuple]
    badges: List[Badge]


def get_trend(analytics: Optional[models.AnalyticsSnapshot]) -> pd.DataFrame:
    """Returns the trend as a DataFrame with numeric income and expense columns.

    Malformed values count as zero.
    """
    if analytics is None or not analytics.trend:
        return pd.DataFrame(columns=TREND_DATA_COLUMNS)

    df = pd.DataFrame([dataclasses.asdict(p) for p in analytics.trend], columns=TREND_DATA_COLUMNS)
    for column in ('income', 'expense'):
        df[column] = pd.to_numeric(df[column], errors='coerce').fillna(0.0).astype(float)
    df['period'] = df['period'].astype(str)
    return df


def get_categories(analytics: Optional[models.AnalyticsSnapshot]) -> pd.DataFrame:
    """Returns the category breakdown as a DataFrame. Unnamed categories are labelled 'Other'."""
    if analytics is None or not analytics.by_category:
        return pd.DataFrame(columns=CATEGORY_DATA_COLUMNS)

    df = pd.DataFrame({
        'category': [c.category_name or 'Other' for c in analytics.by_category],
        'amount': [c.amount for c in analytics.by_category],
        'ratio': [c.ratio for c in analytics.by_category],
    }, columns=CATEGORY_DATA_COLUMNS)
    for column in ('amount', 'ratio'):
        df[column] = pd.to_numeric(df[column], errors='coerce').fillna(0.0).astype(float)
    return df


def trend_spec(analytics: Optional[models.AnalyticsSnapshot]) -> ChartSpec:
    df = get_trend(analytics)
    return ChartSpec(
        kind=ChartKind.Line,
        labels=df['period'].tolist(),
        series=[
            ChartSeries('Income', df['income'].tolist()),
            ChartSeries('Expense', df['expense'].tolist()),
        ],
        title='Income / Expense',
    )


def category_spec(analytics: Optional[models.AnalyticsSnapshot]) -> ChartSpec:
    df = get_categories(analytics)
    return ChartSpec(
        kind=ChartKind.Pie,
        labels=df['category'].tolist(),
        series=[ChartSeries('Expense', df['amount'].tolist())],
        title='By category',
    )


def get_totals(analytics: Optional[models.AnalyticsSnapshot]) -> Totals:
    """
    Returns income, expense and net totals.

    Payload totals win. Missing totals fall back to the sum of the trend, and a missing net
    falls back to income minus expense.

    """
    if analytics is None:
        return Totals(None, None, None)

    df = get_trend(analytics)
    income = analytics.total_income
    if income is None:
        income = float(df['income'].sum()) if not df.empty else 0.0
    expense = analytics.total_expense
    if expense is None:
        expense = float(df['expense'].sum()) if not df.empty else 0.0

    net = analytics.net_balance
    if net is None and is_number(income) and is_number(expense):
        net = income - expense
    return Totals(income=income, expense=expense, net=net)


def alert_message(budget_items: Iterable[models.BudgetStatusItem], totals: Totals) -> str:
    """
    Returns the single dashboard alert.

    Precedence: any EXCEEDED budget, then any NEAR_LIMIT budget, then expenses above income.
    """
    items = list(budget_items)
    exceeded = [b for b in items if b.status == models.BudgetState.Exceeded]
    near_limit = [b for b in items if b.status == models.BudgetState.NearLimit]

    if exceeded:
        names = ', '.join(b.category_name or 'Unnamed' for b in exceeded)
        return f'BUDGET_EXCEEDED: Categories over budget: {names}.'
    if near_limit:
        names = ', '.join(b.category_name or 'Unnamed' for b in near_limit)
        return f'BUDGET_NEAR_LIMIT: Categories near limit: {names}.'

    income = as_float(totals.income)
    expense = as_float(totals.expense)
    if expense > income and expense > 0:
        return f'SPEND_TOO_HIGH: Expenses ({fmt(expense)}) are greater than income ({fmt(income)}).'
    return NO_ALERT_MESSAGE


def budget_banner(budget_items: Iterable[models.BudgetStatusItem], total_expense: Any) -> str:
    """
    Returns the budget banner text.

    A ledger-wide budget (no category) with a positive limit is shown as used / limit. Otherwise
    the first three budgets are summarised. Without budgets the total expense is shown.
    """
    items = list(budget_items)
    expense = as_float(total_expense)

    if not items:
        if expense:
            return f'{fmt(expense)} total expense (no budgets set)'
        return NO_EXPENSE_MESSAGE

    ledger_budget = next((b for b in items if b.category_id is None), None)
    if ledger_budget is not None and as_float(ledger_budget.limit_amount) > 0:
        limit = as_float(ledger_budget.limit_amount)
        used = as_float(ledger_budget.spent_amount) or expense or 0.0
        ratio = as_float(ledger_budget.ratio) or used / limit
        return f'{fmt(used)} / {fmt(limit)}\n({ratio * 100:.1f}% used [Expense/Budget])'

    parts = []
    for b in items[:BANNER_ITEM_LIMIT]:
        spent = as_float(b.spent_amount)
        limit = as_float(b.limit_amount)
        pct = f'{spent / limit * 100:.1f}' if limit > 0 else '0.0'
        parts.append(f'{b.category_name or "Ledger"}: {fmt(spent)}/{fmt(limit)} ({pct}% used, {b.status})')

    more = f' (+{len(items) - BANNER_ITEM_LIMIT} more)' if len(items) > BANNER_ITEM_LIMIT else ''
    return ' | '.join(parts) + more


def range_label(analytics: Optional[models.AnalyticsSnapshot]) -> str:
    if analytics is None or not analytics.range_start or not analytics.range_end:
        return ''
    return f'Range: {analytics.range_start}  →  {analytics.range_end} (end exclusive)'


def arap_rows(analytics: Optional[models.AnalyticsSnapshot]) -> List[ArApRow]:
    """Returns the AR/AP table rows with ``net = ar - ap``."""
    if analytics is None:
        return []
    rows = []
    for entry in analytics.arap:
        if is_number(entry.ar) and is_number(entry.ap):
            net = fmt(entry.ar - entry.ap)
        else:
            net = '-'
        rows.append(ArApRow(
            user_name=entry.user_name or f'User {entry.user_id}',
            ar=fmt(entry.ar),
            ap=fmt(entry.ap),
            net=net,
        ))
    return rows


def merchant_rows(analytics: Optional[models.AnalyticsSnapshot]) -> List[tuple]:
    if analytics is None:
        return []
    return [(m.label or '', fmt(m.amount)) for m in analytics.top_merchants]


def recommendation_badges(analytics: Optional[models.AnalyticsSnapshot]) -> List[Badge]:
    if analytics is None:
        return []
    return [
        Badge(text=f'{r.code}: {r.message}', warning=r.severity == 'WARNING')
        for r in analytics.recommendations
    ]


def ledger_label(ledger: models.Ledger) -> str:
    return f'{ledger.name} ({ledger.base_currency})'


def ledger_meta_label(meta: Optional[models.LedgerMeta]) -> str:
    if meta is None:
        return 'No ledgers yet. Use "New ledger" to create one.'
    text = f'{meta.type} • {meta.base_currency}'
    if meta.role:
        text += f' • Role: {meta.role}'
    return text


def derive_dashboard(analytics: Optional[models.AnalyticsSnapshot],
                     budget_items: Iterable[models.BudgetStatusItem]) -> DashboardView:
    """Derives every dashboard value from one analytics snapshot and the budget status."""
    items = list(budget_items)
    totals = get_totals(analytics)
    return DashboardView(
        totals=totals,
        income_text=fmt(totals.income),
        expense_text=fmt(totals.expense),
        net_text=fmt(totals.net),
        range_text=range_label(analytics),
        alert=alert_message(items, totals),
        banner=budget_banner(items, totals.expense),
        trend=trend_spec(analytics),
        category=category_spec(analytics),
        arap=arap_rows(analytics),
        merchants=merchant_rows(analytics),
        badges=recommendation_badges(analytics),
    )


def _split_value_label(method: str, value: Any) -> str:
    if method == models.SplitMethod.Percent:
        return f'{value}%'
    if method == 'SHARE':
        return f'{value} shares'
    return f'{value}'


def transaction_detail_lines(detail: models.TransactionDetail) -> List[DetailLine]:
    """Returns one main and one secondary line per booked split."""
    lines = []
    for s in detail.splits:
        user = s.user_name or (f'User {s.user_id}' if s.user_id else 'Member')
        amount = fmt(s.computed_amount) if s.computed_amount is not None else '0'
        lines.append(DetailLine(
            main=f'{user} – {amount} {detail.currency}',
            sub=f'{s.method} • value: {_split_value_label(s.method, s.share_value)}',
        ))
    return lines


def transaction_detail_fields(detail: models.TransactionDetail, state) -> List[tuple]:
    """Returns the labelled header fields of the transaction detail view."""
    if detail.payer_id:
        payer = state.member_name(detail.payer_id)
    else:
        payer = '-'
    return [
        ('Type', detail.type or ''),
        ('Amount', f'{fmt(detail.total_amount)} {detail.currency}'),
        ('Date', detail.occurred_at or ''),
        ('Payer', payer),
        ('Category', state.category_name(detail.category_id) or 'Uncategorized'),
        ('Note', detail.note or ''),
        ('Rounding', detail.rounding_strategy or '-'),
        ('Tail allocation', detail.tail_allocation or '-'),
    ]
