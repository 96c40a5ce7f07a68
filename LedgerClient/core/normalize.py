"""Normalization of server payloads into the canonical records of :mod:`LedgerClient.core.models`.

The ledger service is not consistent about field naming: depending on the endpoint a field may
arrive as ``total_income`` or ``totalIncome``, and date-times may arrive as ISO strings or as
component arrays. Every payload passes through this module exactly once, at the api boundary.

Rules:
    - Look up the snake_case key first, then the camelCase key, then fall back to a default.
      A ``None`` value counts as absent.
    - Numbers are parsed. A value that does not parse is kept as its original string, so that
      malformed upstream data is displayed rather than silently becoming zero.
    - Date-times are returned as ``YYYY-MM-DDTHH:MM:SS`` strings.
"""
import math
from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional

from . import models

_MISSING = object()


def camel_case(key: str) -> str:
    """Return the camelCase spelling of a snake_case key, e.g. ``total_income`` -> ``totalIncome``."""
    head, *tail = key.split('_')
    return head + ''.join(part[:1].upper() + part[1:] for part in tail)


def pick(record: Any, key: str, default: Any = None, camel: Optional[str] = None) -> Any:
    """Return the value stored under ``key`` or its camelCase variant.

    Args:
        record: A mapping from the server. Anything else yields ``default``.
        key: The snake_case key.
        default: Returned when neither spelling holds a value.
        camel: Overrides the derived camelCase key.

    """
    if not isinstance(record, Mapping):
        return default
    for k in (key, camel or camel_case(key)):
        value = record.get(k)
        if value is not None:
            return value
    return default


def pick_list(record: Any, key: str) -> List[Any]:
    """Like :func:`pick` but always returns a list, empty when absent or not a sequence."""
    value = pick(record, key, default=[])
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return []
    return list(value)


def to_number(value: Any, default: Any = 0.0) -> Any:
    """Parse ``value`` as a float.

    ``None`` and blank strings are absent and yield ``default``. Values that do not parse are
    returned as their original string.
    """
    if value is None:
        return default
    if isinstance(value, (bool, int, float)):
        number = float(value)
        return str(value) if math.isnan(number) else number

    text = str(value).strip()
    if not text:
        return default
    try:
        number = float(text)
    except ValueError:
        return str(value)
    if math.isnan(number):
        return str(value)
    return number


def to_id(value: Any) -> Any:
    """Return an integer identifier when ``value`` looks like one, the value itself otherwise."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return value
    if number.is_integer():
        return int(number)
    return value


def is_number(value: Any) -> bool:
    """True for a parsed finite number (never for a preserved malformed string)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def as_float(value: Any, default: float = 0.0) -> float:
    """Return ``value`` when it is a parsed number, ``default`` otherwise."""
    return float(value) if is_number(value) else default


def to_datetime_str(raw: Any) -> Optional[str]:
    """Convert a server date-time to ``YYYY-MM-DDTHH:MM:SS``.

    Accepts an ISO string (returned as is), a component sequence
    ``[year, month, day, hour?, minute?, second?]``, or anything else (stringified).
    """
    if raw is None or raw == '':
        return None
    if isinstance(raw, str):
        return raw
    if isinstance(raw, Sequence) and not isinstance(raw, bytes) and len(raw) >= 3:
        parts = list(raw[:6]) + [0] * (6 - len(raw[:6]))
        year, month, day, hour, minute, second = (0 if p is None else p for p in parts)
        return (
            f'{str(year).zfill(4)}-{str(month).zfill(2)}-{str(day).zfill(2)}'
            f'T{str(hour).zfill(2)}:{str(minute).zfill(2)}:{str(second).zfill(2)}'
        )
    return str(raw)


def round_half_up(value: Any, places: int = 2) -> Decimal:
    """Round a number half-up to ``places`` decimals.

    Raises:
        InvalidOperation: If the value is not finite.
    """
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


def fmt(value: Any) -> str:
    """Format a value for display.

    ``None`` yields ``"-"``, numbers and numeric strings yield two decimals, and any other
    string is returned unchanged.
    """
    if value is None:
        return '-'
    number = to_number(value, default=_MISSING)
    if number is _MISSING:
        # blank string
        return str(value)
    if not is_number(number):
        return str(value)
    try:
        return f'{round_half_up(number, 2)}'
    except InvalidOperation:
        return str(value)


def normalize_profile(data: Any) -> models.UserProfile:
    return models.UserProfile(
        id=to_id(pick(data, 'id', camel='userId')),
        name=pick(data, 'name'),
    )


def normalize_ledger(item: Any) -> models.Ledger:
    ledger_id = pick(item, 'ledger_id')
    if ledger_id is None:
        ledger_id = pick(item, 'id')
    return models.Ledger(
        id=to_id(ledger_id),
        name=pick(item, 'name', ''),
        type=pick(item, 'ledger_type'),
        base_currency=pick(item, 'base_currency'),
        role=pick(item, 'role'),
    )


def normalize_ledgers(data: Any) -> List[models.Ledger]:
    return [normalize_ledger(item) for item in pick_list(data, 'items')]


def normalize_category(item: Any) -> models.Category:
    category_id = pick(item, 'id')
    if category_id is None:
        category_id = pick(item, 'category_id')
    return models.Category(id=to_id(category_id), name=pick(item, 'name', ''))


def normalize_ledger_meta(data: Any) -> models.LedgerMeta:
    return models.LedgerMeta(
        type=pick(data, 'ledger_type'),
        base_currency=pick(data, 'base_currency'),
        role=pick(data, 'role'),
        categories=[normalize_category(c) for c in pick_list(data, 'categories')],
    )


def normalize_member(item: Any) -> models.Member:
    return models.Member(
        user_id=to_id(pick(item, 'user_id')),
        name=pick(item, 'name'),
        role=pick(item, 'role'),
    )


def normalize_members(data: Any) -> List[models.Member]:
    return [normalize_member(item) for item in pick_list(data, 'items')]


def normalize_split_view(item: Any) -> models.SplitView:
    computed = pick(item, 'computed_amount')
    if computed is None:
        computed = pick(item, 'amount')
    return models.SplitView(
        user_id=to_id(pick(item, 'user_id')),
        user_name=pick(item, 'user_name'),
        method=pick(item, 'split_method') or pick(item, 'method') or models.SplitMethod.Exact.value,
        share_value=pick(item, 'share_value'),
        computed_amount=to_number(computed, default=None),
    )


def _transaction_fields(item: Any) -> dict:
    transaction_id = pick(item, 'transaction_id')
    if transaction_id is None:
        transaction_id = pick(item, 'id')
    return dict(
        id=to_id(transaction_id),
        occurred_at=to_datetime_str(pick(item, 'txn_at')),
        type=pick(item, 'type'),
        currency=pick(item, 'currency'),
        total_amount=to_number(pick(item, 'amount_total')),
        payer_id=to_id(pick(item, 'payer_id')),
        # 0 is never a valid category
        category_id=to_id(pick(item, 'category_id')) or None,
        note=pick(item, 'note', ''),
        created_by=to_id(pick(item, 'created_by')),
        splits=[normalize_split_view(s) for s in pick_list(item, 'splits')],
    )


def normalize_transaction(item: Any) -> models.Transaction:
    return models.Transaction(**_transaction_fields(item))


def normalize_transactions(data: Any) -> List[models.Transaction]:
    return [normalize_transaction(item) for item in pick_list(data, 'items')]


def normalize_transaction_detail(data: Any) -> models.TransactionDetail:
    return models.TransactionDetail(
        **_transaction_fields(data),
        ledger_id=to_id(pick(data, 'ledger_id')),
        rounding_strategy=pick(data, 'rounding_strategy'),
        tail_allocation=pick(data, 'tail_allocation'),
    )


def normalize_analytics(data: Any) -> models.AnalyticsSnapshot:
    return models.AnalyticsSnapshot(
        currency=pick(data, 'currency', 'USD'),
        range_start=to_datetime_str(pick(data, 'range_start')),
        range_end=to_datetime_str(pick(data, 'range_end')),
        total_income=to_number(pick(data, 'total_income'), default=None),
        total_expense=to_number(pick(data, 'total_expense'), default=None),
        net_balance=to_number(pick(data, 'net_balance'), default=None),
        trend=[
            models.TrendPoint(
                period=f'{pick(p, "period", "")}',
                income=to_number(pick(p, 'income')),
                expense=to_number(pick(p, 'expense')),
            )
            for p in pick_list(data, 'trend')
        ],
        by_category=[
            models.CategoryAmount(
                category_id=to_id(pick(c, 'category_id')),
                category_name=pick(c, 'category_name'),
                amount=to_number(pick(c, 'amount')),
                ratio=to_number(pick(c, 'ratio')),
            )
            for c in pick_list(data, 'by_category')
        ],
        arap=[
            models.ArApEntry(
                user_id=to_id(pick(u, 'user_id')),
                user_name=pick(u, 'user_name'),
                ar=to_number(pick(u, 'ar')),
                ap=to_number(pick(u, 'ap')),
            )
            for u in pick_list(data, 'arap')
        ],
        top_merchants=[
            models.Merchant(label=pick(m, 'label'), amount=to_number(pick(m, 'amount')))
            for m in pick_list(data, 'top_merchants')
        ],
        recommendations=[
            models.Recommendation(
                code=pick(r, 'code'),
                message=pick(r, 'message'),
                severity=pick(r, 'severity'),
            )
            for r in pick_list(data, 'recommendations')
        ],
    )


def normalize_budget_item(item: Any) -> models.BudgetStatusItem:
    return models.BudgetStatusItem(
        budget_id=to_id(pick(item, 'budget_id')),
        category_id=to_id(pick(item, 'category_id')),
        category_name=pick(item, 'category_name'),
        limit_amount=to_number(pick(item, 'limit_amount')),
        spent_amount=to_number(pick(item, 'spent_amount')),
        ratio=to_number(pick(item, 'ratio')),
        status=pick(item, 'status'),
    )


def normalize_budget_status(data: Any) -> List[models.BudgetStatusItem]:
    return [normalize_budget_item(item) for item in pick_list(data, 'items')]


def normalize_settlement_plan(data: Any) -> models.SettlementPlan:
    transfer_count = pick(data, 'transfer_count')
    return models.SettlementPlan(
        currency=pick(data, 'currency', 'USD'),
        transfers=[
            models.SettlementTransfer(
                from_user_id=to_id(pick(t, 'from_user_id')),
                to_user_id=to_id(pick(t, 'to_user_id')),
                amount=to_number(pick(t, 'amount'), default=None),
                from_user_name=pick(t, 'from_user_name'),
                to_user_name=pick(t, 'to_user_name'),
            )
            for t in pick_list(data, 'transfers')
        ],
        transfer_count=to_id(transfer_count),
    )
