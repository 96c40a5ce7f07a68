"""Canonical record types shared by the api boundary, the ledger state and the views.

Every type here is produced by :mod:`LedgerClient.core.normalize`; nothing downstream of the
normalizer reads raw server payloads.

Numeric fields are typed ``Number``: a float when the server value parsed, or the original
string when it did not, so that malformed data stays visible.
"""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

Number = Union[float, str]


class TransactionType(enum.StrEnum):
    Income = 'INCOME'
    Expense = 'EXPENSE'
    Transfer = 'TRANSFER'


class SplitMethod(enum.StrEnum):
    Equal = 'EQUAL'
    Exact = 'EXACT'
    Percent = 'PERCENT'
    Weight = 'WEIGHT'


class BudgetState(enum.StrEnum):
    Ok = 'OK'
    NearLimit = 'NEAR_LIMIT'
    Exceeded = 'EXCEEDED'


class RoundingStrategy(enum.StrEnum):
    RoundHalfUp = 'ROUND_HALF_UP'
    TrimToUnit = 'TRIM_TO_UNIT'
    NoRounding = 'NONE'


class TailAllocation(enum.StrEnum):
    Payer = 'PAYER'
    LargestShare = 'LARGEST_SHARE'
    Creator = 'CREATOR'


@dataclass(frozen=True)
class UserProfile:
    id: Optional[int]
    name: Optional[str]


@dataclass(frozen=True)
class Ledger:
    id: int
    name: str
    type: Optional[str] = None
    base_currency: Optional[str] = None
    role: Optional[str] = None


@dataclass(frozen=True)
class LedgerMeta:
    """The ledger detail payload: descriptive fields plus its categories."""
    type: Optional[str]
    base_currency: Optional[str]
    role: Optional[str]
    categories: List['Category'] = field(default_factory=list)


@dataclass(frozen=True)
class Member:
    user_id: int
    name: Optional[str]
    role: Optional[str]


@dataclass(frozen=True)
class Category:
    id: int
    name: str


@dataclass(frozen=True)
class Split:
    """One per-member share of a transaction, as sent to the server."""
    user_id: int
    method: SplitMethod
    share_value: float
    included: bool = True

    def to_payload(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'split_method': self.method.value,
            'share_value': self.share_value,
            'included': self.included,
        }


@dataclass(frozen=True)
class SplitView:
    """One booked split of a stored transaction."""
    user_id: Optional[int]
    user_name: Optional[str]
    method: str
    share_value: Any
    computed_amount: Optional[Number]


@dataclass(frozen=True)
class Transaction:
    id: int
    occurred_at: Optional[str]
    type: Optional[str]
    currency: Optional[str]
    total_amount: Number
    payer_id: Optional[int]
    category_id: Optional[int] = None
    note: str = ''
    created_by: Optional[int] = None
    splits: List[SplitView] = field(default_factory=list)


@dataclass(frozen=True)
class TransactionDetail(Transaction):
    ledger_id: Optional[int] = None
    rounding_strategy: Optional[str] = None
    tail_allocation: Optional[str] = None


@dataclass(frozen=True)
class TrendPoint:
    period: str
    income: Number
    expense: Number


@dataclass(frozen=True)
class CategoryAmount:
    category_id: Optional[int]
    category_name: Optional[str]
    amount: Number
    ratio: Number


@dataclass(frozen=True)
class ArApEntry:
    user_id: Optional[int]
    user_name: Optional[str]
    ar: Number
    ap: Number


@dataclass(frozen=True)
class Merchant:
    label: Optional[str]
    amount: Number


@dataclass(frozen=True)
class Recommendation:
    code: Optional[str]
    message: Optional[str]
    severity: Optional[str]


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """One analytics overview payload. Totals are ``None`` when the server omitted them."""
    currency: str
    range_start: Optional[str]
    range_end: Optional[str]
    total_income: Optional[Number]
    total_expense: Optional[Number]
    net_balance: Optional[Number]
    trend: List[TrendPoint] = field(default_factory=list)
    by_category: List[CategoryAmount] = field(default_factory=list)
    arap: List[ArApEntry] = field(default_factory=list)
    top_merchants: List[Merchant] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)


@dataclass(frozen=True)
class BudgetStatusItem:
    budget_id: Optional[int]
    category_id: Optional[int]
    category_name: Optional[str]
    limit_amount: Number
    spent_amount: Number
    ratio: Number
    status: Optional[str]


@dataclass(frozen=True)
class SettlementTransfer:
    from_user_id: Optional[int]
    to_user_id: Optional[int]
    amount: Number
    from_user_name: Optional[str] = None
    to_user_name: Optional[str] = None


@dataclass(frozen=True)
class SettlementPlan:
    currency: str
    transfers: List[SettlementTransfer] = field(default_factory=list)
    transfer_count: Optional[int] = None
