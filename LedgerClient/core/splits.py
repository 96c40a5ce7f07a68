"""Split allocation: turning the split editor rows into the transaction payload, and previewing
the per-member amounts the server books for them.

:func:`build_splits` is what gets sent. It performs no sum validation, the server owns that.
:func:`preview_allocation` mirrors the server's arithmetic so the editor can show the booked
amounts before submitting. Its result always sums exactly to the transaction total.
"""
import dataclasses
import logging
from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from . import normalize
from .models import RoundingStrategy, Split, SplitMethod, TailAllocation
#: Intermediate precision for raw shares before rounding.
RAW_PRECISION: int = 8

HUNDRED = Decimal(100)


class AllocationError(ValueError):
    """The splits cannot be booked as entered.

    Raised by :func:`preview_allocation`. Unlike the status exceptions it is not logged and does
    not emit :attr:`signals.error`, the editor raises it on every keystroke.
    """


@dataclasses.dataclass
class SplitRow:
    """One member row of the split editor.

    Attributes:
        user_id: The member.
        name: The display name.
        included: Whether the member takes part in the split.
        value: The raw text entered for EXACT, PERCENT and WEIGHT splits.
    """
    user_id: int
    name: str = ''
    included: bool = True
    value: Any = ''


def build_splits(method: SplitMethod, rows: Iterable[SplitRow], total_amount: Any = None) -> List[Split]:
    """
    Builds the split payload from the editor rows.

    Only included rows are emitted. With no included rows the list is empty and the server
    applies its default allocation. EQUAL rows carry a ``0`` placeholder. EXACT, PERCENT and
    WEIGHT rows are rounded to 2 decimals, and dropped when unparsable or zero after rounding.

    Args:
        method: The split method chosen for the whole transaction.
        rows: The editor rows.
        total_amount: The transaction total. Not used for validation.

    Returns:
        List[Split]: The splits to send.

    """
    method = SplitMethod(method)
    splits: List[Split] = []

    for row in rows:
        if not row.included:
            continue
        if method == SplitMethod.Equal:
            splits.append(Split(user_id=row.user_id, method=method, share_value=0))
            continue

        value = normalize.to_number(row.value, default=0.0)
        if not normalize.is_number(value):
            continue
        share = float(normalize.round_half_up(value, 2))
        if share == 0:
            continue
        splits.append(Split(user_id=row.user_id, method=method, share_value=share))

    return splits


def _to_decimal(value: Any, name: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError) as ex:
        raise AllocationError(f'{name} is not a number: {value}') from ex
    if not number.is_finite():
        raise AllocationError(f'{name} is not a number: {value}')
    return number


def _check_values(method: SplitMethod, values: List[Decimal], total: Decimal) -> None:
    if method == SplitMethod.Percent:
        if any(v < 0 or v > HUNDRED for v in values):
            raise AllocationError('PERCENT share values must be between 0 and 100.')
        if sum(values) != HUNDRED:
            raise AllocationError('PERCENT splits must sum to 100.')
    elif method == SplitMethod.Weight:
        if any(v <= 0 for v in values):
            raise AllocationError('WEIGHT share values must be positive.')
    elif method == SplitMethod.Exact:
        if any(v < 0 for v in values):
            raise AllocationError('EXACT share values must not be negative.')
        if sum(values) != total:
            raise AllocationError('EXACT splits must sum to total amount.')


def _raw_shares(method: SplitMethod, splits: List[Split], total: Decimal) -> Dict[int, Decimal]:
    precision = Decimal(1).scaleb(-RAW_PRECISION)
    values = [_to_decimal(s.share_value, 'Share value') for s in splits]
    _check_values(method, values, total)

    if method == SplitMethod.Equal:
        share = (total / len(splits)).quantize(precision, rounding=ROUND_HALF_UP)
        return {s.user_id: share for s in splits}

    if method == SplitMethod.Percent:
        return {
            s.user_id: (total * v / 100).quantize(precision, rounding=ROUND_HALF_UP)
            for s, v in zip(splits, values)
        }

    if method == SplitMethod.Weight:
        total_weight = sum(values)
        return {
            s.user_id: (total * v / total_weight).quantize(precision, rounding=ROUND_HALF_UP)
            for s, v in zip(splits, values)
        }

    return {s.user_id: v for s, v in zip(splits, values)}


def _round(value: Decimal, strategy: RoundingStrategy, exponent: int) -> Decimal:
    if strategy == RoundingStrategy.NoRounding:
        return value
    unit = Decimal(1).scaleb(-exponent)
    if strategy == RoundingStrategy.TrimToUnit:
        return value.quantize(unit, rounding=ROUND_DOWN)
    return value.quantize(unit, rounding=ROUND_HALF_UP)


def _tail_target(amounts: Dict[int, Decimal], tail_allocation: TailAllocation,
                 payer_id: Optional[int], creator_id: Optional[int]) -> int:
    if tail_allocation == TailAllocation.Payer and payer_id in amounts:
        return payer_id
    if tail_allocation == TailAllocation.Creator and creator_id in amounts:
        return creator_id
    # Largest share, first one wins a tie
    return max(amounts, key=lambda k: amounts[k])


def preview_allocation(
        method: SplitMethod,
        splits: Iterable[Split],
        total_amount: Any,
        payer_id: Optional[int] = None,
        tail_allocation: TailAllocation = TailAllocation.Payer,
        rounding_strategy: RoundingStrategy = RoundingStrategy.RoundHalfUp,
        creator_id: Optional[int] = None,
        exponent: int = 2,
) -> Dict[int, Decimal]:
    """
    Computes the amount each member is booked for.

    Raw shares are rounded with ``rounding_strategy``. The difference between the total and the
    rounded sum (the tail) is added to the payer, the creator, or the largest share depending on
    ``tail_allocation``. When the chosen member takes no part in the split the tail goes to the
    largest share.

    Args:
        method: The split method.
        splits: The splits as built by :func:`build_splits`. Excluded splits are ignored.
        total_amount: The transaction total.
        payer_id: The paying member.
        tail_allocation: Who absorbs the rounding tail.
        rounding_strategy: How each share is rounded.
        creator_id: The member creating the transaction, used with ``CREATOR``.
        exponent: The number of decimals of the currency.

    Returns:
        Dict[int, Decimal]: The booked amount per user id, in split order.

    Raises:
        AllocationError: If the server would reject the splits: PERCENT values outside 0..100
            or not summing to 100, WEIGHT values that are not positive, EXACT values that are
            negative or do not sum to the total, or a value that is not a number.

    """
    method = SplitMethod(method)
    included = [s for s in splits if s.included]
    if not included:
        return {}

    total = _to_decimal(total_amount, 'Amount')
    strategy = RoundingStrategy(rounding_strategy)

    raw = _raw_shares(method, included, total)
    amounts = {k: _round(v, strategy, exponent) for k, v in raw.items()}

    tail = total - sum(amounts.values())
    if tail != 0:
        target = _tail_target(amounts, TailAllocation(tail_allocation), payer_id, creator_id)
        amounts[target] += tail
        logging.debug(f'Allocated rounding tail {tail} to user {target}')

    return amounts
