"""Settlement plans: who pays whom to clear the ledger's debts.

The server computes the plan. :class:`SettlementPresenter` fetches either the default plan
(``GET``) or one generated with a custom :class:`SettlementConfig` (``POST``), and both go
through :func:`render_plan`.
"""
import dataclasses
import logging
from typing import Any, Dict, List, Optional

from ..core import models, normalize
from ..status import status

SETTLED_MESSAGE = 'Everyone is settled. No debts to clear.'


@dataclasses.dataclass
class SettlementConfig:
    """Options for generating a settlement plan."""
    rounding_strategy: str = models.RoundingStrategy.RoundHalfUp.value
    max_transfer_amount: Optional[float] = None
    force_min_cost_flow: bool = False
    min_cost_flow_threshold: Optional[int] = None
    payment_channels: Optional[Dict[str, Any]] = None
    currency_rates: Optional[Dict[str, Any]] = None

    @classmethod
    def from_form(cls, rounding_strategy: str = '', max_transfer_amount: str = '',
                  force_min_cost_flow: bool = False, min_cost_flow_threshold: str = '') -> 'SettlementConfig':
        """Builds a config from the raw text of the settlement form. Blank fields are unset.

        Raises:
            status.ValidationException: If a numeric field does not parse.
        """
        def _number(text: str, name: str) -> Optional[float]:
            value = normalize.to_number(text, default=None)
            if value is not None and not normalize.is_number(value):
                raise status.ValidationException(f'{name} must be a number.')
            return value

        threshold = _number(min_cost_flow_threshold, 'Min-cost-flow threshold')
        return cls(
            rounding_strategy=rounding_strategy or models.RoundingStrategy.RoundHalfUp.value,
            max_transfer_amount=_number(max_transfer_amount, 'Max transfer amount'),
            force_min_cost_flow=bool(force_min_cost_flow),
            min_cost_flow_threshold=int(threshold) if threshold is not None else None,
        )

    def to_payload(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True)
class TransferRow:
    from_name: str
    to_name: str
    amount: str


@dataclasses.dataclass(frozen=True)
class SettlementView:
    message: str
    currency: str
    rows: List[TransferRow]

    @property
    def settled(self) -> bool:
        return not self.rows


def render_plan(plan: models.SettlementPlan) -> SettlementView:
    """Renders a settlement plan into a summary line and one row per transfer."""
    if not plan.transfers:
        return SettlementView(message=SETTLED_MESSAGE, currency=plan.currency, rows=[])

    count = plan.transfer_count if plan.transfer_count is not None else len(plan.transfers)
    rows = [
        TransferRow(
            from_name=t.from_user_name or f'User {t.from_user_id}',
            to_name=t.to_user_name or f'User {t.to_user_id}',
            amount=f'{normalize.fmt(t.amount)} {plan.currency}',
        )
        for t in plan.transfers
    ]
    return SettlementView(
        message=f'Currency: {plan.currency} • Transfers: {count}',
        currency=plan.currency,
        rows=rows,
    )


def _render(data: Any) -> Optional[SettlementView]:
    # No data after a 401
    if data is None:
        return None
    return render_plan(normalize.normalize_settlement_plan(data))


class SettlementPresenter:
    """Fetches and renders settlement plans.

    Both loaders return ``None`` when the server answered without data, e.g. after a 401.

    Args:
        client: The :class:`LedgerClient.core.api.ApiClient`.
    """

    def __init__(self, client) -> None:
        self.client = client

    @staticmethod
    def _path(ledger_id: Optional[int]) -> str:
        if ledger_id is None:
            raise status.ValidationException('Please select a ledger first.')
        return f'/api/v1/ledgers/{ledger_id}/settlement-plan'

    async def load_default_plan(self, ledger_id: Optional[int]) -> Optional[SettlementView]:
        path = self._path(ledger_id)
        data = await self.client.get(path)
        logging.debug(f'Loaded the default settlement plan of ledger {ledger_id}')
        return _render(data)

    async def generate_plan(self, ledger_id: Optional[int], config: SettlementConfig) -> Optional[SettlementView]:
        path = self._path(ledger_id)
        data = await self.client.post(path, config.to_payload())
        logging.debug(f'Generated a settlement plan of ledger {ledger_id} with {config}')
        return _render(data)
