"""Ledger state and its refresh orchestration.

:class:`LedgerState` is the single mutable store of everything fetched for the signed-in user:
the ledger list, the selected ledger and its members, categories, transactions, analytics and
budget status. Each slice is replaced wholesale and announced through a Qt signal.

:class:`LedgerLoader` fills it. Selecting a ledger is one refresh unit:

    1. members, ledger meta (with categories) and transactions load concurrently,
    2. then analytics and budget status load concurrently,
    3. then :attr:`LedgerState.ledgerLoaded` is emitted.

Every leg fails on its own: the error is logged and that slice keeps its previous value.
Each selection bumps :attr:`LedgerState.generation`, and a leg whose response arrives after a
newer selection is discarded.
"""
import asyncio
import dataclasses
import datetime
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from PySide6 import QtCore

from . import models, normalize
from ..status import status


@dataclasses.dataclass
class TransactionFilter:
    """The transaction list filter.

    Attributes:
        date_from: Inclusive start date, ``YYYY-MM-DD``.
        date_to: Inclusive end date, ``YYYY-MM-DD``.
        type: One of :class:`LedgerClient.core.models.TransactionType`, or empty for all.
    """
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    type: Optional[str] = None

    def to_params(self, page_size: int) -> Dict[str, Any]:
        params: Dict[str, Any] = {'page': 1, 'size': page_size}
        if self.date_from:
            params['from'] = f'{self.date_from}T00:00:00'
        if self.date_to:
            params['to'] = f'{self.date_to}T23:59:59'
        if self.type:
            params['type'] = self.type
        return params

    def budget_period(self, today: Optional[datetime.date] = None) -> Tuple[int, int]:
        """Returns the ``(year, month)`` of the start date, or of today without one."""
        if self.date_from:
            try:
                d = datetime.date.fromisoformat(self.date_from[:10])
                return d.year, d.month
            except ValueError:
                logging.debug(f'Invalid filter start date: {self.date_from}')
        today = today or datetime.date.today()
        return today.year, today.month


class LedgerState(QtCore.QObject):
    """
    The client-side ledger state.

    Signals:
        userChanged (object): The signed-in :class:`UserProfile`.
        ledgersChanged (object): The ledger list.
        ledgerSelected (object): The selected ledger id, or ``None``.
        metaChanged (object): The :class:`LedgerMeta` of the selected ledger.
        membersChanged (object): The member list.
        categoriesChanged (object): The category list.
        transactionsChanged (object): The filtered transaction list.
        analyticsChanged (object): The :class:`AnalyticsSnapshot`.
        budgetChanged (object): The budget status items.
        ledgerLoaded (object): The ledger id, after a full refresh unit settled.
        cleared (): The state was reset on sign-out.
    """
    userChanged = QtCore.Signal(object)
    ledgersChanged = QtCore.Signal(object)
    ledgerSelected = QtCore.Signal(object)
    metaChanged = QtCore.Signal(object)
    membersChanged = QtCore.Signal(object)
    categoriesChanged = QtCore.Signal(object)
    transactionsChanged = QtCore.Signal(object)
    analyticsChanged = QtCore.Signal(object)
    budgetChanged = QtCore.Signal(object)
    ledgerLoaded = QtCore.Signal(object)
    cleared = QtCore.Signal()

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self.generation: int = 0
        self.filter = TransactionFilter()
        self._init_slices()

    def _init_slices(self) -> None:
        self.user: Optional[models.UserProfile] = None
        self.ledgers: List[models.Ledger] = []
        self.current_ledger_id: Optional[int] = None
        self.meta: Optional[models.LedgerMeta] = None
        self.members: List[models.Member] = []
        self.categories: List[models.Category] = []
        self.transactions: List[models.Transaction] = []
        self.analytics: Optional[models.AnalyticsSnapshot] = None
        self.budget_items: List[models.BudgetStatusItem] = []

    @property
    def current_ledger(self) -> Optional[models.Ledger]:
        return next((l for l in self.ledgers if l.id == self.current_ledger_id), None)

    def member_name(self, user_id: Any) -> str:
        member = next((m for m in self.members if m.user_id == user_id), None)
        if member and member.name:
            return member.name
        return f'User {user_id}'

    def category_name(self, category_id: Any) -> Optional[str]:
        category = next((c for c in self.categories if c.id == category_id), None)
        return category.name if category else None

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def begin_selection(self, ledger_id: Optional[int]) -> int:
        """Sets the current ledger and starts a new generation."""
        self.generation += 1
        self.current_ledger_id = ledger_id
        logging.debug(f'Selected ledger {ledger_id} (generation {self.generation})')
        self.ledgerSelected.emit(ledger_id)
        return self.generation

    def set_user(self, user: models.UserProfile) -> None:
        self.user = user
        self.userChanged.emit(user)

    def set_ledgers(self, ledgers: List[models.Ledger]) -> None:
        self.ledgers = list(ledgers)
        self.ledgersChanged.emit(self.ledgers)

    def set_meta(self, meta: models.LedgerMeta) -> None:
        self.meta = meta
        self.categories = list(meta.categories)
        self.metaChanged.emit(meta)
        self.categoriesChanged.emit(self.categories)

    def set_members(self, members: List[models.Member]) -> None:
        self.members = list(members)
        self.membersChanged.emit(self.members)

    def set_transactions(self, transactions: List[models.Transaction]) -> None:
        self.transactions = list(transactions)
        self.transactionsChanged.emit(self.transactions)

    def set_analytics(self, analytics: models.AnalyticsSnapshot) -> None:
        self.analytics = analytics
        self.analyticsChanged.emit(analytics)

    def set_budget_items(self, items: List[models.BudgetStatusItem]) -> None:
        self.budget_items = list(items)
        self.budgetChanged.emit(self.budget_items)

    def reset(self) -> None:
        """Forgets everything. Any response still in flight becomes stale."""
        self.generation += 1
        self.filter = TransactionFilter()
        self._init_slices()
        self.cleared.emit()


class LedgerLoader:
    """
    Fetches data through an :class:`LedgerClient.core.api.ApiClient` into a :class:`LedgerState`.

    Args:
        client: The api client.
        state: The state to fill.

    """

    def __init__(self, client, state: LedgerState) -> None:
        self.client = client
        self.state = state

    def _ledger_path(self, suffix: str = '', ledger_id: Optional[int] = None) -> str:
        ledger_id = self.state.current_ledger_id if ledger_id is None else ledger_id
        return f'/api/v1/ledgers/{ledger_id}{suffix}'

    def _require_ledger(self) -> int:
        if self.state.current_ledger_id is None:
            raise status.ValidationException('Please select a ledger first.')
        return self.state.current_ledger_id

    async def _leg(self, name: str, generation: int,
                   fetch: Callable[[], Awaitable[Any]],
                   apply: Callable[[Any], None]) -> bool:
        """Runs one refresh leg. Returns ``True`` when its result was applied."""
        try:
            data = await fetch()
        except status.BaseStatusException as ex:
            logging.error(f'Failed to load {name}: {ex}')
            return False

        if not self.state.is_current(generation):
            logging.debug(f'Discarding stale {name} (generation {generation})')
            return False
        if not self.client.session.is_authenticated():
            # the session was revoked while loading
            return False

        apply(data)
        return True

    async def reset(self) -> None:
        """Clears the state on the event loop thread."""
        self.state.reset()

    async def load_current_user(self) -> Optional[models.UserProfile]:
        """Loads the signed-in user's profile."""
        try:
            data = await self.client.get('/api/v1/users/me')
        except status.BaseStatusException as ex:
            logging.error(f'Failed to load the current user: {ex}')
            return None
        if data is None:
            return None
        user = normalize.normalize_profile(data)
        self.state.set_user(user)
        return user

    async def load_ledgers(self) -> List[models.Ledger]:
        """
        Loads the ledgers of the signed-in user.

        The previously selected ledger is selected again when it is still listed, otherwise the
        first ledger is selected. With no ledgers the selection is cleared.

        """
        generation = self.state.generation
        applied = await self._leg(
            'ledgers', generation,
            lambda: self.client.get('/api/v1/ledgers/mine'),
            lambda data: self.state.set_ledgers(normalize.normalize_ledgers(data)),
        )
        if not applied:
            return self.state.ledgers

        ledgers = self.state.ledgers
        if not ledgers:
            self.state.begin_selection(None)
            return ledgers

        previous = self.state.current_ledger_id
        ids = [l.id for l in ledgers]
        await self.select_ledger(previous if previous in ids else ids[0])
        return ledgers

    async def select_ledger(self, ledger_id: int) -> bool:
        """
        Selects a ledger and refreshes everything shown for it.

        Returns:
            bool: ``False`` when a newer selection superseded this one.

        """
        generation = self.state.begin_selection(ledger_id)
        await asyncio.gather(
            self._load_members(generation),
            self._load_meta(generation),
            self._load_transactions(generation),
        )
        if not self.state.is_current(generation):
            return False

        await self.refresh_analytics(generation)
        if not self.state.is_current(generation):
            return False

        logging.debug(f'Ledger {ledger_id} loaded')
        self.state.ledgerLoaded.emit(ledger_id)
        return True

    def _load_members(self, generation: int) -> Awaitable[bool]:
        path = self._ledger_path('/members')
        return self._leg(
            'members', generation,
            lambda: self.client.get(path),
            lambda data: self.state.set_members(normalize.normalize_members(data)),
        )

    def _load_meta(self, generation: int) -> Awaitable[bool]:
        path = self._ledger_path()
        return self._leg(
            'ledger details', generation,
            lambda: self.client.get(path),
            lambda data: self.state.set_meta(normalize.normalize_ledger_meta(data)),
        )

    def _load_transactions(self, generation: int) -> Awaitable[bool]:
        from ..settings import lib

        path = self._ledger_path('/transactions')
        params = self.state.filter.to_params(lib.settings['page_size'])
        return self._leg(
            'transactions', generation,
            lambda: self.client.get(path, params=params),
            lambda data: self.state.set_transactions(normalize.normalize_transactions(data)),
        )

    async def refresh_analytics(self, generation: Optional[int] = None) -> None:
        """Reloads analytics and budget status of the selected ledger."""
        from ..settings import lib

        if self.state.current_ledger_id is None:
            return
        generation = self.state.generation if generation is None else generation

        year, month = self.state.filter.budget_period()
        analytics_path = self._ledger_path('/analytics/overview')
        budget_path = self._ledger_path('/budgets/status')
        months = lib.settings['months']

        await asyncio.gather(
            self._leg(
                'analytics', generation,
                lambda: self.client.get(analytics_path, params={'months': months}),
                lambda data: self.state.set_analytics(normalize.normalize_analytics(data)),
            ),
            self._leg(
                'budget status', generation,
                lambda: self.client.get(budget_path, params={'year': year, 'month': month}),
                lambda data: self.state.set_budget_items(normalize.normalize_budget_status(data)),
            ),
        )

    async def load_members(self) -> bool:
        self._require_ledger()
        return await self._load_members(self.state.generation)

    async def load_transactions(self, transaction_filter: Optional[TransactionFilter] = None,
                                refresh_analytics: bool = True) -> bool:
        """
        Reloads the transaction list, optionally with a new filter.

        Args:
            transaction_filter: Replaces the current filter when given.
            refresh_analytics: Also reload analytics and budget status.

        """
        self._require_ledger()
        if transaction_filter is not None:
            self.state.filter = transaction_filter

        generation = self.state.generation
        applied = await self._load_transactions(generation)
        if refresh_analytics:
            await self.refresh_analytics(generation)
        return applied

    async def load_transaction_detail(self, transaction_id: int) -> Optional[models.TransactionDetail]:
        self._require_ledger()
        data = await self.client.get(self._ledger_path(f'/transactions/{transaction_id}'))
        if data is None:
            return None
        return normalize.normalize_transaction_detail(data)

    async def submit_transaction(
            self,
            transaction_type: str,
            amount: Any,
            occurred_at: str,
            payer_id: int,
            splits: Iterable[models.Split] = (),
            currency: str = '',
            note: str = '',
            category_id: Any = None,
            rounding_strategy: str = models.RoundingStrategy.RoundHalfUp,
            tail_allocation: str = models.TailAllocation.Payer,
    ) -> Any:
        """
        Creates a transaction in the selected ledger and reloads the transaction list.

        Raises:
            status.ValidationException: If no ledger is selected or the amount is not positive.

        """
        self._require_ledger()
        total = normalize.to_number(amount, default=0.0)
        if not normalize.is_number(total) or total <= 0:
            raise status.ValidationException('Amount must be > 0.')

        category = normalize.to_id(category_id) if category_id not in (None, '') else None
        body = {
            'type': str(transaction_type),
            'amount_total': total,
            'currency': (currency or '').strip() or 'USD',
            'txn_at': occurred_at,
            'payer_id': normalize.to_id(payer_id),
            'note': (note or '').strip(),
            'category_id': category,
            'rounding_strategy': str(rounding_strategy),
            'tail_allocation': str(tail_allocation),
            'splits': [s.to_payload() for s in splits],
        }
        data = await self.client.post(self._ledger_path('/transactions'), body)
        logging.info(f'Transaction created in ledger {self.state.current_ledger_id}')
        await self.load_transactions()
        return data

    async def delete_transaction(self, transaction_id: int) -> None:
        self._require_ledger()
        await self.client.delete(self._ledger_path(f'/transactions/{transaction_id}'))
        logging.info(f'Transaction {transaction_id} deleted')
        await self.load_transactions()

    async def add_member(self, email: str, role: str = 'EDITOR') -> int:
        """
        Adds a member by e-mail address.

        Returns:
            int: The added user's id.

        Raises:
            status.ValidationException: If the e-mail is blank or no user has it.

        """
        self._require_ledger()
        email = (email or '').strip()
        if not email:
            raise status.ValidationException('Email is required.')

        lookup = await self.client.get('/api/v1/user-lookup', params={'email': email})
        user_id = normalize.to_id(normalize.pick(lookup, 'user_id'))
        if not user_id:
            raise status.ValidationException('User not found.')

        await self.client.post(self._ledger_path('/members'), {'user_id': user_id, 'role': role})
        logging.info(f'Added user {user_id} as {role}')
        await self.load_members()
        return user_id

    async def remove_member(self, user_id: int) -> None:
        self._require_ledger()
        await self.client.delete(self._ledger_path(f'/members/{user_id}'))
        logging.info(f'Removed user {user_id}')
        await self.load_members()

    async def create_ledger(self, name: str, ledger_type: str, base_currency: str,
                            share_start_date: Optional[str], categories: Iterable[str]) -> Any:
        """
        Creates a ledger and reloads the ledger list.

        Category names are de-duplicated case-insensitively, keeping the first spelling.

        Raises:
            status.ValidationException: If the name is blank or there are no categories.

        """
        name = (name or '').strip()
        if not name:
            raise status.ValidationException('Name is required.')

        unique: List[str] = []
        for category in categories:
            category = (category or '').strip()
            if category and category.lower() not in (c.lower() for c in unique):
                unique.append(category)
        if not unique:
            raise status.ValidationException('Please add at least one category.')

        body = {
            'name': name,
            'ledger_type': ledger_type,
            'base_currency': (base_currency or '').strip(),
            'share_start_date': share_start_date or None,
            'categories': [{'name': c, 'kind': 'EXPENSE', 'is_active': True} for c in unique],
        }
        data = await self.client.post('/api/v1/ledgers', body)
        logging.info(f'Ledger "{name}" created')
        await self.load_ledgers()
        return data

    async def set_ledger_budget(self, limit_amount: Any) -> None:
        """
        Sets the ledger-wide budget for the month of the filter start date, or this month.

        Raises:
            status.ValidationException: If the amount is not positive.

        """
        self._require_ledger()
        limit = normalize.to_number(limit_amount, default=0.0)
        if not normalize.is_number(limit) or limit <= 0:
            raise status.ValidationException('Please enter a positive budget amount.')

        year, month = self.state.filter.budget_period()
        body = {'category_id': None, 'year': year, 'month': month, 'limit_amount': limit}
        await self.client.post(self._ledger_path('/budgets'), body)
        logging.info(f'Ledger budget set to {limit:.2f} for {year}-{month:02d}')
        await self.refresh_analytics()
