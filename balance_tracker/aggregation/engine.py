"""
Aggregation Engine

DESIGN DECISION: Aggregation is READ-ONLY and DETERMINISTIC.
The engine pulls raw accounts and snapshots through the storage interface
and derives two views from them:

1. Period summaries - every balance recorded for a period, plus the total
2. Account trends - current balance and its change over 1, 4 and 12 weeks

It never writes. The same inputs always produce the same outputs, whichever
backend they came from.

TREND LOOKBACK: Histories are typed in by hand and often have missing
weeks. A baseline is therefore found by calendar distance (the latest
snapshot on or before "current date minus N weeks"), never by stepping
back N records.
"""

from collections import defaultdict
from typing import Optional

import structlog

from balance_tracker.models.ledger import (
    Account,
    AccountBalance,
    AccountTrend,
    AccountType,
    BalanceSnapshot,
    PeriodSummary,
)
from balance_tracker.periods import parse_period_key, shift_period_key, week_of_year
from balance_tracker.services.storage import LedgerStorageInterface

logger = structlog.get_logger(__name__)


# Trend horizons, in weeks
WEEKLY_HORIZON = 1
MONTHLY_HORIZON = 4
QUARTERLY_HORIZON = 12


def select_current_record(
    history: list[BalanceSnapshot],
    reference_date: str,
) -> Optional[BalanceSnapshot]:
    """
    Pick the snapshot a trend is measured from.

    Args:
        history: One account's snapshots, sorted ascending by record_date
        reference_date: Period key the caller is looking at

    Returns:
        The snapshot recorded exactly on reference_date, else the latest
        one, else None for an empty history
    """
    if not history:
        return None
    for snapshot in history:
        if snapshot.record_date == reference_date:
            return snapshot
    return history[-1]


def find_baseline(
    history: list[BalanceSnapshot],
    current: BalanceSnapshot,
    weeks_back: int,
) -> Optional[BalanceSnapshot]:
    """
    Nearest snapshot at or before `weeks_back` weeks prior to `current`.

    Comparison is by calendar date. Returns None when nothing is old
    enough.
    """
    target = parse_period_key(shift_period_key(current.record_date, -weeks_back))
    baseline = None
    for snapshot in history:
        if parse_period_key(snapshot.record_date) <= target:
            if baseline is None or snapshot.record_date > baseline.record_date:
                baseline = snapshot
    return baseline


def change_over(
    history: list[BalanceSnapshot],
    reference_date: str,
    weeks_back: int,
) -> float:
    """
    Balance change over one horizon.

    0 when there is no comparable earlier snapshot.
    """
    current = select_current_record(history, reference_date)
    if current is None:
        return 0.0

    baseline = find_baseline(history, current, weeks_back)
    if baseline is None or baseline.record_date == current.record_date:
        return 0.0

    return current.balance - baseline.balance


class AggregationEngine:
    """
    Derives summaries and trends from stored snapshots.

    GUARANTEES:
    - Only reads from storage, never writes
    - A summary total is the sum over exactly that period's snapshots
    - "No data" comes back as None or an empty list, never an exception
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        unknown_account_name: str = "Unknown account",
    ):
        self._storage = storage
        self._unknown_account_name = unknown_account_name

    # -------------------------------------------------------------------------
    # Period summaries
    # -------------------------------------------------------------------------

    def _build_summary(
        self,
        record_date: str,
        snapshots: list[BalanceSnapshot],
        accounts_by_id: dict[str, Account],
    ) -> PeriodSummary:
        lines = []
        for snapshot in snapshots:
            account = accounts_by_id.get(snapshot.account_id)
            if account is None:
                logger.warning(
                    "snapshot_without_account",
                    snapshot_id=snapshot.id,
                    account_id=snapshot.account_id,
                    record_date=record_date,
                )
            lines.append(AccountBalance(
                account_id=snapshot.account_id,
                account_name=account.name if account else self._unknown_account_name,
                account_type=account.type.value if account else AccountType.OTHER.value,
                balance=snapshot.balance,
            ))

        return PeriodSummary(
            record_date=record_date,
            week_number=week_of_year(parse_period_key(record_date)),
            total_balance=sum(line.balance for line in lines),
            accounts=lines,
        )

    async def _accounts_by_id(self) -> dict[str, Account]:
        return {a.id: a for a in await self._storage.list_accounts()}

    async def summarize_period(self, record_date: str) -> Optional[PeriodSummary]:
        """Summary of one period, or None if nothing was recorded for it."""
        snapshots = await self._storage.list_snapshots(record_date=record_date)
        if not snapshots:
            return None

        return self._build_summary(record_date, snapshots, await self._accounts_by_id())

    async def summarize_all_periods(self) -> list[PeriodSummary]:
        """One summary per distinct period, newest first."""
        snapshots = await self._storage.list_snapshots()
        if not snapshots:
            return []

        accounts_by_id = await self._accounts_by_id()

        by_period: dict[str, list[BalanceSnapshot]] = defaultdict(list)
        for snapshot in snapshots:
            by_period[snapshot.record_date].append(snapshot)

        return [
            self._build_summary(record_date, by_period[record_date], accounts_by_id)
            for record_date in sorted(by_period, reverse=True)
        ]

    # -------------------------------------------------------------------------
    # Trends
    # -------------------------------------------------------------------------

    def _build_trend(
        self,
        account: Account,
        history: list[BalanceSnapshot],
        reference_date: str,
    ) -> Optional[AccountTrend]:
        history = sorted(history, key=lambda s: s.record_date)
        current = select_current_record(history, reference_date)
        if current is None:
            return None

        return AccountTrend(
            account_id=account.id,
            account_name=account.name,
            account_type=account.type.value,
            current_balance=current.balance,
            weekly_change=change_over(history, reference_date, WEEKLY_HORIZON),
            monthly_change=change_over(history, reference_date, MONTHLY_HORIZON),
            quarterly_change=change_over(history, reference_date, QUARTERLY_HORIZON),
        )

    async def account_trend(
        self,
        account_id: str,
        reference_date: str,
    ) -> Optional[AccountTrend]:
        """
        Trend of one account relative to a period.

        Returns None if the account is unknown or has no snapshots.
        """
        account = await self._storage.get_account(account_id)
        if account is None:
            return None

        history = await self._storage.list_snapshots(account_id=account_id)
        return self._build_trend(account, history, reference_date)

    async def all_account_trends(self, reference_date: str) -> list[AccountTrend]:
        """Trends of every account that has at least one snapshot."""
        accounts = await self._storage.list_accounts()
        snapshots = await self._storage.list_snapshots()

        history_by_account: dict[str, list[BalanceSnapshot]] = defaultdict(list)
        for snapshot in snapshots:
            history_by_account[snapshot.account_id].append(snapshot)

        trends = []
        for account in accounts:
            trend = self._build_trend(account, history_by_account[account.id], reference_date)
            if trend is not None:
                trends.append(trend)
        return trends
