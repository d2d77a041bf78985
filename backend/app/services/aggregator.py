from __future__ import annotations
import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional

from app.models.wallet import DashboardConfig, RateTrend, StrategyWallet, TradeStatus
from app.schemas.dashboard import (
    CurrentPosition,
    DashboardSnapshot,
    FundingRate,
    PnLDataPoint,
    Strategy,
    Trade,
)
from app.services.data_source import DashboardDataSource
from app.services.funding_resolver import sort_by_magnitude

logger = logging.getLogger(__name__)

ACTIVE_NOW = "Active now"
TREND_EPSILON = 1e-9


# ── pure helpers ───────────────────────────────────────────────────

def compute_win_rate(closed: list[Trade]) -> float:
    """Percentage of closed trades with pnl > 0; 0 when nothing has closed."""
    if not closed:
        return 0.0
    wins = sum(1 for t in closed if t.pnl > 0)
    return wins / len(closed) * 100


def weighted_win_rate(strategies: list[Strategy]) -> float:
    """Win rate across strategies, weighted by each one's trade count."""
    total_trades = sum(s.trades for s in strategies)
    if total_trades == 0:
        return 0.0
    return sum(s.win_rate * s.trades for s in strategies) / total_trades


def build_strategy(
    wallet: StrategyWallet,
    balance: float,
    open_trades: list[Trade],
    closed_trades: list[Trade],
    initial_funding: float,
) -> Strategy:
    if closed_trades:
        last_trade = max(t.timestamp for t in closed_trades).isoformat()
    elif open_trades:
        last_trade = ACTIVE_NOW
    else:
        last_trade = None

    current_position = None
    if open_trades:
        first = open_trades[0]
        current_position = CurrentPosition(
            pair=first.pair,
            direction=first.direction,
            size=first.size,
            leverage=first.leverage or 0.0,
            entry_price=first.entry_price or 0.0,
        )

    return Strategy(
        id=wallet.id,
        name=wallet.name,
        address=wallet.address,
        balance=balance,
        pnl=sum(t.pnl for t in closed_trades),
        balance_pnl=balance - initial_funding,
        win_rate=compute_win_rate(closed_trades),
        trades=len(open_trades) + len(closed_trades),
        open_positions=len(open_trades),
        last_trade=last_trade,
        current_position=current_position,
    )


def merge_trades(groups: Iterable[list[Trade]], cap: int) -> list[Trade]:
    """Flatten, drop duplicate ids, newest first, keep at most ``cap``."""
    by_id: dict[str, Trade] = {}
    for group in groups:
        for trade in group:
            by_id.setdefault(trade.id, trade)
    merged = sorted(by_id.values(), key=lambda t: t.timestamp, reverse=True)
    return merged[:cap]


def rate_trend(previous: Optional[float], current: float) -> RateTrend:
    """Direction of the funding magnitude since the last observation."""
    if previous is None:
        return RateTrend.neutral
    if current > previous + TREND_EPSILON:
        return RateTrend.up
    if current < previous - TREND_EPSILON:
        return RateTrend.down
    return RateTrend.neutral


# ── aggregator ─────────────────────────────────────────────────────

class Aggregator:
    """Fans out to the data source for every wallet and folds the results
    into one immutable ``DashboardSnapshot``.

    Owns the state that has to outlive a single refresh: the per-day PnL
    series and the previous funding observation per pair. Both are only
    touched inside ``build_snapshot``, which the refresh controller never
    runs concurrently.
    """

    def __init__(
        self,
        source: DashboardDataSource,
        config: DashboardConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.source = source
        self.config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._pnl_history: list[PnLDataPoint] = []
        self._previous_rates: dict[str, float] = {}

    async def build_snapshot(self) -> DashboardSnapshot:
        wallets = self.config.wallets
        page_size = self.config.history_page_size

        balances, open_results, history_results, rates = await asyncio.gather(
            asyncio.gather(*(self.source.get_balance(w) for w in wallets)),
            asyncio.gather(*(self.source.get_open_trades(w) for w in wallets)),
            asyncio.gather(*(self.source.get_trade_history(w, page_size) for w in wallets)),
            self.source.get_funding_rates(),
        )
        now = self._clock()

        strategies = []
        for wallet, balance, open_trades, history in zip(wallets, balances, open_results, history_results):
            closed = [t for t in history if t.status == TradeStatus.closed]
            strategy = build_strategy(wallet, balance, open_trades, closed, self.config.initial_funding)
            self._check_pnl_divergence(strategy, closed)
            strategies.append(strategy)

        trades = merge_trades([*history_results, *open_results], self.config.trade_cap)
        pnl_history = self._record_pnl_point(now.date(), strategies)
        funding_rates = self._apply_trends(rates)

        snapshot = DashboardSnapshot(
            strategies=strategies,
            trades=trades,
            pnl_history=pnl_history,
            funding_rates=funding_rates,
            total_balance=sum(s.balance for s in strategies),
            total_pnl=sum(s.pnl for s in strategies),
            win_rate=weighted_win_rate(strategies),
            last_updated=now,
            data_source=self.source.name,
        )
        logger.info(
            f"Snapshot built: balance={snapshot.total_balance:.2f} pnl={snapshot.total_pnl:.2f} "
            f"trades={len(trades)} rates={len(funding_rates)}"
        )
        return snapshot

    def _check_pnl_divergence(self, strategy: Strategy, closed: list[Trade]) -> None:
        if not closed:
            return
        gap = abs(strategy.pnl - strategy.balance_pnl)
        if gap > self.config.pnl_divergence_tolerance:
            logger.warning(
                f"Strategy {strategy.id}: trade PnL {strategy.pnl:.2f} disagrees with "
                f"balance delta {strategy.balance_pnl:.2f} by {gap:.2f} "
                "(external transfers or history beyond the fetched page)"
            )

    def _record_pnl_point(self, today: date, strategies: list[Strategy]) -> list[PnLDataPoint]:
        """Append today's point, or replace it if this day already has one."""
        values = {f"strategy{s.id}": s.pnl for s in strategies}
        point = PnLDataPoint(timestamp=today, total=sum(s.pnl for s in strategies), **values)

        if self._pnl_history and self._pnl_history[-1].timestamp == today:
            self._pnl_history[-1] = point
        elif not self._pnl_history or self._pnl_history[-1].timestamp < today:
            self._pnl_history.append(point)
        else:
            logger.warning(f"Clock went backwards ({today}); PnL history left unchanged")

        if len(self._pnl_history) > self.config.pnl_history_days:
            del self._pnl_history[:-self.config.pnl_history_days]
        return list(self._pnl_history)

    def _apply_trends(self, rates: list[FundingRate]) -> list[FundingRate]:
        with_trend = []
        for rate in rates:
            trend = rate_trend(self._previous_rates.get(rate.pair), rate.magnitude)
            self._previous_rates[rate.pair] = rate.magnitude
            with_trend.append(rate.model_copy(update={"trend": trend}))
        return sort_by_magnitude(with_trend)
