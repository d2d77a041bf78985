from __future__ import annotations
import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.models.wallet import DashboardConfig, StrategyWallet, TradeDirection, TradeStatus
from app.schemas.dashboard import FundingRate, Trade
from app.services.data_source import DashboardDataSource
from app.services.funding_resolver import sort_by_magnitude

LEVERAGE_CHOICES = (5, 10, 20, 25)
RATE_STEP = 5.0  # max APR drift per refresh, in percentage points


class MockDataSource(DashboardDataSource):
    """Deterministic synthetic data for demos and front-end work without an RPC.

    Each wallet's history is derived from ``seed`` and the wallet id, so it is
    stable across refreshes and balances always equal initial funding plus
    realized PnL. Funding rates random-walk between calls so trends move.
    """

    name = "mock"

    def __init__(self, config: DashboardConfig, seed: int = 7, now: Optional[datetime] = None):
        self.config = config
        self.seed = seed
        self._anchor = now or datetime.now(timezone.utc)
        self._rate_rng = random.Random(seed)
        self._rates: dict[str, float] = {}
        self._histories: dict[str, list[Trade]] = {}

    def _wallet_rng(self, wallet: StrategyWallet, stream: str) -> random.Random:
        return random.Random(f"{self.seed}:{wallet.id}:{stream}")

    def _history(self, wallet: StrategyWallet) -> list[Trade]:
        if wallet.id in self._histories:
            return self._histories[wallet.id]

        rng = self._wallet_rng(wallet, "history")
        trades = []
        closed_at = self._anchor
        for i in range(rng.randint(6, 18)):
            pair = rng.choice(self.config.pairs)
            direction = rng.choice(list(TradeDirection))
            closed_at -= timedelta(hours=rng.uniform(2, 20))
            entry = round(10 ** rng.uniform(-1, 4.8), 4)
            move = rng.uniform(-0.04, 0.05)
            sign = 1 if direction == TradeDirection.long else -1
            size = round(rng.uniform(500, 5000), 2)
            leverage = rng.choice(LEVERAGE_CHOICES)
            if move > 0.03:
                reason = "take_profit"
            elif move < -0.03:
                reason = "stop_loss"
            else:
                reason = None
            trades.append(Trade(
                id=f"{wallet.address}-{pair.pair_index}-{i}-{int(closed_at.timestamp())}",
                strategy=wallet.id,
                pair=pair.name,
                direction=direction,
                size=size,
                pnl=round(size * leverage * move, 2),
                timestamp=closed_at,
                status=TradeStatus.closed,
                leverage=float(leverage),
                entry_price=entry,
                exit_price=round(entry * (1 + sign * move), 4),
                exit_reason=reason,
            ))

        self._histories[wallet.id] = trades
        return trades

    async def get_balance(self, wallet: StrategyWallet) -> float:
        return round(self.config.initial_funding + sum(t.pnl for t in self._history(wallet)), 2)

    async def get_open_trades(self, wallet: StrategyWallet) -> list[Trade]:
        rng = self._wallet_rng(wallet, "open")
        now = datetime.now(timezone.utc)
        trades = []
        for index in range(rng.randint(0, 2)):
            pair = rng.choice(self.config.pairs)
            trades.append(Trade(
                id=f"{wallet.address}-{pair.pair_index}-{index}",
                strategy=wallet.id,
                pair=pair.name,
                direction=rng.choice(list(TradeDirection)),
                size=round(rng.uniform(500, 5000), 2),
                timestamp=now,
                status=TradeStatus.open,
                leverage=float(rng.choice(LEVERAGE_CHOICES)),
                entry_price=round(10 ** rng.uniform(-1, 4.8), 4),
            ))
        return trades

    async def get_trade_history(self, wallet: StrategyWallet, limit: Optional[int] = None) -> list[Trade]:
        return self._history(wallet)[:limit or self.config.history_page_size]

    async def get_funding_rates(self) -> list[FundingRate]:
        rates = []
        for pair in self.config.pairs:
            if pair.name in self._rates:
                apr = self._rates[pair.name] + self._rate_rng.uniform(-RATE_STEP, RATE_STEP)
            else:
                apr = self._rate_rng.uniform(-30, 60)
            self._rates[pair.name] = apr
            # positive: longs pay shorts
            rates.append(FundingRate(pair=pair.name, long_rate=round(apr, 4), short_rate=round(-apr, 4)))
        return sort_by_magnitude(rates)
