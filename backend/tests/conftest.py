"""Shared fakes for the dashboard tests: a scriptable chain reader, a
scriptable data source, and raw gTrade tuple builders."""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from app.models.wallet import DEFAULT_PAIRS, DEFAULT_WALLETS, DashboardConfig, TradeDirection, TradeStatus
from app.schemas.dashboard import FundingRate, Trade
from app.services.chain_reader import TransportFailure
from app.services.data_source import DashboardDataSource

TOKEN = "0x4cC7EbEeD5EA3adf3978F19833d2E1f3e8980cD6"
DIAMOND = "0xd659a15812064C79E189fd950A189b15c75d3186"
USDC = 10 ** 6
PRICE = 10 ** 10
T0 = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_config(**overrides) -> DashboardConfig:
    params = dict(
        wallets=DEFAULT_WALLETS,
        pairs=DEFAULT_PAIRS,
        collateral_token=TOKEN,
        gtrade_diamond=DIAMOND,
    )
    params.update(overrides)
    return DashboardConfig(**params)


@pytest.fixture
def config() -> DashboardConfig:
    return make_config()


# ── raw contract tuples ────────────────────────────────────────────

def raw_open(pair_index=0, index=0, size=1000, open_price=65000, buy=True, leverage=10, tp=0, sl=0):
    return (
        DEFAULT_WALLETS[0].address, pair_index, index, 0, size * USDC, open_price * PRICE,
        buy, leverage * 1000, tp * PRICE, sl * PRICE,
    )


def raw_closed(pair_index=0, index=0, size=1000, open_price=65000, close_price=66000, buy=True,
               leverage=10, tp=0, sl=0, close_time=1_760_000_000, pnl=100):
    return raw_open(pair_index, index, size, open_price, buy, leverage, tp, sl) + (
        close_price * PRICE, close_time, int(pnl * USDC),
    )


# ── fake chain reader ──────────────────────────────────────────────

class FakeReader:
    """Answers resolver calls from dicts. A value that is an Exception is raised."""

    def __init__(
        self,
        balances: Optional[dict] = None,
        open_trades: Optional[dict] = None,
        history: Optional[dict] = None,
        pair_names: Optional[dict] = None,
        fees: Optional[dict] = None,
        fail_all: bool = False,
        chain=421614,
    ):
        self.balances = {k.lower(): v for k, v in (balances or {}).items()}
        self.open_trades = {k.lower(): v for k, v in (open_trades or {}).items()}
        self.history = {k.lower(): v for k, v in (history or {}).items()}
        self.pair_names = pair_names or {}
        self.fees = fees or {}
        self.fail_all = fail_all
        self.chain = chain
        self.calls: list[tuple[str, tuple]] = []

    @staticmethod
    def _answer(value):
        if isinstance(value, Exception):
            raise value
        return value

    async def get_token_balance(self, token: str, holder: str) -> int:
        self.calls.append(("balanceOf(address)", (holder,)))
        if self.fail_all:
            raise TransportFailure("endpoint unreachable")
        return self._answer(self.balances.get(holder.lower(), 0))

    async def chain_id(self) -> int:
        self.calls.append(("eth_chainId", ()))
        if self.fail_all:
            raise TransportFailure("endpoint unreachable")
        return self._answer(self.chain)

    async def call_view(self, contract, signature, args=(), returns=()):
        self.calls.append((signature, tuple(args)))
        if self.fail_all:
            raise TransportFailure("endpoint unreachable")
        name = signature.split("(")[0]
        if name == "getTrades":
            return (self._answer(self.open_trades.get(args[0].lower(), [])),)
        if name == "getTradesHistory":
            return (self._answer(self.history.get(args[0].lower(), [])),)
        if name == "pairName":
            return (self._answer(self.pair_names.get(args[0], "")),)
        if name == "getPairBorrowingFeeParams":
            return self._answer(self.fees[args[1]])
        raise AssertionError(f"unexpected call {signature}")


# ── fake data source ───────────────────────────────────────────────

def make_trade(strategy="A", index=0, pnl=0.0, status=TradeStatus.closed, timestamp=T0,
               pair="BTC/USD", leverage=10.0, entry_price=65000.0) -> Trade:
    return Trade(
        id=f"{strategy}-{status.value}-{index}",
        strategy=strategy,
        pair=pair,
        direction=TradeDirection.long,
        size=1000.0,
        pnl=pnl,
        timestamp=timestamp,
        status=status,
        leverage=leverage,
        entry_price=entry_price,
    )


def closed_series(strategy: str, pnls: list[float], start: datetime = T0) -> list[Trade]:
    """Closed trades one hour apart, newest first."""
    return [
        make_trade(strategy, i, pnl, TradeStatus.closed, start - timedelta(hours=i))
        for i, pnl in enumerate(pnls)
    ]


class FakeSource(DashboardDataSource):
    name = "fake"

    def __init__(self, balances=None, open_trades=None, history=None, rates=None):
        self.balances = balances or {}
        self.open_trades = open_trades or {}
        self.history = history or {}
        self.rates = rates or []

    async def get_balance(self, wallet):
        return self.balances.get(wallet.id, 37500.0)

    async def get_open_trades(self, wallet):
        return list(self.open_trades.get(wallet.id, []))

    async def get_trade_history(self, wallet, limit=None):
        return list(self.history.get(wallet.id, []))

    async def get_funding_rates(self):
        return list(self.rates)


def rate(pair: str, value: float) -> FundingRate:
    return FundingRate(pair=pair, long_rate=value, short_rate=value)
