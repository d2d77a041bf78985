from __future__ import annotations
import enum
from dataclasses import dataclass


class TradeDirection(str, enum.Enum):
    long = "long"
    short = "short"


class TradeStatus(str, enum.Enum):
    open = "open"
    closed = "closed"


class RateTrend(str, enum.Enum):
    up = "up"
    down = "down"
    neutral = "neutral"


@dataclass(frozen=True)
class StrategyWallet:
    id: str  # A | B | C | D
    address: str
    strategy_type: str

    @property
    def name(self) -> str:
        return f"Strategy {self.id} - {self.strategy_type}"


@dataclass(frozen=True)
class TrackedPair:
    name: str
    pair_index: int


@dataclass(frozen=True)
class DashboardConfig:
    """Immutable wiring handed to data sources and the aggregator at startup."""
    wallets: tuple[StrategyWallet, ...]
    pairs: tuple[TrackedPair, ...]
    collateral_token: str
    gtrade_diamond: str
    collateral_index: int = 1
    token_decimals: int = 6
    initial_funding: float = 37500.0
    trade_cap: int = 50
    history_page_size: int = 20
    pnl_history_days: int = 90
    pnl_divergence_tolerance: float = 1.0
    chain_id: int = 421614

    def pair_name_for(self, pair_index: int) -> str | None:
        for pair in self.pairs:
            if pair.pair_index == pair_index:
                return pair.name
        return None


DEFAULT_WALLETS: tuple[StrategyWallet, ...] = (
    StrategyWallet("A", "0xc9DB0FaddED889f7EADeBD56ddf6e0594058F076", "Mean Reversion"),
    StrategyWallet("B", "0x6399961f8CaFAA1c784f3211A069aBe284276729", "Funding Arb"),
    StrategyWallet("C", "0x44Dfb735b11F5E1625fcAF365C24D8e1c3e63903", "Momentum"),
    StrategyWallet("D", "0xED07C6487A188ad4bfa9f6317104Caa76fBEBC32", "Hybrid"),
)

DEFAULT_PAIRS: tuple[TrackedPair, ...] = (
    TrackedPair("BTC/USD", 0),
    TrackedPair("ETH/USD", 1),
    TrackedPair("LINK/USD", 2),
    TrackedPair("DOGE/USD", 4),
    TrackedPair("MATIC/USD", 5),
    TrackedPair("SOL/USD", 32),
)
