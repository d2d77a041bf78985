from app.models.wallet import (
    DashboardConfig,
    RateTrend,
    StrategyWallet,
    TrackedPair,
    TradeDirection,
    TradeStatus,
)

__all__ = [
    "DashboardConfig",
    "RateTrend",
    "StrategyWallet",
    "TrackedPair",
    "TradeDirection",
    "TradeStatus",
]
