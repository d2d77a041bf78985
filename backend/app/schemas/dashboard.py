from __future__ import annotations
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from app.models.wallet import RateTrend, TradeDirection, TradeStatus

# Field aliases are the camelCase names the dashboard front end reads.
_config = {"populate_by_name": True, "frozen": True}


class Trade(BaseModel):
    id: str
    strategy: str
    pair: str
    direction: TradeDirection = Field(alias="type")
    size: float
    pnl: float = 0.0
    timestamp: datetime
    status: TradeStatus
    leverage: Optional[float] = None
    entry_price: Optional[float] = Field(default=None, alias="entryPrice")
    exit_price: Optional[float] = Field(default=None, alias="exitPrice")
    exit_reason: Optional[str] = Field(default=None, alias="exitReason")

    model_config = _config


class CurrentPosition(BaseModel):
    pair: str
    direction: TradeDirection
    size: float
    leverage: float
    entry_price: float = Field(alias="entryPrice")

    model_config = _config


class Strategy(BaseModel):
    id: str
    name: str
    address: str
    balance: float
    pnl: float
    balance_pnl: float = Field(alias="balancePnl")
    win_rate: float = Field(alias="winRate")
    trades: int
    open_positions: int = Field(alias="openPositions")
    last_trade: Optional[str] = Field(default=None, alias="lastTrade")
    current_position: Optional[CurrentPosition] = Field(default=None, alias="currentPosition")

    model_config = _config


class PnLDataPoint(BaseModel):
    timestamp: date
    strategy_a: float = Field(default=0.0, alias="strategyA")
    strategy_b: float = Field(default=0.0, alias="strategyB")
    strategy_c: float = Field(default=0.0, alias="strategyC")
    strategy_d: float = Field(default=0.0, alias="strategyD")
    total: float = 0.0

    model_config = _config


class FundingRate(BaseModel):
    pair: str
    long_rate: float = Field(alias="longRate")
    short_rate: float = Field(alias="shortRate")
    trend: RateTrend = RateTrend.neutral

    model_config = _config

    @property
    def magnitude(self) -> float:
        return max(abs(self.long_rate), abs(self.short_rate))


class DashboardSnapshot(BaseModel):
    strategies: List[Strategy] = []
    trades: List[Trade] = []
    pnl_history: List[PnLDataPoint] = Field(default=[], alias="pnlHistory")
    funding_rates: List[FundingRate] = Field(default=[], alias="fundingRates")
    total_balance: float = Field(default=0.0, alias="totalBalance")
    total_pnl: float = Field(default=0.0, alias="totalPnL")
    win_rate: float = Field(default=0.0, alias="winRate")
    loading: bool = False
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")
    data_source: str = Field(default="live", alias="dataSource")

    model_config = _config


class RefreshResponse(BaseModel):
    refreshed: bool
    snapshot: DashboardSnapshot
