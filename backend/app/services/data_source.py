from __future__ import annotations
import logging
from typing import Optional

from app.config import Settings
from app.models.wallet import DashboardConfig, StrategyWallet
from app.schemas.dashboard import FundingRate, Trade
from app.services.balance_resolver import resolve_balance
from app.services.chain_reader import ChainReadError, ChainReader
from app.services.funding_resolver import resolve_funding_rates
from app.services.trade_resolver import resolve_open_trades, resolve_trade_history

logger = logging.getLogger(__name__)


class DashboardDataSource:
    """Per-wallet data feed consumed by the aggregator.

    Every method returns a value or its documented fallback; none raise.
    """

    name = "base"

    async def get_balance(self, wallet: StrategyWallet) -> float:
        raise NotImplementedError

    async def get_open_trades(self, wallet: StrategyWallet) -> list[Trade]:
        raise NotImplementedError

    async def get_trade_history(self, wallet: StrategyWallet, limit: Optional[int] = None) -> list[Trade]:
        raise NotImplementedError

    async def get_funding_rates(self) -> list[FundingRate]:
        raise NotImplementedError

    async def health(self) -> dict:
        return {"dataSource": self.name}


class LiveChainDataSource(DashboardDataSource):
    """Reads gTrade state straight from the chain through the resolvers."""

    name = "live"

    def __init__(self, reader: ChainReader, config: DashboardConfig):
        self.reader = reader
        self.config = config

    async def get_balance(self, wallet: StrategyWallet) -> float:
        return await resolve_balance(self.reader, self.config, wallet)

    async def get_open_trades(self, wallet: StrategyWallet) -> list[Trade]:
        return await resolve_open_trades(self.reader, self.config, wallet)

    async def get_trade_history(self, wallet: StrategyWallet, limit: Optional[int] = None) -> list[Trade]:
        return await resolve_trade_history(self.reader, self.config, wallet, limit)

    async def get_funding_rates(self) -> list[FundingRate]:
        return await resolve_funding_rates(self.reader, self.config)

    async def health(self) -> dict:
        """Check the endpoint answers and serves the configured chain."""
        try:
            chain_id = await self.reader.chain_id()
        except ChainReadError as e:
            logger.warning(f"Health check: chain id unavailable: {e}")
            return {"dataSource": self.name, "chainId": None, "chainOk": False}

        if chain_id != self.config.chain_id:
            logger.warning(f"Health check: endpoint serves chain {chain_id}, expected {self.config.chain_id}")
        return {"dataSource": self.name, "chainId": chain_id, "chainOk": chain_id == self.config.chain_id}


def build_data_source(settings: Settings, config: DashboardConfig) -> DashboardDataSource:
    """Pick the data source once at startup from ``settings.data_source``."""
    if settings.data_source == "mock":
        from app.services.mock_source import MockDataSource

        logger.info(f"Using mock data source (seed={settings.mock_seed})")
        return MockDataSource(config, seed=settings.mock_seed)

    if settings.data_source != "live":
        raise ValueError(f"Unknown data source: {settings.data_source!r} (expected 'live' or 'mock')")

    logger.info(f"Using live chain data source at {settings.rpc_url}")
    reader = ChainReader(
        settings.rpc_url,
        timeout=settings.rpc_timeout_seconds,
        max_concurrency=settings.rpc_max_concurrency,
    )
    return LiveChainDataSource(reader, config)
