from __future__ import annotations
from pydantic_settings import BaseSettings
from functools import lru_cache

from app.models.wallet import (
    DEFAULT_PAIRS,
    DEFAULT_WALLETS,
    DashboardConfig,
)


class Settings(BaseSettings):
    # Arbitrum Sepolia
    rpc_url: str = "https://sepolia-rollup.arbitrum.io/rpc"
    chain_id: int = 421614
    rpc_timeout_seconds: float = 15.0
    rpc_max_concurrency: int = 8

    # GNS test USDC + gTrade diamond on Sepolia
    collateral_token: str = "0x4cC7EbEeD5EA3adf3978F19833d2E1f3e8980cD6"
    gtrade_diamond: str = "0xd659a15812064C79E189fd950A189b15c75d3186"
    collateral_index: int = 1
    token_decimals: int = 6

    # Each strategy wallet was funded with this amount at launch
    initial_funding: float = 37500.0

    # Refresh settings
    refresh_interval_seconds: int = 30
    refresh_debounce_seconds: float = 5.0
    trade_cap: int = 50
    history_page_size: int = 20
    pnl_history_days: int = 90
    pnl_divergence_tolerance: float = 1.0

    data_source: str = "live"  # live | mock
    mock_seed: int = 7

    frontend_url: str = "http://localhost:5173"
    extra_cors_origins: str = ""  # comma-separated additional origins for production

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def build_dashboard_config(settings: Settings) -> DashboardConfig:
    """Freeze the settings the data layer needs into one immutable struct."""
    return DashboardConfig(
        wallets=DEFAULT_WALLETS,
        pairs=DEFAULT_PAIRS,
        collateral_token=settings.collateral_token,
        gtrade_diamond=settings.gtrade_diamond,
        collateral_index=settings.collateral_index,
        token_decimals=settings.token_decimals,
        initial_funding=settings.initial_funding,
        trade_cap=settings.trade_cap,
        history_page_size=settings.history_page_size,
        pnl_history_days=settings.pnl_history_days,
        pnl_divergence_tolerance=settings.pnl_divergence_tolerance,
        chain_id=settings.chain_id,
    )
