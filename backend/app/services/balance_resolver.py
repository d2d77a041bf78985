from __future__ import annotations
import logging

from app.models.wallet import DashboardConfig, StrategyWallet
from app.services.chain_reader import ChainReader

logger = logging.getLogger(__name__)


async def resolve_balance(reader: ChainReader, config: DashboardConfig, wallet: StrategyWallet) -> float:
    """Collateral token balance of a strategy wallet in whole units.

    Falls back to the wallet's initial funding when the read fails.
    """
    try:
        raw = await reader.get_token_balance(config.collateral_token, wallet.address)
    except Exception as e:
        logger.warning(f"Balance fetch failed for strategy {wallet.id} ({wallet.address}): {e}")
        return config.initial_funding
    return raw / 10 ** config.token_decimals
