from __future__ import annotations
import asyncio
import logging
from typing import Iterable, Optional

from app.models.wallet import DashboardConfig, TrackedPair
from app.schemas.dashboard import FundingRate
from app.services.chain_reader import ChainReader

logger = logging.getLogger(__name__)

SECONDS_PER_YEAR = 365 * 24 * 60 * 60
FEE_PRECISION = 1e10


def annualize_fee_per_second(fee_per_second: int) -> float:
    """Per-second borrowing fee (1e10 precision) as an annualized percentage."""
    return fee_per_second / FEE_PRECISION * SECONDS_PER_YEAR * 100


def sort_by_magnitude(rates: Iterable[FundingRate]) -> list[FundingRate]:
    """Largest absolute long/short rate first; -0.01 ranks with +0.01."""
    return sorted(rates, key=lambda r: r.magnitude, reverse=True)


async def _resolve_pair_rate(
    reader: ChainReader, config: DashboardConfig, pair: TrackedPair
) -> Optional[FundingRate]:
    try:
        fee_per_second, _acc_long, _acc_short, _last_block = await reader.call_view(
            config.gtrade_diamond,
            "getPairBorrowingFeeParams(uint256,uint256)",
            [config.collateral_index, pair.pair_index],
            ["uint256", "uint256", "uint256", "uint256"],
        )
    except Exception as e:
        logger.warning(f"Borrowing fee fetch failed for {pair.name}: {e}")
        return None

    apr = annualize_fee_per_second(fee_per_second)
    return FundingRate(pair=pair.name, long_rate=apr, short_rate=apr)


async def resolve_funding_rates(reader: ChainReader, config: DashboardConfig) -> list[FundingRate]:
    """Borrowing rates for every tracked pair; pairs that fail are dropped."""
    results = await asyncio.gather(*(_resolve_pair_rate(reader, config, p) for p in config.pairs))
    return sort_by_magnitude(r for r in results if r is not None)
