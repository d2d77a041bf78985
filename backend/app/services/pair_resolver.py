from __future__ import annotations
import asyncio
import logging
from typing import Iterable

from app.models.wallet import DashboardConfig
from app.services.chain_reader import ChainReader

logger = logging.getLogger(__name__)


def fallback_pair_name(pair_index: int) -> str:
    return f"Pair-{pair_index}"


async def resolve_pair_name(reader: ChainReader, config: DashboardConfig, pair_index: int) -> str:
    """Human-readable pair name for a gTrade pair index.

    Tracked pairs resolve from the static table without a round trip; other
    indices go to ``pairName(uint256)`` and degrade to ``Pair-{index}``.
    """
    known = config.pair_name_for(pair_index)
    if known:
        return known

    try:
        (name,) = await reader.call_view(
            config.gtrade_diamond, "pairName(uint256)", [pair_index], ["string"]
        )
    except Exception as e:
        logger.warning(f"pairName({pair_index}) failed: {e}")
        return fallback_pair_name(pair_index)
    return name or fallback_pair_name(pair_index)


async def resolve_pair_names(
    reader: ChainReader, config: DashboardConfig, pair_indices: Iterable[int]
) -> dict[int, str]:
    """Resolve each distinct index once, concurrently."""
    unique = sorted(set(pair_indices))
    names = await asyncio.gather(*(resolve_pair_name(reader, config, i) for i in unique))
    return dict(zip(unique, names))
