from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Optional

from app.models.wallet import DashboardConfig, StrategyWallet, TradeDirection, TradeStatus
from app.schemas.dashboard import Trade
from app.services.chain_reader import ChainReader
from app.services.pair_resolver import resolve_pair_names

logger = logging.getLogger(__name__)

PRICE_DECIMALS = 10
LEVERAGE_PRECISION = 1000  # gTrade stores leverage with 3 decimals

# Tuple layouts returned by the gTrade diamond
_TRADE_FIELDS = "address,uint256,uint256,uint256,uint256,uint256,bool,uint256,uint256,uint256"
OPEN_TRADE_TYPE = f"({_TRADE_FIELDS})[]"
CLOSED_TRADE_TYPE = f"({_TRADE_FIELDS},uint256,uint256,int256)[]"


def _units(value: int, decimals: int) -> float:
    return value / 10 ** decimals


def _exit_reason(buy: bool, close_price: int, tp: int, sl: int) -> Optional[str]:
    """Infer why a position closed from where the close price sits vs TP/SL."""
    if buy:
        if tp and close_price >= tp:
            return "take_profit"
        if sl and close_price <= sl:
            return "stop_loss"
    else:
        if tp and close_price <= tp:
            return "take_profit"
        if sl and close_price >= sl:
            return "stop_loss"
    return None


def parse_open_trade(
    raw: tuple, wallet: StrategyWallet, pair_name: str, decimals: int, opened_at: datetime
) -> Trade:
    _trader, pair_index, index, _pos_token, size, open_price, buy, leverage, _tp, _sl = raw
    return Trade(
        id=f"{wallet.address}-{pair_index}-{index}",
        strategy=wallet.id,
        pair=pair_name,
        direction=TradeDirection.long if buy else TradeDirection.short,
        size=_units(size, decimals),
        pnl=0.0,  # unrealized PnL needs a price feed
        timestamp=opened_at,
        status=TradeStatus.open,
        leverage=leverage / LEVERAGE_PRECISION,
        entry_price=_units(open_price, PRICE_DECIMALS),
    )


def parse_closed_trade(raw: tuple, wallet: StrategyWallet, pair_name: str, decimals: int) -> Trade:
    (
        _trader, pair_index, index, _pos_token, size, open_price, buy, leverage, tp, sl,
        close_price, close_time, pnl,
    ) = raw
    return Trade(
        id=f"{wallet.address}-{pair_index}-{index}-{close_time}",
        strategy=wallet.id,
        pair=pair_name,
        direction=TradeDirection.long if buy else TradeDirection.short,
        size=_units(size, decimals),
        pnl=_units(pnl, decimals),
        timestamp=datetime.fromtimestamp(close_time, tz=timezone.utc),
        status=TradeStatus.closed,
        leverage=leverage / LEVERAGE_PRECISION,
        entry_price=_units(open_price, PRICE_DECIMALS),
        exit_price=_units(close_price, PRICE_DECIMALS),
        exit_reason=_exit_reason(buy, close_price, tp, sl),
    )


async def resolve_open_trades(
    reader: ChainReader,
    config: DashboardConfig,
    wallet: StrategyWallet,
    now: Optional[datetime] = None,
) -> list[Trade]:
    """Live positions of a wallet via ``getTrades(address)``; ``[]`` on failure.

    The on-chain struct has no open timestamp, so open trades are stamped
    with the fetch time.
    """
    opened_at = now or datetime.now(timezone.utc)
    try:
        (raw_trades,) = await reader.call_view(
            config.gtrade_diamond, "getTrades(address)", [wallet.address], [OPEN_TRADE_TYPE]
        )
        names = await resolve_pair_names(reader, config, (t[1] for t in raw_trades))
        return [
            parse_open_trade(t, wallet, names[t[1]], config.token_decimals, opened_at)
            for t in raw_trades
        ]
    except Exception as e:
        logger.warning(f"Open trades fetch failed for strategy {wallet.id} ({wallet.address}): {e}")
        return []


async def resolve_trade_history(
    reader: ChainReader,
    config: DashboardConfig,
    wallet: StrategyWallet,
    limit: Optional[int] = None,
) -> list[Trade]:
    """Closed trades via ``getTradesHistory(address,0,limit)``, newest first; ``[]`` on failure."""
    page_size = limit or config.history_page_size
    try:
        (raw_trades,) = await reader.call_view(
            config.gtrade_diamond,
            "getTradesHistory(address,uint256,uint256)",
            [wallet.address, 0, page_size],
            [CLOSED_TRADE_TYPE],
        )
        names = await resolve_pair_names(reader, config, (t[1] for t in raw_trades))
        trades = [
            parse_closed_trade(t, wallet, names[t[1]], config.token_decimals)
            for t in raw_trades
        ]
    except Exception as e:
        logger.warning(f"Trade history fetch failed for strategy {wallet.id} ({wallet.address}): {e}")
        return []

    trades.sort(key=lambda t: t.timestamp, reverse=True)
    return trades
