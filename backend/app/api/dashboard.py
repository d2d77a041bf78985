from __future__ import annotations
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request
from sse_starlette.sse import EventSourceResponse
from app.schemas.dashboard import (
    DashboardSnapshot,
    FundingRate,
    PnLDataPoint,
    RefreshResponse,
    Strategy,
    Trade,
)
from app.services.refresh_controller import RefreshController

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


def get_controller(request: Request) -> RefreshController:
    return request.app.state.refresh_controller


@router.get("", response_model=DashboardSnapshot)
async def get_dashboard(controller: RefreshController = Depends(get_controller)):
    return controller.current_snapshot


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_dashboard(controller: RefreshController = Depends(get_controller)):
    """Manual refresh. Debounced: returns the current snapshot when a fetch ran recently."""
    refreshed = await controller.trigger_refresh(reason="manual")
    return RefreshResponse(refreshed=refreshed, snapshot=controller.current_snapshot)


@router.get("/strategies", response_model=List[Strategy])
async def list_strategies(controller: RefreshController = Depends(get_controller)):
    return controller.current_snapshot.strategies


@router.get("/trades", response_model=List[Trade])
async def list_trades(
    limit: int = Query(50, ge=1, le=50),
    strategy: Optional[str] = Query(None, pattern="^[A-Z]$"),
    controller: RefreshController = Depends(get_controller),
):
    trades = controller.current_snapshot.trades
    if strategy:
        trades = [t for t in trades if t.strategy == strategy]
    return trades[:limit]


@router.get("/pnl-history", response_model=List[PnLDataPoint])
async def pnl_history(controller: RefreshController = Depends(get_controller)):
    return controller.current_snapshot.pnl_history


@router.get("/funding-rates", response_model=List[FundingRate])
async def funding_rates(controller: RefreshController = Depends(get_controller)):
    return controller.current_snapshot.funding_rates


async def snapshot_events(controller: RefreshController):
    """The current snapshot, then every new one as it lands."""
    version = controller.version
    yield {"event": "snapshot", "data": controller.current_snapshot.model_dump_json(by_alias=True)}
    while True:
        version = await controller.wait_for_update(version)
        yield {"event": "snapshot", "data": controller.current_snapshot.model_dump_json(by_alias=True)}


@router.get("/stream")
async def snapshot_stream(controller: RefreshController = Depends(get_controller)):
    return EventSourceResponse(snapshot_events(controller))
