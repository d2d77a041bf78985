from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager

from app.config import build_dashboard_config, get_settings

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from app.services.aggregator import Aggregator
from app.services.data_source import build_data_source
from app.services.refresh_controller import RefreshController

worker_tasks: list[asyncio.Task] = []


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    config = build_dashboard_config(settings)
    source = build_data_source(settings, config)
    controller = RefreshController(
        Aggregator(source, config),
        debounce_seconds=settings.refresh_debounce_seconds,
    )
    app.state.refresh_controller = controller

    from app.workers.refresh_worker import run_refresh_worker

    worker_tasks.append(
        asyncio.create_task(run_refresh_worker(controller, settings.refresh_interval_seconds))
    )

    yield

    # Shutdown
    for task in worker_tasks:
        task.cancel()
    await asyncio.gather(*worker_tasks, return_exceptions=True)
    worker_tasks.clear()


app = FastAPI(
    title="gTrade Strategy Dashboard",
    description="Read-only performance monitoring for four gTrade strategy wallets",
    version="1.0.0",
    lifespan=lifespan,
)

_origins = [settings.frontend_url.rstrip("/"), "http://localhost:5173", "http://localhost:3000"]
if settings.extra_cors_origins:
    _origins.extend([o.strip().rstrip("/") for o in settings.extra_cors_origins.split(",") if o.strip()])
# Deduplicate
_origins = list(dict.fromkeys(_origins))

logger = logging.getLogger(__name__)
logger.info("CORS allowed origins: %s", _origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

from app.api import dashboard

app.include_router(dashboard.router)


@app.get("/api/health")
async def health(request: Request):
    source = request.app.state.refresh_controller.aggregator.source
    info = await source.health()
    return {"status": "ok" if info.get("chainOk", True) else "degraded", **info}
