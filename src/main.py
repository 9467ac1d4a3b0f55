"""Pulsewatch API — FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import Settings, get_settings
from src.dependencies import MonitorRuntime
from src.monitor.base import SensorSource
from src.monitor.config_loader import MonitorConfig, get_monitor_config
from src.monitor.coordinator import HeartRateMonitor
from src.monitor.display import InMemoryDisplay
from src.monitor.sensors import PushSensorSource, SimulatedSensorSource
from src.monitor.sync.sinks import get_sink
from src.routers import health, monitor

# ---------- Logging ----------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("pulsewatch")


# ---------- Runtime wiring ----------

def build_sensor(settings: Settings, config: MonitorConfig) -> SensorSource:
    if settings.sensor_mode == "simulated":
        sim = config.simulator
        return SimulatedSensorSource(
            interval_seconds=sim.interval_seconds,
            baseline_bpm=sim.baseline_bpm,
            dropout_probability=sim.dropout_probability,
        )
    if settings.sensor_mode == "push":
        return PushSensorSource(has_heart_rate=settings.push_sensor_available)
    raise ValueError(f"Unknown sensor_mode '{settings.sensor_mode}' (expected push | simulated)")


def build_runtime(settings: Settings, config: MonitorConfig | None = None) -> MonitorRuntime:
    cfg = config or get_monitor_config()
    sensor = build_sensor(settings, cfg)
    display = InMemoryDisplay()
    heart_rate_monitor = HeartRateMonitor(sensor, get_sink(settings), display, cfg)
    return MonitorRuntime(monitor=heart_rate_monitor, sensor=sensor, display=display)


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logging.getLogger("pulsewatch").setLevel(settings.log_level.upper())
    logger.info(
        "Starting Pulsewatch API v%s [%s] sink=%s sensor=%s",
        settings.app_version,
        settings.environment,
        settings.sink_backend,
        settings.sensor_mode,
    )
    runtime = build_runtime(settings)
    app.state.runtime = runtime
    if settings.auto_start:
        runtime.monitor.start()
    yield
    await runtime.monitor.shutdown()
    logger.info("Pulsewatch API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Pulsewatch API",
        description=(
            "Live heart-rate watch face — stabilized readings, periodic "
            "cloud sync and anti-burn-in label placement."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside v1 prefix, always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    app.include_router(monitor.router, prefix="/api/v1")

    return app


app = create_app()
