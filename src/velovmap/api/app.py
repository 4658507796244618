from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

# `FastAPI` exposes the colored station map and the marker interactions over HTTP.
from fastapi import FastAPI

from velovmap.api.routes import router
from velovmap.api.service import MapService
from velovmap.config.models import AppConfig
from velovmap.ingestion.forecast_client import ForecastClient
from velovmap.utils.logging import configure_logging


# Keeping app construction in a function (instead of module-level globals) improves testability.
def create_app(
    config: AppConfig,
    *,
    client: Optional[ForecastClient] = None,
    now_fn: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    # Pitfall: `logging.basicConfig(...)` is a no-op if handlers already exist (common in tests).
    configure_logging(config.logging)

    # The service owns the shared view state; route handlers reach it through `app.state`.
    service = MapService(config, client=client, now_fn=now_fn)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        service.close()

    app = FastAPI(title=config.app.name, lifespan=lifespan)
    app.state.map_service = service
    app.include_router(router)
    return app
