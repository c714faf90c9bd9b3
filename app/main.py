from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from app.config import Settings
from app.db import init_db
from app.logger import setup_logging
from app.controllers import v1

settings = Settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await asyncio.to_thread(init_db, settings)
    yield


app = FastAPI(
    title="Promo Code Redemption API",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(v1.router)

# 👇 Prometheus metrics at /metrics
Instrumentator().instrument(app).expose(app)
