# bodegix/back/main.py
"""
Bodegix access backend.

    uvicorn bodegix.back.main:app --reload --port 5000
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bodegix.back.core.config import settings
from bodegix.back.core.db import init_db
from bodegix.back.core.logging_config import setup_logging
from .routers import api_access, api_lockers, api_qr
from .services.unlock_service import check_actuator_config


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    check_actuator_config(settings.LOCKER_CONTROLLER_URL, settings.ENV)
    # creates missing tables; migrations are run separately
    await init_db()
    yield


app = FastAPI(
    title="Bodegix Access API",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.include_router(api_qr.router)
app.include_router(api_lockers.router)
app.include_router(api_access.router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
