# src/pricewatch/interfaces/api/main.py
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pricewatch import __version__
from pricewatch.config import settings
from pricewatch.boot import build_services
from pricewatch.domain.errors import (
    ItemNotFoundError,
    PriceWatchError,
    StalePriceError,
    SubscriptionNotFoundError,
    ValidationError,
)
from pricewatch.infrastructure.db.uow import create_tables
from pricewatch.interfaces.api.metrics import LATENCY, REQUESTS, router as metrics_router
from pricewatch.interfaces.api.routers import alerts as alerts_router
from pricewatch.interfaces.api.routers import items as items_router
from pricewatch.interfaces.api.routers import subscriptions as subscriptions_router
from pricewatch.logging_conf import setup_logging

log = logging.getLogger(__name__)

app = FastAPI(title="PriceWatch API", version=__version__)
app.state.services = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def track_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    REQUESTS.inc()
    LATENCY.observe(time.perf_counter() - started)
    return response


# --- Error mapping ---

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})

@app.exception_handler(ItemNotFoundError)
@app.exception_handler(SubscriptionNotFoundError)
async def not_found_handler(request: Request, exc: PriceWatchError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(StalePriceError)
async def stale_price_handler(request: Request, exc: StalePriceError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})

@app.exception_handler(PriceWatchError)
async def pricewatch_error_handler(request: Request, exc: PriceWatchError):
    log.error("Unhandled application error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# --- Lifecycle ---

@app.on_event("startup")
async def on_startup():
    setup_logging()
    log.info("Application startup sequence initiated...")
    create_tables()
    app.state.services = build_services()
    if settings.SWEEP_ENABLED:
        app.state.services["scheduler"].start()
    log.info("Application startup complete.")

@app.on_event("shutdown")
async def on_shutdown():
    services = app.state.services
    if not services:
        return
    await services["scheduler"].stop()
    await services["fetcher"].aclose()


@app.get("/")
def root(): return {"message": "PriceWatch API Running"}

@app.get("/health")
def health_check(): return {"status": "ok"}

app.include_router(items_router.router)
app.include_router(subscriptions_router.router)
app.include_router(alerts_router.router)
if settings.METRICS_ENABLED:
    app.include_router(metrics_router)
