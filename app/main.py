"""
FastAPI application entry point.
Includes security middleware, error handlers, store/simulator lifecycle and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from app.routers import observations, lots, violations, stats, simulation, health
from app.exceptions import InvalidInputError, NotFoundError
from app.services.seed_data import build_seeded_store
from app.services.simulation_service import SimulationController
from app.config import settings
from app.utils.logger import get_logger
from contextlib import asynccontextmanager
import time

logger = get_logger(__name__)


# ── Startup / Shutdown ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Compliance backend starting up...")
    app.state.store = build_seeded_store()
    app.state.simulation = SimulationController(app.state.store)
    logger.info(f"✅ Store seeded with {len(app.state.store.list_lots())} lots "
                f"(rule version {settings.RULE_VERSION})")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")

    if settings.SIMULATION_AUTOSTART:
        await app.state.simulation.start("rush_hour")

    yield

    logger.info("🛑 Compliance backend shutting down...")
    await app.state.simulation.stop()


app = FastAPI(
    title="Parking Capacity Compliance API",
    description="Lot occupancy vs. contractual capacity — violations, penalties, offenders and a traffic simulator.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── CORS (allow the dashboard to call the API) ──────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Restrict to dashboard origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional lightweight API key auth.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    async def dispatch(self, request: Request, call_next):
        open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}
        if request.url.path in open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.warning(f"Rejected input on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "field": exc.field or None},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(observations.router, prefix="/api/v1", tags=["📡 Observations"])
app.include_router(lots.router,         prefix="/api/v1", tags=["🅿️  Lots"])
app.include_router(violations.router,   prefix="/api/v1", tags=["🚨 Violations"])
app.include_router(stats.router,        prefix="/api/v1", tags=["📊 Stats"])
app.include_router(simulation.router,   prefix="/api/v1", tags=["🚦 Simulation"])
app.include_router(health.router,       prefix="/api/v1", tags=["💚 Health"])
