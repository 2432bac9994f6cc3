"""
Lightboard — traffic-light jobs board API.

Public landing page content driven by a red / orange / green switch, and an
operator dashboard for companies, jobs, marketing media, stories, proof stats
and video analytics.
"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from lightboard.core.config import settings
from lightboard.core.database import AsyncSessionLocal, init_db
from lightboard.core.errors import DataAccessError
from lightboard.core.limiter import limiter
from lightboard.core.logging import get_logger, setup_logging
from lightboard.middleware.audit import AuditLogMiddleware
from lightboard.middleware.identity import IdentityMiddleware
from lightboard.routers import (
    analytics,
    auth,
    companies,
    health,
    jobs,
    media,
    operators,
    public,
    site,
    stories,
)
from lightboard.services.operator_service import bootstrap_admin

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("api.startup", version=settings.API_VERSION, env=settings.ENVIRONMENT)
    await init_db()
    async with AsyncSessionLocal() as db:
        await bootstrap_admin(db)
        await db.commit()
    logger.info("api.database_ready")
    yield
    logger.info("api.shutdown")


app = FastAPI(
    title="Lightboard",
    description="""
## Traffic-light jobs board

| Light | Public page shows |
|-------|-------------------|
| `red` | proof stats and community stories |
| `orange` | approved marketing videos and images |
| `green` | approved jobs and learnerships |

Operators (`editor`, `admin`) sign in with email and password and receive JWTs.
    """,
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware (outermost runs first) ──────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AuditLogMiddleware)
app.add_middleware(IdentityMiddleware)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(DataAccessError)
async def data_access_exception_handler(request: Request, exc: DataAccessError):
    logger.error("api.data_access_failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=503,
        content={
            "detail": "Data store unavailable, please retry",
            "request_id": getattr(request.state, "request_id", None),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "api.unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "request_id": getattr(request.state, "request_id", None),
        },
    )


# ── Routers ────────────────────────────────────────────────────────────────────
app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(operators.router, prefix="/api/v1/operators", tags=["Operators"])
app.include_router(public.router, prefix="/api/v1/public", tags=["Public"])
app.include_router(site.router, prefix="/api/v1", tags=["Site"])
app.include_router(companies.router, prefix="/api/v1/companies", tags=["Companies"])
app.include_router(jobs.router, prefix="/api/v1/jobs", tags=["Jobs"])
app.include_router(media.router, prefix="/api/v1/media", tags=["Media"])
app.include_router(stories.router, prefix="/api/v1/stories", tags=["Stories"])
app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])

Path(settings.MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
app.mount("/media", StaticFiles(directory=settings.MEDIA_ROOT), name="media")
