from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from p100.config import settings
from p100.logging_setup import configure_logging
from p100.routes.system import router as system_router
from p100.routes.characters import router as characters_router
from p100.routes.players import router as players_router
from p100.routes.submissions import router as submissions_router
from p100.routes.admin import login_router as admin_login_router, router as admin_router
from p100.routes.admin_catalog import router as admin_catalog_router
from p100.routes.admin_storage import router as admin_storage_router
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    if not settings.admin_password or not settings.admin_secret_key:
        log.warning("admin_gate_unconfigured")
    yield
    # Shutdown
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API: players who reached prestige 100, their submissions and artwork credits",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router)
app.include_router(characters_router)
app.include_router(players_router)
app.include_router(submissions_router)
app.include_router(admin_login_router, include_in_schema=False)
app.include_router(admin_router, include_in_schema=False)
app.include_router(admin_catalog_router, include_in_schema=False)
app.include_router(admin_storage_router, include_in_schema=False)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    structlog.contextvars.clear_contextvars()
    return response
