"""
LinkedIn Ads Bid Optimizer — FastAPI Backend
Compares each active campaign's recent spend with its daily budget and
recommends (or applies) bid adjustments. Recently changed campaigns are held
back for 48 hours.
Serves frontend static files when present.
"""

import logging
from pathlib import Path
from contextlib import asynccontextmanager
from starlette.requests import Request
from starlette.responses import Response, FileResponse, JSONResponse
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from bidder.config import get_settings
from bidder.database import init_db, check_db_connection
from bidder.errors import OptimizerError
from bidder.routers import accounts, campaigns, optimizer, settings as settings_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting LinkedIn Ads Bid Optimizer "
                f"({'multi-tenant' if settings.multi_tenant else 'single-tenant'})...")
    try:
        await init_db()
    except Exception as e:
        logger.error(f"Startup failed (DB/init): {e}", exc_info=True)
        # Still yield so app can serve /api/health (degraded) and logs are visible
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="LinkedIn Ads Bid Optimizer",
    description="Spend vs budget analysis and bid recommendations for LinkedIn campaigns",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OptimizerError)
async def optimizer_error_handler(request: Request, exc: OptimizerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed ({exc.category}): {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.category, "detail": exc.detail},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters use the same 400 shape as ValidationError."""
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": "validation", "detail": detail})


# ── Register Routers ─────────────────────────────────────────────────
app.include_router(accounts.router, prefix="/api", tags=["Accounts"])
app.include_router(settings_router.router, prefix="/api/settings", tags=["Settings"])
app.include_router(campaigns.router, prefix="/api/campaigns", tags=["Campaigns"])
app.include_router(optimizer.router, prefix="/api", tags=["Bid Optimizer"])


@app.get("/api/health")
async def health_check():
    db_ok = await check_db_connection()
    return {
        "status": "degraded" if db_ok is False else "healthy",
        "service": "LinkedIn Ads Bid Optimizer",
        "database": {True: "connected", False: "disconnected", None: "not_configured"}[db_ok],
        "multi_tenant": settings.multi_tenant,
    }


# Static files + SPA fallback (when backend/static exists)
STATIC_DIR = Path(__file__).resolve().parent.parent / "static"
if STATIC_DIR.exists():
    if (STATIC_DIR / "assets").exists():
        app.mount("/assets", StaticFiles(directory=STATIC_DIR / "assets"), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_spa(full_path: str):
        """Serve SPA for non-API routes. API routes registered above."""
        if full_path.startswith("api") or full_path == "api":
            return Response(status_code=404)
        file_path = STATIC_DIR / full_path
        if file_path.is_file():
            return FileResponse(file_path)
        return FileResponse(STATIC_DIR / "index.html")
