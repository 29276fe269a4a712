import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from license_api.core import config
from license_api.core.errors import LicenseError, TransientInfra
from license_api.core.logging_config import setup_logging
from license_api.api.routes import auth, billing, billing_webhook, health, hwid, vouches

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL, config.LOG_DIR)
    if config.RUN_MIGRATIONS:
        from license_api.db.migrate import run_migrations
        run_migrations()
    else:
        from license_api.db.init_db import init_db
        init_db()
    logger.info("License API started")
    yield


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="License API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# ✅ ERROR HANDLERS
# ============================================

@app.exception_handler(LicenseError)
async def license_error_handler(request: Request, exc: LicenseError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message, "code": exc.code},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=TransientInfra.status_code,
        content={"success": False, "message": "Temporary database error, please retry", "code": TransientInfra.code},
    )


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(auth.router)
app.include_router(hwid.router)
app.include_router(billing.router)
app.include_router(billing_webhook.router)
app.include_router(vouches.router)
app.include_router(health.router)


@app.get("/")
def root():
    return {"status": "License API running"}
