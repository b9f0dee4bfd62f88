import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from vista_api.core import config
from vista_api.core.database import Base, SessionLocal, engine
from vista_api.core.errors import ApiError
from vista_api.core.logging_setup import configure_logging
from vista_api.core.responses import error_body
from vista_api.core.startup_checks import ensure_migrations_applied, validate_environment
from vista_api.middleware.observability import ObservabilityMiddleware
import vista_api.models  # registers every table before create_all

from vista_api.models.rbac import Role
from vista_api.models.user import User
from vista_api.routers.admin_accounts import router as admin_accounts_router
from vista_api.routers.admin_content import routers as content_routers
from vista_api.routers.admins import router as admins_router
from vista_api.routers.auth import router as auth_router
from vista_api.routers.homestays import (
    admin_router as admin_homestays_router,
    merchant_router as merchant_homestays_router,
    settings_router as property_settings_router,
)
from vista_api.routers.internal_metrics import router as internal_metrics_router
from vista_api.routers.permissions import router as permissions_router
from vista_api.routers.public import router as public_router
from vista_api.routers.registration import router as registration_router
from vista_api.routers.roles import router as roles_router
from vista_api.services.passwords import password_looks_hashed
from vista_api.services.rbac import ADMINISTRATOR_ROLE, seed_permission_catalogue
from vista_api.services.registration import create_admin, normalize_email

configure_logging()

logger = logging.getLogger(__name__)
BOOTSTRAP_PREFIX = "[ADMIN_BOOTSTRAP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini")))

_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "AUTH_REQUIRED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "TOO_MANY_ATTEMPTS",
}


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Vista Travel API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

UPLOADS_DIR = Path(config.UPLOADS_DIR)
UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(UPLOADS_DIR)), name="uploads")


@app.exception_handler(ApiError)
async def api_error_handler(_: Request, exc: ApiError):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), error=exc.code, errors=exc.errors),
        headers=exc.headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), error=_STATUS_CODES.get(exc.status_code, "HTTP_ERROR")),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError):
    errors = []
    for item in exc.errors():
        location = [str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path", "form")]
        message = str(item.get("msg", "Invalid value"))
        errors.append({"field": ".".join(location) or "body", "message": message.removeprefix("Value error, ")})
    return JSONResponse(
        status_code=400,
        content=error_body("Validation failed", error="VALIDATION_ERROR", errors=errors),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(_: Request, exc: IntegrityError):
    logger.warning("integrity error: %s", exc.orig)
    return JSONResponse(status_code=409, content=error_body("Duplicate entry", error="DUPLICATE_ENTRY"))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error endpoint=%s %s", request.method, request.url.path)
    detail = None if config.IS_PROD else str(exc)
    return JSONResponse(status_code=500, content=error_body("Internal server error", error=detail))


def _bootstrap_super_admin() -> None:
    if not config.DEV_ADMIN_PASSWORD:
        logger.warning("%s skipped: configure DEV_ADMIN_PASSWORD.", BOOTSTRAP_PREFIX)
        return

    email = normalize_email(config.DEV_ADMIN_EMAIL)
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email).first()
        if existing is not None:
            logger.info("%s exists id=%s email=%s", BOOTSTRAP_PREFIX, existing.id, email)
            return

        role = db.query(Role).filter(Role.name == ADMINISTRATOR_ROLE).first()
        admin = create_admin(
            db,
            email=email,
            password=config.DEV_ADMIN_PASSWORD,
            full_name=config.DEV_ADMIN_NAME,
            role_ids=[role.id] if role is not None else [],
            is_super_admin=True,
        )
        if password_looks_hashed(config.DEV_ADMIN_PASSWORD):
            logger.info("%s password already hashed; storing as-is", BOOTSTRAP_PREFIX)
            admin.password_hash = config.DEV_ADMIN_PASSWORD
            db.commit()
        logger.info("%s created id=%s email=%s", BOOTSTRAP_PREFIX, admin.id, email)
    except Exception:
        logger.exception("%s ERROR bootstrap failed", BOOTSTRAP_PREFIX)
        raise
    finally:
        db.close()


def _seed_catalogue() -> None:
    db = SessionLocal()
    try:
        seed_permission_catalogue(db)
    finally:
        db.close()


def _startup_tasks() -> None:
    validate_environment()
    if config.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    _seed_catalogue()
    _bootstrap_super_admin()
    logger.info("startup complete env=%s", config.ENV_NORMALIZED)


app.include_router(auth_router)
app.include_router(registration_router)
app.include_router(admins_router)
app.include_router(admin_accounts_router)
app.include_router(roles_router)
app.include_router(permissions_router)
for content_router in content_routers:
    app.include_router(content_router)
app.include_router(merchant_homestays_router)
app.include_router(admin_homestays_router)
app.include_router(property_settings_router)
app.include_router(public_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "ok", "env": config.ENV_NORMALIZED}
