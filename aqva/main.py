import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aqva.api import admin, auth, catalog, order, payments, riders
from aqva.config import settings
from aqva.db_init import init_db, seed_catalog
from aqva.exceptions import register_exception_handlers
from aqva.models import get_db
from aqva.webhooks import stripe_webhook

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("aqva.startup")

INSECURE_JWT_SECRET = "change-me-in-production"


def _is_localhost(host: str | None) -> bool:
    return host in {"localhost", "127.0.0.1"}


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.hostname)


def _get_cors_origins(cors_raw: str) -> list[str]:
    return [origin.strip().strip("'\"") for origin in cors_raw.split(",") if origin.strip()]


def _validate_database_url_for_runtime(database_url: str) -> None:
    parsed = urlparse(database_url)
    scheme = parsed.scheme
    host = parsed.hostname
    db_name = parsed.path.lstrip("/")
    postgres_schemes = {"postgres", "postgresql", "postgresql+psycopg"}

    if not scheme:
        raise RuntimeError("DATABASE_URL is missing URL scheme (expected postgresql:// or postgresql+psycopg://).")
    if scheme == "sqlite":
        if settings.is_production:
            raise RuntimeError("DATABASE_URL must point to PostgreSQL when APP_ENV=production.")
        return
    if scheme not in postgres_schemes:
        raise RuntimeError(
            f"DATABASE_URL has unsupported scheme '{scheme}' "
            "(expected postgresql:// or postgresql+psycopg://)."
        )
    if not host:
        raise RuntimeError("DATABASE_URL is missing host.")
    if not db_name:
        raise RuntimeError("DATABASE_URL is missing database name in path.")


def _db_url_diagnostics(database_url: str) -> str:
    parsed = urlparse(database_url)
    host = parsed.hostname or "<missing>"
    port = parsed.port or "<missing>"
    db_name = parsed.path.lstrip("/") or "<missing>"
    scheme = parsed.scheme or "<missing>"
    query = parsed.query or "<empty>"

    tips = []
    if _is_localhost(host):
        tips.append("Host points to localhost; make sure Postgres runs on this machine.")
    if scheme in {"postgres", "postgresql"}:
        tips.append("URL scheme is fine; it is normalized to postgresql+psycopg internally.")
    if "sslmode" not in query:
        tips.append("No sslmode in URL query; managed databases often require sslmode=require.")
    if not tips:
        tips.append("URL structure looks valid; check network access, DB credentials, and DB service status.")

    return (
        f"scheme={scheme}, host={host}, port={port}, database={db_name}, query={query}; "
        f"tips={' | '.join(tips)}"
    )


def _validate_required_env_for_runtime() -> None:
    errors = []
    warnings = []
    production = settings.is_production

    jwt_secret = settings.JWT_SECRET.strip()
    if not jwt_secret:
        errors.append("JWT_SECRET is required.")
    elif production and jwt_secret == INSECURE_JWT_SECRET:
        errors.append("JWT_SECRET uses insecure default value with APP_ENV=production.")

    base_url = settings.BASE_URL.strip()
    if not _is_http_url(base_url):
        errors.append("BASE_URL must be an absolute http(s) URL, e.g. https://api.aqva.co.za")
    elif production and _is_localhost(urlparse(base_url).hostname):
        errors.append("BASE_URL points to localhost with APP_ENV=production.")

    origins = _get_cors_origins(settings.CORS_ORIGINS)
    if not origins:
        errors.append("CORS_ORIGINS must contain at least one comma-separated origin URL.")
    else:
        invalid_origins = [origin for origin in origins if not _is_http_url(origin)]
        if invalid_origins:
            errors.append(f"CORS_ORIGINS contains invalid URL(s): {', '.join(invalid_origins)}")

    for url_name in ("CHECKOUT_SUCCESS_URL", "CHECKOUT_CANCEL_URL"):
        if not _is_http_url(getattr(settings, url_name)):
            errors.append(f"{url_name} must be an absolute http(s) URL.")

    if not settings.STRIPE_SECRET_KEY:
        warnings.append("STRIPE_SECRET_KEY is not set; checkout will return 500.")
    if not settings.STRIPE_WEBHOOK_SECRET:
        warnings.append("STRIPE_WEBHOOK_SECRET is not set; the Stripe webhook will reject every event.")

    if warnings:
        logger.warning("Startup environment warnings: %s", " | ".join(warnings))

    if errors:
        raise RuntimeError("Startup environment validation failed: " + " | ".join(errors))


@asynccontextmanager
async def lifespan(app: FastAPI):
    database_url = "<unavailable>"
    logger.info("Application startup initiated.")
    try:
        database_url = settings.DATABASE_URL
        logger.info("DATABASE_URL diagnostics at startup: %s", _db_url_diagnostics(database_url))
        _validate_database_url_for_runtime(database_url)
        _validate_required_env_for_runtime()
        init_db()
    except Exception as exc:
        diagnostics = (
            _db_url_diagnostics(database_url)
            if database_url != "<unavailable>"
            else "DATABASE_URL unavailable (missing or unreadable)."
        )
        logger.exception(
            "Database initialization failed: %s. DATABASE_URL diagnostics: %s",
            str(exc),
            diagnostics,
        )
        raise
    db = next(get_db())
    try:
        seed_catalog(db)
    finally:
        db.close()
    logger.info("Application startup completed successfully.")
    yield


app = FastAPI(
    title="AQVA Delivery API",
    description=(
        "Backend API for AQVA bottled-water delivery (orders, riders, Stripe payments, live tracking). "
        "Use **Authorize** with the token from `POST /api/auth/login` for protected endpoints."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Register, login (JWT) and role resolution."},
        {"name": "Catalog", "description": "Zones, packs and my delivery addresses."},
        {"name": "Orders", "description": "Create, track and cancel my orders (requires auth)."},
        {"name": "Payments", "description": "Stripe Checkout for my orders."},
        {"name": "Riders", "description": "Rider availability, claims, delivery progress and location."},
        {"name": "Admin", "description": "Order overview, rider payouts and exports."},
        {"name": "Webhooks", "description": "Called by Stripe."},
    ],
)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    from fastapi.openapi.utils import get_openapi

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        **openapi_schema.get("components", {}).get("securitySchemes", {}),
        "bearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "JWT from POST /api/auth/login",
        },
    }
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(settings.CORS_ORIGINS),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(catalog.router, prefix="/api", tags=["Catalog"])
app.include_router(order.router, prefix="/api/orders", tags=["Orders"])
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])
app.include_router(riders.router, prefix="/api/riders", tags=["Riders"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(stripe_webhook.router, prefix="/webhooks", tags=["Webhooks"])


@app.get("/")
def root():
    return {"status": "ok", "service": "AQVA Delivery API"}


@app.get("/health")
def health():
    return {"status": "ok"}
