import logging
import time
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from aqva.config import settings
from aqva.models.database import Base, _normalize_database_url, engine
from aqva.models import Pack, Zone  # noqa: F401 - register models

logger = logging.getLogger(__name__)

DEFAULT_ZONE_NAME = "Cape Town Central"
DEFAULT_PACK_NAME = "AQVA Pack 6 x 1.5L"
DEFAULT_PACK_UNITS = 6
DEFAULT_PACK_PRICE_CENTS = 7999


def wait_for_db(retries: int, retry_delay_seconds: int) -> None:
    """Wait for database to accept connections before running migrations."""
    last_error = None
    for attempt in range(1, retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection established on attempt %s", attempt)
            return
        except OperationalError as exc:
            last_error = exc
            logger.warning(
                "Database not reachable yet (attempt %s/%s): %s",
                attempt,
                retries,
                exc,
            )
            if attempt < retries:
                time.sleep(retry_delay_seconds)

    raise RuntimeError(
        "Database is unreachable after "
        f"{retries} attempts. Check DATABASE_URL and ensure the DB server is running."
    ) from last_error


def init_db():
    wait_for_db(
        retries=settings.DB_CONNECT_RETRIES,
        retry_delay_seconds=settings.DB_CONNECT_RETRY_DELAY_SECONDS,
    )
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
        return

    run_migrations()


def run_migrations() -> None:
    """Apply Alembic migrations to the latest revision."""
    from alembic import command
    from alembic.config import Config

    project_root = Path(__file__).resolve().parent.parent
    alembic_ini = project_root / "alembic.ini"
    script_location = project_root / "alembic"
    if not alembic_ini.exists() or not script_location.exists():
        raise RuntimeError("Alembic configuration is missing (alembic.ini or alembic/ directory not found).")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(script_location))
    config.set_main_option("sqlalchemy.url", _normalize_database_url(settings.DATABASE_URL))
    config.attributes["skip_logging_config"] = True
    command.upgrade(config, "head")


def seed_catalog(db_session) -> None:
    """Create one zone and one pack on an empty catalog so orders can be placed."""
    if not db_session.query(Zone.id).first():
        db_session.add(Zone(name=DEFAULT_ZONE_NAME, is_active=True))
        logger.info("Seeded default zone %r", DEFAULT_ZONE_NAME)
    if not db_session.query(Pack.id).first():
        db_session.add(
            Pack(
                name=DEFAULT_PACK_NAME,
                units_per_pack=DEFAULT_PACK_UNITS,
                price_cents=DEFAULT_PACK_PRICE_CENTS,
                is_active=True,
            )
        )
        logger.info("Seeded default pack %r", DEFAULT_PACK_NAME)
    db_session.commit()
