"""Resolve an authenticated user to exactly one of admin, rider or client.

The role only drives which dashboard the frontend opens. Endpoints enforce
their own capability checks (see :mod:`aqva.dependencies`).
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aqva.config import settings
from aqva.models import Admin, Rider, User

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_RIDER = "rider"
ROLE_CLIENT = "client"

ROLE_DETECTION_FAILED = "Unable to detect user role."

AdminCheck = Callable[[], bool]

_admin_check_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="admin-check")


@dataclass(frozen=True)
class RoleResolution:
    role: str
    diagnostic: str | None = None


def is_admin(db: Session, user_id: int) -> bool:
    return db.query(Admin.id).filter(Admin.user_id == user_id).first() is not None


def get_rider_for_user(db: Session, user_id: int) -> Rider | None:
    return db.query(Rider).filter(Rider.user_id == user_id).first()


def _default_admin_check(db: Session, user_id: int) -> AdminCheck:
    # Runs on a worker thread, so it needs its own session.
    bind = db.get_bind()

    def check() -> bool:
        with Session(bind=bind) as session:
            return is_admin(session, user_id)

    return check


def check_admin_with_timeout(check: AdminCheck, timeout: float) -> tuple[bool, str | None]:
    """Run ``check`` bounded by ``timeout``; expiry counts as "not admin"."""
    future = _admin_check_pool.submit(check)
    try:
        return bool(future.result(timeout=timeout)), None
    except FutureTimeoutError:
        logger.warning("Admin privilege check timed out after %ss; treating as not admin", timeout)
        return False, None
    except Exception as exc:
        logger.error("Admin privilege check failed: %s", exc, exc_info=True)
        return False, ROLE_DETECTION_FAILED


def resolve_role(
    db: Session,
    user: User,
    admin_check: AdminCheck | None = None,
    timeout: float | None = None,
) -> RoleResolution:
    if timeout is None:
        timeout = settings.ADMIN_CHECK_TIMEOUT_SECONDS
    check = admin_check or _default_admin_check(db, user.id)

    admin, diagnostic = check_admin_with_timeout(check, timeout)
    if admin:
        return RoleResolution(role=ROLE_ADMIN)

    try:
        rider = get_rider_for_user(db, user.id)
    except SQLAlchemyError as exc:
        logger.error("Rider profile lookup failed for user %s: %s", user.id, exc, exc_info=True)
        db.rollback()
        return RoleResolution(role=ROLE_CLIENT, diagnostic=ROLE_DETECTION_FAILED)

    if rider:
        return RoleResolution(role=ROLE_RIDER, diagnostic=diagnostic)
    return RoleResolution(role=ROLE_CLIENT, diagnostic=diagnostic)
