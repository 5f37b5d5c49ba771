import logging

from sqlalchemy.orm import Session, aliased

from aqva.exceptions import ConflictError, NotFoundError
from aqva.models import Order, Rider, User
from aqva.models.order import RIDER_HELD_STATUSES
from aqva.services.timeutils import db_datetime, utcnow

logger = logging.getLogger(__name__)

ACTIVE_DELIVERY_MESSAGE = "You have an active delivery. Finish it before going offline."


def set_online(db: Session, rider: Rider, is_online: bool) -> Rider:
    """Toggle availability. Going offline is refused while an order is held."""
    conditions = [Rider.id == rider.id]
    if not is_online:
        held = aliased(Order)
        conditions.append(
            ~db.query(held.id)
            .filter(held.rider_id == rider.id, held.status.in_(sorted(RIDER_HELD_STATUSES)))
            .exists()
        )

    updated = (
        db.query(Rider)
        .filter(*conditions)
        .update(
            {Rider.is_online: is_online, Rider.updated_at: db_datetime(db, utcnow())},
            synchronize_session=False,
        )
    )
    db.commit()
    if updated != 1:
        raise ConflictError(ACTIVE_DELIVERY_MESSAGE)
    db.refresh(rider)
    logger.info("Rider %s is now %s", rider.id, "online" if is_online else "offline")
    return rider


def link_rider(db: Session, email: str, display_name: str | None = None, phone: str | None = None) -> Rider:
    """Attach a rider profile to an existing user account."""
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise NotFoundError("User not found")
    if db.query(Rider).filter(Rider.user_id == user.id).first():
        raise ConflictError("User is already a rider")

    rider = Rider(
        user_id=user.id,
        display_name=display_name or user.full_name,
        phone=phone or user.phone,
        is_online=False,
    )
    db.add(rider)
    db.commit()
    db.refresh(rider)
    logger.info("Rider profile %s linked to user %s", rider.id, user.id)
    return rider
