from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aqva.dependencies import get_current_user
from aqva.models import User, get_db
from aqva.schemas.payments import CheckoutRequest, CheckoutResponse
from aqva.services import payments

router = APIRouter()


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    summary="Create a checkout session for my order",
)
def create_checkout(
    body: CheckoutRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """
    Open a Stripe Checkout Session for one of my unpaid orders and return the redirect URL.

    Errors: 404 unknown order, 403 not my order, 409 already paid or terminal,
    400 amount below the minimum, 502 payment provider failure.
    """
    result = payments.start_checkout(db, current_user, body.order_id)
    return CheckoutResponse(url=result.url, session_id=result.session_id)
