from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from aqva.dependencies import get_current_admin
from aqva.models import User, get_db
from aqva.models.order import ORDER_STATUSES
from aqva.schemas.admin import (
    AdminOrdersResponse,
    RiderLinkRequest,
    RiderPayoutResponse,
    RiderPayoutsResponse,
    SettlePayoutResponse,
)
from aqva.schemas.orders import order_to_response
from aqva.schemas.riders import RiderResponse
from aqva.services import order_store, reports, riders

router = APIRouter()


@router.get("/orders", response_model=AdminOrdersResponse, summary="List orders")
def list_orders(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[Session, Depends(get_db)],
    status_filter: Annotated[str | None, Query(alias="status")] = None,
):
    """All orders, newest first, optionally filtered by status."""
    if status_filter and status_filter != "all" and status_filter not in ORDER_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown status: {status_filter}")
    orders = order_store.list_orders(db, None if status_filter == "all" else status_filter)
    return AdminOrdersResponse(
        orders=[order_to_response(o) for o in orders],
        count=len(orders),
        total_cents=sum(o.total_cents or 0 for o in orders),
    )


@router.get("/rider-payouts", response_model=RiderPayoutsResponse, summary="Unsettled rider payouts")
def rider_payouts(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    stats = reports.rider_payout_stats(db)
    return RiderPayoutsResponse(
        riders=[RiderPayoutResponse(**stat.__dict__) for stat in stats],
        total_deliveries=sum(stat.deliveries_count for stat in stats),
        total_payout_cents=sum(stat.payout_cents for stat in stats),
    )


@router.post(
    "/rider-payouts/{rider_id}/settle",
    response_model=SettlePayoutResponse,
    summary="Mark a rider's deliveries as paid out",
)
def settle_rider_payouts(
    rider_id: int,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    settled = reports.settle_rider_payouts(db, rider_id)
    return SettlePayoutResponse(rider_id=rider_id, settled_orders=settled)


@router.get("/exports/unpaid-deliveries.csv", summary="Export unsettled deliveries as CSV")
def export_unpaid_deliveries(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    filename = f"aqva_unpaid_deliveries_{datetime.now(timezone.utc).date().isoformat()}.csv"
    return Response(
        content=reports.export_unsettled_deliveries_csv(db),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/riders", response_model=RiderResponse, summary="Link a rider profile to a user")
def link_rider(
    body: RiderLinkRequest,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    rider = riders.link_rider(db, body.email, display_name=body.display_name, phone=body.phone)
    return RiderResponse.model_validate(rider)
