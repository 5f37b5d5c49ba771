"""aqva delivery schema

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261018_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_ORDER_WHERE = sa.text("status IN ('pending', 'assigned', 'en_route')")
HELD_ORDER_WHERE = sa.text("status IN ('assigned', 'en_route')")


def _table_exists(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _index_exists(inspector: sa.Inspector, table_name: str, index_name: str) -> bool:
    return any(index["name"] == index_name for index in inspector.get_indexes(table_name))


def _ensure_account_tables(inspector: sa.Inspector) -> None:
    if not _table_exists(inspector, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("full_name", sa.String(length=255), nullable=True),
            sa.Column("phone", sa.String(length=32), nullable=True),
            sa.Column("hashed_password", sa.String(length=255), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_users_id", "users", ["id"], unique=False)
        op.create_index("ix_users_email", "users", ["email"], unique=True)

    if not _table_exists(inspector, "admins"):
        op.create_table(
            "admins",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_admins_id", "admins", ["id"], unique=False)

    if not _table_exists(inspector, "riders"):
        op.create_table(
            "riders",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
            sa.Column("display_name", sa.String(length=255), nullable=True),
            sa.Column("phone", sa.String(length=32), nullable=True),
            sa.Column("is_online", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_riders_id", "riders", ["id"], unique=False)

    if not _table_exists(inspector, "rider_locations"):
        op.create_table(
            "rider_locations",
            sa.Column("rider_id", sa.Integer(), sa.ForeignKey("riders.id"), primary_key=True, nullable=False),
            sa.Column("latitude", sa.Float(), nullable=False),
            sa.Column("longitude", sa.Float(), nullable=False),
            sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False),
        )


def _ensure_catalog_tables(inspector: sa.Inspector) -> None:
    if not _table_exists(inspector, "zones"):
        op.create_table(
            "zones",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        )
        op.create_index("ix_zones_id", "zones", ["id"], unique=False)

    if not _table_exists(inspector, "packs"):
        op.create_table(
            "packs",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("units_per_pack", sa.Integer(), nullable=False),
            sa.Column("price_cents", sa.Integer(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        )
        op.create_index("ix_packs_id", "packs", ["id"], unique=False)

    if not _table_exists(inspector, "addresses"):
        op.create_table(
            "addresses",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("label", sa.String(length=64), nullable=False, server_default="Home"),
            sa.Column("line1", sa.String(length=255), nullable=False),
            sa.Column("line2", sa.String(length=255), nullable=True),
            sa.Column("city", sa.String(length=128), nullable=True),
            sa.Column("postcode", sa.String(length=16), nullable=True),
            sa.Column("country", sa.String(length=2), nullable=False, server_default="ZA"),
            sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )
        op.create_index("ix_addresses_id", "addresses", ["id"], unique=False)
        op.create_index("ix_addresses_user_id", "addresses", ["user_id"], unique=False)


def _ensure_order_tables(inspector: sa.Inspector) -> None:
    if not _table_exists(inspector, "orders"):
        op.create_table(
            "orders",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("address_id", sa.Integer(), sa.ForeignKey("addresses.id"), nullable=False),
            sa.Column("zone_id", sa.Integer(), sa.ForeignKey("zones.id"), nullable=False),
            sa.Column("pack_id", sa.Integer(), sa.ForeignKey("packs.id"), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.Column("total_cents", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
            sa.Column("payment_status", sa.String(length=32), nullable=False, server_default="unpaid"),
            sa.Column("payment_method", sa.String(length=32), nullable=False, server_default="card"),
            sa.Column("rider_id", sa.Integer(), sa.ForeignKey("riders.id"), nullable=True),
            sa.Column("eta_minutes", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("rider_paid_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_orders_id", "orders", ["id"], unique=False)
        op.create_index("ix_orders_user_id", "orders", ["user_id"], unique=False)
        op.create_index("ix_orders_rider_id", "orders", ["rider_id"], unique=False)

    inspector = sa.inspect(op.get_bind())
    if not _index_exists(inspector, "orders", "uq_orders_active_customer"):
        op.create_index(
            "uq_orders_active_customer",
            "orders",
            ["user_id"],
            unique=True,
            postgresql_where=ACTIVE_ORDER_WHERE,
            sqlite_where=ACTIVE_ORDER_WHERE,
        )
    if not _index_exists(inspector, "orders", "uq_orders_held_rider"):
        op.create_index(
            "uq_orders_held_rider",
            "orders",
            ["rider_id"],
            unique=True,
            postgresql_where=HELD_ORDER_WHERE,
            sqlite_where=HELD_ORDER_WHERE,
        )

    if not _table_exists(inspector, "payments"):
        op.create_table(
            "payments",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=False),
            sa.Column("provider", sa.String(length=32), nullable=False, server_default="stripe"),
            sa.Column("provider_session_id", sa.String(length=255), nullable=False),
            sa.Column("amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("currency", sa.String(length=3), nullable=False, server_default="ZAR"),
            sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.UniqueConstraint("provider", "provider_session_id", name="uq_payments_provider_session"),
        )
        op.create_index("ix_payments_id", "payments", ["id"], unique=False)
        op.create_index("ix_payments_order_id", "payments", ["order_id"], unique=False)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    _ensure_account_tables(inspector)
    inspector = sa.inspect(bind)
    _ensure_catalog_tables(inspector)
    inspector = sa.inspect(bind)
    _ensure_order_tables(inspector)


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table_name in (
        "payments",
        "orders",
        "addresses",
        "packs",
        "zones",
        "rider_locations",
        "riders",
        "admins",
        "users",
    ):
        if _table_exists(inspector, table_name):
            op.drop_table(table_name)
