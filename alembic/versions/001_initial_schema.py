"""Stakeholders, donations, food inventory and chat messages.

Revision ID: 001
Revises: None
Create Date: 2026-09-28
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

donation_status = sa.Enum("pending", "approved", "rejected", name="donation_status")


def upgrade() -> None:
    op.create_table(
        "stakeholders",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("region", sa.String(255), server_default=""),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="-1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_stakeholders_email", "stakeholders", ["email"])

    op.create_table(
        "donations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("donor_id", sa.String(32), sa.ForeignKey("stakeholders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("charity_id", sa.String(32), sa.ForeignKey("stakeholders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", donation_status, nullable=False, server_default="pending"),
        sa.Column("items", sa.JSON()),
        sa.Column("note", sa.String(500), server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_donations_status", "donations", ["status"])
    op.create_index("idx_donations_donor", "donations", ["donor_id"])
    op.create_index("idx_donations_charity", "donations", ["charity_id"])

    op.create_table(
        "food_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "stakeholder_id", sa.String(32), sa.ForeignKey("stakeholders.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(100), server_default=""),
        sa.Column("donation_id", sa.Integer(), sa.ForeignKey("donations.id", ondelete="SET NULL"), nullable=True),
        sa.Column("measure_per_unit", sa.String(50), server_default=""),
        sa.Column("unit", sa.String(50), server_default=""),
        sa.Column("notification_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notification_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("quantity > 0", name="ck_food_items_quantity_positive"),
    )
    op.create_index("ix_food_items_stakeholder_id", "food_items", ["stakeholder_id"])

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("donation_id", sa.Integer(), sa.ForeignKey("donations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.String(32), sa.ForeignKey("stakeholders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False, server_default=""),
        sa.Column("iv", sa.String(64), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("read_receipt", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("delivered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("icon", sa.String(16), server_default=""),
        sa.Column("is_seed", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("idx_chat_donation_ts", "chat_messages", ["donation_id", "timestamp"])
    op.create_index(
        "uq_chat_seed_participant",
        "chat_messages",
        ["donation_id", "sender_id"],
        unique=True,
        postgresql_where=sa.text("is_seed"),
        sqlite_where=sa.text("is_seed"),
    )


def downgrade() -> None:
    op.drop_table("chat_messages")
    op.drop_table("food_items")
    op.drop_table("donations")
    op.drop_table("stakeholders")
    donation_status.drop(op.get_bind(), checkfirst=True)
