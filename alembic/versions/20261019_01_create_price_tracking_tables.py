"""create price tracking tables

Revision ID: 20261019_01_create_price_tracking_tables
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_01_create_price_tracking_tables"
down_revision = None
branch_labels = None
depends_on = None

ALERT_TYPES = ("PRICE_DROP", "TARGET_REACHED", "PERCENTAGE_DROP", "BACK_IN_STOCK")
ALERT_STATUSES = ("PENDING", "SENT", "SUPPRESSED")


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    alert_type = sa.Enum(*ALERT_TYPES, name="alerttypeenum")
    alert_status = sa.Enum(*ALERT_STATUSES, name="alertstatusenum")

    if not inspector.has_table("users"):
        op.create_table("users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("telegram_chat_id", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if not inspector.has_table("tracked_items"):
        op.create_table("tracked_items",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("url", sa.Text(), nullable=False),
            sa.Column("category", sa.String(), nullable=True),
            sa.Column("retailer", sa.String(), nullable=True),
            sa.Column("current_price", sa.Numeric(12, 2), nullable=True),
            sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("url"),
        )
        op.create_index("ix_tracked_items_is_active", "tracked_items", ["is_active"])

    if not inspector.has_table("price_history"):
        op.create_table("price_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("item_id", sa.Integer(), nullable=False),
            sa.Column("price", sa.Numeric(12, 2), nullable=False),
            sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["item_id"], ["tracked_items.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_price_history_item_recorded", "price_history", ["item_id", "recorded_at"])

    if not inspector.has_table("subscriptions"):
        op.create_table("subscriptions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("item_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("alert_type", alert_type, nullable=False),
            sa.Column("target_value", sa.Numeric(12, 4), nullable=True),
            sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(["item_id"], ["tracked_items.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_subscriptions_item_id", "subscriptions", ["item_id"])
        op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])

    if not inspector.has_table("price_alerts"):
        op.create_table("price_alerts",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("subscription_id", sa.Integer(), nullable=False),
            sa.Column("old_price", sa.Numeric(12, 2), nullable=False),
            sa.Column("new_price", sa.Numeric(12, 2), nullable=False),
            sa.Column("alert_type", alert_type, nullable=False),
            sa.Column("triggered_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("status", alert_status, nullable=False),
            sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("delivery_attempts", sa.Integer(), server_default="0", nullable=False),
            sa.Column("suppression_reason", sa.String(), nullable=True),
            sa.ForeignKeyConstraint(["subscription_id"], ["subscriptions.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_price_alerts_subscription_id", "price_alerts", ["subscription_id"])
        op.create_index("ix_price_alerts_status", "price_alerts", ["status"])
        op.create_index("ix_price_alerts_sub_type_sent", "price_alerts", ["subscription_id", "alert_type", "sent_at"])


def downgrade() -> None:
    op.drop_table("price_alerts")
    op.drop_table("subscriptions")
    op.drop_table("price_history")
    op.drop_table("tracked_items")
    op.drop_table("users")
    sa.Enum(name="alertstatusenum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="alerttypeenum").drop(op.get_bind(), checkfirst=True)
