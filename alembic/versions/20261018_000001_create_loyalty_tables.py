"""Create loyalty ledger tables

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18

Append-only points ledger, materialized balances, rewards, vouchers and the
promotional calendar. orders and customer_profiles belong to the host schema.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261018_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EARNED_ONLY = sa.text("type = 'earned'")


def upgrade() -> None:
    op.create_table(
        "points_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("identity_key", sa.String(300), nullable=False),
        sa.Column("legacy_user_id", sa.Integer(), nullable=True),
        sa.Column("external_user_id", sa.String(255), nullable=True),
        sa.Column("order_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("order_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("is_retroactive", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_points_transactions_identity_key", "points_transactions", ["identity_key"])
    op.create_index("ix_points_transactions_legacy_user_id", "points_transactions", ["legacy_user_id"])
    op.create_index("ix_points_transactions_external_user_id", "points_transactions", ["external_user_id"])
    op.create_index("ix_points_transactions_order_id", "points_transactions", ["order_id"])
    op.create_index("ix_points_transactions_type", "points_transactions", ["type"])
    op.create_index(
        "uq_points_transactions_earned_order",
        "points_transactions",
        ["identity_key", "order_id"],
        unique=True,
        sqlite_where=EARNED_ONLY,
        postgresql_where=EARNED_ONLY,
        mssql_where=EARNED_ONLY,
    )

    op.create_table(
        "customer_balances",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("identity_key", sa.String(300), nullable=False),
        sa.Column("legacy_user_id", sa.Integer(), nullable=True),
        sa.Column("external_user_id", sa.String(255), nullable=True),
        sa.Column("points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_earned", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_redeemed", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_earned_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("uq_customer_balances_identity_key", "customer_balances", ["identity_key"], unique=True)
    op.create_index("ix_customer_balances_legacy_user_id", "customer_balances", ["legacy_user_id"])
    op.create_index("ix_customer_balances_external_user_id", "customer_balances", ["external_user_id"])

    op.create_table(
        "rewards",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("points_required", sa.Integer(), server_default="50", nullable=False),
        sa.Column("discount_amount", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("discount_type", sa.String(20), server_default="fixed", nullable=False),
        sa.Column("min_order_amount", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("voucher_code", sa.String(100), nullable=True),
        sa.Column("voucher_validity_days", sa.Integer(), server_default="30", nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("times_used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "user_vouchers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("identity_key", sa.String(300), nullable=False),
        sa.Column("legacy_user_id", sa.Integer(), nullable=True),
        sa.Column("external_user_id", sa.String(255), nullable=True),
        sa.Column("reward_id", sa.Integer(), nullable=True),
        sa.Column("voucher_code", sa.String(100), nullable=False),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount_type", sa.String(20), nullable=False),
        sa.Column("min_order_amount", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("points_used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("applied_to_order_id", sa.Integer(), nullable=True),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("title", sa.String(200), nullable=True),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["reward_id"],
            ["rewards.id"],
            name="fk_user_vouchers_reward_id",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_user_vouchers_identity_key", "user_vouchers", ["identity_key"])
    op.create_index("ix_user_vouchers_legacy_user_id", "user_vouchers", ["legacy_user_id"])
    op.create_index("ix_user_vouchers_external_user_id", "user_vouchers", ["external_user_id"])
    op.create_index("ix_user_vouchers_voucher_code", "user_vouchers", ["voucher_code"])
    op.create_index("ix_user_vouchers_status", "user_vouchers", ["status"])

    op.create_table(
        "promo_calendar_slots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("reward_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("is_closed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["reward_id"],
            ["rewards.id"],
            name="fk_promo_calendar_slots_reward_id",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("day", "year", name="uq_promo_calendar_slots_day_year"),
    )
    op.create_index("ix_promo_calendar_slots_year", "promo_calendar_slots", ["year"])

    op.create_table(
        "promo_claims",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("identity_key", sa.String(300), nullable=False),
        sa.Column("legacy_user_id", sa.Integer(), nullable=True),
        sa.Column("external_user_id", sa.String(255), nullable=True),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("reward_id", sa.Integer(), nullable=True),
        sa.Column("voucher_id", sa.Integer(), nullable=True),
        sa.Column("claimed_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["reward_id"],
            ["rewards.id"],
            name="fk_promo_claims_reward_id",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["voucher_id"],
            ["user_vouchers.id"],
            name="fk_promo_claims_voucher_id",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("identity_key", "day", "year", name="uq_promo_claims_identity_day_year"),
    )
    op.create_index("ix_promo_claims_legacy_user_id", "promo_claims", ["legacy_user_id"])
    op.create_index("ix_promo_claims_external_user_id", "promo_claims", ["external_user_id"])


def downgrade() -> None:
    op.drop_table("promo_claims")
    op.drop_table("promo_calendar_slots")
    op.drop_table("user_vouchers")
    op.drop_table("rewards")
    op.drop_index("ix_customer_balances_external_user_id", table_name="customer_balances")
    op.drop_index("ix_customer_balances_legacy_user_id", table_name="customer_balances")
    op.drop_index("uq_customer_balances_identity_key", table_name="customer_balances")
    op.drop_table("customer_balances")
    op.drop_index("uq_points_transactions_earned_order", table_name="points_transactions")
    op.drop_table("points_transactions")
