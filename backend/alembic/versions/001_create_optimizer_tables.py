"""Create users, app_settings and recently_optimized tables.

Revision ID: 001
Revises:
Create Date: 2026-02-20

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    existing = set(sa.inspect(conn).get_table_names())

    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("linkedin_user_id", sa.String(255), nullable=False),
            sa.Column("access_token", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
            sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("linkedin_user_id"),
        )

    if "app_settings" not in existing:
        op.create_table(
            "app_settings",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("tenant_id", sa.String(255), nullable=False),
            sa.Column("selected_account_ids", sa.JSON(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True, server_default=sa.text("now()")),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id"),
        )

    if "recently_optimized" not in existing:
        op.create_table(
            "recently_optimized",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("tenant_id", sa.String(255), nullable=False),
            sa.Column("ad_account_id", sa.String(64), nullable=False),
            sa.Column("campaign_id", sa.String(64), nullable=False),
            sa.Column("applied_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
            sa.Column("previous_bid", sa.Numeric(12, 2), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id", "ad_account_id", "campaign_id", name="uq_recently_optimized_campaign"),
        )
        op.create_index(
            "ix_recently_optimized_account_applied_at",
            "recently_optimized",
            ["tenant_id", "ad_account_id", "applied_at"],
            unique=False,
        )


def downgrade() -> None:
    op.drop_index("ix_recently_optimized_account_applied_at", table_name="recently_optimized")
    op.drop_table("recently_optimized")
    op.drop_table("app_settings")
    op.drop_table("users")
