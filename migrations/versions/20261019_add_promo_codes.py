"""add promo_codes table

Revision ID: 20261019_add_promo_codes
Revises: 20261019_add_users
Create Date: 2026-10-19 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_add_promo_codes"
down_revision = "20261019_add_users"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "promo_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=False),
        sa.Column("current_uses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("free_days", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content_type_restriction", sa.String(length=32), nullable=True),
        sa.Column("level_restriction", sa.String(length=32), nullable=True),
        sa.Column("language_restriction", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "current_uses <= max_uses", name="ck_promo_codes_uses_cap"
        ),
        sa.CheckConstraint("current_uses >= 0", name="ck_promo_codes_uses_nonneg"),
        sa.CheckConstraint("free_days > 0", name="ck_promo_codes_free_days_pos"),
    )
    op.create_index("ix_promo_codes_code", "promo_codes", ["code"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_promo_codes_code", table_name="promo_codes")
    op.drop_table("promo_codes")
