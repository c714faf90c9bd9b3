"""create users table with promo grant columns

Revision ID: 20261019_add_users
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_add_users"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("promo_code_used", sa.String(length=64), nullable=True),
        sa.Column(
            "free_trial_days", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("trial_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("promo_content_restriction", sa.String(length=32), nullable=True),
        sa.Column("promo_level_restriction", sa.String(length=32), nullable=True),
        sa.Column("promo_language_restriction", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("users")
