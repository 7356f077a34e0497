from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20260128_0003"
down_revision = "20260128_0002"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "blacklisted_users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("username", name="uq_blacklisted_users_username"),
    )

def downgrade() -> None:
    op.drop_table("blacklisted_users")
