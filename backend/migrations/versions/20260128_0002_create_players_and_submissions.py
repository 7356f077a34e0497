from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20260128_0002"
down_revision = "20260128_0001"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "p100_players",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("killer_id", sa.String(length=50), sa.ForeignKey("killers.id", ondelete="CASCADE"), nullable=True),
        sa.Column("survivor_id", sa.String(length=50), sa.ForeignKey("survivors.id", ondelete="CASCADE"), nullable=True),
        sa.Column("p200", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("legacy", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("favorite", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("added_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("(killer_id IS NULL) <> (survivor_id IS NULL)", name="ck_player_one_character"),
        sa.CheckConstraint("priority >= 0", name="ck_player_priority_non_negative"),
    )
    op.create_index("ix_p100_players_username", "p100_players", ["username"])
    op.create_index("ix_p100_players_killer_id", "p100_players", ["killer_id"])
    op.create_index("ix_p100_players_survivor_id", "p100_players", ["survivor_id"])

    op.create_table(
        "p100_submissions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("killer_id", sa.String(length=50), sa.ForeignKey("killers.id", ondelete="CASCADE"), nullable=True),
        sa.Column("survivor_id", sa.String(length=50), sa.ForeignKey("survivors.id", ondelete="CASCADE"), nullable=True),
        sa.Column("screenshot_url", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("legacy", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("submitted_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("reviewed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(length=50), nullable=True),
        sa.CheckConstraint("(killer_id IS NULL) <> (survivor_id IS NULL)", name="ck_submission_one_character"),
        sa.CheckConstraint("status IN ('pending','approved','rejected')", name="ck_submission_status"),
    )
    op.create_index("ix_p100_submissions_username", "p100_submissions", ["username"])
    op.create_index("ix_p100_submissions_killer_id", "p100_submissions", ["killer_id"])
    op.create_index("ix_p100_submissions_survivor_id", "p100_submissions", ["survivor_id"])
    op.create_index("ix_p100_submissions_status", "p100_submissions", ["status"])

    # At most one live submission per (username, character) is only guarded at intake.
    # To make it a hard rule:
    #   CREATE UNIQUE INDEX uq_submission_live ON p100_submissions
    #     (username, coalesce(killer_id, ''), coalesce(survivor_id, ''))
    #     WHERE status IN ('pending','approved') AND NOT legacy;

def downgrade() -> None:
    op.drop_index("ix_p100_submissions_status", table_name="p100_submissions")
    op.drop_index("ix_p100_submissions_survivor_id", table_name="p100_submissions")
    op.drop_index("ix_p100_submissions_killer_id", table_name="p100_submissions")
    op.drop_index("ix_p100_submissions_username", table_name="p100_submissions")
    op.drop_table("p100_submissions")
    op.drop_index("ix_p100_players_survivor_id", table_name="p100_players")
    op.drop_index("ix_p100_players_killer_id", table_name="p100_players")
    op.drop_index("ix_p100_players_username", table_name="p100_players")
    op.drop_table("p100_players")
