from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20260128_0001"
down_revision = None
branch_labels = None
depends_on = None


def _character_table(name: str, order_column: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.String(length=50), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False, server_default=""),
        sa.Column("background_image_url", sa.Text(), nullable=True),
        sa.Column("header_url", sa.Text(), nullable=True),
        sa.Column("artist_urls", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("legacy_header_urls", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("background_credit_name", sa.Text(), nullable=True),
        sa.Column("background_credit_url", sa.Text(), nullable=True),
        sa.Column(order_column, sa.Integer(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )


def upgrade() -> None:
    _character_table("killers", "order")
    _character_table("survivors", "order_num")

    op.create_table(
        "artists",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("slug", sa.String(length=140), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("platform", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("platform IN ('twitter','instagram','youtube')", name="ck_artist_platform"),
    )
    op.create_index("ix_artists_slug", "artists", ["slug"])

    # Attribution only; placement lives on the character rows
    op.create_table(
        "artworks",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("artwork_url", sa.Text(), nullable=False),
        sa.Column("artist_id", sa.Uuid(), sa.ForeignKey("artists.id", ondelete="SET NULL"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("artwork_url", name="uq_artworks_artwork_url"),
    )
    op.create_index("ix_artworks_artist_id", "artworks", ["artist_id"])


def downgrade() -> None:
    op.drop_index("ix_artworks_artist_id", table_name="artworks")
    op.drop_table("artworks")
    op.drop_index("ix_artists_slug", table_name="artists")
    op.drop_table("artists")
    op.drop_table("survivors")
    op.drop_table("killers")
