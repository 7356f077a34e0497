from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, DateTime, ForeignKey, CheckConstraint, Uuid, func
from p100.db import Base


class Artist(Base):
    __tablename__ = "artists"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(140), index=True, nullable=False)
    url: Mapped[str] = mapped_column(Text(), nullable=False)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)  # twitter|instagram|youtube
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("platform IN ('twitter','instagram','youtube')", name="ck_artist_platform"),
    )


class Artwork(Base):
    """Attribution for one stored image. Placement lives on the character rows."""
    __tablename__ = "artworks"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    artwork_url: Mapped[str] = mapped_column(Text(), unique=True, nullable=False)
    artist_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("artists.id", ondelete="SET NULL"), index=True, nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
