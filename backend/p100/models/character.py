from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Text, DateTime, JSON, func
from p100.db import Base


class CharacterColumns:
    """
    Columns shared by killers and survivors.

    Image placement is stored on the character row itself:
      - header_url / background_image_url => single image
      - artist_urls                       => gallery, in display order
      - legacy_header_urls                => [artwork, perks] pair for the old page header
    Who drew an image is recorded separately in `artworks`, keyed by URL.
    """
    id: Mapped[str] = mapped_column(String(50), primary_key=True)  # slug, e.g. 'the-trapper'
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    image_url: Mapped[str] = mapped_column(Text(), nullable=False, default="")
    background_image_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    header_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    artist_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    legacy_header_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    background_credit_name: Mapped[str | None] = mapped_column(Text(), nullable=True)
    background_credit_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Killer(CharacterColumns, Base):
    __tablename__ = "killers"
    display_order: Mapped[int | None] = mapped_column("order", Integer, nullable=True)


class Survivor(CharacterColumns, Base):
    __tablename__ = "survivors"
    display_order: Mapped[int | None] = mapped_column("order_num", Integer, nullable=True)


CHARACTER_MODELS: dict[str, type[Killer] | type[Survivor]] = {
    "killer": Killer,
    "survivor": Survivor,
}

# Column on players/submissions pointing at each character table
CHARACTER_FK_COLUMN = {
    "killer": "killer_id",
    "survivor": "survivor_id",
}
