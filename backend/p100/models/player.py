from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, DateTime, ForeignKey, CheckConstraint, Uuid, func
from p100.db import Base


class Player(Base):
    """One P100 achievement: a username on exactly one killer or survivor."""
    __tablename__ = "p100_players"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(50), index=True, nullable=False)

    killer_id: Mapped[str | None] = mapped_column(
        String(50), ForeignKey("killers.id", ondelete="CASCADE"), index=True, nullable=True
    )
    survivor_id: Mapped[str | None] = mapped_column(
        String(50), ForeignKey("survivors.id", ondelete="CASCADE"), index=True, nullable=True
    )

    p200: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    legacy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # higher shows first

    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(killer_id IS NULL) <> (survivor_id IS NULL)", name="ck_player_one_character"
        ),
        CheckConstraint("priority >= 0", name="ck_player_priority_non_negative"),
    )

    @property
    def character_type(self) -> str:
        return "killer" if self.killer_id else "survivor"

    @property
    def character_id(self) -> str:
        return self.killer_id or self.survivor_id
