from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, CheckConstraint, Uuid, func
from p100.db import Base


class Submission(Base):
    __tablename__ = "p100_submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(50), index=True, nullable=False)

    killer_id: Mapped[str | None] = mapped_column(
        String(50), ForeignKey("killers.id", ondelete="CASCADE"), index=True, nullable=True
    )
    survivor_id: Mapped[str | None] = mapped_column(
        String(50), ForeignKey("survivors.id", ondelete="CASCADE"), index=True, nullable=True
    )

    screenshot_url: Mapped[str] = mapped_column(Text(), nullable=False, default="")  # '' once deleted
    status: Mapped[str] = mapped_column(String(16), index=True, nullable=False, default="pending")  # pending|approved|rejected
    rejection_reason: Mapped[str | None] = mapped_column(Text(), nullable=True)
    comment: Mapped[str | None] = mapped_column(Text(), nullable=True)
    legacy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # NOTE: at most one pending/approved non-legacy row per (username, character) is only
    # checked at intake; see migration 0002 for the partial unique index we do not apply.
    __table_args__ = (
        CheckConstraint(
            "(killer_id IS NULL) <> (survivor_id IS NULL)", name="ck_submission_one_character"
        ),
        CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_submission_status"),
    )

    @property
    def character_type(self) -> str:
        return "killer" if self.killer_id else "survivor"

    @property
    def character_id(self) -> str:
        return self.killer_id or self.survivor_id
