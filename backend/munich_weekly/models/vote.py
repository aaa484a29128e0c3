"""
Munich Weekly Backend — Vote Model
===================================

What:  ORM model for the `votes` table.

A vote is cast either by a logged-in user (user_id) or by an anonymous
visitor identified by a cookie (visitor_id). One vote per identity per
submission: the service checks before insert and the unique constraints
below back that check up under concurrency.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from munich_weekly.database import Base, BigIntPK, utcnow


class Vote(Base):
    __tablename__ = "votes"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    submission_id: Mapped[int] = mapped_column(
        ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    issue_id: Mapped[int] = mapped_column(
        ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )

    visitor_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    browser_fingerprint: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)

    voted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("visitor_id", "submission_id", name="uq_votes_visitor_submission"),
        UniqueConstraint("user_id", "submission_id", name="uq_votes_user_submission"),
        Index("idx_votes_issue", "issue_id"),
    )

    def __repr__(self) -> str:
        who = f"user={self.user_id}" if self.user_id is not None else f"visitor={self.visitor_id}"
        return f"<Vote(id={self.id}, submission_id={self.submission_id}, {who})>"
