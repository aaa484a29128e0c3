"""
Munich Weekly Backend — Issue Model
====================================

What:  ORM model for the `issues` table: one weekly theme with a
       submission window and a voting window.

Window rules (enforced by IssueService on create and update):
    submission_start < submission_end
    voting_start     < voting_end
    voting_start    >= submission_start

Both windows are closed intervals: a request at exactly the start or end
instant is inside the window.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from munich_weekly.database import Base, BigIntPK, as_utc, utcnow


class Issue(Base):
    __tablename__ = "issues"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    submission_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    submission_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    voting_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    voting_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_issues_submission_start", "submission_start"),
    )

    def is_submission_open(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return as_utc(self.submission_start) <= now <= as_utc(self.submission_end)

    def is_voting_open(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return as_utc(self.voting_start) <= now <= as_utc(self.voting_end)

    def __repr__(self) -> str:
        return f"<Issue(id={self.id}, title='{self.title}')>"
