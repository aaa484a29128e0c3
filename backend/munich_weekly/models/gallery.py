"""
Munich Weekly Backend — Gallery Models
=======================================

What:  Admin-curated public gallery.

    GalleryIssueConfig       one per issue: cover, publish flag, position
                             among published issues, title/description
    GallerySubmissionOrder   position of one 'selected' submission inside
                             a config (display_order starts at 1)
    GalleryFeaturedConfig    homepage carousel selection; at most one row
                             is active at a time

Orders are removed together with their config (FK ON DELETE CASCADE, and
the service deletes them explicitly before deleting the config).
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from munich_weekly.database import Base, BigIntPK, utcnow
from munich_weekly.models.issue import Issue
from munich_weekly.models.submission import STATUS_SELECTED, Submission

DEFAULT_FEATURED_TITLE = "Default Gallery Featured Config"
MIN_AUTOPLAY_INTERVAL = 1000
MAX_AUTOPLAY_INTERVAL = 30000


def default_config_title(issue_title: str) -> str:
    return f"Gallery Config for {issue_title}"


class GalleryIssueConfig(Base):
    __tablename__ = "gallery_issue_configs"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    issue_id: Mapped[int] = mapped_column(
        ForeignKey("issues.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    cover_image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_published: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    display_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    config_title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    config_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by_user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    issue: Mapped[Issue] = relationship(lazy="selectin")

    __table_args__ = (
        Index("idx_gallery_configs_published_order", "is_published", "display_order"),
    )

    def is_ready_for_publication(self, submission_count: int) -> bool:
        return bool(self.cover_image_url) and submission_count > 0

    def __repr__(self) -> str:
        return (
            f"<GalleryIssueConfig(id={self.id}, issue_id={self.issue_id}, "
            f"published={self.is_published})>"
        )


class GallerySubmissionOrder(Base):
    __tablename__ = "gallery_submission_orders"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    gallery_config_id: Mapped[int] = mapped_column(
        ForeignKey("gallery_issue_configs.id", ondelete="CASCADE"), nullable=False
    )
    submission_id: Mapped[int] = mapped_column(
        ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    display_order: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    submission: Mapped[Submission] = relationship(lazy="selectin")

    __table_args__ = (
        UniqueConstraint("gallery_config_id", "submission_id", name="uq_gallery_order_submission"),
        CheckConstraint("display_order > 0", name="ck_gallery_order_positive"),
        Index("idx_gallery_orders_config_order", "gallery_config_id", "display_order"),
    )

    def is_submission_valid(self) -> bool:
        return self.submission is not None and self.submission.status == STATUS_SELECTED


class GalleryFeaturedConfig(Base):
    __tablename__ = "gallery_featured_configs"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    # Parallel arrays: submission_ids[i] is shown at position display_order[i]
    submission_ids: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)
    display_order: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)

    autoplay_interval: Mapped[int] = mapped_column(
        Integer, nullable=False, default=5000, server_default=text("5000")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    config_title: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, default=DEFAULT_FEATURED_TITLE
    )
    config_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by_user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        CheckConstraint(
            f"autoplay_interval BETWEEN {MIN_AUTOPLAY_INTERVAL} AND {MAX_AUTOPLAY_INTERVAL}",
            name="ck_featured_autoplay_range",
        ),
    )

    @property
    def featured_count(self) -> int:
        return len(self.submission_ids or [])

    def contains_submission(self, submission_id: int) -> bool:
        return submission_id in (self.submission_ids or [])

    def display_order_for(self, submission_id: int) -> Optional[int]:
        ids = self.submission_ids or []
        orders = self.display_order or []
        for index, sid in enumerate(ids):
            if sid == submission_id:
                return orders[index] if index < len(orders) else None
        return None
