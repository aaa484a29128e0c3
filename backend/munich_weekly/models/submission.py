"""
Munich Weekly Backend — Submission Model
=========================================

What:  ORM model for the `submissions` table: one photo entry by one user
       for one issue.

Lifecycle:
    1. Created as 'pending' (no image yet; image_url is NULL)
    2. Image uploaded → image_url and dimensions filled in
    3. Admin review → 'approved' | 'rejected'
    4. Admin picks winners → 'selected'

Only 'approved' and 'selected' submissions are public: they are listed per
issue, can receive votes and take part in the masonry layout.

Dimensions:
    image_width / image_height are stored at upload time so the layout
    service does not have to re-read images. aspect_ratio = width / height,
    rounded half-up to 6 decimals; the three columns are set or cleared
    together.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from munich_weekly.database import Base, BigIntPK, utcnow
from munich_weekly.models.issue import Issue
from munich_weekly.models.user import User

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_SELECTED = "selected"

ALL_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_SELECTED)
PUBLIC_STATUSES = (STATUS_APPROVED, STATUS_SELECTED)

# 16:9 and wider counts as a wide image
WIDE_IMAGE_THRESHOLD = 16.0 / 9.0

_ASPECT_QUANTUM = Decimal("0.000001")


def compute_aspect_ratio(width: int, height: int) -> Decimal:
    return (Decimal(width) / Decimal(height)).quantize(_ASPECT_QUANTUM, rounding=ROUND_HALF_UP)


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    issue_id: Mapped[int] = mapped_column(
        ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )

    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    is_cover: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_PENDING,
        server_default=text("'pending'"),
    )

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    image_width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    image_height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    aspect_ratio: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 6), nullable=True)

    # Many-to-one associations are eager (selectin): async sessions cannot
    # lazy-load on attribute access.
    user: Mapped[User] = relationship(lazy="selectin")
    issue: Mapped[Issue] = relationship(lazy="selectin")

    __table_args__ = (
        Index("idx_submissions_issue_status", "issue_id", "status"),
        Index("idx_submissions_user_issue", "user_id", "issue_id"),
    )

    # ── Dimension helpers ─────────────────────────────────────────────────

    def set_image_dimensions(self, width: Optional[int], height: Optional[int]) -> None:
        """
        Store width/height and derive aspect_ratio.

        None for either value clears all three fields.

        Raises:
            ValueError: width or height is not positive
        """
        if width is None or height is None:
            self.image_width = None
            self.image_height = None
            self.aspect_ratio = None
            return
        if width <= 0 or height <= 0:
            raise ValueError("Image dimensions must be positive")
        self.image_width = width
        self.image_height = height
        self.aspect_ratio = compute_aspect_ratio(width, height)

    def has_dimension_data(self) -> bool:
        return (
            self.image_width is not None
            and self.image_height is not None
            and self.aspect_ratio is not None
        )

    def is_wide_image(self) -> bool:
        return self.aspect_ratio is not None and float(self.aspect_ratio) >= WIDE_IMAGE_THRESHOLD

    def is_public(self) -> bool:
        return self.status in PUBLIC_STATUSES

    def __repr__(self) -> str:
        return f"<Submission(id={self.id}, issue_id={self.issue_id}, status='{self.status}')>"
