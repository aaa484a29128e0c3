"""
Munich Weekly Backend — Promotion Models
=========================================

What:  Marketing page content.

    PromotionConfig   page settings: nav title, unique page URL slug,
                      description, enabled flag
    PromotionImage    ordered images shown on the page
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from munich_weekly.database import Base, BigIntPK, utcnow
from munich_weekly.models.submission import compute_aspect_ratio


class PromotionConfig(Base):
    __tablename__ = "promotion_configs"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    is_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    nav_title: Mapped[str] = mapped_column(String(50), nullable=False)
    page_url: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<PromotionConfig(id={self.id}, page_url='{self.page_url}', enabled={self.is_enabled})>"


class PromotionImage(Base):
    __tablename__ = "promotion_images"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    promotion_config_id: Mapped[int] = mapped_column(
        ForeignKey("promotion_configs.id", ondelete="CASCADE"), nullable=False
    )
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image_title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    image_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    image_width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    image_height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    aspect_ratio: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 6), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_promotion_images_config_order", "promotion_config_id", "display_order"),
    )

    def set_image_dimensions(self, width: Optional[int], height: Optional[int]) -> None:
        if width is None or height is None or width <= 0 or height <= 0:
            self.image_width = None
            self.image_height = None
            self.aspect_ratio = None
            return
        self.image_width = width
        self.image_height = height
        self.aspect_ratio = compute_aspect_ratio(width, height)
