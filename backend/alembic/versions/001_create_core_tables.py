"""Create core tables

Revision ID: 001
Revises: None
Create Date: 2026-01-12 00:00:00.000000+00:00

What:  Users, issues, submissions, votes, gallery configuration and the
       promotion page.

Rollback: downgrade() drops every table in reverse dependency order.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("nickname", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column(
            "role",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'user'"),
            comment="user | admin",
        ),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "issues",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("submission_start", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("submission_end", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("voting_start", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("voting_end", sa.TIMESTAMP(timezone=True), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_issues_submission_start", "issues", ["submission_start"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("issue_id", sa.BigInteger(), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("description", sa.String(200), nullable=True),
        sa.Column("is_cover", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment="pending | approved | rejected | selected",
        ),
        _timestamp("submitted_at"),
        _timestamp("reviewed_at", nullable=True),
        sa.Column("image_width", sa.Integer(), nullable=True),
        sa.Column("image_height", sa.Integer(), nullable=True),
        sa.Column("aspect_ratio", sa.Numeric(10, 6), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["issue_id"], ["issues.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_submissions_issue_status", "submissions", ["issue_id", "status"])
    op.create_index("idx_submissions_user_issue", "submissions", ["user_id", "issue_id"])

    op.create_table(
        "votes",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("submission_id", sa.BigInteger(), nullable=False),
        sa.Column("issue_id", sa.BigInteger(), nullable=False),
        sa.Column("visitor_id", sa.String(64), nullable=True),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("browser_fingerprint", sa.String(128), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        _timestamp("voted_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["submission_id"], ["submissions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["issue_id"], ["issues.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("visitor_id", "submission_id", name="uq_votes_visitor_submission"),
        sa.UniqueConstraint("user_id", "submission_id", name="uq_votes_user_submission"),
    )
    op.create_index("idx_votes_issue", "votes", ["issue_id"])

    op.create_table(
        "gallery_issue_configs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("issue_id", sa.BigInteger(), nullable=False),
        sa.Column("cover_image_url", sa.String(500), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("config_title", sa.String(200), nullable=True),
        sa.Column("config_description", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.BigInteger(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["issue_id"], ["issues.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("issue_id", name="uq_gallery_configs_issue"),
    )
    op.create_index(
        "idx_gallery_configs_published_order",
        "gallery_issue_configs",
        ["is_published", "display_order"],
    )

    op.create_table(
        "gallery_submission_orders",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("gallery_config_id", sa.BigInteger(), nullable=False),
        sa.Column("submission_id", sa.BigInteger(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["gallery_config_id"], ["gallery_issue_configs.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["submission_id"], ["submissions.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "gallery_config_id", "submission_id", name="uq_gallery_order_submission"
        ),
        sa.CheckConstraint("display_order > 0", name="ck_gallery_order_positive"),
    )
    op.create_index(
        "idx_gallery_orders_config_order",
        "gallery_submission_orders",
        ["gallery_config_id", "display_order"],
    )

    op.create_table(
        "gallery_featured_configs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("submission_ids", sa.JSON(), nullable=False),
        sa.Column("display_order", sa.JSON(), nullable=False),
        sa.Column(
            "autoplay_interval", sa.Integer(), nullable=False, server_default=sa.text("5000")
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("config_title", sa.String(100), nullable=True),
        sa.Column("config_description", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.BigInteger(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "autoplay_interval BETWEEN 1000 AND 30000", name="ck_featured_autoplay_range"
        ),
    )

    op.create_table(
        "promotion_configs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("nav_title", sa.String(50), nullable=False),
        sa.Column("page_url", sa.String(100), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("page_url", name="uq_promotion_configs_page_url"),
    )

    op.create_table(
        "promotion_images",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("promotion_config_id", sa.BigInteger(), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("image_title", sa.String(200), nullable=True),
        sa.Column("image_description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("image_width", sa.Integer(), nullable=True),
        sa.Column("image_height", sa.Integer(), nullable=True),
        sa.Column("aspect_ratio", sa.Numeric(10, 6), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["promotion_config_id"], ["promotion_configs.id"], ondelete="CASCADE"
        ),
    )
    op.create_index(
        "idx_promotion_images_config_order",
        "promotion_images",
        ["promotion_config_id", "display_order"],
    )


def downgrade() -> None:
    """Drop every table. Destructive: all data is lost."""
    op.drop_index("idx_promotion_images_config_order", table_name="promotion_images")
    op.drop_table("promotion_images")
    op.drop_table("promotion_configs")
    op.drop_table("gallery_featured_configs")
    op.drop_index("idx_gallery_orders_config_order", table_name="gallery_submission_orders")
    op.drop_table("gallery_submission_orders")
    op.drop_index("idx_gallery_configs_published_order", table_name="gallery_issue_configs")
    op.drop_table("gallery_issue_configs")
    op.drop_index("idx_votes_issue", table_name="votes")
    op.drop_table("votes")
    op.drop_index("idx_submissions_user_issue", table_name="submissions")
    op.drop_index("idx_submissions_issue_status", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("idx_issues_submission_start", table_name="issues")
    op.drop_table("issues")
    op.drop_table("users")
