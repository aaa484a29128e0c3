"""
Munich Weekly Backend — Submission Schemas
===========================================

Contracts for /api/submissions.

vote_count is Optional on purpose: GET /api/submissions/mine hides the
count for submissions that are not public yet (pending / rejected).
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from munich_weekly.schemas.common import CamelModel
from munich_weekly.schemas.issue import IssueResponse
from munich_weekly.schemas.user import UserSummary


class SubmissionCreateRequest(CamelModel):
    issue_id: int = Field(description="Issue the photo is submitted to")
    description: Optional[str] = Field(default=None, description="Caption, at most 200 characters")
    is_cover: bool = Field(default=False)


class SubmissionCreateResponse(CamelModel):
    submission_id: int
    upload_url: str = Field(description="Where to POST the image file for this submission")


class SubmissionResponse(CamelModel):
    id: int
    image_url: Optional[str] = None
    description: Optional[str] = None
    status: str
    is_cover: bool = False
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    vote_count: Optional[int] = None

    image_width: Optional[int] = None
    image_height: Optional[int] = None
    aspect_ratio: Optional[float] = None

    issue: IssueResponse
    user: UserSummary
