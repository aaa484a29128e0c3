"""
Munich Weekly Backend — Issue Schemas
======================================

Request and response contracts for /api/issues. Window ordering rules are
business rules and live in IssueService, so that create and update share
one implementation and one set of messages.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from munich_weekly.schemas.common import CamelModel


class IssueCreateRequest(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    submission_start: datetime
    submission_end: datetime
    voting_start: datetime
    voting_end: datetime


class IssueUpdateRequest(CamelModel):
    """Partial update: omitted fields keep their stored value, as do null windows."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    submission_start: Optional[datetime] = None
    submission_end: Optional[datetime] = None
    voting_start: Optional[datetime] = None
    voting_end: Optional[datetime] = None


class IssueResponse(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    submission_start: datetime
    submission_end: datetime
    voting_start: datetime
    voting_end: datetime
    created_at: Optional[datetime] = None
