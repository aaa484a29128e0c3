"""
Munich Weekly Backend — Vote Schemas
=====================================
"""

from datetime import datetime
from typing import Dict, Optional

from munich_weekly.schemas.common import CamelModel


class VoteResponse(CamelModel):
    id: int
    submission_id: int
    issue_id: int
    user_id: Optional[int] = None
    visitor_id: Optional[str] = None
    voted_at: datetime


class VoteResultResponse(CamelModel):
    vote: VoteResponse
    vote_count: int


class VoteCheckResponse(CamelModel):
    voted: bool


class VoteBatchCheckResponse(CamelModel):
    statuses: Dict[int, bool]
    total_checked: int


class VoteCancelResponse(CamelModel):
    success: bool
    vote_count: int
