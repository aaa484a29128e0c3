"""
Munich Weekly Backend — Vote Routes
====================================

Votes are keyed by the logged-in user when present, otherwise by the
visitorId cookie set by the frontend.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.database import get_db_session
from munich_weekly.dependencies import VoterContext, get_voter_context
from munich_weekly.schemas.common import ErrorResponse
from munich_weekly.schemas.vote import (
    VoteBatchCheckResponse,
    VoteCancelResponse,
    VoteCheckResponse,
    VoteResultResponse,
)
from munich_weekly.services.vote_service import parse_submission_ids, vote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/votes", tags=["Votes"])


@router.post(
    "",
    response_model=VoteResultResponse,
    responses={
        400: {"description": "No identity, not votable, or voting closed", "model": ErrorResponse},
        404: {"description": "Submission not found", "model": ErrorResponse},
        409: {"description": "Already voted", "model": ErrorResponse},
    },
    summary="Vote for a submission",
)
async def cast_vote(
    submission_id: int = Query(..., alias="submissionId"),
    voter: VoterContext = Depends(get_voter_context),
    db: AsyncSession = Depends(get_db_session),
) -> VoteResultResponse:
    return await vote_service.cast_vote(db, voter, submission_id)


@router.get("/check", response_model=VoteCheckResponse, summary="Has the caller voted?")
async def check_vote(
    submission_id: int = Query(..., alias="submissionId"),
    voter: VoterContext = Depends(get_voter_context),
    db: AsyncSession = Depends(get_db_session),
) -> VoteCheckResponse:
    return VoteCheckResponse(voted=await vote_service.has_voted(db, voter, submission_id))


@router.get(
    "/check-batch",
    response_model=VoteBatchCheckResponse,
    responses={400: {"description": "Malformed id list", "model": ErrorResponse}},
    summary="Voted flags for several submissions",
)
async def check_votes_batch(
    submission_ids: Optional[str] = Query(default=None, alias="submissionIds", description="Comma-separated ids"),
    voter: VoterContext = Depends(get_voter_context),
    db: AsyncSession = Depends(get_db_session),
) -> VoteBatchCheckResponse:
    ids = parse_submission_ids(submission_ids)
    return await vote_service.check_batch(db, voter, ids)


@router.delete(
    "",
    response_model=VoteCancelResponse,
    responses={
        400: {"description": "No identity or voting closed", "model": ErrorResponse},
        404: {"description": "Submission not found", "model": ErrorResponse},
    },
    summary="Withdraw a vote",
)
async def cancel_vote(
    submission_id: int = Query(..., alias="submissionId"),
    voter: VoterContext = Depends(get_voter_context),
    db: AsyncSession = Depends(get_db_session),
) -> VoteCancelResponse:
    return await vote_service.cancel_vote(db, voter, submission_id)
