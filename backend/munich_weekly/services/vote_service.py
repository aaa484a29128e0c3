"""
Munich Weekly Backend — Vote Service
=====================================

What:  Casting, checking and cancelling votes, plus vote counting for
       the submission listings.
Who:   /api/votes routes; SubmissionService for counts.

Identity:
    A vote belongs to the logged-in user when there is one, otherwise to
    the anonymous visitorId cookie. Uniqueness is enforced twice: an
    existence check before insert (clean 409) and the unique constraints
    (visitor_id, submission_id) / (user_id, submission_id) for races.

Eligibility, checked in this order:
    identity present → submission exists → approved/selected → voting open
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.dependencies import VoterContext
from munich_weekly.exceptions import ConflictError, DatabaseError, NotFoundError, ValidationError
from munich_weekly.models.submission import Submission
from munich_weekly.models.vote import Vote
from munich_weekly.schemas.vote import (
    VoteBatchCheckResponse,
    VoteCancelResponse,
    VoteResponse,
    VoteResultResponse,
)

logger = logging.getLogger(__name__)

NO_IDENTITY_MESSAGE = "Authentication required: either login or enable cookies for visitorId."
DUPLICATE_VOTE_MESSAGE = "You have already voted for this submission"


def parse_submission_ids(raw: Optional[str]) -> List[int]:
    """
    Parse "1,2,3" into [1, 2, 3]. Blank input gives [].

    Raises:
        ValidationError: any element is not an integer
    """
    if raw is None or not raw.strip():
        return []
    try:
        return [int(part.strip()) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationError(
            message="Invalid submission IDs format", field="submissionIds", context={"value": raw}
        )


async def count_votes(db: AsyncSession, submission_id: int) -> int:
    result = await db.execute(
        select(func.count(Vote.id)).where(Vote.submission_id == submission_id)
    )
    return int(result.scalar_one())


async def count_votes_for(db: AsyncSession, submission_ids: Iterable[int]) -> Dict[int, int]:
    """Vote count per submission id; ids without votes map to 0."""
    ids = list(dict.fromkeys(submission_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(Vote.submission_id, func.count(Vote.id))
        .where(Vote.submission_id.in_(ids))
        .group_by(Vote.submission_id)
    )
    counts = {sid: 0 for sid in ids}
    for submission_id, count in result.all():
        counts[submission_id] = int(count)
    return counts


def _identity_filter(voter: VoterContext):
    if voter.user is not None:
        return Vote.user_id == voter.user.id
    return Vote.visitor_id == voter.visitor_id


class VoteService:
    async def _load_submission(self, db: AsyncSession, submission_id: int) -> Submission:
        submission = await db.get(Submission, submission_id)
        if submission is None:
            raise NotFoundError(resource="Submission", resource_id=submission_id)
        return submission

    async def _find_vote(
        self, db: AsyncSession, voter: VoterContext, submission_id: int
    ) -> Optional[Vote]:
        result = await db.execute(
            select(Vote).where(and_(Vote.submission_id == submission_id, _identity_filter(voter)))
        )
        return result.scalars().first()

    async def cast_vote(
        self, db: AsyncSession, voter: VoterContext, submission_id: int
    ) -> VoteResultResponse:
        """
        Record one vote for an approved or selected submission.

        How:
            1. Voter must carry a user or a visitorId cookie
            2. Submission public and its issue inside the voting window
            3. Existing vote for the same identity → ConflictError; a unique
               index race is mapped to the same error
            4. Logged-in votes store user_id only, anonymous ones visitor_id

        Raises:
            ValidationError: no identity, submission not public, voting closed
            NotFoundError:   submission does not exist
            ConflictError:   already voted
        """
        if not voter.has_identity:
            raise ValidationError(message=NO_IDENTITY_MESSAGE)

        submission = await self._load_submission(db, submission_id)
        if not submission.is_public():
            raise ValidationError(
                message="Only approved submissions can be voted on",
                context={"submission_id": submission_id, "status": submission.status},
            )
        if not submission.issue.is_voting_open():
            raise ValidationError(
                message="Voting is not open at this time",
                context={"issue_id": submission.issue_id},
            )

        if await self._find_vote(db, voter, submission_id) is not None:
            raise ConflictError(message=DUPLICATE_VOTE_MESSAGE, context={"submission_id": submission_id})

        vote = Vote(
            submission_id=submission.id,
            issue_id=submission.issue_id,
            user_id=voter.user_id,
            # logged-in votes are keyed by user only
            visitor_id=voter.visitor_id if voter.user is None else None,
            ip_address=voter.ip_address,
            browser_fingerprint=voter.browser_fingerprint,
        )
        try:
            db.add(vote)
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise ConflictError(message=DUPLICATE_VOTE_MESSAGE, context={"submission_id": submission_id})
        except SQLAlchemyError as e:
            logger.error("Failed to store vote: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "cast_vote", "submission_id": submission_id})

        total = await count_votes(db, submission_id)
        logger.info(
            "Vote cast on submission %d (user=%s, visitor=%s), total=%d",
            submission_id, voter.user_id, bool(voter.visitor_id), total,
        )
        return VoteResultResponse(vote=VoteResponse.model_validate(vote), vote_count=total)

    async def has_voted(self, db: AsyncSession, voter: VoterContext, submission_id: int) -> bool:
        """Always False for a voter without identity."""
        if not voter.has_identity:
            return False
        return await self._find_vote(db, voter, submission_id) is not None

    async def check_batch(
        self, db: AsyncSession, voter: VoterContext, submission_ids: List[int]
    ) -> VoteBatchCheckResponse:
        """Voted flag for each requested id. Unknown submissions simply report False."""
        statuses = {sid: False for sid in submission_ids}
        if statuses and voter.has_identity:
            result = await db.execute(
                select(Vote.submission_id).where(
                    and_(Vote.submission_id.in_(list(statuses)), _identity_filter(voter))
                )
            )
            for submission_id in result.scalars().all():
                statuses[submission_id] = True
        return VoteBatchCheckResponse(statuses=statuses, total_checked=len(statuses))

    async def cancel_vote(
        self, db: AsyncSession, voter: VoterContext, submission_id: int
    ) -> VoteCancelResponse:
        """
        Withdraw the voter's vote while voting is open.

        Cancelling a vote that does not exist is not an error: the response
        carries success=False and the current count.

        Raises:
            ValidationError: no identity or voting closed
            NotFoundError:   submission does not exist
        """
        if not voter.has_identity:
            raise ValidationError(message=NO_IDENTITY_MESSAGE)

        submission = await self._load_submission(db, submission_id)
        if not submission.issue.is_voting_open():
            raise ValidationError(
                message="Voting is not open at this time",
                context={"issue_id": submission.issue_id},
            )

        vote = await self._find_vote(db, voter, submission_id)
        if vote is None:
            return VoteCancelResponse(success=False, vote_count=await count_votes(db, submission_id))

        await db.delete(vote)
        await db.flush()
        total = await count_votes(db, submission_id)
        logger.info("Vote cancelled on submission %d, total=%d", submission_id, total)
        return VoteCancelResponse(success=True, vote_count=total)

    async def delete_votes_for_submissions(self, db: AsyncSession, submission_ids: List[int]) -> None:
        if submission_ids:
            await db.execute(delete(Vote).where(Vote.submission_id.in_(submission_ids)))

    async def delete_votes_by_user(self, db: AsyncSession, user_id: int) -> None:
        await db.execute(delete(Vote).where(Vote.user_id == user_id))


vote_service = VoteService()
