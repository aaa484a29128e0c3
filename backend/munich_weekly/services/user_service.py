"""
Munich Weekly Backend — User Service
=====================================

Profile reads/updates, account deletion and the admin ban switch.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.exceptions import DatabaseError, NotFoundError, ValidationError
from munich_weekly.models.submission import Submission
from munich_weekly.models.user import User
from munich_weekly.schemas.user import UserAdminResponse, UserProfileResponse, UserUpdateRequest
from munich_weekly.services.submission_service import submission_service
from munich_weekly.services.vote_service import vote_service

logger = logging.getLogger(__name__)


class UserService:
    async def list_users(self, db: AsyncSession) -> List[UserAdminResponse]:
        result = await db.execute(select(User).order_by(User.id.asc()))
        return [UserAdminResponse.model_validate(u) for u in result.scalars().all()]

    def get_profile(self, user: User) -> UserProfileResponse:
        return UserProfileResponse.model_validate(user)

    async def update_profile(
        self, db: AsyncSession, user: User, request: UserUpdateRequest
    ) -> UserProfileResponse:
        changes = request.model_dump(exclude_unset=True)
        if "nickname" in changes:
            if changes["nickname"] is None or not changes["nickname"].strip():
                raise ValidationError(message="Nickname cannot be blank", field="nickname")
            user.nickname = changes["nickname"].strip()
        if "avatar_url" in changes:
            user.avatar_url = changes["avatar_url"]
        await db.flush()
        logger.info("User %d updated profile fields %s", user.id, sorted(changes))
        return UserProfileResponse.model_validate(user)

    async def delete_account(self, db: AsyncSession, user: User) -> None:
        """
        Remove a user and everything they own.

        Order: the user's submissions (with votes on them, gallery orders
        and files), then the votes the user cast, then the account.
        """
        result = await db.execute(select(Submission).where(Submission.user_id == user.id))
        submissions = list(result.scalars().all())
        await submission_service.delete_entities(db, submissions)

        try:
            await vote_service.delete_votes_by_user(db, user.id)
            await db.delete(user)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete user %d: %s", user.id, str(e), exc_info=True)
            raise DatabaseError(context={"operation": "delete_account", "user_id": user.id})

        logger.info("User %d deleted with %d submissions", user.id, len(submissions))

    async def set_banned(self, db: AsyncSession, user_id: int, banned: bool) -> UserAdminResponse:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="User", resource_id=user_id)
        user.is_banned = banned
        await db.flush()
        logger.info("User %d banned=%s", user_id, banned)
        return UserAdminResponse.model_validate(user)


user_service = UserService()
