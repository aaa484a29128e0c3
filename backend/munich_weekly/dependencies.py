"""
Munich Weekly Backend — Request Dependencies
=============================================

What:  FastAPI dependencies that resolve who is calling.
How:   Login and token handling live in the authenticating proxy in front
       of this service. The proxy forwards the resolved user id in
       settings.identity_header; anonymous voters carry the visitorId cookie.

Resolution rules:
    header missing / not an int   → anonymous
    user id unknown               → anonymous
    user banned                   → anonymous
    otherwise                     → User row

    get_current_user   → 401 when anonymous
    require_admin      → 401 when anonymous, 403 when not an admin
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from munich_weekly.config import settings
from munich_weekly.database import get_db_session
from munich_weekly.exceptions import AuthenticationRequiredError, PermissionDeniedError
from munich_weekly.models.user import User

logger = logging.getLogger(__name__)

FINGERPRINT_HEADER = "X-Browser-Fingerprint"
MAX_VISITOR_ID_LENGTH = 64
MAX_FINGERPRINT_LENGTH = 128


async def get_current_user_optional(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    raw = request.headers.get(settings.identity_header)
    if not raw:
        return None

    try:
        user_id = int(raw.strip())
    except ValueError:
        logger.debug("Ignoring malformed %s header: %r", settings.identity_header, raw)
        return None

    user = await db.get(User, user_id)
    if user is None:
        logger.debug("Identity header names unknown user %d", user_id)
        return None
    if user.is_banned:
        logger.info("Banned user %d treated as anonymous", user_id)
        return None
    return user


async def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    if user is None:
        raise AuthenticationRequiredError()
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise PermissionDeniedError(
            message="Admin privileges required",
            context={"user_id": user.id},
        )
    return user


# ── Anonymous voter context ───────────────────────────────────────────────

def get_visitor_id(request: Request) -> Optional[str]:
    """visitorId cookie, or None when absent or blank."""
    value = request.cookies.get(settings.visitor_cookie_name)
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    return value[:MAX_VISITOR_ID_LENGTH]


def get_client_ip(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop[:45]
    if request.client:
        return request.client.host
    return None


def get_browser_fingerprint(request: Request) -> Optional[str]:
    value = request.headers.get(FINGERPRINT_HEADER)
    if not value:
        return None
    return value[:MAX_FINGERPRINT_LENGTH]


@dataclass(frozen=True)
class VoterContext:
    """Everything the vote service needs to know about the caller."""

    user: Optional[User]
    visitor_id: Optional[str]
    ip_address: Optional[str] = None
    browser_fingerprint: Optional[str] = None

    @property
    def user_id(self) -> Optional[int]:
        return self.user.id if self.user is not None else None

    @property
    def has_identity(self) -> bool:
        return self.user is not None or bool(self.visitor_id)


async def get_voter_context(
    request: Request,
    user: Optional[User] = Depends(get_current_user_optional),
) -> VoterContext:
    return VoterContext(
        user=user,
        visitor_id=get_visitor_id(request),
        ip_address=get_client_ip(request),
        browser_fingerprint=get_browser_fingerprint(request),
    )
