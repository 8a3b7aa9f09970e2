from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import Document, Profile, User, Wallet
from services.errors import InsufficientCredits, NotFound

logger = logging.getLogger(__name__)

BORROWER_ROLES = ("borrower", "both")
LENDER_ROLES = ("lender", "both")


async def get_user_by_subject(session: AsyncSession, subject: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.subject == subject))
    return result.scalar_one_or_none()


async def get_profile_for_user(session: AsyncSession, user_id: str) -> Optional[Profile]:
    result = await session.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalar_one_or_none()


async def _require_profile(session: AsyncSession, user_id: str) -> Profile:
    profile = await get_profile_for_user(session, user_id)
    if not profile:
        raise NotFound("Profile not found")
    return profile


async def provision_user(
    session: AsyncSession,
    subject: str,
    email: str,
    display_name: str,
    avatar_url: Optional[str] = None,
) -> User:
    """
    Create the user and its profile on first sign-in. Calling again for the same
    subject returns the existing user untouched.
    """
    user = await get_user_by_subject(session, subject)
    if user:
        return user

    user = User(id=f"usr-{uuid.uuid4().hex[:12]}", subject=subject, email=email)
    session.add(user)
    await session.flush()
    session.add(Profile(
        id=f"prf-{uuid.uuid4().hex[:12]}",
        user_id=user.id,
        display_name=display_name,
        avatar_url=avatar_url,
        role="both",
        allow_assessments=True,
        credits=settings.starting_credits,
    ))
    await session.flush()
    logger.info("Provisioned user %s with %s starting credits", user.id, settings.starting_credits)
    return user


async def get_profile_overview(session: AsyncSession, user: User) -> dict[str, Any]:
    profile = await _require_profile(session, user.id)
    wallets_count = await session.scalar(
        select(func.count()).select_from(Wallet).where(Wallet.user_id == user.id)
    )
    documents_count = await session.scalar(
        select(func.count()).select_from(Document).where(
            Document.user_id == user.id, Document.is_deleted.is_(False)
        )
    )
    return {
        "id": profile.id,
        "userId": user.id,
        "email": user.email,
        "displayName": profile.display_name,
        "avatarUrl": profile.avatar_url,
        "role": profile.role,
        "allowAssessments": profile.allow_assessments,
        "credits": profile.credits,
        "walletsCount": wallets_count or 0,
        "documentsCount": documents_count or 0,
        "isBorrower": profile.role in BORROWER_ROLES,
        "isLender": profile.role in LENDER_ROLES,
    }


async def update_profile(
    session: AsyncSession,
    user: User,
    display_name: str,
    role: str,
    allow_assessments: Optional[bool] = None,
) -> Profile:
    profile = await _require_profile(session, user.id)
    profile.display_name = display_name
    profile.role = role
    if allow_assessments is not None:
        profile.allow_assessments = allow_assessments
    await session.flush()
    return profile


async def get_credits(session: AsyncSession, user: User) -> float:
    profile = await get_profile_for_user(session, user.id)
    return profile.credits if profile else 0


async def add_credits(session: AsyncSession, user: User, amount: float) -> float:
    profile = await _require_profile(session, user.id)
    await session.execute(
        update(Profile)
        .where(Profile.id == profile.id)
        .values(credits=Profile.credits + amount)
        .execution_options(synchronize_session=False)
    )
    await session.refresh(profile)
    return profile.credits


async def debit_credits(session: AsyncSession, profile: Profile, fee: float) -> float:
    """
    Take fee from the balance in one conditional UPDATE. Concurrent debits cannot
    both pass the balance check; the loser sees zero rows and gets InsufficientCredits.
    """
    result = await session.execute(
        update(Profile)
        .where(Profile.id == profile.id, Profile.credits >= fee)
        .values(credits=Profile.credits - fee)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InsufficientCredits()
    await session.refresh(profile)
    return profile.credits
