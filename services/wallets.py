from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import User, Wallet
from services.errors import Conflict, InvalidRequest, NotFound
from services.humanity import parse_score, verify_score

logger = logging.getLogger(__name__)


async def list_wallets(session: AsyncSession, user: User) -> list[Wallet]:
    """Primary wallet first, then most recently connected."""
    result = await session.execute(
        select(Wallet)
        .where(Wallet.user_id == user.id)
        .order_by(Wallet.is_primary.desc(), Wallet.connected_at.desc())
    )
    return list(result.scalars().all())


async def get_wallet(session: AsyncSession, user: User, wallet_id: str) -> Wallet:
    result = await session.execute(
        select(Wallet).where(Wallet.id == wallet_id, Wallet.user_id == user.id)
    )
    wallet = result.scalar_one_or_none()
    if not wallet:
        raise NotFound("Wallet not found")
    return wallet


async def get_wallet_by_address(session: AsyncSession, user: User, address: str) -> Optional[Wallet]:
    result = await session.execute(
        select(Wallet).where(Wallet.user_id == user.id, Wallet.address == address)
    )
    return result.scalar_one_or_none()


async def get_primary_wallet(session: AsyncSession, user_id: str) -> Optional[Wallet]:
    result = await session.execute(
        select(Wallet).where(Wallet.user_id == user_id, Wallet.is_primary.is_(True))
    )
    return result.scalars().first()


async def add_wallet(session: AsyncSession, user: User, address: str, nickname: str) -> Wallet:
    if await get_wallet_by_address(session, user, address):
        raise Conflict("Wallet already connected")
    existing = await list_wallets(session, user)
    wallet = Wallet(
        id=f"wal-{uuid.uuid4().hex[:12]}",
        user_id=user.id,
        address=address,
        nickname=nickname,
        is_primary=not existing,
        connected_at=datetime.now(timezone.utc),
    )
    session.add(wallet)
    await session.flush()
    return wallet


async def set_primary(session: AsyncSession, user: User, wallet_id: str) -> Wallet:
    wallet = await get_wallet(session, user, wallet_id)
    for w in await list_wallets(session, user):
        w.is_primary = w.id == wallet.id
    await session.flush()
    return wallet


async def remove_wallet(session: AsyncSession, user: User, wallet_id: str) -> None:
    wallet = await get_wallet(session, user, wallet_id)
    others = [w for w in await list_wallets(session, user) if w.id != wallet.id]
    if wallet.is_primary and not others:
        raise InvalidRequest("Cannot remove the only primary wallet")
    await session.delete(wallet)
    if wallet.is_primary:
        # others is already ordered by most recent connection
        others[0].is_primary = True
    await session.flush()


async def update_humanity_score(
    session: AsyncSession,
    user: User,
    wallet_id: str,
    score: float,
    verified: bool,
    at: Optional[datetime] = None,
) -> Wallet:
    wallet = await get_wallet(session, user, wallet_id)
    wallet.humanity_score = score
    wallet.is_humanity_verified = verified
    wallet.last_score_update = at or datetime.now(timezone.utc)
    await session.flush()
    return wallet


async def verify_wallet_humanity(session: AsyncSession, user: User, wallet_id: str) -> Wallet:
    wallet = await get_wallet(session, user, wallet_id)
    result = await verify_score(wallet.address)
    logger.info("Humanity score for wallet %s: %s (passing=%s)", wallet.id, result["score"], result["isPassing"])
    return await update_humanity_score(
        session, user, wallet.id, parse_score(result["score"]), result["isPassing"]
    )
