"""
Loan request registry and the lender-facing marketplace.

A request is created as a draft by its borrower and becomes visible to other users
only while status == "active" and is_published is set. Everything public is looked up
by the 8-character short id, never by the row id.
"""
from __future__ import annotations

import logging
import secrets
import string
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import AssessmentRequest, LoanRequest, Profile, User, Wallet
from services.errors import Conflict, NotFound
from services.wallets import get_primary_wallet, get_wallet
from utils import row_to_dict

logger = logging.getLogger(__name__)

SHORT_ID_ALPHABET = string.ascii_lowercase + string.digits
SHORT_ID_LENGTH = 8
LOAN_STATUSES = ("draft", "active", "paused", "completed", "cancelled", "funded")

DEFAULT_LOAN_AMOUNT = 5000
DEFAULT_LOAN_DURATION = 12
DEFAULT_LOAN_PURPOSE = "Personal loan"


def generate_short_id() -> str:
    return "".join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(SHORT_ID_LENGTH))


def is_valid_short_id(value: str) -> bool:
    return len(value) == SHORT_ID_LENGTH and all(c in SHORT_ID_ALPHABET for c in value)


def amount_in_eth(amount: float) -> float:
    return round(amount / settings.usd_to_eth_rate, 6)


def loan_request_to_response(lr: LoanRequest) -> dict[str, Any]:
    out = row_to_dict(lr)
    out["amountEth"] = amount_in_eth(lr.amount)
    return out


async def _short_id_taken(session: AsyncSession, short_id: str) -> bool:
    found = await session.scalar(select(LoanRequest.id).where(LoanRequest.short_id == short_id))
    return found is not None


async def _unique_short_id(session: AsyncSession) -> str:
    short_id = generate_short_id()
    while await _short_id_taken(session, short_id):
        short_id = generate_short_id()
    return short_id


async def get_loan_request_by_short_id(session: AsyncSession, short_id: str) -> Optional[LoanRequest]:
    result = await session.execute(select(LoanRequest).where(LoanRequest.short_id == short_id))
    return result.scalar_one_or_none()


async def get_loan_request_by_id(session: AsyncSession, loan_request_id: str) -> Optional[LoanRequest]:
    result = await session.execute(select(LoanRequest).where(LoanRequest.id == loan_request_id))
    return result.scalar_one_or_none()


async def get_owned_loan_request(session: AsyncSession, user: User, short_id: str) -> LoanRequest:
    lr = await get_loan_request_by_short_id(session, short_id)
    if not lr or lr.user_id != user.id:
        raise NotFound("Loan request not found")
    return lr


def is_publicly_visible(lr: LoanRequest) -> bool:
    return lr.status == "active" and bool(lr.is_published)


async def _wallet_address(session: AsyncSession, wallet_id: Optional[str]) -> Optional[str]:
    if not wallet_id:
        return None
    return await session.scalar(select(Wallet.address).where(Wallet.id == wallet_id))


async def _display_name(session: AsyncSession, user_id: str) -> str:
    name = await session.scalar(select(Profile.display_name).where(Profile.user_id == user_id))
    return name or "Unknown"


async def create_loan_request(
    session: AsyncSession,
    user: User,
    amount: float,
    duration: int,
    purpose: str,
    note: Optional[str] = None,
    allow_assessments: bool = True,
    payout_wallet_id: Optional[str] = None,
) -> LoanRequest:
    if payout_wallet_id:
        await get_wallet(session, user, payout_wallet_id)
    lr = LoanRequest(
        id=f"loan-{uuid.uuid4().hex[:12]}",
        user_id=user.id,
        short_id=await _unique_short_id(session),
        amount=amount,
        duration=duration,
        purpose=purpose,
        note=note,
        allow_assessments=allow_assessments,
        status="draft",
        is_published=False,
        payout_wallet_id=payout_wallet_id,
        created_at=datetime.now(timezone.utc),
    )
    session.add(lr)
    await session.flush()
    logger.info("Loan request %s created by %s", lr.short_id, user.id)
    return lr


async def update_loan_request(session: AsyncSession, user: User, short_id: str, changes: dict[str, Any]) -> LoanRequest:
    """
    Apply a partial update. changes uses model attribute names; None values are ignored.
    A funded request is frozen.
    """
    lr = await get_owned_loan_request(session, user, short_id)
    changes = {k: v for k, v in changes.items() if v is not None}
    if lr.is_funded and changes:
        raise Conflict("Loan request is already funded")
    status = changes.get("status")
    if status is not None and status not in LOAN_STATUSES:
        raise Conflict(f"Invalid status: {status}")
    if changes.get("payout_wallet_id"):
        await get_wallet(session, user, changes["payout_wallet_id"])
    for key, value in changes.items():
        setattr(lr, key, value)
    lr.updated_at = datetime.now(timezone.utc)
    await session.flush()
    if status:
        logger.info("Loan request %s moved to %s", lr.short_id, status)
    return lr


async def publish_loan_request(session: AsyncSession, user: User, short_id: str) -> LoanRequest:
    return await update_loan_request(session, user, short_id, {"status": "active", "is_published": True})


async def pause_loan_request(session: AsyncSession, user: User, short_id: str) -> LoanRequest:
    return await update_loan_request(session, user, short_id, {"status": "paused", "is_published": False})


async def _assessment_statuses_by_loan(session: AsyncSession, loan_ids: list[str]) -> dict[str, Counter]:
    if not loan_ids:
        return {}
    result = await session.execute(
        select(AssessmentRequest.loan_request_id, AssessmentRequest.status)
        .where(AssessmentRequest.loan_request_id.in_(loan_ids))
    )
    counts: dict[str, Counter] = {}
    for loan_id, status in result.all():
        counts.setdefault(loan_id, Counter())[status] += 1
    return counts


async def get_own_loan_request(session: AsyncSession, user: User, short_id: str) -> dict[str, Any]:
    lr = await get_owned_loan_request(session, user, short_id)
    counts = (await _assessment_statuses_by_loan(session, [lr.id])).get(lr.id, Counter())
    out = loan_request_to_response(lr)
    out["borrowerName"] = await _display_name(session, user.id)
    out["payoutWalletAddress"] = await _wallet_address(session, lr.payout_wallet_id)
    out["assessmentCount"] = sum(counts.values())
    return out


async def list_my_loan_requests(session: AsyncSession, user: User) -> list[dict[str, Any]]:
    result = await session.execute(
        select(LoanRequest).where(LoanRequest.user_id == user.id).order_by(LoanRequest.created_at.desc())
    )
    rows = result.scalars().all()
    counts = await _assessment_statuses_by_loan(session, [lr.id for lr in rows])
    out = []
    for lr in rows:
        c = counts.get(lr.id, Counter())
        d = loan_request_to_response(lr)
        d["assessmentCount"] = sum(c.values())
        d["completedAssessments"] = c["completed"]
        d["pendingAssessments"] = c["pending"]
        d["payoutWalletAddress"] = await _wallet_address(session, lr.payout_wallet_id)
        out.append(d)
    return out


async def _latest_assessment_between(
    session: AsyncSession, lender_id: str, borrower_id: str
) -> Optional[AssessmentRequest]:
    result = await session.execute(
        select(AssessmentRequest)
        .where(AssessmentRequest.lender_id == lender_id, AssessmentRequest.borrower_id == borrower_id)
        .order_by(AssessmentRequest.requested_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _completed_assessments_for(session: AsyncSession, borrower_id: str) -> int:
    count = await session.scalar(
        select(func.count()).select_from(AssessmentRequest).where(
            AssessmentRequest.borrower_id == borrower_id, AssessmentRequest.status == "completed"
        )
    )
    return count or 0


async def _borrower_card(session: AsyncSession, viewer: User, borrower_id: str) -> dict[str, Any]:
    primary = await get_primary_wallet(session, borrower_id)
    wallets_count = await session.scalar(
        select(func.count()).select_from(Wallet).where(Wallet.user_id == borrower_id)
    )
    existing = await _latest_assessment_between(session, viewer.id, borrower_id)
    return {
        "id": borrower_id,
        "displayName": await _display_name(session, borrower_id),
        "walletsCount": wallets_count or 0,
        "humanityScore": primary.humanity_score if primary else None,
        "hasExistingAssessment": existing is not None,
        "existingAssessmentStatus": existing.status if existing else None,
        "completedAssessments": await _completed_assessments_for(session, borrower_id),
    }


async def list_public_loan_requests(session: AsyncSession, viewer: User) -> list[dict[str, Any]]:
    result = await session.execute(
        select(LoanRequest)
        .where(
            LoanRequest.status == "active",
            LoanRequest.is_published.is_(True),
            LoanRequest.user_id != viewer.id,
        )
        .order_by(LoanRequest.created_at.desc())
    )
    out = []
    for lr in result.scalars().all():
        d = loan_request_to_response(lr)
        d["borrower"] = await _borrower_card(session, viewer, lr.user_id)
        out.append(d)
    return out


async def get_visible_loan_request(session: AsyncSession, viewer: User, short_id: str) -> LoanRequest:
    """A request another user may see; the owner's own request is not part of the marketplace."""
    lr = await get_loan_request_by_short_id(session, short_id)
    if not lr or lr.user_id == viewer.id or not is_publicly_visible(lr):
        raise NotFound("Loan request not found")
    return lr


async def get_public_loan_request(session: AsyncSession, viewer: User, short_id: str) -> dict[str, Any]:
    lr = await get_visible_loan_request(session, viewer, short_id)
    card = await _borrower_card(session, viewer, lr.user_id)
    primary = await get_primary_wallet(session, lr.user_id)
    card["isHumanityVerified"] = bool(primary.is_humanity_verified) if primary else False
    existing = await _latest_assessment_between(session, viewer.id, lr.user_id)

    out = loan_request_to_response(lr)
    out["borrower"] = card
    out["existingAssessment"] = (
        {"id": existing.id, "status": existing.status, "trustScore": existing.trust_score}
        if existing
        else None
    )
    out["totalAssessments"] = card["completedAssessments"]
    out["canRequestAssessment"] = bool(lr.allow_assessments) and existing is None
    out["payoutWalletAddress"] = await _wallet_address(session, lr.payout_wallet_id)
    return out
