"""
Assessment request lifecycle.

    pending --approve--> processing --process--> completed
    pending --decline--> declined

A lender pays the fee when creating the request. Every status move is a
conditional UPDATE on the expected current status, so of two concurrent writers
exactly one wins and the other gets AlreadyProcessed. process() always finishes
the request: analysis failures fall back to a deterministic score.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from config import settings
from models import AssessmentRequest, LoanRequest, Profile, User
from schemas.analysis import TrustAssessment
from services.documents import get_documents_for_assessment
from services.errors import (
    AlreadyProcessed,
    AssessmentsDisallowed,
    InsufficientCredits,
    InvalidRequest,
    NotFound,
    TrustLendError,
)
from services.loan_requests import (
    DEFAULT_LOAN_AMOUNT,
    DEFAULT_LOAN_DURATION,
    DEFAULT_LOAN_PURPOSE,
    get_loan_request_by_id,
)
from services.profiles import debit_credits, get_profile_for_user
from services.trust_analysis import analyze_documents, fallback_assessment
from utils import row_to_dict

logger = logging.getLogger(__name__)


def assessment_to_response(row: AssessmentRequest) -> dict[str, Any]:
    return row_to_dict(row)


async def _get_assessment_row(session: AsyncSession, assessment_id: str) -> Optional[AssessmentRequest]:
    result = await session.execute(select(AssessmentRequest).where(AssessmentRequest.id == assessment_id))
    return result.scalar_one_or_none()


async def _transition(
    session: AsyncSession,
    row: AssessmentRequest,
    expected: str,
    values: dict[str, Any],
) -> AssessmentRequest:
    result = await session.execute(
        update(AssessmentRequest)
        .where(AssessmentRequest.id == row.id, AssessmentRequest.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AlreadyProcessed()
    await session.refresh(row)
    return row


async def create_assessment_request(
    session: AsyncSession,
    lender: User,
    borrower_id: str,
    loan_request_id: Optional[str] = None,
) -> AssessmentRequest:
    fee = settings.assessment_fee
    lender_profile = await get_profile_for_user(session, lender.id)
    if not lender_profile:
        raise NotFound("Lender profile not found")
    if lender_profile.credits < fee:
        raise InsufficientCredits()
    if borrower_id == lender.id:
        raise InvalidRequest("Cannot request an assessment of yourself")

    borrower_profile = await get_profile_for_user(session, borrower_id)
    if not borrower_profile:
        raise NotFound("Borrower profile not found")
    if not borrower_profile.allow_assessments:
        raise AssessmentsDisallowed()
    if loan_request_id:
        lr = await get_loan_request_by_id(session, loan_request_id)
        if not lr or lr.user_id != borrower_id:
            raise NotFound("Loan request not found")
        if not lr.allow_assessments:
            raise AssessmentsDisallowed("Loan request does not allow assessments")

    # Same transaction as the insert: a failed insert rolls the debit back
    await debit_credits(session, lender_profile, fee)
    row = AssessmentRequest(
        id=f"asr-{uuid.uuid4().hex[:12]}",
        lender_id=lender.id,
        borrower_id=borrower_id,
        loan_request_id=loan_request_id,
        status="pending",
        fee=fee,
        requested_at=datetime.now(timezone.utc),
    )
    session.add(row)
    await session.flush()
    logger.info("Assessment %s requested by %s for borrower %s", row.id, lender.id, borrower_id)
    return row


async def _borrower_owned(session: AsyncSession, borrower: User, assessment_id: str) -> AssessmentRequest:
    row = await _get_assessment_row(session, assessment_id)
    if not row or row.borrower_id != borrower.id:
        raise NotFound("Assessment request not found")
    return row


async def approve_assessment(session: AsyncSession, borrower: User, assessment_id: str) -> AssessmentRequest:
    row = await _borrower_owned(session, borrower, assessment_id)
    await _transition(session, row, "pending", {"status": "processing"})
    logger.info("Assessment %s approved", row.id)
    return row


async def decline_assessment(session: AsyncSession, borrower: User, assessment_id: str) -> AssessmentRequest:
    row = await _borrower_owned(session, borrower, assessment_id)
    await _transition(
        session, row, "pending", {"status": "declined", "declined_at": datetime.now(timezone.utc)}
    )
    logger.info("Assessment %s declined", row.id)
    return row


async def _loan_parameters(session: AsyncSession, row: AssessmentRequest) -> tuple[float, int, str]:
    if row.loan_request_id:
        lr = await get_loan_request_by_id(session, row.loan_request_id)
        if lr:
            return lr.amount, lr.duration, lr.purpose
    return DEFAULT_LOAN_AMOUNT, DEFAULT_LOAN_DURATION, DEFAULT_LOAN_PURPOSE


async def process_assessment(session: AsyncSession, user: User, assessment_id: str) -> AssessmentRequest:
    row = await _get_assessment_row(session, assessment_id)
    if not row or user.id not in (row.borrower_id, row.lender_id):
        raise NotFound("Assessment request not found")
    if row.status != "processing":
        raise AlreadyProcessed()

    documents = await get_documents_for_assessment(session, row.borrower_id)
    amount, duration, purpose = await _loan_parameters(session, row)
    try:
        result = await analyze_documents(documents, amount, duration, purpose)
    except Exception:
        logger.exception("Trust analysis crashed for assessment %s; using fallback", row.id)
        result = fallback_assessment(documents)

    # Re-validate so limits hold whatever analyze_documents returned
    result = TrustAssessment.model_validate(result.model_dump())
    await _transition(
        session,
        row,
        "processing",
        {
            "status": "completed",
            "trust_score": result.trust_score,
            "summary_bullets": result.summary_bullets,
            "risk_factors": result.risk_factors,
            "recommendations": result.recommendations,
            "completed_at": datetime.now(timezone.utc),
        },
    )
    logger.info("Assessment %s completed with trust score %d", row.id, result.trust_score)
    return row


async def process_assessment_in_background(
    assessment_id: str,
    user_id: str,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> None:
    """Run process_assessment in its own session; used after the approving request has committed."""
    if session_factory is None:
        from database import AsyncSessionLocal

        session_factory = AsyncSessionLocal
    async with session_factory() as session:
        try:
            user = await session.get(User, user_id)
            if not user:
                logger.warning("Background processing skipped: user %s not found", user_id)
                return
            await process_assessment(session, user, assessment_id)
            await session.commit()
        except TrustLendError as e:
            await session.rollback()
            logger.warning("Background processing of %s stopped: %s", assessment_id, e.message)


async def list_borrower_assessments(session: AsyncSession, borrower: User) -> list[dict[str, Any]]:
    result = await session.execute(
        select(AssessmentRequest, Profile.display_name)
        .outerjoin(Profile, Profile.user_id == AssessmentRequest.lender_id)
        .where(AssessmentRequest.borrower_id == borrower.id)
        .order_by(AssessmentRequest.requested_at.desc())
    )
    out = []
    for row, lender_name in result.all():
        d = assessment_to_response(row)
        d["lenderName"] = lender_name or "Unknown"
        out.append(d)
    return out


async def list_lender_assessments(session: AsyncSession, lender: User) -> list[dict[str, Any]]:
    result = await session.execute(
        select(AssessmentRequest, Profile.display_name, LoanRequest.amount, LoanRequest.duration)
        .outerjoin(Profile, Profile.user_id == AssessmentRequest.borrower_id)
        .outerjoin(LoanRequest, LoanRequest.id == AssessmentRequest.loan_request_id)
        .where(AssessmentRequest.lender_id == lender.id)
        .order_by(AssessmentRequest.requested_at.desc())
    )
    out = []
    for row, borrower_name, amount, duration in result.all():
        d = assessment_to_response(row)
        d["borrowerName"] = borrower_name or "Unknown"
        d["loanAmount"] = amount
        d["loanDuration"] = duration
        out.append(d)
    return out


async def get_assessment(session: AsyncSession, user: User, assessment_id: str) -> dict[str, Any]:
    lender_profile = aliased(Profile)
    borrower_profile = aliased(Profile)
    result = await session.execute(
        select(AssessmentRequest, lender_profile.display_name, borrower_profile.display_name)
        .outerjoin(lender_profile, lender_profile.user_id == AssessmentRequest.lender_id)
        .outerjoin(borrower_profile, borrower_profile.user_id == AssessmentRequest.borrower_id)
        .where(AssessmentRequest.id == assessment_id)
    )
    found = result.first()
    if not found or user.id not in (found[0].borrower_id, found[0].lender_id):
        raise NotFound("Assessment request not found")
    row, lender_name, borrower_name = found
    d = assessment_to_response(row)
    d["lenderName"] = lender_name or "Unknown"
    d["borrowerName"] = borrower_name or "Unknown"
    return d
