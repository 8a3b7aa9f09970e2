from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Document, LoanRequest, UploadHistory, User
from schemas.analysis import DocumentSummary
from services.errors import NotFound

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10


async def _require_owned_loan_request(session: AsyncSession, user: User, loan_request_id: str) -> LoanRequest:
    result = await session.execute(
        select(LoanRequest).where(LoanRequest.id == loan_request_id, LoanRequest.user_id == user.id)
    )
    lr = result.scalar_one_or_none()
    if not lr:
        raise NotFound("Loan request not found")
    return lr


def _record_history(session: AsyncSession, user: User, action: str) -> None:
    session.add(UploadHistory(
        id=f"hist-{uuid.uuid4().hex[:12]}",
        user_id=user.id,
        action=action,
        timestamp=datetime.now(timezone.utc),
    ))


async def list_documents(
    session: AsyncSession, user: User, loan_request_id: Optional[str] = None
) -> list[Document]:
    stmt = select(Document).where(Document.user_id == user.id, Document.is_deleted.is_(False))
    if loan_request_id:
        stmt = stmt.where(Document.loan_request_id == loan_request_id)
    result = await session.execute(stmt.order_by(Document.uploaded_at.desc()))
    return list(result.scalars().all())


async def list_documents_for_loan_request(session: AsyncSession, user: User, loan_request_id: str) -> list[Document]:
    await _require_owned_loan_request(session, user, loan_request_id)
    return await list_documents(session, user, loan_request_id)


async def create_document(
    session: AsyncSession,
    user: User,
    filename: str,
    category: str,
    vault_ref: Optional[str] = None,
    loan_request_id: Optional[str] = None,
    document_type: Optional[str] = None,
    key_details: Optional[list[str]] = None,
    summary: Optional[str] = None,
    confidence: Optional[float] = None,
    raw_output: Optional[str] = None,
) -> Document:
    if loan_request_id:
        await _require_owned_loan_request(session, user, loan_request_id)
    doc = Document(
        id=f"doc-{uuid.uuid4().hex[:12]}",
        user_id=user.id,
        loan_request_id=loan_request_id,
        vault_ref=vault_ref,
        filename=filename,
        category=category,
        uploaded_at=datetime.now(timezone.utc),
        is_deleted=False,
        document_type=document_type,
        key_details=key_details,
        summary=summary,
        confidence=confidence,
        raw_output=raw_output,
    )
    session.add(doc)
    suffix = " to loan request" if loan_request_id else ""
    _record_history(session, user, f"Uploaded {filename}{suffix}")
    await session.flush()
    logger.info("Document %s stored for %s (%s)", doc.id, user.id, category)
    return doc


async def delete_document(session: AsyncSession, user: User, document_id: str) -> None:
    result = await session.execute(
        select(Document).where(Document.id == document_id, Document.user_id == user.id)
    )
    doc = result.scalar_one_or_none()
    if not doc or doc.is_deleted:
        raise NotFound("Document not found")
    doc.is_deleted = True
    _record_history(session, user, f"Deleted {doc.filename}")
    await session.flush()


async def get_upload_history(session: AsyncSession, user: User) -> list[UploadHistory]:
    result = await session.execute(
        select(UploadHistory)
        .where(UploadHistory.user_id == user.id)
        .order_by(UploadHistory.timestamp.desc())
        .limit(HISTORY_LIMIT)
    )
    return list(result.scalars().all())


async def get_documents_for_assessment(session: AsyncSession, borrower_id: str) -> list[DocumentSummary]:
    """The borrower's live documents in the shape the trust-score prompt expects."""
    result = await session.execute(
        select(Document)
        .where(Document.user_id == borrower_id, Document.is_deleted.is_(False))
        .order_by(Document.uploaded_at.desc())
    )
    return [
        DocumentSummary(
            filename=d.filename,
            category=d.category,
            document_type=d.document_type or d.category,
            key_details=d.key_details or [],
            summary=d.summary or f"{d.category} document",
            raw_output=d.raw_output or "{}",
        )
        for d in result.scalars().all()
    ]
