import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user
from database import get_db
from models import Document, UploadHistory, User
from schemas.document import DocumentCreate, DocumentUpload
from services import documents
from services.document_vision import UPLOAD_FALLBACK, analyze_document_image
from services.errors import InvalidRequest, UpstreamAnalysisFailure
from utils import iso, row_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


def _document_to_response(doc: Document) -> dict[str, Any]:
    return row_to_dict(doc, exclude=("is_deleted",))


def _history_to_response(h: UploadHistory) -> dict[str, Any]:
    return {"id": h.id, "action": h.action, "timestamp": iso(h.timestamp)}


@router.get("")
async def list_documents(
    loan_request_id: Optional[str] = Query(None, alias="loanRequestId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if loan_request_id:
        docs = await documents.list_documents_for_loan_request(db, user, loan_request_id)
    else:
        docs = await documents.list_documents(db, user)
    return [_document_to_response(d) for d in docs]


@router.post("", status_code=201)
async def create_document(
    body: DocumentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    doc = await documents.create_document(db, user, **body.model_dump())
    return _document_to_response(doc)


@router.post("/upload", status_code=201)
async def upload_document(
    body: DocumentUpload,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Analyze the image with the vision model, then store the result."""
    if not body.image:
        raise InvalidRequest("No image provided")
    try:
        analysis = await analyze_document_image(body.image, body.filename)
    except UpstreamAnalysisFailure as e:
        logger.warning("Upload analysis failed for %s: %s", body.filename, e.message)
        return JSONResponse(status_code=502, content={"error": e.message, "fallback": UPLOAD_FALLBACK})
    doc = await documents.create_document(
        db,
        user,
        filename=body.filename,
        category=analysis.category,
        vault_ref=body.vault_ref,
        loan_request_id=body.loan_request_id,
        document_type=analysis.document_type,
        key_details=analysis.key_details,
        summary=analysis.summary,
        confidence=analysis.confidence,
        raw_output=analysis.raw_output,
    )
    return _document_to_response(doc)


@router.get("/history")
async def upload_history(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return [_history_to_response(h) for h in await documents.get_upload_history(db, user)]


@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await documents.delete_document(db, user, document_id)
