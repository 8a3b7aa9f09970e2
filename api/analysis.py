"""
Stateless analysis endpoints: document vision, trust score, humanity score.
"""
import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from schemas.analysis import TrustAssessmentRequest
from schemas.document import AnalyzeDocumentRequest
from schemas.wallet import VerifyScoreRequest
from services.document_vision import UPLOAD_FALLBACK, analyze_document_image
from services.errors import InvalidRequest, UpstreamAnalysisFailure
from services.humanity import verify_score as lookup_humanity_score
from services.trust_analysis import analyze_documents

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analysis/document")
async def analyze_document(body: AnalyzeDocumentRequest):
    if not body.image:
        raise InvalidRequest("No image provided")
    try:
        analysis = await analyze_document_image(body.image, body.filename)
    except UpstreamAnalysisFailure as e:
        logger.warning("Document analysis failed for %s: %s", body.filename, e.message)
        return JSONResponse(status_code=502, content={"error": e.message, "fallback": UPLOAD_FALLBACK})
    return analysis.to_response()


@router.post("/analysis/trust-score")
async def trust_score(body: TrustAssessmentRequest):
    result = await analyze_documents(
        body.documents_data, body.loan_amount, body.loan_duration, body.loan_purpose
    )
    return result.to_response()


@router.post("/verify-score")
async def verify_score(body: VerifyScoreRequest):
    return await lookup_humanity_score(body.address)
