"""
Trust-score analysis over a borrower's analysed documents.

Builds one prompt from document summaries and loan parameters, asks the hosted
chat-completion gateway for a JSON verdict, and sanitizes it into a TrustAssessment.
Never raises: any upstream or parsing failure degrades to fallback_assessment().
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, Protocol

import openai
from pydantic import ValidationError

from config import settings
from schemas.analysis import DocumentSummary, TrustAssessment
from services.errors import UpstreamAnalysisFailure, UpstreamParseFailure
from services.llm import get_trust_client

logger = logging.getLogger(__name__)

FALLBACK_SCORE_CAP = 85
FALLBACK_BASE_SCORE = 50
FALLBACK_PER_DOCUMENT = 8
FALLBACK_PER_CATEGORY = 5

ASSESSMENT_PROMPT = """
You are a financial risk assessment AI analyzing loan application documents.

LOAN APPLICATION:
- Amount: ${amount}
- Duration: {duration} months
- Purpose: {purpose}

DOCUMENT ANALYSIS RESULTS:
{documents}

ASSESSMENT REQUIREMENTS:
1. Calculate a trust score (0-100) based on:
   - Income stability and verification
   - Expense patterns and financial discipline
   - Debt obligations and payment history
   - Cash flow consistency
   - Document completeness and authenticity

2. Provide 3-5 key summary points about financial health
3. Identify 2-3 main risk factors (if any)
4. Give 1-2 recommendations for the lender

RESPONSE FORMAT (JSON only):
{{
  "trustScore": 85,
  "summaryBullets": [
    "Consistent monthly income of $4,200 verified through pay stubs",
    "Strong savings pattern with 15% income retention rate",
    "No missed payments in last 12 months based on bank statements"
  ],
  "riskFactors": [
    "High utility bills indicate potential overspending on housing",
    "Limited credit history with only 2 active accounts"
  ],
  "recommendations": [
    "Consider shorter loan term due to strong income",
    "Monitor borrower's housing cost ratio"
  ]
}}

Analyze the financial data and provide only the JSON response:"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class _Categorized(Protocol):
    category: str


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)


def build_documents_context(documents: Iterable[DocumentSummary]) -> list[dict[str, Any]]:
    return [
        {
            "filename": d.filename,
            "category": d.category,
            "type": d.document_type,
            "keyFinancialDetails": d.key_details,
            "aiSummary": d.summary,
        }
        for d in documents
    ]


def build_assessment_prompt(
    documents: list[DocumentSummary],
    loan_amount: float,
    loan_duration: int,
    loan_purpose: str,
) -> str:
    return ASSESSMENT_PROMPT.format(
        amount=_format_amount(loan_amount),
        duration=loan_duration,
        purpose=loan_purpose,
        documents=json.dumps(build_documents_context(documents), indent=2),
    )


def fallback_assessment(documents: Iterable[_Categorized]) -> TrustAssessment:
    """
    Deterministic score used whenever the model cannot be consulted or understood.
    min(85, 50 + 8 per document + 5 per distinct category).
    """
    docs = list(documents)
    categories = list(dict.fromkeys(d.category for d in docs))
    score = min(
        FALLBACK_SCORE_CAP,
        FALLBACK_BASE_SCORE + FALLBACK_PER_DOCUMENT * len(docs) + FALLBACK_PER_CATEGORY * len(categories),
    )
    return TrustAssessment(
        trust_score=score,
        summary_bullets=[
            f"{len(docs)} financial documents reviewed",
            f"{len(categories)} document categories: {', '.join(categories) or 'none'}",
            "Standard risk assessment completed",
        ],
        risk_factors=["Limited documentation provided"] if len(docs) < 2 else [],
        recommendations=["Consider additional documentation for enhanced assessment"],
    )


def parse_assessment_response(text: str) -> TrustAssessment:
    """Take the outermost {...} span of the model text and validate it."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise UpstreamParseFailure("No JSON object in model response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise UpstreamParseFailure(f"Model response is not valid JSON: {e.msg}") from e
    if not isinstance(data, dict):
        raise UpstreamParseFailure("Model response is not a JSON object")
    try:
        return TrustAssessment.model_validate(data)
    except ValidationError as e:
        raise UpstreamParseFailure(f"Model response failed validation ({e.error_count()} errors)") from e


async def _request_assessment(prompt: str) -> str:
    client = get_trust_client()
    if client is None:
        raise UpstreamAnalysisFailure("NILAI_API_KEY is not configured")
    try:
        resp = await client.chat.completions.create(
            model=settings.nilai_model,
            messages=[{"role": "user", "content": prompt}],
            temperature=settings.nilai_temperature,
            max_tokens=settings.nilai_max_tokens,
        )
    except openai.APIStatusError as e:
        raise UpstreamAnalysisFailure(f"Trust gateway error: {e.status_code}") from e
    except openai.OpenAIError as e:
        raise UpstreamAnalysisFailure(f"Trust gateway unreachable: {e}") from e
    finally:
        await client.close()
    content = resp.choices[0].message.content if resp and resp.choices else None
    if not content:
        raise UpstreamParseFailure("Empty response from trust gateway")
    return content


async def analyze_documents(
    documents: list[DocumentSummary],
    loan_amount: float,
    loan_duration: int,
    loan_purpose: str,
) -> TrustAssessment:
    prompt = build_assessment_prompt(documents, loan_amount, loan_duration, loan_purpose)
    logger.info("Requesting trust assessment for %d documents (prompt %d chars)", len(documents), len(prompt))
    try:
        raw = await _request_assessment(prompt)
        assessment = parse_assessment_response(raw)
    except (UpstreamAnalysisFailure, UpstreamParseFailure) as e:
        logger.warning("Trust analysis degraded to fallback: %s", e)
        return fallback_assessment(documents)
    logger.info("Trust assessment received: score %d", assessment.trust_score)
    return assessment
