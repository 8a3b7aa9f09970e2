"""
Shapes exchanged with the two model-backed clients: document vision output and
trust-score assessments. TrustAssessment sanitizes whatever the model returned,
so every code path yields an integer score in [0, 100] and bounded lists.
"""
from __future__ import annotations

import json
import math
from typing import Any

from pydantic import BaseModel, Field, field_validator

MAX_SUMMARY_BULLETS = 5
MAX_RISK_FACTORS = 3
MAX_RECOMMENDATIONS = 2


def _string_list(value: Any, limit: int) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("expected a list of strings")
    return [item if isinstance(item, str) else json.dumps(item, default=str) for item in value][:limit]


class DocumentSummary(BaseModel):
    """One stored document as handed to the trust-score prompt."""
    filename: str
    category: str
    document_type: str = Field(..., alias="documentType")
    key_details: list[str] = Field(default_factory=list, alias="keyDetails")
    summary: str
    # Accepted for parity with stored rows; never sent to the model
    raw_output: str = Field("{}", alias="rawOutput")

    model_config = {"populate_by_name": True}


class TrustAssessmentRequest(BaseModel):
    documents_data: list[DocumentSummary] = Field(..., alias="documentsData")
    loan_amount: float = Field(..., alias="loanAmount")
    loan_duration: int = Field(..., alias="loanDuration")
    loan_purpose: str = Field(..., alias="loanPurpose")

    model_config = {"populate_by_name": True}


class TrustAssessment(BaseModel):
    trust_score: int = Field(..., alias="trustScore", ge=0, le=100)
    summary_bullets: list[str] = Field(default_factory=list, alias="summaryBullets")
    risk_factors: list[str] = Field(default_factory=list, alias="riskFactors")
    recommendations: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @field_validator("trust_score", mode="before")
    @classmethod
    def _clamp_score(cls, v: Any) -> int:
        if isinstance(v, str):
            try:
                v = float(v.strip())
            except ValueError as e:
                raise ValueError("trustScore must be numeric") from e
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("trustScore must be numeric")
        if math.isnan(v) or math.isinf(v):
            raise ValueError("trustScore must be finite")
        return max(0, min(100, math.floor(v)))

    @field_validator("summary_bullets", mode="before")
    @classmethod
    def _limit_bullets(cls, v: Any) -> list[str]:
        return _string_list(v, MAX_SUMMARY_BULLETS)

    @field_validator("risk_factors", mode="before")
    @classmethod
    def _limit_risks(cls, v: Any) -> list[str]:
        return _string_list(v, MAX_RISK_FACTORS)

    @field_validator("recommendations", mode="before")
    @classmethod
    def _limit_recommendations(cls, v: Any) -> list[str]:
        return _string_list(v, MAX_RECOMMENDATIONS)

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class DocumentAnalysis(BaseModel):
    category: str
    document_type: str = Field(..., alias="documentType")
    key_details: list[str] = Field(..., alias="keyDetails")
    summary: str
    confidence: float = Field(..., ge=0, le=1)
    raw_output: str = Field(..., alias="rawOutput")

    model_config = {"populate_by_name": True}

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
