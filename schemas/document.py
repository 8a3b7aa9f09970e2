from typing import Optional

from pydantic import BaseModel, Field


class DocumentCreate(BaseModel):
    loan_request_id: Optional[str] = Field(None, alias="loanRequestId")
    vault_ref: Optional[str] = Field(None, alias="vaultRef")
    filename: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    document_type: Optional[str] = Field(None, alias="documentType")
    key_details: Optional[list[str]] = Field(None, alias="keyDetails")
    summary: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0, le=1)
    raw_output: Optional[str] = Field(None, alias="rawOutput")

    model_config = {"populate_by_name": True}


class AnalyzeDocumentRequest(BaseModel):
    image: str = Field("", description="Base64-encoded image")
    filename: str = "document"


class DocumentUpload(AnalyzeDocumentRequest):
    """Analyze an image with the vision model and store the result in one call."""
    loan_request_id: Optional[str] = Field(None, alias="loanRequestId")
    vault_ref: Optional[str] = Field(None, alias="vaultRef")

    model_config = {"populate_by_name": True}
