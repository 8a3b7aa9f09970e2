from typing import Optional

from pydantic import BaseModel, Field


class AssessmentCreate(BaseModel):
    borrower_id: str = Field(..., alias="borrowerId")
    loan_request_id: Optional[str] = Field(None, alias="loanRequestId")

    model_config = {"populate_by_name": True}
