from typing import Literal, Optional

from pydantic import BaseModel, Field

LoanStatus = Literal["draft", "active", "paused", "completed", "cancelled", "funded"]


class LoanRequestCreate(BaseModel):
    amount: float = Field(..., gt=0)
    duration: int = Field(..., gt=0, description="Duration in months")
    purpose: str = Field(..., min_length=1)
    note: Optional[str] = None
    allow_assessments: bool = Field(True, alias="allowAssessments")
    payout_wallet: Optional[str] = Field(None, alias="payoutWallet")

    model_config = {"populate_by_name": True}


class LoanRequestUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    duration: Optional[int] = Field(None, gt=0)
    purpose: Optional[str] = Field(None, min_length=1)
    note: Optional[str] = None
    allow_assessments: Optional[bool] = Field(None, alias="allowAssessments")
    payout_wallet: Optional[str] = Field(None, alias="payoutWallet")
    status: Optional[LoanStatus] = None
    is_published: Optional[bool] = Field(None, alias="isPublished")

    model_config = {"populate_by_name": True}


class ChainTransaction(BaseModel):
    tx_hash: str = Field(..., alias="txHash", min_length=1)

    model_config = {"populate_by_name": True}


class FundingTransaction(ChainTransaction):
    funded_by: str = Field(..., alias="fundedBy", min_length=1)
