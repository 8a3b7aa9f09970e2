from typing import Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["borrower", "lender", "both"]


class UserProvision(BaseModel):
    subject: str = Field(..., min_length=1)
    email: str
    display_name: str = Field(..., alias="displayName", min_length=1)
    avatar_url: Optional[str] = Field(None, alias="avatarUrl")

    model_config = {"populate_by_name": True}


class ProfileUpdate(BaseModel):
    display_name: str = Field(..., alias="displayName", min_length=1)
    role: Role
    allow_assessments: Optional[bool] = Field(None, alias="allowAssessments")

    model_config = {"populate_by_name": True}


class CreditsAdd(BaseModel):
    amount: float = Field(..., gt=0)
