from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class WalletCreate(BaseModel):
    address: str = Field(..., min_length=1)
    nickname: str = Field(..., min_length=1)


class HumanityScoreUpdate(BaseModel):
    humanity_score: float = Field(..., alias="humanityScore", ge=0)
    is_humanity_verified: bool = Field(..., alias="isHumanityVerified")
    last_score_update: Optional[datetime] = Field(None, alias="lastScoreUpdate")

    model_config = {"populate_by_name": True}


class VerifyScoreRequest(BaseModel):
    address: str = Field(..., min_length=1)


class HumanityScoreResult(BaseModel):
    verified: bool
    score: str
    is_passing: bool = Field(..., alias="isPassing")
    raw_data: dict[str, Any] = Field(default_factory=dict, alias="rawData")

    model_config = {"populate_by_name": True}
