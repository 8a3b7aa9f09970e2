from typing import Literal, Optional

from pydantic import BaseModel, Field


class VaultOperation(BaseModel):
    action: Literal["store", "retrieve"]
    document_id: str = Field(..., alias="documentId", min_length=1)
    raw_output: Optional[str] = Field(None, alias="rawOutput")
    base64_image: Optional[str] = Field(None, alias="base64Image")

    model_config = {"populate_by_name": True}
