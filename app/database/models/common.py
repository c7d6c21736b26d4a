from typing import Literal, Optional

from beanie import PydanticObjectId
from pydantic import BaseModel, Field


class Owner(BaseModel):
    """The single context a question or section belongs to."""

    kind: Literal["form", "loan"] = Field(..., description="Owning context type")
    ref: Optional[PydanticObjectId] = Field(None, description="Identifier of the owning form or loan")
