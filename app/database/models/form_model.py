from beanie import Document, PydanticObjectId
from pydantic import Field
from datetime import datetime
from typing import List, Optional


class FormTemplate(Document):
    type: str = Field(..., description="Template kind, e.g. 'Loan Application'")
    title: str = Field(..., description="Template title")
    subtitle: Optional[str] = ""
    purpose: Optional[str] = ""
    layout: str = Field("TWO_COLUMNS", description="Rendering layout copied onto instances")
    disclaimer: Optional[str] = ""
    signatures: List[str] = Field(default_factory=list)
    has_sections: bool = False
    questions: List[PydanticObjectId] = Field(default_factory=list)
    sections: List[PydanticObjectId] = Field(default_factory=list)
    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "forms"
