from beanie import Document, PydanticObjectId
from pydantic import Field
from datetime import datetime
from typing import List, Optional

from app.database.models.common import Owner


class Section(Document):
    title: str = Field("", description="Section heading")
    number: int = Field(1, description="Display number of the section")
    questions: List[PydanticObjectId] = Field(default_factory=list)
    owner: Optional[Owner] = None
    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "sections"
