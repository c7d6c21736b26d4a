from beanie import Document, PydanticObjectId
from pydantic import Field
from datetime import datetime


class Screening(Document):
    client: PydanticObjectId = Field(..., description="Screened client")
    status: str = Field(default="new", description="new, inprogress, submitted, approved, declined_final, ...")
    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "screenings"
