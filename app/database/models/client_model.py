from beanie import Document, PydanticObjectId
from pydantic import Field
from datetime import datetime
from typing import Optional


class Client(Document):
    first_name: str = Field(..., description="Given name of the client")
    last_name: str = Field(..., description="Family name of the client")
    branch: Optional[PydanticObjectId] = Field(None, description="Branch serving the client")
    status: str = Field(default="new", description="Client lifecycle status, synced from loan transitions")
    created_by: Optional[PydanticObjectId] = None
    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "clients"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
