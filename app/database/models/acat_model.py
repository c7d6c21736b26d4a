from beanie import Document, PydanticObjectId
from pydantic import Field
from datetime import datetime


class AssetCapture(Document):
    """Client asset-capture (ACAT) record of one loan cycle."""

    client: PydanticObjectId = Field(..., description="Client whose assets were captured")
    status: str = Field(default="new", description="new, inprogress, submitted, resubmitted, authorized, ...")
    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "acats"
