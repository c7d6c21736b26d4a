from beanie import Document, PydanticObjectId
from pydantic import Field
from datetime import datetime
from typing import Optional


class Notification(Document):
    for_user: Optional[PydanticObjectId] = Field(None, description="User the notification is addressed to")
    message: str = Field(..., description="Notification body")
    task_ref: Optional[PydanticObjectId] = None
    read: bool = False
    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "notifications"
