from beanie import Document
from pydantic import Field
from datetime import datetime
from typing import Any, Dict, Optional


class AuditLog(Document):
    event: str = Field(..., description="Event tracked (e.g. 'loan_create', 'loan_update')")
    actor: Optional[str] = Field(None, description="Identifier of the actor who performed the action")
    acted: Optional[str] = Field(None, description="Identifier of the entity acted upon")
    message: Optional[str] = Field(None, description="Human readable summary")
    diff: Optional[Dict[str, Any]] = Field(None, description="Patch applied, when the event is an update")
    status: str = Field("successful", description="Result status: 'successful' or 'failed'")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the action occurred")

    class Settings:
        name = "audit_logs"
