from beanie import Document, PydanticObjectId
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import List, Optional


class PermissionGrant(BaseModel):
    module: str = Field(..., description="Module the grant applies to, e.g. 'LOAN'")
    operation: str = Field(..., description="VIEW, VIEW_ALL, UPDATE or AUTHORIZE")


class User(Document):
    email: EmailStr = Field(..., description="Email address of the user")
    full_name: str = Field(..., description="Full name of the user")
    realm: str = Field(default="user", description="'super' users hold every capability")
    branch: Optional[PydanticObjectId] = None
    phone_number: Optional[str] = None
    permissions: List[PermissionGrant] = Field(default_factory=list)
    is_active: bool = Field(default=True, description="Indicates if the user account is active")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Timestamp when the user was created")

    class Settings:
        name = "users"
