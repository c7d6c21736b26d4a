from beanie import Document, PydanticObjectId
from pydantic import Field
from datetime import datetime
from enum import Enum
from typing import Optional


class TaskTypeEnum(str, Enum):
    approve = "approve"
    review = "review"


class TaskStatusEnum(str, Enum):
    pending = "pending"
    completed = "completed"


class Task(Document):
    task: str = Field(..., description="Human readable description of the action item")
    task_type: TaskTypeEnum = Field(..., description="approve or review")
    entity_ref: PydanticObjectId = Field(..., description="Entity the task is about")
    entity_type: str = Field(default="loan")
    status: TaskStatusEnum = Field(default=TaskStatusEnum.pending)
    comment: Optional[str] = ""
    created_by: Optional[PydanticObjectId] = None
    user: Optional[PydanticObjectId] = Field(None, description="Assignee, unset for branch-wide tasks")
    branch: Optional[PydanticObjectId] = None
    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "tasks"
