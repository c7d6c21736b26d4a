from beanie import Document, PydanticObjectId
from pydantic import Field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class LoanStatusEnum(str, Enum):
    new = "new"
    inprogress = "inprogress"
    submitted = "submitted"
    accepted = "accepted"
    rejected = "rejected"
    declined_under_review = "declined_under_review"
    loan_paid = "loan_paid"


class LoanApplication(Document):
    client: PydanticObjectId = Field(..., description="Client applying for the loan")
    created_by: Optional[PydanticObjectId] = Field(None, description="User who instantiated the application")
    branch: Optional[PydanticObjectId] = Field(None, description="Branch the application is processed in")
    status: LoanStatusEnum = Field(default=LoanStatusEnum.new, description="Current lifecycle status")
    title: str = Field(default="Loan Form")
    description: str = Field(default="")
    comment: Optional[str] = Field(default="")
    for_group: bool = Field(default=False, description="Application made for a group-linked individual")

    has_sections: bool = False
    sections: List[PydanticObjectId] = Field(default_factory=list)
    questions: List[PydanticObjectId] = Field(default_factory=list)

    layout: str = Field(default="TWO_COLUMNS")
    disclaimer: Optional[str] = ""
    signatures: List[str] = Field(default_factory=list)

    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "loans"
