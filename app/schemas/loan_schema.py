from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Union

from app.database.models.loan_application_model import LoanStatusEnum
from app.database.models.question_model import QuestionTypeEnum, ValidationFactorEnum


class LoanCreateRequest(BaseModel):
    client: Optional[str] = Field(None, description="Identifier of the client applying")
    for_group: bool = Field(False, description="Application for an individual tracked through a group cycle")


class QuestionEdit(BaseModel):
    """Answer and display edits to one question owned by the loan."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    values: Optional[List[str]] = None
    remark: Optional[str] = None
    show: Optional[bool] = None
    required: Optional[bool] = None
    options: Optional[List[str]] = None
    question_text: Optional[str] = None
    measurement_unit: Optional[str] = None
    number: Optional[int] = None
    type: Optional[QuestionTypeEnum] = None
    validation_factor: Optional[ValidationFactorEnum] = None
    sub_questions: Optional[List[Union["QuestionEdit", str]]] = None


class SectionEdit(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    questions: List[QuestionEdit] = Field(default_factory=list)


class LoanUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: Optional[LoanStatusEnum] = None
    comment: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    sections: Optional[List[SectionEdit]] = None
    questions: Optional[List[QuestionEdit]] = None

    # Payload handed to the service: only what the caller sent, ids under "_id"
    def to_patch(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, by_alias=True, mode="json")


class LoanStatusUpdateRequest(BaseModel):
    status: LoanStatusEnum
    comment: Optional[str] = None


QuestionEdit.model_rebuild()
