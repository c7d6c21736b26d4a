from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from app.database.models.common import Owner


class QuestionTypeEnum(str, Enum):
    yes_no = "YES_NO"
    fill_in_blank = "FILL_IN_BLANK"
    multiple_choice = "MULTIPLE_CHOICE"
    single_choice = "SINGLE_CHOICE"
    grouped = "GROUPED"


class ValidationFactorEnum(str, Enum):
    none = "NONE"
    numeric = "NUMERIC"
    alphanumeric = "ALPHANUMERIC"


class Prerequisite(BaseModel):
    question: PydanticObjectId = Field(..., description="Question whose answer gates this one")
    answer: str = Field(..., description="Answer the referenced question must hold")


class Question(Document):
    question_text: str = Field(..., description="Text shown to the loan officer")
    remark: Optional[str] = Field("", description="Guidance attached to the question")
    type: QuestionTypeEnum = Field(QuestionTypeEnum.fill_in_blank, description="Answer widget type")
    options: List[str] = Field(default_factory=list, description="Choices for choice questions")
    values: List[str] = Field(default_factory=list, description="Recorded answers")
    required: bool = Field(default=False)
    show: bool = Field(default=True)
    number: int = Field(default=0, description="Display order")
    measurement_unit: Optional[str] = None
    validation_factor: ValidationFactorEnum = Field(ValidationFactorEnum.none)
    sub_questions: List[PydanticObjectId] = Field(default_factory=list, description="Owned child questions")
    prerequisites: List[Prerequisite] = Field(default_factory=list)
    owner: Optional[Owner] = Field(None, description="Form template or loan owning this question")
    date_created: datetime = Field(default_factory=datetime.utcnow)
    last_modified: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "questions"
