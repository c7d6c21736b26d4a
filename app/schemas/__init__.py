from app.schemas.loan_schema import (
    LoanCreateRequest,
    LoanUpdateRequest,
    LoanStatusUpdateRequest,
    QuestionEdit,
    SectionEdit,
)
