from fastapi import APIRouter, Depends, status
from typing import Dict, Any
import logging

from app.core.auth_dependencies import get_current_user
from app.helpers.response_builder import build_loan_response
from app.schemas.loan_schema import LoanCreateRequest, LoanUpdateRequest, LoanStatusUpdateRequest
from app.services.loan_service import LoanApplicationService, loan_application_service

logger = logging.getLogger(__name__)


# Returns the loan application service instance
def get_loan_application_service() -> LoanApplicationService:
    return loan_application_service


router = APIRouter(prefix="/loans", tags=["Loan Applications"])


# Instantiates a loan application for a client from the loan form template
@router.post("/create", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_loan(
    body: LoanCreateRequest,
    current_user: Dict = Depends(get_current_user),
    service: LoanApplicationService = Depends(get_loan_application_service)
):
    loan = await service.create_loan(body.client, current_user, for_group=body.for_group)
    return build_loan_response(loan)


# Retrieves a single loan application
@router.get("/{loan_id}", response_model=Dict[str, Any])
async def get_loan(
    loan_id: str,
    current_user: Dict = Depends(get_current_user),
    service: LoanApplicationService = Depends(get_loan_application_service)
):
    loan = await service.get_loan(loan_id, current_user)
    return build_loan_response(loan)


# Updates a loan application's status, comment and answers
@router.put("/{loan_id}", response_model=Dict[str, Any])
async def update_loan(
    loan_id: str,
    body: LoanUpdateRequest,
    current_user: Dict = Depends(get_current_user),
    service: LoanApplicationService = Depends(get_loan_application_service)
):
    loan = await service.update_loan(loan_id, body.to_patch(), current_user)
    return build_loan_response(loan)


# Moves a loan application to a new status
@router.put("/{loan_id}/status", response_model=Dict[str, Any])
async def update_loan_status(
    loan_id: str,
    body: LoanStatusUpdateRequest,
    current_user: Dict = Depends(get_current_user),
    service: LoanApplicationService = Depends(get_loan_application_service)
):
    loan = await service.update_loan_status(loan_id, body.status.value, body.comment, current_user)
    return build_loan_response(loan)


# Removes a loan application and the questions it owns
@router.delete("/{loan_id}", response_model=Dict[str, Any])
async def delete_loan(
    loan_id: str,
    current_user: Dict = Depends(get_current_user),
    service: LoanApplicationService = Depends(get_loan_application_service)
):
    loan = await service.delete_loan(loan_id, current_user)
    return build_loan_response(loan)
