"""Cycle Validator.

Decides whether a client may start a new loan application by looking at
the client's screening, loan and asset-capture history and at the current
cycle of the client's history ledger. Checks run in a fixed order and the
first violation is raised.
"""
import logging
from typing import Optional

from beanie import PydanticObjectId

from app.core.errors import PreconditionFailed
from app.database.models import AssetCapture, CycleHistory, LoanApplication, LoanStatusEnum, Screening

logger = logging.getLogger(__name__)

SCREENING_IN_PROGRESS = {"new", "inprogress", "submitted", "declined_under_review"}
SCREENING_COMPLETED = {"approved"}
LOAN_IN_PROGRESS = {
    LoanStatusEnum.new,
    LoanStatusEnum.inprogress,
    LoanStatusEnum.submitted,
    LoanStatusEnum.declined_under_review,
}
ACAT_IN_PROGRESS = {"new", "inprogress", "submitted", "resubmitted", "declined_under_review"}


class CycleValidator:

    def __init__(self, store):
        self.store = store

    async def validate(self, client_id: PydanticObjectId, for_group: bool = False) -> Optional[LoanApplication]:
        """Raise PreconditionFailed unless the client may open a new loan.

        Returns the client's most recently created loan, if any.
        """
        screenings = await self.store.find(Screening, {"client": client_id})
        if not screenings:
            raise PreconditionFailed("Client has no screening application")
        if any(screening.status in SCREENING_IN_PROGRESS for screening in screenings):
            raise PreconditionFailed("Client has a screening application in progress")

        loans = await self.store.find(LoanApplication, {"client": client_id}, sort="-date_created")
        if any(LoanStatusEnum(loan.status) in LOAN_IN_PROGRESS for loan in loans):
            raise PreconditionFailed("Client has a loan application in progress")

        acats = await self.store.find(AssetCapture, {"client": client_id})
        if any(acat.status in ACAT_IN_PROGRESS for acat in acats):
            raise PreconditionFailed("Client has an asset capture (A-CAT) application in progress")

        if not for_group:
            await self._check_current_cycle(client_id)

        previous = loans[0] if loans else None
        logger.info(f"Client {client_id} cleared for a new loan application (previous loan: {previous.id if previous else None})")
        return previous

    async def _check_current_cycle(self, client_id: PydanticObjectId) -> None:
        history = await self.store.get(CycleHistory, {"client": client_id})
        if history is None:
            raise PreconditionFailed("Client has no loan cycle history")

        cycle_number = history.cycle_number
        entry = history.current_cycle()
        if entry is None or entry.screening is None:
            raise PreconditionFailed(f"Screening for loan cycle {cycle_number} has not been completed")

        screening = await self.store.get(Screening, {"_id": entry.screening})
        if screening is None or screening.status not in SCREENING_COMPLETED:
            raise PreconditionFailed(f"Screening for loan cycle {cycle_number} has not been completed")

        if entry.loan is not None:
            raise PreconditionFailed(
                f"A loan application already exists for loan cycle {cycle_number}; "
                f"use a client loan cycle application instead"
            )
