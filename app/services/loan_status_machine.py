"""Status Transition Engine.

Loan status moves only along the edges of ``TRANSITIONS``. Each edge names
the capability the actor needs, the client status it syncs, and the side
effects applied before the loan itself is persisted:

    new -> inprogress -> submitted -> accepted | rejected | loan_paid
                                   -> declined_under_review -> inprogress

Entering accepted, rejected, declined_under_review or loan_paid needs the
AUTHORIZE capability; every other edge needs UPDATE.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from app.core.config import settings
from app.core.errors import InvalidTransition, ValidationFailed
from app.core.permissions import Capability, require
from app.database.models import Client, LoanApplication, LoanStatusEnum, Notification, Task, TaskStatusEnum, TaskTypeEnum
from app.utils.loan_application_utils import parse_object_id

logger = logging.getLogger(__name__)

S = LoanStatusEnum

ELEVATED_STATUSES = frozenset({S.accepted, S.rejected, S.declined_under_review, S.loan_paid})


class SideEffect(str, Enum):
    COMPLETE_APPROVE_TASK = "complete_approve_task"
    COMPLETE_OPEN_TASK = "complete_open_task"
    COMPLETE_REVIEW_TASK = "complete_review_task"
    NOTIFY_TASK_CREATOR = "notify_task_creator"
    SPAWN_APPROVE_TASK = "spawn_approve_task"
    SPAWN_REVIEW_TASK = "spawn_review_task"


@dataclass(frozen=True)
class Transition:
    source: LoanStatusEnum
    target: LoanStatusEnum
    client_status: Optional[str] = None
    effects: Tuple[SideEffect, ...] = ()
    message: str = ""

    @property
    def capability(self) -> Capability:
        return Capability.AUTHORIZE if self.target in ELEVATED_STATUSES else Capability.UPDATE


def _edge(source, target, client_status=None, effects=(), message=""):
    return (source, target), Transition(source, target, client_status, tuple(effects), message)


TRANSITIONS: Dict[Tuple[LoanStatusEnum, LoanStatusEnum], Transition] = dict([
    _edge(S.new, S.inprogress, "loan_application_inprogress"),
    _edge(S.inprogress, S.submitted, "loan_application_inprogress",
          [SideEffect.SPAWN_APPROVE_TASK]),
    _edge(S.submitted, S.accepted, "loan_application_accepted",
          [SideEffect.COMPLETE_APPROVE_TASK, SideEffect.NOTIFY_TASK_CREATOR],
          "Loan Application of {client} has been accepted"),
    _edge(S.submitted, S.rejected, "loan_application_rejected",
          [SideEffect.COMPLETE_OPEN_TASK, SideEffect.NOTIFY_TASK_CREATOR],
          "Loan Application of {client} has been rejected"),
    _edge(S.submitted, S.loan_paid, "loan_paid",
          [SideEffect.COMPLETE_OPEN_TASK, SideEffect.NOTIFY_TASK_CREATOR],
          "Loan of {client} has been paid"),
    _edge(S.submitted, S.declined_under_review, "loan_application_inprogress",
          [SideEffect.COMPLETE_OPEN_TASK, SideEffect.SPAWN_REVIEW_TASK],
          "Loan Application of {client} has been declined for further review"),
    _edge(S.declined_under_review, S.inprogress, "loan_application_inprogress",
          [SideEffect.COMPLETE_REVIEW_TASK]),
])


@dataclass
class TransitionOutcome:
    transition: Transition
    client: Optional[Client] = None
    completed_task: Optional[Task] = None
    created_tasks: List[Task] = field(default_factory=list)
    notifications: List[Notification] = field(default_factory=list)


class LoanStatusMachine:

    def __init__(self, notification_service, allow_same_status: Optional[bool] = None):
        self.notification_service = notification_service
        self.allow_same_status = (
            settings.ALLOW_SAME_STATUS_TRANSITION if allow_same_status is None else allow_same_status
        )

    def plan(self, loan: LoanApplication, requested: Any, user: Dict[str, Any]) -> Optional[Transition]:
        """Authorize and validate a requested status change.

        Returns the transition to apply, or None when the loan already has
        the requested status and same-status requests are allowed.
        """
        try:
            target = LoanStatusEnum(requested)
        except ValueError:
            allowed = ", ".join(status.value for status in LoanStatusEnum)
            raise ValidationFailed([f"Status '{requested}' is invalid; correct status is one of {allowed}"])

        require(user, Capability.AUTHORIZE if target in ELEVATED_STATUSES else Capability.UPDATE)

        current = LoanStatusEnum(loan.status)
        if target == current:
            if self.allow_same_status:
                logger.info(f"Loan {loan.id} already {target.value}, status left unchanged")
                return None
            raise InvalidTransition(f"Loan is already {target.value}")

        transition = TRANSITIONS.get((current, target))
        if transition is None:
            raise InvalidTransition(
                f"Loan cannot move from {current.value} to {target.value}",
                details={"from": current.value, "to": target.value},
            )
        return transition

    async def apply(
        self,
        uow,
        loan: LoanApplication,
        transition: Transition,
        user: Dict[str, Any],
        comment: Optional[str] = None,
    ) -> TransitionOutcome:
        """Run the client sync and side effects of a planned transition.

        The loan record itself is not written here.
        """
        outcome = TransitionOutcome(transition=transition)
        outcome.client = await uow.get(Client, {"_id": loan.client})
        if outcome.client is not None and transition.client_status:
            await uow.apply(outcome.client, {"status": transition.client_status})

        for effect in transition.effects:
            handler = getattr(self, f"_{effect.value}")
            await handler(uow, loan, user, comment, outcome)

        logger.info(
            f"Loan {loan.id}: {transition.source.value} -> {transition.target.value} "
            f"({len(outcome.created_tasks)} task(s) created, {len(outcome.notifications)} notification(s))"
        )
        return outcome

    def _client_name(self, outcome: TransitionOutcome) -> str:
        return outcome.client.full_name if outcome.client else "client"

    async def _open_task(self, uow, loan: LoanApplication, task_type: Optional[TaskTypeEnum] = None) -> Optional[Task]:
        query = {"entity_ref": loan.id, "status": TaskStatusEnum.pending.value}
        if task_type is not None:
            query["task_type"] = task_type.value
        tasks = await uow.find(Task, query, sort="-date_created", limit=1)
        return tasks[0] if tasks else None

    async def _complete(self, uow, loan, comment, outcome, task_type=None) -> None:
        task = await self._open_task(uow, loan, task_type)
        if task is None:
            logger.warning(f"No open {task_type.value if task_type else ''} task for loan {loan.id}, nothing to complete")
            return
        patch = {"status": TaskStatusEnum.completed}
        if comment is not None:
            patch["comment"] = comment
        outcome.completed_task = await uow.apply(task, patch)

    async def _complete_approve_task(self, uow, loan, user, comment, outcome) -> None:
        await self._complete(uow, loan, comment, outcome, TaskTypeEnum.approve)

    async def _complete_open_task(self, uow, loan, user, comment, outcome) -> None:
        await self._complete(uow, loan, comment, outcome)

    async def _complete_review_task(self, uow, loan, user, comment, outcome) -> None:
        await self._complete(uow, loan, comment, outcome, TaskTypeEnum.review)

    async def _notify_task_creator(self, uow, loan, user, comment, outcome) -> None:
        task = outcome.completed_task
        if task is None:
            return
        notification = await self.notification_service.create(
            uow,
            for_user=task.created_by,
            message=outcome.transition.message.format(client=self._client_name(outcome)),
            task_ref=task.id,
        )
        outcome.notifications.append(notification)

    async def _spawn_approve_task(self, uow, loan, user, comment, outcome) -> None:
        task = await uow.create(Task, {
            "task": f"Approve Loan Application of {self._client_name(outcome)}",
            "task_type": TaskTypeEnum.approve,
            "entity_ref": loan.id,
            "entity_type": "loan",
            "created_by": parse_object_id(user.get("id")),
            "branch": loan.branch,
        })
        outcome.created_tasks.append(task)

    async def _spawn_review_task(self, uow, loan, user, comment, outcome) -> None:
        actor_id = parse_object_id(user.get("id"))
        original = outcome.completed_task
        assignee = original.created_by if original is not None else loan.created_by

        task = await uow.create(Task, {
            "task": f"Review Loan Application of {self._client_name(outcome)}",
            "task_type": TaskTypeEnum.review,
            "entity_ref": loan.id,
            "entity_type": "loan",
            "created_by": actor_id,
            "user": assignee,
            "branch": loan.branch,
        })
        outcome.created_tasks.append(task)

        notification = await self.notification_service.create(
            uow,
            for_user=actor_id,
            message=outcome.transition.message.format(client=self._client_name(outcome)),
            task_ref=task.id,
        )
        outcome.notifications.append(notification)
