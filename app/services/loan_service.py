from app.database.models import (
    Client,
    CycleHistory,
    FormTemplate,
    LoanApplication,
    LoanStatusEnum,
    Owner,
    Question,
    Section,
    Task,
    TaskStatusEnum,
)
import logging
from typing import Optional, List, Dict, Any

from beanie import PydanticObjectId

from app.core.config import settings
from app.core.errors import EntityNotFound, PreconditionFailed, ValidationFailed
from app.core.permissions import Capability, require
from app.database.store import EntityStore, entity_store
from app.services.audit_service import AuditService, audit_service
from app.services.cycle_validator import CycleValidator
from app.services.loan_status_machine import LoanStatusMachine
from app.services.notification_service import NotificationService, notification_service
from app.services.prerequisite_linker import PrerequisiteLinker
from app.services.question_cloner import LinkBatch, QuestionCloner
from app.utils.loan_application_utils import parse_object_id, strip_identity_fields

logger = logging.getLogger(__name__)

# Loan fields an update payload may set directly
EDITABLE_LOAN_FIELDS = ("title", "description", "comment")
# Question fields a nested edit may set
EDITABLE_QUESTION_FIELDS = (
    "values", "remark", "show", "required", "options", "question_text",
    "measurement_unit", "validation_factor", "number", "type",
)


class LoanApplicationService:

    def __init__(self,
                 store: EntityStore,
                 notification_service: NotificationService,
                 audit_service: AuditService,
                 allow_same_status: Optional[bool] = None,
                 link_strategy: Optional[str] = None):
        self.store = store
        self.notification_service = notification_service
        self.audit_service = audit_service
        self.cycle_validator = CycleValidator(store)
        self.status_machine = LoanStatusMachine(notification_service, allow_same_status=allow_same_status)
        self.link_strategy = link_strategy
        logger.info("LoanApplicationService initialized")

    # Instantiates a loan application for a client from the loan form template
    async def create_loan(
        self,
        client_id: Any,
        current_user: Dict[str, Any],
        for_group: bool = False
    ) -> LoanApplication:
        violations = []
        if not client_id:
            violations.append("Loan client is empty")
        elif parse_object_id(client_id) is None:
            violations.append(f"Loan client '{client_id}' is not a valid identifier")
        if violations:
            raise ValidationFailed(violations)

        logger.info(f"Creating loan application for client {client_id} by user {current_user.get('id')}")

        form = await self.store.get(FormTemplate, {"type": settings.LOAN_FORM_TYPE})
        if form is None:
            raise PreconditionFailed("Loan form is needed to be created in order to continue")

        client = await self.store.get(Client, {"_id": parse_object_id(client_id)})
        if client is None:
            raise PreconditionFailed("Client does not exist")

        await self.cycle_validator.validate(client.id, for_group=for_group)

        actor_id = parse_object_id(current_user.get("id"))
        loan_id = PydanticObjectId()
        owner = Owner(kind="loan", ref=loan_id)

        async with self.store.unit_of_work() as uow:
            cloner = QuestionCloner(uow, owner)
            linker = PrerequisiteLinker(uow, strategy=self.link_strategy)

            sections: List[PydanticObjectId] = []
            questions: List[PydanticObjectId] = []
            if form.has_sections:
                for section_id in form.sections:
                    template_section = await uow.get(Section, {"_id": section_id})
                    if template_section is None:
                        logger.warning(f"Template section {section_id} not found, skipping")
                        continue
                    batch = LinkBatch(label=f"section {template_section.number}")
                    cloned = await self._clone_batch(cloner, linker, template_section.questions, batch)
                    section = await uow.create(Section, {
                        "title": template_section.title,
                        "number": template_section.number,
                        "questions": cloned,
                        "owner": owner,
                    })
                    sections.append(section.id)
            else:
                batch = LinkBatch(label="questions")
                questions = await self._clone_batch(cloner, linker, form.questions, batch)

            loan = await uow.create(LoanApplication, LoanApplication(
                id=loan_id,
                client=client.id,
                created_by=actor_id,
                branch=client.branch,
                status=LoanStatusEnum.new,
                title="Loan Form",
                description=f"Loan Process For {client.full_name}",
                for_group=for_group,
                has_sections=form.has_sections,
                sections=sections,
                questions=questions,
                layout=form.layout,
                disclaimer=form.disclaimer,
                signatures=list(form.signatures),
            ))

            await uow.apply(client, {"status": "loan_application_new"})
            await self._record_cycle_loan(uow, client.id, loan.id, actor_id)

            uow.on_commit(lambda: self.audit_service.track(
                event="loan_create",
                actor=current_user.get("id"),
                acted=str(loan.id),
                message=f"Create loan application - {loan.description}",
            ))

        logger.info(f"Loan application {loan.id} created for client {client.id}")
        return loan

    # Clones one batch of template questions and links their prerequisites within the batch
    async def _clone_batch(
        self,
        cloner: QuestionCloner,
        linker: PrerequisiteLinker,
        question_ids: List[PydanticObjectId],
        batch: LinkBatch
    ) -> List[PydanticObjectId]:
        cloned = []
        for question_id in question_ids:
            clone = await cloner.clone(question_id, batch)
            if clone is not None:
                cloned.append(clone.id)
        await linker.link(batch)
        return cloned

    async def _record_cycle_loan(self, uow, client_id, loan_id, actor_id) -> None:
        history = await uow.get(CycleHistory, {"client": client_id})
        if history is None:
            logger.info(f"Client {client_id} has no cycle history, loan {loan_id} not recorded in a cycle")
            return

        cycles = [entry.model_copy() for entry in history.cycles]
        for entry in cycles:
            if entry.cycle_number != history.cycle_number:
                continue
            if entry.loan is not None:
                logger.warning(f"Cycle {entry.cycle_number} of client {client_id} already records loan {entry.loan}")
                return
            entry.loan = loan_id
            entry.last_edit_by = actor_id
            await uow.apply(history, {"cycles": cycles})
            return

        logger.warning(f"Client {client_id} history has no entry for current cycle {history.cycle_number}")

    # Retrieves a single loan application
    async def get_loan(self, loan_id: Any, current_user: Dict[str, Any]) -> LoanApplication:
        require(current_user, Capability.VIEW)
        loan = await self._load_loan(self.store, loan_id)

        await self.audit_service.track(
            event="view_loan",
            actor=current_user.get("id"),
            acted=str(loan.id),
            message=f"View loan - {loan.title}",
        )
        return loan

    # Applies a status change and/or edits to a loan application
    async def update_loan(
        self,
        loan_id: Any,
        patch: Dict[str, Any],
        current_user: Dict[str, Any]
    ) -> LoanApplication:
        require(current_user, Capability.UPDATE)
        logger.info(f"Updating loan application {loan_id}")

        async with self.store.unit_of_work() as uow:
            loan = await self._load_loan(uow, loan_id)
            changes: Dict[str, Any] = {}

            requested = patch.get("status")
            if requested is not None:
                transition = self.status_machine.plan(loan, requested, current_user)
                if transition is not None:
                    await self.status_machine.apply(uow, loan, transition, current_user, patch.get("comment"))
                    changes["status"] = transition.target

            for key in EDITABLE_LOAN_FIELDS:
                if key in patch:
                    changes[key] = patch[key]

            violations: List[str] = []
            edited: List[PydanticObjectId] = []
            for section_edit in patch.get("sections") or []:
                edited += await self._apply_question_edits(uow, loan, section_edit.get("questions") or [], violations)
            edited += await self._apply_question_edits(uow, loan, patch.get("questions") or [], violations)
            if violations:
                raise ValidationFailed(violations)

            if not changes and not edited:
                logger.info(f"Loan application {loan.id} left unchanged")
                return loan

            loan = await uow.apply(loan, changes)

            uow.on_commit(lambda: self.audit_service.track(
                event="loan_update",
                actor=current_user.get("id"),
                acted=str(loan.id),
                message=f"Update Info for {loan.title}",
                diff=patch,
            ))

        logger.info(f"Loan application {loan.id} updated, status {LoanStatusEnum(loan.status).value}")
        return loan

    # Requests a status change, with an optional comment carried onto the affected task
    async def update_loan_status(
        self,
        loan_id: Any,
        status: str,
        comment: Optional[str],
        current_user: Dict[str, Any]
    ) -> LoanApplication:
        patch: Dict[str, Any] = {"status": status}
        if comment is not None:
            patch["comment"] = comment
        return await self.update_loan(loan_id, patch, current_user)

    async def _apply_question_edits(self, uow, loan: LoanApplication, edits: List[Dict[str, Any]], violations: List[str]) -> List[PydanticObjectId]:
        saved = []
        for edit in edits:
            question_id = parse_object_id(edit.get("_id") or edit.get("id"))
            if question_id is None:
                violations.append(f"Question edit without a valid identifier: {edit.get('_id') or edit.get('id')!r}")
                continue

            question = await uow.get(Question, {"_id": question_id})
            if question is None or question.owner is None or question.owner.ref != loan.id:
                violations.append(f"Question {question_id} does not belong to loan {loan.id}")
                continue

            fields = strip_identity_fields(edit)
            sub_edits = [sub for sub in fields.pop("sub_questions", None) or [] if isinstance(sub, dict)]
            if sub_edits:
                await self._apply_question_edits(uow, loan, sub_edits, violations)

            changes = {key: value for key, value in fields.items() if key in EDITABLE_QUESTION_FIELDS}
            if changes:
                await uow.apply(question, changes)
            saved.append(question_id)
        return saved

    # Removes a loan application together with every section and question it owns
    async def delete_loan(self, loan_id: Any, current_user: Dict[str, Any]) -> LoanApplication:
        require(current_user, Capability.UPDATE)

        async with self.store.unit_of_work() as uow:
            loan = await self._load_loan(uow, loan_id)

            for section_id in loan.sections:
                section = await uow.get(Section, {"_id": section_id})
                if section is None:
                    continue
                await self._delete_owned_questions(uow, loan, section.questions)
                await uow.delete(Section, {"_id": section_id})
            await self._delete_owned_questions(uow, loan, loan.questions)
            await self._delete_pending_tasks(uow, loan)
            await self._forget_cycle_loan(uow, loan)
            await uow.delete(LoanApplication, {"_id": loan.id})

            uow.on_commit(lambda: self.audit_service.track(
                event="loan_delete",
                actor=current_user.get("id"),
                acted=str(loan.id),
                message=f"Delete Info for {loan.id}",
            ))

        logger.info(f"Loan application {loan.id} deleted")
        return loan

    async def _delete_owned_questions(self, uow, loan: LoanApplication, question_ids: List[PydanticObjectId]) -> None:
        pending = list(question_ids)
        seen = set()
        while pending:
            question_id = pending.pop()
            if question_id in seen:
                continue
            seen.add(question_id)
            question = await uow.get(Question, {"_id": question_id})
            if question is None or question.owner is None or question.owner.ref != loan.id:
                continue
            pending.extend(question.sub_questions)
            await uow.delete(Question, {"_id": question_id})

    async def _delete_pending_tasks(self, uow, loan: LoanApplication) -> None:
        tasks = await uow.find(Task, {"entity_ref": loan.id, "status": TaskStatusEnum.pending.value})
        for task in tasks:
            await uow.delete(Task, {"_id": task.id})
        if tasks:
            logger.info(f"Removed {len(tasks)} pending task(s) of loan {loan.id}")

    # Frees the cycle that recorded this loan so the client can apply again
    async def _forget_cycle_loan(self, uow, loan: LoanApplication) -> None:
        history = await uow.get(CycleHistory, {"client": loan.client})
        if history is None or not any(entry.loan == loan.id for entry in history.cycles):
            return

        cycles = [entry.model_copy() for entry in history.cycles]
        for entry in cycles:
            if entry.loan == loan.id:
                entry.loan = None
        await uow.apply(history, {"cycles": cycles})
        logger.info(f"Loan {loan.id} removed from the cycle history of client {loan.client}")

    async def _load_loan(self, reader, loan_id: Any) -> LoanApplication:
        object_id = parse_object_id(loan_id)
        loan = await reader.get(LoanApplication, {"_id": object_id}) if object_id else None
        if loan is None:
            raise EntityNotFound(f"Loan application {loan_id} does not exist")
        return loan


loan_application_service = LoanApplicationService(
    store=entity_store,
    notification_service=notification_service,
    audit_service=audit_service,
)
