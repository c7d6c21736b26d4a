import pytest
import pytest_asyncio
from beanie import PydanticObjectId, init_beanie
from mongomock_motor import AsyncMongoMockClient

from app.database.models import (
    DOCUMENT_MODELS,
    Client,
    CycleEntry,
    CycleHistory,
    FormTemplate,
    Owner,
    PermissionGrant,
    Prerequisite,
    Question,
    Screening,
    Section,
    User,
)
from app.database.store import EntityStore
from app.services.audit_service import AuditService
from app.services.loan_service import LoanApplicationService
from app.services.notification_service import NotificationService


@pytest_asyncio.fixture
async def db():
    # Fresh in-memory database per test
    client = AsyncMongoMockClient()
    database = client["loan_service_test"]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    yield database


@pytest.fixture
def store(db):
    return EntityStore()


@pytest.fixture
def notifications():
    # SMS relay disabled: notifications stay in-app
    return NotificationService(api_token="", sender_id="")


@pytest.fixture
def service(db, store, notifications):
    return LoanApplicationService(
        store=store,
        notification_service=notifications,
        audit_service=AuditService(),
        allow_same_status=False,
        link_strategy="identity",
    )


@pytest_asyncio.fixture
async def make_actor(db):
    async def _make(*operations, realm="user", email=None):
        user = User(
            email=email or f"user{PydanticObjectId()}@microfinance.ph",
            full_name="Test Officer",
            realm=realm,
            permissions=[PermissionGrant(module="LOAN", operation=op) for op in operations],
        )
        await user.insert()
        return {
            "id": str(user.id),
            "email": user.email,
            "full_name": user.full_name,
            "realm": user.realm,
            "branch": None,
            "permissions": [grant.model_dump() for grant in user.permissions],
        }

    return _make


@pytest_asyncio.fixture
async def officer(make_actor):
    return await make_actor("VIEW", "UPDATE")


@pytest_asyncio.fixture
async def manager(make_actor):
    return await make_actor("VIEW", "UPDATE", "AUTHORIZE")


@pytest.fixture
def make_question(db):
    async def _make(text, sub_questions=(), prerequisites=(), owner=None, **fields):
        question = Question(
            question_text=text,
            sub_questions=[q.id for q in sub_questions],
            prerequisites=[Prerequisite(question=q.id, answer=answer) for q, answer in prerequisites],
            owner=owner or Owner(kind="form"),
            **fields,
        )
        await question.insert()
        return question

    return _make


@pytest_asyncio.fixture
async def loan_form(make_question):
    """Flat loan form: three top-level questions, one with a sub-question.

    "Business type" is only shown when "Has business?" was answered "Yes".
    """
    business_name = await make_question("Business name")
    has_business = await make_question("Has business?", sub_questions=[business_name], options=["Yes", "No"])
    income = await make_question("Monthly income", number=1)
    business_type = await make_question("Business type", prerequisites=[(has_business, "Yes")])

    form = FormTemplate(
        type="Loan Application",
        title="Loan Application Form",
        disclaimer="All information is true",
        signatures=["Client", "Loan Officer"],
        questions=[income.id, has_business.id, business_type.id],
    )
    await form.insert()
    return form


@pytest_asyncio.fixture
async def sectioned_loan_form(make_question):
    personal_name = await make_question("Name")
    personal_married = await make_question("Married?", options=["Yes", "No"])
    spouse = await make_question("Spouse name", prerequisites=[(personal_married, "Yes")])
    personal = Section(title="Personal", number=1, questions=[personal_name.id, personal_married.id, spouse.id])
    await personal.insert()

    # Same text as a question of the first section; must not link across sections
    other_married = await make_question("Married?", options=["Yes", "No"])
    co_maker = await make_question("Co-maker name", prerequisites=[(personal_married, "Yes")])
    co_maker_section = Section(title="Co-maker", number=2, questions=[other_married.id, co_maker.id])
    await co_maker_section.insert()

    form = FormTemplate(
        type="Loan Application",
        title="Loan Application Form",
        has_sections=True,
        sections=[personal.id, co_maker_section.id],
    )
    await form.insert()
    return form


@pytest_asyncio.fixture
async def eligible_client(db):
    """Client whose cycle 1 screening was approved and who has no loan yet."""
    client = Client(first_name="Maria", last_name="Santos", branch=PydanticObjectId())
    await client.insert()
    screening = Screening(client=client.id, status="approved")
    await screening.insert()
    history = CycleHistory(
        client=client.id,
        cycle_number=1,
        cycles=[CycleEntry(cycle_number=1, screening=screening.id)],
    )
    await history.insert()
    return client
