import pytest
from beanie import PydanticObjectId
from fastapi.testclient import TestClient

from main import app
from app.api.loan_routes import get_loan_application_service
from app.core.auth_dependencies import get_current_user
from app.core.errors import EntityNotFound, InvalidTransition, PermissionDenied, PreconditionFailed, ValidationFailed
from app.database.models import LoanApplication, LoanStatusEnum

USER = {"id": str(PydanticObjectId()), "realm": "user", "permissions": []}


class FakeLoanService:
    """Records calls and returns canned loans or raises canned errors."""

    def __init__(self):
        self.calls = []
        self.error = None
        self.loan = LoanApplication.model_construct(
            id=PydanticObjectId(),
            client=PydanticObjectId(),
            status=LoanStatusEnum.new,
            title="Loan Form",
            description="Loan Process For Maria Santos",
            sections=[],
            questions=[PydanticObjectId()],
        )

    async def _respond(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error
        return self.loan

    async def create_loan(self, *args, **kwargs):
        return await self._respond("create_loan", *args, **kwargs)

    async def get_loan(self, *args, **kwargs):
        return await self._respond("get_loan", *args, **kwargs)

    async def update_loan(self, *args, **kwargs):
        return await self._respond("update_loan", *args, **kwargs)

    async def update_loan_status(self, *args, **kwargs):
        return await self._respond("update_loan_status", *args, **kwargs)

    async def delete_loan(self, *args, **kwargs):
        return await self._respond("delete_loan", *args, **kwargs)


@pytest.fixture
def fake_service():
    service = FakeLoanService()
    app.dependency_overrides[get_current_user] = lambda: USER
    app.dependency_overrides[get_loan_application_service] = lambda: service
    yield service
    app.dependency_overrides = {}


@pytest.fixture
def client(fake_service):
    return TestClient(app, raise_server_exceptions=False)


def test_create_loan_route(client, fake_service):
    resp = client.post("/loans/create", json={"client": "6650a1f2c3b4d5e6f7a8b9c0"})

    assert resp.status_code == 201
    data = resp.json()
    assert data["_id"] == str(fake_service.loan.id)
    assert data["status"] == "new"
    assert isinstance(data["questions"][0], str)
    name, args, kwargs = fake_service.calls[0]
    assert args == ("6650a1f2c3b4d5e6f7a8b9c0", USER)
    assert kwargs == {"for_group": False}


def test_update_route_forwards_only_sent_fields(client, fake_service):
    question_id = str(PydanticObjectId())
    resp = client.put(f"/loans/{fake_service.loan.id}", json={
        "status": "inprogress",
        "questions": [{"_id": question_id, "values": ["Yes"], "sub_questions": [question_id]}],
    })

    assert resp.status_code == 200
    _, args, _ = fake_service.calls[0]
    patch = args[1]
    assert patch["status"] == "inprogress"
    assert patch["questions"] == [{"_id": question_id, "values": ["Yes"], "sub_questions": [question_id]}]
    assert "comment" not in patch


def test_status_route(client, fake_service):
    resp = client.put(f"/loans/{fake_service.loan.id}/status", json={"status": "accepted", "comment": "ok"})

    assert resp.status_code == 200
    name, args, _ = fake_service.calls[0]
    assert name == "update_loan_status"
    assert args[1:3] == ("accepted", "ok")


def test_status_route_rejects_unknown_status(client, fake_service):
    resp = client.put(f"/loans/{fake_service.loan.id}/status", json={"status": "approved"})

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION"
    assert fake_service.calls == []


@pytest.mark.parametrize("error,status_code,code", [
    (ValidationFailed(["Loan client is empty"]), 422, "VALIDATION"),
    (PreconditionFailed("Client has a loan application in progress"), 409, "PRECONDITION"),
    (PermissionDenied(), 403, "AUTHORIZATION"),
    (EntityNotFound("Loan application x does not exist"), 404, "NOT_FOUND"),
    (InvalidTransition("Loan is already new"), 409, "STATE"),
])
def test_loan_errors_map_to_http(client, fake_service, error, status_code, code):
    fake_service.error = error

    resp = client.get(f"/loans/{fake_service.loan.id}")

    assert resp.status_code == status_code
    body = resp.json()["error"]
    assert body["code"] == code
    assert body["message"] == error.message


def test_validation_details_list_violations(client, fake_service):
    fake_service.error = ValidationFailed(["Loan client is empty", "Question x does not belong to loan y"])

    resp = client.post("/loans/create", json={})

    assert resp.status_code == 422
    assert resp.json()["error"]["details"] == ["Loan client is empty", "Question x does not belong to loan y"]


def test_unexpected_errors_are_internal(client, fake_service):
    fake_service.error = RuntimeError("database unreachable")

    resp = client.delete(f"/loans/{fake_service.loan.id}")

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "internal_server_error"


def test_routes_require_authentication():
    app.dependency_overrides = {}
    resp = TestClient(app).get(f"/loans/{PydanticObjectId()}")
    assert resp.status_code == 401


def test_security_headers(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_update_route_forwards_question_type_edits(client, fake_service):
    question_id = str(PydanticObjectId())
    resp = client.put(f"/loans/{fake_service.loan.id}", json={
        "questions": [{"_id": question_id, "type": "YES_NO", "validation_factor": "ALPHANUMERIC"}],
    })

    assert resp.status_code == 200
    _, args, _ = fake_service.calls[0]
    assert args[1]["questions"] == [{"_id": question_id, "type": "YES_NO", "validation_factor": "ALPHANUMERIC"}]
