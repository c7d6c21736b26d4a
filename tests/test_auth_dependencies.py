import pytest
from fastapi import HTTPException

from app.core.auth_dependencies import get_current_user
from app.core.config import settings
from app.core.security import create_access_token, decode_token
from app.database.models import PermissionGrant, User


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET_KEY", "test-secret")


def test_token_round_trip(jwt_secret):
    token = create_access_token({"sub": "officer@microfinance.ph"})
    assert decode_token(token)["sub"] == "officer@microfinance.ph"
    assert decode_token(token + "tampered") is None


@pytest.mark.asyncio
async def test_current_user_is_resolved_from_token(jwt_secret, db):
    user = User(
        email="officer@microfinance.ph",
        full_name="Loan Officer",
        permissions=[PermissionGrant(module="LOAN", operation="UPDATE")],
    )
    await user.insert()

    actor = await get_current_user(token=create_access_token({"sub": user.email}))

    assert actor["id"] == str(user.id)
    assert actor["permissions"] == [{"module": "LOAN", "operation": "UPDATE"}]


@pytest.mark.asyncio
async def test_inactive_user_is_rejected(jwt_secret, db):
    await User(email="former@microfinance.ph", full_name="Former", is_active=False).insert()

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user(token=create_access_token({"sub": "former@microfinance.ph"}))
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_token_without_subject_is_rejected(jwt_secret, db):
    with pytest.raises(HTTPException):
        await get_current_user(token=create_access_token({"role": "officer"}))
