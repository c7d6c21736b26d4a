import httpx
import pytest

from app.database.models import Notification, User
from app.services.notification_service import NotificationService, SmsDeliveryError


def test_phone_numbers_are_normalized():
    assert NotificationService._normalize_phone_number("0917-123-4567") == "639171234567"
    assert NotificationService._normalize_phone_number("+63 917 123 4567") == "639171234567"
    with pytest.raises(ValueError):
        NotificationService._normalize_phone_number("12345")


def test_messages_are_sanitized_to_ascii():
    assert NotificationService._sanitize_message("₱5,000 – Niño") == "PHP 5,000 - Nino"


@pytest.mark.asyncio
async def test_notification_is_stored_without_sms(store, notifications, db):
    async with store.unit_of_work() as uow:
        notification = await notifications.create(uow, for_user=None, message="Loan accepted")

    stored = await Notification.get(notification.id)
    assert stored.message == "Loan accepted"
    assert stored.read is False


@pytest.mark.asyncio
async def test_sms_is_relayed_after_commit(store, db, monkeypatch):
    user = User(email="officer@microfinance.ph", full_name="Officer", phone_number="09171234567")
    await user.insert()
    service = NotificationService(api_token="token", sender_id="MFI")
    sent = []

    async def fake_send(phone_number, message):
        sent.append((phone_number, message))

    monkeypatch.setattr(service, "send_sms", fake_send)

    async with store.unit_of_work() as uow:
        await service.create(uow, for_user=user.id, message="Loan accepted")
        assert sent == []

    assert sent == [("09171234567", "Loan accepted")]


@pytest.mark.asyncio
async def test_sms_is_not_relayed_on_rollback(store, db, monkeypatch):
    user = User(email="teller@microfinance.ph", full_name="Teller", phone_number="09171234567")
    await user.insert()
    service = NotificationService(api_token="token", sender_id="MFI")
    sent = []

    async def fake_send(phone_number, message):
        sent.append(phone_number)

    monkeypatch.setattr(service, "send_sms", fake_send)

    with pytest.raises(RuntimeError):
        async with store.unit_of_work() as uow:
            await service.create(uow, for_user=user.id, message="Loan accepted")
            raise RuntimeError("later step failed")

    assert sent == []
    assert await Notification.find_all().count() == 0


@pytest.mark.asyncio
async def test_send_sms_posts_to_philsms(monkeypatch):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"status": "success", "data": {"uid": "abc123", "status": "Delivered"}})

    transport = httpx.MockTransport(handler)
    real_client = httpx.AsyncClient
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: real_client(transport=transport, **kwargs))

    result = await NotificationService(api_token="token", sender_id="MFI").send_sms("09171234567", "Hello")

    assert result["message_id"] == "abc123"
    assert result["phone"] == "639171234567"
    assert captured["url"].endswith("/api/v3/sms/send")
    assert captured["auth"] == "Bearer token"


@pytest.mark.asyncio
async def test_send_sms_surfaces_gateway_errors(monkeypatch):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"status": "error", "message": "Low balance"}))
    real_client = httpx.AsyncClient
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: real_client(transport=transport, **kwargs))

    with pytest.raises(SmsDeliveryError, match="Low balance"):
        await NotificationService(api_token="token", sender_id="MFI").send_sms("09171234567", "Hello")


@pytest.mark.asyncio
async def test_send_sms_requires_credentials():
    with pytest.raises(SmsDeliveryError):
        await NotificationService(api_token="", sender_id="").send_sms("09171234567", "Hello")
