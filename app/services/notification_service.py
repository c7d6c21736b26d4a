"""
Notification sink for loan workflow events.

Every notification is stored as an in-app record through the caller's unit
of work. When PhilSMS credentials are configured and the recipient has a
phone number on file, the message is also relayed by SMS once the unit of
work commits.
"""

import logging
from typing import Optional
import httpx
from beanie import PydanticObjectId

from app.core import Settings
from app.database.models import Notification, User

logger = logging.getLogger(__name__)


class SmsDeliveryError(Exception):
    pass


class NotificationService:
    """Creates in-app notifications and relays them over PhilSMS."""

    def __init__(self, api_token: Optional[str] = None, sender_id: Optional[str] = None):
        self.api_token = api_token if api_token is not None else Settings.PHILSMS_API_TOKEN
        self.sender_id = sender_id if sender_id is not None else Settings.PHILSMS_SENDER_ID
        self.api_url = "https://dashboard.philsms.com/api/v3/sms/send"

        if not self.sms_enabled:
            logger.info("PhilSMS credentials not configured, notifications stay in-app only")

    @property
    def sms_enabled(self) -> bool:
        return bool(self.api_token and self.sender_id)

    async def create(
        self,
        uow,
        for_user: Optional[PydanticObjectId],
        message: str,
        task_ref: Optional[PydanticObjectId] = None
    ) -> Notification:
        """
        Record a notification for a user.

        Args:
            uow: Unit of work the notification record is written through
            for_user: Recipient; notifications without a recipient are still stored
            message: Notification text
            task_ref: Task the notification is about, if any

        Returns:
            Notification: The stored notification
        """
        notification = await uow.create(Notification, {
            "for_user": for_user,
            "message": message,
            "task_ref": task_ref,
        })
        logger.info(f"Notification {notification.id} created for user {for_user}")

        if self.sms_enabled and for_user is not None:
            recipient = await uow.get(User, {"_id": for_user})
            if recipient is not None and recipient.phone_number:
                phone_number = recipient.phone_number

                async def relay():
                    await self.send_sms(phone_number, message)

                uow.on_commit(relay)

        return notification

    @staticmethod
    def _sanitize_message(message: str) -> str:
        """Replace characters that would force a unicode SMS, then keep ASCII only."""
        replacements = {
            '₱': 'PHP ',
            'é': 'e',
            'ñ': 'n',
            'Ñ': 'N',
            '–': '-',
            '—': '-',
        }
        for old, new in replacements.items():
            message = message.replace(old, new)
        return ''.join(char if ord(char) < 128 else '' for char in message)

    @staticmethod
    def _normalize_phone_number(phone_number: str) -> str:
        """
        Normalize phone number to Philippine format (639XXXXXXXXX).

        Raises:
            ValueError: If phone number format is invalid
        """
        if not phone_number:
            raise ValueError("Phone number cannot be empty")

        cleaned = phone_number.replace(" ", "").replace("-", "").replace("(", "").replace(")", "")
        if cleaned.startswith("+"):
            cleaned = cleaned[1:]
        if cleaned.startswith("0"):
            cleaned = cleaned[1:]
        if not cleaned.startswith("63"):
            cleaned = f"63{cleaned}"

        if len(cleaned) != 12:
            raise ValueError(
                f"Invalid phone number format. Expected 12 digits (63XXXXXXXXXX), got {len(cleaned)}"
            )
        if not cleaned.isdigit():
            raise ValueError("Phone number must contain only digits")
        return cleaned

    async def send_sms(self, phone_number: str, message: str) -> dict:
        """
        Send an SMS message via PhilSMS.

        Raises:
            SmsDeliveryError: If PhilSMS is not configured or the request fails
        """
        if not self.sms_enabled:
            raise SmsDeliveryError(
                "PhilSMS service not initialized. Please configure "
                "PHILSMS_API_TOKEN and PHILSMS_SENDER_ID"
            )

        normalized_number = self._normalize_phone_number(phone_number)
        sanitized_message = self._sanitize_message(message)

        logger.info(
            f"Attempting to send SMS via PhilSMS to {normalized_number[:5]}...***. "
            f"Message length: {len(sanitized_message)} chars"
        )

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
            "Accept": "application/json"
        }
        payload = {
            "recipient": normalized_number,
            "sender_id": self.sender_id,
            "type": "plain",
            "message": sanitized_message
        }

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(self.api_url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error sending SMS via PhilSMS: {str(e)}")
            raise SmsDeliveryError(f"Failed to send SMS: {str(e)}") from e

        try:
            response_data = response.json()
        except ValueError as e:
            logger.error(f"Failed to parse JSON response: {response.text}")
            raise SmsDeliveryError(f"Invalid JSON response from PhilSMS: {response.text}") from e

        # PhilSMS returns: {"status": "success", "message": "...", "data": {...}}
        if response_data.get("status") != "success":
            error_message = response_data.get("message", "Unknown error")
            logger.error(f"PhilSMS API error: HTTP {response.status_code} - Message: {error_message}")
            raise SmsDeliveryError(f"PhilSMS API error: {error_message}")

        data = response_data.get("data", {})
        logger.info(f"SMS sent successfully via PhilSMS to {normalized_number[:5]}...***. UID: {data.get('uid')}")
        return {
            "success": True,
            "message_id": data.get("uid"),
            "status": data.get("status"),
            "phone": normalized_number,
        }


notification_service = NotificationService()
