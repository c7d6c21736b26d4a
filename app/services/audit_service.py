import logging
from typing import Optional, Dict, Any
from datetime import datetime

from app.database.models.audit_log_model import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Records audit events in MongoDB using Beanie."""

    async def create_audit(
        self,
        *,
        event: str,
        actor: Optional[str] = None,
        acted: Optional[str] = None,
        message: Optional[str] = None,
        diff: Optional[Dict[str, Any]] = None,
        status: str = "successful",
        timestamp: Optional[datetime] = None
    ) -> AuditLog:
        audit = AuditLog(
            event=event,
            actor=actor,
            acted=acted,
            message=message,
            diff=diff,
            status=status,
            timestamp=timestamp or datetime.now(),
        )
        await audit.insert()
        return audit

    # Fire-and-forget variant used after a committed mutation; failures are logged, never raised
    async def track(self, **kwargs) -> Optional[AuditLog]:
        try:
            return await self.create_audit(**kwargs)
        except Exception as e:
            logger.error(f"Failed to track audit event {kwargs.get('event')}: {e}")
            return None


audit_service = AuditService()
