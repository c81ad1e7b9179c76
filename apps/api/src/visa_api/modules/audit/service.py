"""
Audit Logging

`record` adds an AuditLog row to the caller's session so it commits (or
rolls back) together with the change it describes.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from visa_api.modules.audit.models import AuditEntityType, AuditLog

logger = logging.getLogger(__name__)


def record(
    db: AsyncSession,
    *,
    action: str,
    entity_type: AuditEntityType,
    entity_id: UUID,
    user_id: UUID | None = None,
    user_role: str | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    entry = AuditLog(
        user_id=user_id,
        user_role=user_role,
        action=action,
        entity_type=entity_type.value,
        entity_id=entity_id,
        details=details,
    )
    db.add(entry)
    logger.debug(f"Audit: {action} on {entity_type.value} {entity_id} by {user_id}")
    return entry
