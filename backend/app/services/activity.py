"""Audit trail helper shared by the workflow services."""

import uuid
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.activity_log import ActivityLog

logger = structlog.get_logger(__name__)


def record_activity(
    session: AsyncSession,
    action_type: str,
    document_type: str,
    document_id: uuid.UUID,
    user_id: str,
    document_number: str | None = None,
    **details: Any,
) -> ActivityLog:
    """Stage an activity log entry and emit the matching structured log event.

    The entry is added to the session only; it is committed together with the
    state change it describes.
    """
    entry = ActivityLog(
        action_type=action_type,
        document_type=document_type,
        document_id=document_id,
        document_number=document_number,
        user_id=user_id,
        details=details,
    )
    session.add(entry)
    logger.info(
        action_type,
        document_type=document_type,
        document_id=str(document_id),
        document_number=document_number,
        user_id=user_id,
        **details,
    )
    return entry
