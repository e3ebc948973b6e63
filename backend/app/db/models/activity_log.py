"""ActivityLog model: append-only audit trail of workflow actions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Uuid

from app.db.base import Base, JSONType


class ActivityLog(Base):
    __tablename__ = "activity_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action_type = Column(String(50), nullable=False)  # pjo_approved, engineering_waived, quotation_won, ...
    document_type = Column(String(30), nullable=False)  # pjo, quotation, assessment
    document_id = Column(Uuid, nullable=False, index=True)
    document_number = Column(String(50), nullable=True)
    user_id = Column(String(255), nullable=False)
    details = Column(JSONType, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    # NO updated_at -- entries are immutable (append-only)
