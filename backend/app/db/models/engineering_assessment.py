"""EngineeringAssessment model: one technical assessment within a review."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid

from app.db.base import Base


class EngineeringAssessment(Base):
    __tablename__ = "engineering_assessments"
    __table_args__ = (
        # Owned by exactly one parent record
        CheckConstraint(
            "(pjo_id IS NOT NULL AND quotation_id IS NULL) OR (pjo_id IS NULL AND quotation_id IS NOT NULL)",
            name="ck_engineering_assessments_single_parent",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    pjo_id = Column(Uuid, ForeignKey("proforma_job_orders.id", ondelete="CASCADE"), nullable=True, index=True)
    quotation_id = Column(Uuid, ForeignKey("quotations.id", ondelete="CASCADE"), nullable=True, index=True)

    assessment_type = Column(String(30), nullable=False)  # technical_review, route_survey, permit_check, jmp_creation
    status = Column(String(20), nullable=False, default="pending")  # pending, in_progress, completed, cancelled

    assigned_to = Column(String(255), nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)

    findings = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    risk_level = Column(String(20), nullable=True)  # low, medium, high, critical
    additional_cost_estimate = Column(Numeric(18, 2, asdecimal=False), nullable=True)
    cost_justification = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    completed_by = Column(String(255), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
