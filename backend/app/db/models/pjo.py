"""Proforma job order models: pre-execution cost/revenue estimates."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.models.mixins import CargoColumnsMixin, EngineeringReviewMixin


class ProformaJobOrder(CargoColumnsMixin, EngineeringReviewMixin, Base):
    __tablename__ = "proforma_job_orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    pjo_number = Column(String(40), unique=True, nullable=False, index=True)
    quotation_id = Column(Uuid, ForeignKey("quotations.id"), nullable=True, index=True)

    customer_name = Column(String(255), nullable=False)
    commodity = Column(String(255), nullable=True)
    pol = Column(String(255), nullable=False)  # port / point of loading
    pod = Column(String(255), nullable=False)  # port / point of discharge

    # draft, pending_approval, approved, rejected
    status = Column(String(30), nullable=False, default="draft", index=True)

    total_revenue = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)
    total_cost_estimated = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)
    total_cost_actual = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)
    pursuit_cost_allocation = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)

    submitted_by = Column(String(255), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(255), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(255), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    revenue_items = relationship("PJORevenueItem", cascade="all, delete-orphan", lazy="selectin")
    cost_items = relationship("PJOCostItem", cascade="all, delete-orphan", lazy="selectin")


class PJORevenueItem(Base):
    __tablename__ = "pjo_revenue_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    pjo_id = Column(Uuid, ForeignKey("proforma_job_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=1)
    unit = Column(String(30), nullable=False, default="unit")
    unit_price = Column(Numeric(18, 2, asdecimal=False), nullable=False)
    subtotal = Column(Numeric(18, 2, asdecimal=False), nullable=False)


class PJOCostItem(Base):
    __tablename__ = "pjo_cost_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    pjo_id = Column(Uuid, ForeignKey("proforma_job_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(50), nullable=False)
    description = Column(String(255), nullable=False)
    estimated_amount = Column(Numeric(18, 2, asdecimal=False), nullable=False)
    actual_amount = Column(Numeric(18, 2, asdecimal=False), nullable=True)
    status = Column(String(20), nullable=False, default="estimated")  # estimated, confirmed, at_risk, exceeded
    vendor_name = Column(String(255), nullable=True)
