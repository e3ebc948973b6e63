"""Quotation models: customer price offers and their line items."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.base import Base
from app.db.models.mixins import CargoColumnsMixin, EngineeringReviewMixin


class Quotation(CargoColumnsMixin, EngineeringReviewMixin, Base):
    __tablename__ = "quotations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quotation_number = Column(String(30), unique=True, nullable=False, index=True)

    customer_name = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    commodity = Column(String(255), nullable=True)
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    rfq_deadline = Column(DateTime(timezone=True), nullable=True)

    # draft, engineering_review, ready, submitted, won, lost, cancelled
    status = Column(String(30), nullable=False, default="draft", index=True)
    estimated_shipments = Column(Integer, nullable=False, default=1)

    # Denormalized totals, recomputed whenever line items change
    total_revenue = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)
    total_cost = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)
    total_pursuit_cost = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)
    gross_profit = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)
    profit_margin = Column(Numeric(7, 2, asdecimal=False), nullable=False, default=0)

    submitted_by = Column(String(255), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    outcome_date = Column(DateTime(timezone=True), nullable=True)
    outcome_reason = Column(Text, nullable=True)  # "category|detail" for lost quotations

    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    revenue_items = relationship("QuotationRevenueItem", cascade="all, delete-orphan", lazy="selectin")
    cost_items = relationship("QuotationCostItem", cascade="all, delete-orphan", lazy="selectin")
    pursuit_costs = relationship("PursuitCost", cascade="all, delete-orphan", lazy="selectin")


class QuotationRevenueItem(Base):
    __tablename__ = "quotation_revenue_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quotation_id = Column(Uuid, ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=1)
    unit = Column(String(30), nullable=False, default="unit")
    unit_price = Column(Numeric(18, 2, asdecimal=False), nullable=False)
    subtotal = Column(Numeric(18, 2, asdecimal=False), nullable=False)


class QuotationCostItem(Base):
    __tablename__ = "quotation_cost_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quotation_id = Column(Uuid, ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(50), nullable=False)  # trucking, port_charges, customs, ...
    description = Column(String(255), nullable=False)
    estimated_amount = Column(Numeric(18, 2, asdecimal=False), nullable=False)
    vendor_name = Column(String(255), nullable=True)


class PursuitCost(Base):
    __tablename__ = "pursuit_costs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quotation_id = Column(Uuid, ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(50), nullable=False)  # travel, survey, canvassing, ...
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(18, 2, asdecimal=False), nullable=False)
