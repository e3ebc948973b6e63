"""JobOrder model: executed jobs, source of realised revenue."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Uuid

from app.db.base import Base


class JobOrder(Base):
    __tablename__ = "job_orders"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    jo_number = Column(String(50), unique=True, nullable=False)
    pjo_id = Column(Uuid, ForeignKey("proforma_job_orders.id"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)

    # active, completed, submitted_to_finance, invoiced, closed
    status = Column(String(30), nullable=False, default="active", index=True)
    final_revenue = Column(Numeric(18, 2, asdecimal=False), nullable=True)
    final_cost = Column(Numeric(18, 2, asdecimal=False), nullable=True)

    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
