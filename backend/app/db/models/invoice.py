"""Invoice model: customer receivables."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Uuid

from app.db.base import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_number = Column(String(50), unique=True, nullable=False)
    jo_id = Column(Uuid, ForeignKey("job_orders.id"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)

    # draft, sent, partial, paid, overdue, cancelled
    status = Column(String(20), nullable=False, default="draft", index=True)
    total_amount = Column(Numeric(18, 2, asdecimal=False), nullable=False)
    amount_paid = Column(Numeric(18, 2, asdecimal=False), nullable=False, default=0)
    due_date = Column(Date, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
