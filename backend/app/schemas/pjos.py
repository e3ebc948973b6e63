"""Proforma job order Pydantic schemas for API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.quotations import CargoSpec, ComplexityFactorResponse


class CreatePJORequest(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    commodity: str | None = None
    pol: str = Field(..., min_length=1)
    pod: str = Field(..., min_length=1)
    cargo: CargoSpec = Field(default_factory=CargoSpec)


class UpdatePJORequest(BaseModel):
    """Partial update of a draft PJO. A cargo block replaces the whole cargo profile."""

    customer_name: str | None = Field(None, min_length=1, max_length=255)
    commodity: str | None = None
    pol: str | None = Field(None, min_length=1)
    pod: str | None = Field(None, min_length=1)
    cargo: CargoSpec | None = None


class RejectPJORequest(BaseModel):
    reason: str


class ActualCostRequest(BaseModel):
    actual_amount: float = Field(..., ge=0)


class RevenueItemResponse(BaseModel):
    id: str
    description: str
    quantity: float
    unit: str
    unit_price: float
    subtotal: float


class CostItemResponse(BaseModel):
    id: str
    category: str
    description: str
    estimated_amount: float
    actual_amount: float | None = None
    status: str
    budget_warning_level: str | None = None


class PJOResponse(BaseModel):
    id: str
    pjo_number: str
    quotation_id: str | None = None
    customer_name: str
    commodity: str | None = None
    pol: str
    pod: str
    status: str
    market_type: str | None = None
    complexity_score: int | None = None
    complexity_factors: list[ComplexityFactorResponse] = Field(default_factory=list)
    requires_engineering: bool
    engineering_status: str
    total_revenue: float
    total_cost_estimated: float
    total_cost_actual: float
    profit: float
    profit_margin: float
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    revenue_items: list[RevenueItemResponse] = Field(default_factory=list)
    cost_items: list[CostItemResponse] = Field(default_factory=list)
    created_at: datetime


class ApprovalStatusResponse(BaseModel):
    """Read-only evaluation of the approval gate."""

    pjo_id: str
    status: str
    can_approve: bool
    reason: str | None = None
    requires_engineering: bool
    engineering_status: str
