"""Quotation Pydantic schemas for API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.domain.quotations import LostReasonCategory


class CargoSpec(BaseModel):
    """Cargo and route attributes used for complexity scoring."""

    cargo_weight_kg: float | None = None
    cargo_length_m: float | None = None
    cargo_width_m: float | None = None
    cargo_height_m: float | None = None
    cargo_value: float | None = None
    duration_days: int | None = None
    is_new_route: bool | None = None
    terrain_type: str | None = None
    requires_special_permit: bool | None = None
    is_hazardous: bool | None = None


class ComplexityFactorResponse(BaseModel):
    criteria_code: str
    criteria_name: str
    weight: int
    triggered_value: str = ""


class RevenueItemRequest(BaseModel):
    description: str = Field(..., min_length=1, max_length=255)
    quantity: float = Field(1, gt=0)
    unit: str = "unit"
    unit_price: float = Field(..., ge=0)


class CostItemRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=255)
    estimated_amount: float = Field(..., ge=0)
    vendor_name: str | None = None


class PursuitCostRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., ge=0)


class CreateQuotationRequest(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=255)
    title: str = Field(..., min_length=1, max_length=255)
    commodity: str | None = None
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    rfq_deadline: datetime | None = None
    estimated_shipments: int = Field(1, ge=1)
    cargo: CargoSpec = Field(default_factory=CargoSpec)


class UpdateQuotationRequest(BaseModel):
    """Partial update. A cargo block replaces the whole cargo profile."""

    customer_name: str | None = Field(None, min_length=1, max_length=255)
    title: str | None = Field(None, min_length=1, max_length=255)
    commodity: str | None = None
    origin: str | None = Field(None, min_length=1)
    destination: str | None = Field(None, min_length=1)
    rfq_deadline: datetime | None = None
    estimated_shipments: int | None = Field(None, ge=1)
    cargo: CargoSpec | None = None


class MarkLostRequest(BaseModel):
    category: LostReasonCategory
    detail: str = ""


class ConvertQuotationRequest(BaseModel):
    """Convert a won quotation into PJOs, optionally one per shipment."""

    split_by_shipments: bool = False


class QuotationRevenueItemResponse(BaseModel):
    id: str
    description: str
    quantity: float
    unit: str
    unit_price: float
    subtotal: float


class QuotationCostItemResponse(BaseModel):
    id: str
    category: str
    description: str
    estimated_amount: float
    vendor_name: str | None = None


class PursuitCostResponse(BaseModel):
    id: str
    category: str
    description: str
    amount: float


class QuotationResponse(BaseModel):
    id: str
    quotation_number: str
    customer_name: str
    title: str
    origin: str
    destination: str
    status: str
    market_type: str | None = None
    complexity_score: int | None = None
    complexity_factors: list[ComplexityFactorResponse] = Field(default_factory=list)
    requires_engineering: bool
    engineering_status: str
    estimated_shipments: int
    total_revenue: float
    total_cost: float
    total_pursuit_cost: float
    gross_profit: float
    profit_margin: float
    pursuit_cost_per_shipment: float
    valid_next_statuses: list[str] = Field(default_factory=list)
    lost_reason_category: str | None = None
    lost_reason_detail: str | None = None
    revenue_items: list[QuotationRevenueItemResponse] = Field(default_factory=list)
    cost_items: list[QuotationCostItemResponse] = Field(default_factory=list)
    pursuit_costs: list[PursuitCostResponse] = Field(default_factory=list)
    created_at: datetime


class ConvertQuotationResponse(BaseModel):
    quotation_id: str
    pjo_ids: list[str]
    pjo_numbers: list[str]
