"""Pydantic schemas for dashboard API responses."""

from datetime import date

from pydantic import BaseModel, Field


class BusinessPerformance(BaseModel):
    total_revenue: float
    total_profit: float
    profit_margin: float
    margin_color: str
    revenue_mtd: float
    revenue_last_month: float
    revenue_change_percent: float


class OperationalKPIs(BaseModel):
    active_jobs: int
    completed_jobs_this_month: int
    job_completion_rate: float
    pending_pjo_approvals: int
    pending_engineering_reviews: int


class PipelineSummary(BaseModel):
    quotations_draft: int
    quotations_submitted: int
    quotations_won: int
    quotations_lost: int
    pjos_draft: int
    pjos_pending_approval: int
    pjos_approved: int
    win_rate: float
    pipeline_value: float


class FinancialHealth(BaseModel):
    ar_outstanding: float
    ar_overdue: float
    collection_rate: float
    collection_color: str


class DirectorDashboardResponse(BaseModel):
    """Director dashboard payload. Cached for dashboard_cache_ttl_seconds."""

    business: BusinessPerformance
    operations: OperationalKPIs
    pipeline: PipelineSummary
    financial_health: FinancialHealth
    generated_on: date


class AgingBucketResponse(BaseModel):
    count: int = 0
    amount: float = 0
    invoice_ids: list[str] = Field(default_factory=list)


class OverdueInvoiceResponse(BaseModel):
    id: str
    invoice_number: str
    customer_name: str
    outstanding_amount: float
    days_overdue: int
    severity: str


class ARAgingResponse(BaseModel):
    as_of: date
    buckets: dict[str, AgingBucketResponse]
    overdue_invoices: list[OverdueInvoiceResponse] = Field(default_factory=list)
