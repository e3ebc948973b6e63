"""DashboardService: director KPIs and receivables aging.

Orchestrates domain functions with database queries. Director metrics are
cached in Redis for dashboard_cache_ttl_seconds; Redis failures never fail
the request, the metrics are simply recomputed.
"""

from datetime import UTC, date, datetime, timedelta

import structlog
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.db.models.invoice import Invoice
from app.db.models.job_order import JobOrder
from app.db.models.pjo import ProformaJobOrder
from app.db.models.quotation import Quotation
from app.domain.aging import (
    OUTSTANDING_STATUSES,
    calculate_days_overdue,
    get_overdue_severity,
    group_invoices_by_aging,
)
from app.domain.approval import PJOStatus
from app.domain.engineering import EngineeringStatus
from app.domain.metrics import (
    calculate_collection_rate,
    calculate_job_completion_rate,
    calculate_profit,
    calculate_profit_margin,
    calculate_revenue_change_percent,
    calculate_win_rate,
    get_collection_color,
    get_margin_color,
)
from app.domain.quotations import QuotationStatus, calculate_pipeline_value
from app.schemas.dashboard import (
    AgingBucketResponse,
    ARAgingResponse,
    BusinessPerformance,
    DirectorDashboardResponse,
    FinancialHealth,
    OperationalKPIs,
    OverdueInvoiceResponse,
    PipelineSummary,
)

logger = structlog.get_logger(__name__)

# Job orders whose revenue is realised
FINISHED_JOB_STATUSES = ("completed", "submitted_to_finance", "invoiced", "closed")
# Invoices that count towards billed amounts
BILLED_INVOICE_STATUSES = ("sent", "partial", "paid", "overdue")
OPEN_REVIEW_STATUSES = (EngineeringStatus.PENDING.value, EngineeringStatus.IN_PROGRESS.value)


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _completed_on(job: JobOrder) -> date | None:
    if job.completed_at is None:
        return None
    return job.completed_at.date()


class DashboardService:
    """Service layer for dashboard aggregation.

    All methods are pure orchestration; the business rules live in the
    domain layer (app.domain.metrics, app.domain.aging).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], redis: object | None = None):
        """Initialize with dependency injection.

        Args:
            session_factory: SQLAlchemy async session factory
            redis: async Redis client used as metrics cache (None disables caching)
        """
        self.session_factory = session_factory
        self.redis = redis
        self.settings = get_settings()

    def _cache_key(self, on: date) -> str:
        return f"{self.settings.dashboard_cache_prefix}:director:{on.isoformat()}"

    async def _read_cache(self, key: str) -> DirectorDashboardResponse | None:
        if self.redis is None:
            return None
        try:
            raw = await self.redis.get(key)
        except Exception as exc:
            logger.warning("dashboard_cache_read_failed", key=key, error=str(exc), error_type=type(exc).__name__)
            return None
        if raw is None:
            return None
        try:
            return DirectorDashboardResponse.model_validate_json(raw)
        except ValidationError as exc:
            # Stale shape or corrupt entry; recompute and overwrite
            logger.warning("dashboard_cache_decode_failed", key=key, error_count=exc.error_count())
            return None

    async def _write_cache(self, key: str, payload: DirectorDashboardResponse) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.set(key, payload.model_dump_json(), ex=self.settings.dashboard_cache_ttl_seconds)
        except Exception as exc:
            logger.warning("dashboard_cache_write_failed", key=key, error=str(exc), error_type=type(exc).__name__)

    async def get_director_dashboard(
        self, today: date | None = None, refresh: bool = False
    ) -> DirectorDashboardResponse:
        """Director KPIs, served from cache when available.

        Args:
            today: Reference date (defaults to the current UTC date)
            refresh: Skip the cache read and recompute

        Returns:
            DirectorDashboardResponse
        """
        today = today or datetime.now(UTC).date()
        key = self._cache_key(today)

        if not refresh:
            cached = await self._read_cache(key)
            if cached is not None:
                logger.debug("dashboard_cache_hit", key=key)
                return cached

        async with self.session_factory() as session:
            dashboard = DirectorDashboardResponse(
                business=await self._business(session, today),
                operations=await self._operations(session, today),
                pipeline=await self._pipeline(session),
                financial_health=await self._financial_health(session, today),
                generated_on=today,
            )

        await self._write_cache(key, dashboard)
        return dashboard

    async def _business(self, session: AsyncSession, today: date) -> BusinessPerformance:
        result = await session.execute(select(JobOrder).where(JobOrder.status.in_(FINISHED_JOB_STATUSES)))
        jobs = list(result.scalars().all())

        revenue = sum(job.final_revenue or 0 for job in jobs)
        cost = sum(job.final_cost or 0 for job in jobs)
        margin = calculate_profit_margin(revenue, cost)

        this_month = _month_start(today)
        last_month = _month_start(this_month - timedelta(days=1))
        revenue_mtd = sum(
            job.final_revenue or 0 for job in jobs if (done := _completed_on(job)) and this_month <= done <= today
        )
        revenue_last_month = sum(
            job.final_revenue or 0 for job in jobs if (done := _completed_on(job)) and last_month <= done < this_month
        )

        return BusinessPerformance(
            total_revenue=revenue,
            total_profit=calculate_profit(revenue, cost),
            profit_margin=margin,
            margin_color=get_margin_color(margin).value,
            revenue_mtd=revenue_mtd,
            revenue_last_month=revenue_last_month,
            revenue_change_percent=calculate_revenue_change_percent(revenue_mtd, revenue_last_month),
        )

    async def _operations(self, session: AsyncSession, today: date) -> OperationalKPIs:
        result = await session.execute(select(JobOrder))
        jobs = list(result.scalars().all())

        finished = [job for job in jobs if job.status in FINISHED_JOB_STATUSES]
        this_month = _month_start(today)
        completed_this_month = sum(1 for job in finished if (done := _completed_on(job)) and done >= this_month)

        pending_pjos = await session.execute(
            select(func.count())
            .select_from(ProformaJobOrder)
            .where(ProformaJobOrder.is_active.is_(True), ProformaJobOrder.status == PJOStatus.PENDING_APPROVAL.value)
        )
        open_pjo_reviews = await session.execute(
            select(func.count())
            .select_from(ProformaJobOrder)
            .where(ProformaJobOrder.is_active.is_(True), ProformaJobOrder.engineering_status.in_(OPEN_REVIEW_STATUSES))
        )
        open_quotation_reviews = await session.execute(
            select(func.count())
            .select_from(Quotation)
            .where(Quotation.is_active.is_(True), Quotation.engineering_status.in_(OPEN_REVIEW_STATUSES))
        )

        return OperationalKPIs(
            active_jobs=sum(1 for job in jobs if job.status == "active"),
            completed_jobs_this_month=completed_this_month,
            job_completion_rate=calculate_job_completion_rate(len(finished), len(jobs)),
            pending_pjo_approvals=pending_pjos.scalar_one(),
            pending_engineering_reviews=open_pjo_reviews.scalar_one() + open_quotation_reviews.scalar_one(),
        )

    async def _pipeline(self, session: AsyncSession) -> PipelineSummary:
        quotations = list((await session.execute(select(Quotation).where(Quotation.is_active.is_(True)))).scalars())
        pjo_counts = dict(
            (
                await session.execute(
                    select(ProformaJobOrder.status, func.count())
                    .where(ProformaJobOrder.is_active.is_(True))
                    .group_by(ProformaJobOrder.status)
                )
            ).all()
        )

        def count(status: QuotationStatus) -> int:
            return sum(1 for q in quotations if q.status == status)

        won = count(QuotationStatus.WON)
        lost = count(QuotationStatus.LOST)
        return PipelineSummary(
            quotations_draft=count(QuotationStatus.DRAFT) + count(QuotationStatus.ENGINEERING_REVIEW),
            quotations_submitted=count(QuotationStatus.SUBMITTED),
            quotations_won=won,
            quotations_lost=lost,
            pjos_draft=pjo_counts.get(PJOStatus.DRAFT.value, 0),
            pjos_pending_approval=pjo_counts.get(PJOStatus.PENDING_APPROVAL.value, 0),
            pjos_approved=pjo_counts.get(PJOStatus.APPROVED.value, 0),
            win_rate=calculate_win_rate(won, lost),
            pipeline_value=calculate_pipeline_value(quotations),
        )

    async def _financial_health(self, session: AsyncSession, today: date) -> FinancialHealth:
        result = await session.execute(select(Invoice).where(Invoice.status.in_(BILLED_INVOICE_STATUSES)))
        invoices = list(result.scalars().all())

        invoiced = sum(inv.total_amount or 0 for inv in invoices)
        paid = sum(inv.amount_paid or 0 for inv in invoices)
        unpaid = [inv for inv in invoices if inv.status != "paid"]
        outstanding = sum((inv.total_amount or 0) - (inv.amount_paid or 0) for inv in unpaid)
        overdue = sum(
            (inv.total_amount or 0) - (inv.amount_paid or 0)
            for inv in unpaid
            if calculate_days_overdue(inv.due_date, today) > 0
        )
        rate = calculate_collection_rate(paid, invoiced)

        return FinancialHealth(
            ar_outstanding=outstanding,
            ar_overdue=overdue,
            collection_rate=rate,
            collection_color=get_collection_color(rate).value,
        )

    async def get_ar_aging(self, today: date | None = None) -> ARAgingResponse:
        """Outstanding invoices grouped by aging bucket, plus the overdue list.

        Not cached: finance works from live receivables.
        """
        today = today or datetime.now(UTC).date()

        async with self.session_factory() as session:
            result = await session.execute(
                select(Invoice).where(Invoice.status.in_(OUTSTANDING_STATUSES)).order_by(Invoice.due_date)
            )
            invoices = list(result.scalars().all())

        buckets = group_invoices_by_aging(invoices, today)
        overdue = []
        for inv in invoices:
            days = calculate_days_overdue(inv.due_date, today)
            if days <= 0:
                continue
            overdue.append(
                OverdueInvoiceResponse(
                    id=str(inv.id),
                    invoice_number=inv.invoice_number,
                    customer_name=inv.customer_name,
                    outstanding_amount=(inv.total_amount or 0) - (inv.amount_paid or 0),
                    days_overdue=days,
                    severity=get_overdue_severity(days).value,
                )
            )
        overdue.sort(key=lambda item: item.days_overdue, reverse=True)

        return ARAgingResponse(
            as_of=today,
            buckets={
                name: AgingBucketResponse(count=s.count, amount=s.amount, invoice_ids=s.invoice_ids)
                for name, s in buckets.items()
            },
            overdue_invoices=overdue,
        )
