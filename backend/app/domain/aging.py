"""Accounts receivable aging.

Pure domain functions -- no DB access, fully deterministic.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any


class AgingBucket(StrEnum):
    CURRENT = "current"
    DAYS_31_TO_60 = "days31to60"
    DAYS_61_TO_90 = "days61to90"
    OVER_90 = "over90"


class OverdueSeverity(StrEnum):
    WARNING = "warning"
    ORANGE = "orange"
    CRITICAL = "critical"


# Invoice statuses that still count as open receivables.
OUTSTANDING_STATUSES = ("sent", "overdue")


@dataclass
class BucketSummary:
    count: int = 0
    amount: float = 0.0
    invoice_ids: list[str] = field(default_factory=list)


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def calculate_days_overdue(due_date: date | datetime, current_date: date | datetime) -> int:
    """Whole calendar days past due. Due today or later is 0."""
    return max(0, (_as_date(current_date) - _as_date(due_date)).days)


def bucket_for_days(days_overdue: int) -> AgingBucket:
    if days_overdue <= 30:
        return AgingBucket.CURRENT
    if days_overdue <= 60:
        return AgingBucket.DAYS_31_TO_60
    if days_overdue <= 90:
        return AgingBucket.DAYS_61_TO_90
    return AgingBucket.OVER_90


def calculate_aging_bucket(due_date: date | datetime, current_date: date | datetime) -> AgingBucket:
    """Bucket boundaries are inclusive: day 30 is current, day 31 is days31to60."""
    return bucket_for_days(calculate_days_overdue(due_date, current_date))


def get_overdue_severity(days_overdue: int) -> OverdueSeverity:
    if days_overdue <= 30:
        return OverdueSeverity.WARNING
    if days_overdue <= 60:
        return OverdueSeverity.ORANGE
    return OverdueSeverity.CRITICAL


def group_invoices_by_aging(invoices: Iterable[Any], current_date: date | datetime) -> dict[str, BucketSummary]:
    """Count and sum open invoices per aging bucket.

    Args:
        invoices: Objects exposing id, status, due_date and total_amount
        current_date: Reference date for the aging

    Returns:
        Mapping of every bucket value to its summary (empty buckets included)
    """
    result = {bucket.value: BucketSummary() for bucket in AgingBucket}

    for invoice in invoices:
        if invoice.status not in OUTSTANDING_STATUSES:
            continue
        summary = result[calculate_aging_bucket(invoice.due_date, current_date).value]
        summary.count += 1
        summary.amount += invoice.total_amount or 0
        summary.invoice_ids.append(str(invoice.id))

    return result
