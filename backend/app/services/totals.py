"""Line items and the denormalized totals kept on quotations and PJOs.

Totals are re-applied after any line item change, before the session is
committed.
"""

from collections.abc import Iterable
from typing import TypeVar

from fastapi import HTTPException

from app.db.models.pjo import ProformaJobOrder
from app.db.models.quotation import Quotation
from app.domain.approval import calculate_cost_total, calculate_revenue_total
from app.domain.quotations import QuotationTotals, calculate_quotation_totals

ItemT = TypeVar("ItemT")


def find_line_item(items: Iterable[ItemT], item_id: str, label: str) -> ItemT:
    """Pick a line item of the loaded record by id, or raise 404."""
    item = next((i for i in items if str(i.id) == item_id), None)
    if item is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return item


def apply_quotation_totals(quotation: Quotation) -> QuotationTotals:
    totals = calculate_quotation_totals(
        [item.subtotal for item in quotation.revenue_items],
        [item.estimated_amount for item in quotation.cost_items],
        [cost.amount for cost in quotation.pursuit_costs],
        quotation.estimated_shipments or 1,
    )
    quotation.total_revenue = totals.total_revenue
    quotation.total_cost = totals.total_cost
    quotation.total_pursuit_cost = totals.total_pursuit_cost
    quotation.gross_profit = totals.gross_profit
    quotation.profit_margin = totals.profit_margin
    return totals


def apply_pjo_totals(pjo: ProformaJobOrder) -> None:
    pjo.total_revenue = calculate_revenue_total(pjo.revenue_items)
    pjo.total_cost_estimated = calculate_cost_total(pjo.cost_items, "estimated")
    pjo.total_cost_actual = calculate_cost_total(pjo.cost_items, "actual")
