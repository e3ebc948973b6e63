"""Integration tests for QuotationService: lifecycle, outcome and conversion to PJOs."""

from datetime import UTC, datetime

import pytest
from fastapi import HTTPException

from app.domain.complexity import MarketType
from app.domain.quotations import LostReasonCategory, QuotationStatus
from app.schemas.quotations import (
    CargoSpec,
    CostItemRequest,
    CreateQuotationRequest,
    MarkLostRequest,
    PursuitCostRequest,
    RevenueItemRequest,
    UpdateQuotationRequest,
)
from app.services.pjo_service import PJOService
from app.services.quotation_service import QuotationService

pytestmark = pytest.mark.integration


async def _priced(service: QuotationService, user, cargo: dict | None = None, shipments: int = 1):
    quotation = await service.create(
        CreateQuotationRequest(
            customer_name="PT Agro Sejahtera",
            title="Palm oil mill equipment",
            commodity="Boilers",
            origin="Belawan",
            destination="Pontianak",
            estimated_shipments=shipments,
            cargo=CargoSpec(**(cargo or {})),
        ),
        user,
    )
    await service.add_revenue_item(
        quotation.id, RevenueItemRequest(description="Door to door", quantity=3, unit_price=100_000_000), user
    )
    return await service.add_cost_item(
        quotation.id,
        CostItemRequest(category="trucking", description="Lowbed trailer", estimated_amount=210_000_000),
        user,
    )


async def _submitted(service: QuotationService, user, **kwargs):
    quotation = await _priced(service, user, **kwargs)
    await service.mark_ready(quotation.id, user)
    return await service.submit(quotation.id, user)


async def test_simple_quotation_starts_in_draft(session_factory, sales_user, light_cargo):
    quotation = await QuotationService(session_factory).create(
        CreateQuotationRequest(
            customer_name="PT Agro Sejahtera",
            title="Fertilizer",
            origin="Gresik",
            destination="Bima",
            cargo=CargoSpec(**light_cargo),
        ),
        sales_user,
    )

    assert quotation.quotation_number == f"QUO-{datetime.now(UTC).year}-0001"
    assert quotation.status == "draft"
    assert quotation.market_type == "simple"
    assert quotation.complexity_score == 10
    assert quotation.requires_engineering is False
    assert quotation.engineering_status == "not_required"
    assert quotation.valid_next_statuses == ["ready", "cancelled"]
    assert [f.criteria_code for f in quotation.complexity_factors] == ["new_route"]


async def test_complex_quotation_starts_in_engineering_review(session_factory, sales_user, heavy_cargo):
    quotation = await _priced(QuotationService(session_factory), sales_user, cargo=heavy_cargo)

    assert quotation.status == "engineering_review"
    assert quotation.market_type == "complex"
    assert quotation.requires_engineering is True
    assert quotation.engineering_status == "pending"


async def test_pricing_totals(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user, shipments=2)
    quotation = await service.add_pursuit_cost(
        quotation.id,
        PursuitCostRequest(category="survey", description="Site visit", amount=3_000_000),
        sales_user,
    )

    assert quotation.total_revenue == 300_000_000
    assert quotation.total_cost == 210_000_000
    assert quotation.gross_profit == 90_000_000
    assert quotation.profit_margin == 30.0
    assert quotation.total_pursuit_cost == 3_000_000
    assert quotation.pursuit_cost_per_shipment == 1_500_000


async def test_mark_ready_requires_line_items(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await service.create(
        CreateQuotationRequest(customer_name="PT X", title="Empty", origin="A", destination="B"),
        sales_user,
    )

    with pytest.raises(HTTPException) as exc_info:
        await service.mark_ready(quotation.id, sales_user)
    assert exc_info.value.status_code == 422


async def test_mark_ready_requires_positive_margin(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user)
    await service.add_cost_item(
        quotation.id,
        CostItemRequest(category="port", description="Port handling", estimated_amount=90_000_000),
        sales_user,
    )

    with pytest.raises(HTTPException) as exc_info:
        await service.mark_ready(quotation.id, sales_user)
    assert exc_info.value.status_code == 422


async def test_submit_requires_ready(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user)

    with pytest.raises(HTTPException) as exc_info:
        await service.submit(quotation.id, sales_user)
    assert exc_info.value.status_code == 409


async def test_ready_quotation_is_locked_for_line_items(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user)
    ready = await service.mark_ready(quotation.id, sales_user)
    assert ready.status == "ready"

    with pytest.raises(HTTPException) as exc_info:
        await service.add_revenue_item(
            quotation.id, RevenueItemRequest(description="Extra", unit_price=1), sales_user
        )
    assert exc_info.value.status_code == 409


async def test_mark_lost_keeps_categorized_reason(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _submitted(service, sales_user)

    lost = await service.mark_lost(
        quotation.id,
        MarkLostRequest(category=LostReasonCategory.HARGA_TINGGI, detail="Competitor 10% lower"),
        sales_user,
    )

    assert lost.status == "lost"
    assert lost.lost_reason_category == "harga_tinggi"
    assert lost.lost_reason_detail == "Competitor 10% lower"
    assert lost.valid_next_statuses == []

    with pytest.raises(HTTPException) as exc_info:
        await service.add_pursuit_cost(
            quotation.id, PursuitCostRequest(category="travel", description="Late trip", amount=1), sales_user
        )
    assert exc_info.value.status_code == 409


async def test_cancel_from_draft(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user)

    cancelled = await service.cancel(quotation.id, sales_user)
    assert cancelled.status == "cancelled"

    with pytest.raises(HTTPException) as exc_info:
        await service.mark_ready(quotation.id, sales_user)
    assert exc_info.value.status_code == 409


async def test_convert_requires_won(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _submitted(service, sales_user)

    with pytest.raises(HTTPException) as exc_info:
        await service.convert_to_pjos(quotation.id, False, sales_user)
    assert exc_info.value.status_code == 409


async def test_convert_single_pjo(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _submitted(service, sales_user, shipments=3)
    await service.mark_won(quotation.id, sales_user)

    result = await service.convert_to_pjos(quotation.id, False, sales_user)

    assert len(result.pjo_ids) == 1
    pjo = await PJOService(session_factory).get(result.pjo_ids[0])
    assert pjo.quotation_id == quotation.id
    assert pjo.status == "draft"
    assert pjo.pol == "Belawan"
    assert pjo.total_revenue == 300_000_000
    assert pjo.total_cost_estimated == 210_000_000

    with pytest.raises(HTTPException) as exc_info:
        await service.convert_to_pjos(quotation.id, False, sales_user)
    assert exc_info.value.status_code == 409


async def test_convert_split_by_shipments(session_factory, sales_user, manager, heavy_cargo):
    from app.services.engineering_service import EngineeringService, ParentKind

    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user, cargo=heavy_cargo, shipments=3)
    await EngineeringService(session_factory).waive_review(
        ParentKind.QUOTATION, quotation.id, "Survey done by client", manager
    )
    assert (await service.get(quotation.id)).status == "ready"
    await service.submit(quotation.id, sales_user)
    await service.mark_won(quotation.id, sales_user)

    result = await service.convert_to_pjos(quotation.id, True, sales_user)

    assert len(result.pjo_numbers) == 3
    assert len(set(result.pjo_numbers)) == 3
    pjos = PJOService(session_factory)
    for pjo_id in result.pjo_ids:
        pjo = await pjos.get(pjo_id)
        assert pjo.total_revenue == 100_000_000
        assert pjo.total_cost_estimated == 70_000_000
        # Engineering was settled on the quotation
        assert pjo.requires_engineering is False
        assert pjo.engineering_status == "not_required"
        assert pjo.complexity_score == 50


async def test_update_header_keeps_classification(session_factory, sales_user, light_cargo):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user, cargo=light_cargo)

    updated = await service.update(
        quotation.id,
        UpdateQuotationRequest(title="Boilers and spares", estimated_shipments=2),
        sales_user,
    )

    assert updated.title == "Boilers and spares"
    assert updated.customer_name == "PT Agro Sejahtera"
    assert updated.estimated_shipments == 2
    assert updated.complexity_score == 10
    assert updated.status == "draft"


async def test_update_cargo_reclassifies_and_opens_review(session_factory, sales_user, light_cargo, heavy_cargo):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user, cargo=light_cargo)
    assert quotation.market_type == "simple"

    updated = await service.update(quotation.id, UpdateQuotationRequest(cargo=CargoSpec(**heavy_cargo)), sales_user)

    assert updated.market_type == "complex"
    assert updated.complexity_score == 50
    assert updated.requires_engineering is True
    assert updated.engineering_status == "pending"
    assert updated.status == "engineering_review"

    # Cargo is frozen once the review is open
    with pytest.raises(HTTPException) as exc_info:
        await service.update(quotation.id, UpdateQuotationRequest(cargo=CargoSpec(**light_cargo)), sales_user)
    assert exc_info.value.status_code == 409

    # Resending the same cargo is not a change
    same = await service.update(
        quotation.id, UpdateQuotationRequest(title="Same cargo", cargo=CargoSpec(**heavy_cargo)), sales_user
    )
    assert same.title == "Same cargo"


async def test_update_rejects_negative_cargo(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user)

    with pytest.raises(HTTPException) as exc_info:
        await service.update(
            quotation.id, UpdateQuotationRequest(cargo=CargoSpec(cargo_length_m=-2)), sales_user
        )
    assert exc_info.value.status_code == 422


async def test_update_after_ready_is_conflict(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user)
    await service.mark_ready(quotation.id, sales_user)

    with pytest.raises(HTTPException) as exc_info:
        await service.update(quotation.id, UpdateQuotationRequest(title="Too late"), sales_user)
    assert exc_info.value.status_code == 409


async def test_deleted_quotation_disappears(session_factory, sales_user):
    service = QuotationService(session_factory)
    kept = await _priced(service, sales_user)
    dropped = await _priced(service, sales_user)

    await service.delete(dropped.id, sales_user)

    with pytest.raises(HTTPException) as exc_info:
        await service.get(dropped.id)
    assert exc_info.value.status_code == 404
    assert [q.id for q in await service.list_quotations()] == [kept.id]


async def test_won_quotation_cannot_be_deleted(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _submitted(service, sales_user)
    await service.mark_won(quotation.id, sales_user)

    with pytest.raises(HTTPException) as exc_info:
        await service.delete(quotation.id, sales_user)
    assert exc_info.value.status_code == 409
    assert (await service.get(quotation.id)).status == "won"


async def test_list_filters_by_status_and_market(session_factory, sales_user, light_cargo, heavy_cargo):
    service = QuotationService(session_factory)
    simple = await _priced(service, sales_user, cargo=light_cargo)
    complex_ = await _priced(service, sales_user, cargo=heavy_cargo)

    assert [q.id for q in await service.list_quotations()] == [complex_.id, simple.id]
    assert [q.id for q in await service.list_quotations(status=QuotationStatus.ENGINEERING_REVIEW)] == [complex_.id]
    assert [q.id for q in await service.list_quotations(market_type=MarketType.SIMPLE)] == [simple.id]
    assert await service.list_quotations(status=QuotationStatus.WON) == []


async def test_line_item_edits_recompute_totals(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user)
    revenue_id = quotation.revenue_items[0].id
    cost_id = quotation.cost_items[0].id

    quotation = await service.update_revenue_item(
        quotation.id,
        revenue_id,
        RevenueItemRequest(description="Door to door", quantity=4, unit_price=100_000_000),
        sales_user,
    )
    assert quotation.revenue_items[0].subtotal == 400_000_000
    assert quotation.total_revenue == 400_000_000

    quotation = await service.update_cost_item(
        quotation.id,
        cost_id,
        CostItemRequest(category="trucking", description="Lowbed trailer", estimated_amount=300_000_000),
        sales_user,
    )
    assert quotation.total_cost == 300_000_000
    assert quotation.gross_profit == 100_000_000
    assert quotation.profit_margin == 25.0

    quotation = await service.delete_cost_item(quotation.id, cost_id, sales_user)
    assert quotation.cost_items == []
    assert quotation.total_cost == 0
    quotation = await service.delete_revenue_item(quotation.id, revenue_id, sales_user)
    assert quotation.total_revenue == 0
    assert quotation.profit_margin == 0


async def test_line_item_edits_reject_unknown_or_locked(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user)

    with pytest.raises(HTTPException) as exc_info:
        await service.delete_revenue_item(quotation.id, "not-an-item", sales_user)
    assert exc_info.value.status_code == 404

    await service.mark_ready(quotation.id, sales_user)
    with pytest.raises(HTTPException) as exc_info:
        await service.delete_cost_item(quotation.id, quotation.cost_items[0].id, sales_user)
    assert exc_info.value.status_code == 409


async def test_pursuit_cost_removed_until_closed(session_factory, sales_user):
    service = QuotationService(session_factory)
    quotation = await _priced(service, sales_user)
    quotation = await service.add_pursuit_cost(
        quotation.id, PursuitCostRequest(category="survey", description="Site visit", amount=3_000_000), sales_user
    )
    quotation = await service.add_pursuit_cost(
        quotation.id, PursuitCostRequest(category="travel", description="Flights", amount=2_000_000), sales_user
    )

    quotation = await service.delete_pursuit_cost(quotation.id, quotation.pursuit_costs[0].id, sales_user)
    assert quotation.total_pursuit_cost == 2_000_000

    await service.cancel(quotation.id, sales_user)
    with pytest.raises(HTTPException) as exc_info:
        await service.delete_pursuit_cost(quotation.id, quotation.pursuit_costs[0].id, sales_user)
    assert exc_info.value.status_code == 409
