"""initial freight erp schema: quotations, pjos, engineering assessments, receivables

Revision ID: 3f0a9c2e7b14
Revises:
Create Date: 2026-10-19 09:12:44.108211

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f0a9c2e7b14"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(precision=18, scale=2), nullable=nullable)


def _cargo_columns() -> list[sa.Column]:
    return [
        sa.Column("cargo_weight_kg", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("cargo_length_m", sa.Numeric(precision=8, scale=2), nullable=True),
        sa.Column("cargo_width_m", sa.Numeric(precision=8, scale=2), nullable=True),
        sa.Column("cargo_height_m", sa.Numeric(precision=8, scale=2), nullable=True),
        _money("cargo_value", nullable=True),
        sa.Column("duration_days", sa.Integer(), nullable=True),
        sa.Column("is_new_route", sa.Boolean(), nullable=True),
        sa.Column("terrain_type", sa.String(length=50), nullable=True),
        sa.Column("requires_special_permit", sa.Boolean(), nullable=True),
        sa.Column("is_hazardous", sa.Boolean(), nullable=True),
        sa.Column("market_type", sa.String(length=20), nullable=True),
        sa.Column("complexity_score", sa.Integer(), nullable=True),
        sa.Column("complexity_factors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    ]


def _engineering_columns() -> list[sa.Column]:
    return [
        sa.Column("requires_engineering", sa.Boolean(), nullable=False),
        sa.Column("engineering_status", sa.String(length=20), nullable=False),
        sa.Column("engineering_assigned_to", sa.String(length=255), nullable=True),
        sa.Column("engineering_assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("engineering_completed_by", sa.String(length=255), nullable=True),
        sa.Column("engineering_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("engineering_notes", sa.Text(), nullable=True),
        sa.Column("engineering_risk_level", sa.String(length=20), nullable=True),
        sa.Column("engineering_decision", sa.String(length=50), nullable=True),
        sa.Column("engineering_waived_reason", sa.Text(), nullable=True),
    ]


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "complexity_criteria",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("criteria_code", sa.String(length=50), nullable=False),
        sa.Column("criteria_name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("weight", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("auto_detect_rules", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_complexity_criteria_criteria_code"), "complexity_criteria", ["criteria_code"], unique=True)

    op.create_table(
        "quotations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quotation_number", sa.String(length=30), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("commodity", sa.String(length=255), nullable=True),
        sa.Column("origin", sa.String(length=255), nullable=False),
        sa.Column("destination", sa.String(length=255), nullable=False),
        sa.Column("rfq_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("estimated_shipments", sa.Integer(), nullable=False),
        _money("total_revenue"),
        _money("total_cost"),
        _money("total_pursuit_cost"),
        _money("gross_profit"),
        sa.Column("profit_margin", sa.Numeric(precision=7, scale=2), nullable=False),
        sa.Column("submitted_by", sa.String(length=255), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("outcome_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("outcome_reason", sa.Text(), nullable=True),
        *_cargo_columns(),
        *_engineering_columns(),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_quotations_quotation_number"), "quotations", ["quotation_number"], unique=True)
    op.create_index(op.f("ix_quotations_status"), "quotations", ["status"], unique=False)

    op.create_table(
        "quotation_revenue_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quotation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("unit", sa.String(length=30), nullable=False),
        _money("unit_price"),
        _money("subtotal"),
        sa.ForeignKeyConstraint(["quotation_id"], ["quotations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_quotation_revenue_items_quotation_id"), "quotation_revenue_items", ["quotation_id"], unique=False
    )

    op.create_table(
        "quotation_cost_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quotation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        _money("estimated_amount"),
        sa.Column("vendor_name", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["quotation_id"], ["quotations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_quotation_cost_items_quotation_id"), "quotation_cost_items", ["quotation_id"], unique=False)

    op.create_table(
        "pursuit_costs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quotation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        _money("amount"),
        sa.ForeignKeyConstraint(["quotation_id"], ["quotations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pursuit_costs_quotation_id"), "pursuit_costs", ["quotation_id"], unique=False)

    op.create_table(
        "proforma_job_orders",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pjo_number", sa.String(length=40), nullable=False),
        sa.Column("quotation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("commodity", sa.String(length=255), nullable=True),
        sa.Column("pol", sa.String(length=255), nullable=False),
        sa.Column("pod", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        _money("total_revenue"),
        _money("total_cost_estimated"),
        _money("total_cost_actual"),
        _money("pursuit_cost_allocation"),
        sa.Column("submitted_by", sa.String(length=255), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.String(length=255), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_cargo_columns(),
        *_engineering_columns(),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["quotation_id"], ["quotations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_proforma_job_orders_pjo_number"), "proforma_job_orders", ["pjo_number"], unique=True)
    op.create_index(op.f("ix_proforma_job_orders_quotation_id"), "proforma_job_orders", ["quotation_id"], unique=False)
    op.create_index(op.f("ix_proforma_job_orders_status"), "proforma_job_orders", ["status"], unique=False)

    op.create_table(
        "pjo_revenue_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pjo_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("unit", sa.String(length=30), nullable=False),
        _money("unit_price"),
        _money("subtotal"),
        sa.ForeignKeyConstraint(["pjo_id"], ["proforma_job_orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pjo_revenue_items_pjo_id"), "pjo_revenue_items", ["pjo_id"], unique=False)

    op.create_table(
        "pjo_cost_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pjo_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        _money("estimated_amount"),
        _money("actual_amount", nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("vendor_name", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["pjo_id"], ["proforma_job_orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_pjo_cost_items_pjo_id"), "pjo_cost_items", ["pjo_id"], unique=False)

    op.create_table(
        "engineering_assessments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pjo_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("quotation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("assessment_type", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("assigned_to", sa.String(length=255), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("findings", sa.Text(), nullable=True),
        sa.Column("recommendations", sa.Text(), nullable=True),
        sa.Column("risk_level", sa.String(length=20), nullable=True),
        _money("additional_cost_estimate", nullable=True),
        sa.Column("cost_justification", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed_by", sa.String(length=255), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(pjo_id IS NOT NULL AND quotation_id IS NULL) OR (pjo_id IS NULL AND quotation_id IS NOT NULL)",
            name="ck_engineering_assessments_single_parent",
        ),
        sa.ForeignKeyConstraint(["pjo_id"], ["proforma_job_orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["quotation_id"], ["quotations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_engineering_assessments_pjo_id"), "engineering_assessments", ["pjo_id"], unique=False)
    op.create_index(
        op.f("ix_engineering_assessments_quotation_id"), "engineering_assessments", ["quotation_id"], unique=False
    )

    op.create_table(
        "job_orders",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("jo_number", sa.String(length=50), nullable=False),
        sa.Column("pjo_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        _money("final_revenue", nullable=True),
        _money("final_cost", nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["pjo_id"], ["proforma_job_orders.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("jo_number"),
    )
    op.create_index(op.f("ix_job_orders_pjo_id"), "job_orders", ["pjo_id"], unique=False)
    op.create_index(op.f("ix_job_orders_status"), "job_orders", ["status"], unique=False)

    op.create_table(
        "invoices",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("invoice_number", sa.String(length=50), nullable=False),
        sa.Column("jo_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        _money("total_amount"),
        _money("amount_paid"),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["jo_id"], ["job_orders.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_number"),
    )
    op.create_index(op.f("ix_invoices_jo_id"), "invoices", ["jo_id"], unique=False)
    op.create_index(op.f("ix_invoices_status"), "invoices", ["status"], unique=False)

    op.create_table(
        "activity_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("document_type", sa.String(length=30), nullable=False),
        sa.Column("document_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("document_number", sa.String(length=50), nullable=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_activity_log_document_id"), "activity_log", ["document_id"], unique=False)
    op.create_index(op.f("ix_activity_log_created_at"), "activity_log", ["created_at"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "activity_log",
        "invoices",
        "job_orders",
        "engineering_assessments",
        "pjo_cost_items",
        "pjo_revenue_items",
        "proforma_job_orders",
        "pursuit_costs",
        "quotation_cost_items",
        "quotation_revenue_items",
        "quotations",
        "complexity_criteria",
    ):
        op.drop_table(table)
