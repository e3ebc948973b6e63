"""Column groups shared by quotations and proforma job orders."""

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text

from app.db.base import JSONType


class CargoColumnsMixin:
    """Cargo and route attributes evaluated by complexity scoring."""

    cargo_weight_kg = Column(Numeric(14, 2, asdecimal=False), nullable=True)
    cargo_length_m = Column(Numeric(8, 2, asdecimal=False), nullable=True)
    cargo_width_m = Column(Numeric(8, 2, asdecimal=False), nullable=True)
    cargo_height_m = Column(Numeric(8, 2, asdecimal=False), nullable=True)
    cargo_value = Column(Numeric(18, 2, asdecimal=False), nullable=True)
    duration_days = Column(Integer, nullable=True)
    is_new_route = Column(Boolean, nullable=True)
    terrain_type = Column(String(50), nullable=True)  # normal, mountain, unpaved, ...
    requires_special_permit = Column(Boolean, nullable=True)
    is_hazardous = Column(Boolean, nullable=True)

    # Classification result: [{"criteria_code", "criteria_name", "weight", "triggered_value"}]
    market_type = Column(String(20), nullable=True)  # simple, complex
    complexity_score = Column(Integer, nullable=True)
    complexity_factors = Column(JSONType, nullable=False, default=list)


class EngineeringReviewMixin:
    """Engineering review sub-workflow state."""

    requires_engineering = Column(Boolean, nullable=False, default=False)
    # not_required, pending, in_progress, completed, waived
    engineering_status = Column(String(20), nullable=False, default="not_required")
    engineering_assigned_to = Column(String(255), nullable=True)
    engineering_assigned_at = Column(DateTime(timezone=True), nullable=True)
    engineering_completed_by = Column(String(255), nullable=True)
    engineering_completed_at = Column(DateTime(timezone=True), nullable=True)
    engineering_notes = Column(Text, nullable=True)
    engineering_risk_level = Column(String(20), nullable=True)
    engineering_decision = Column(String(50), nullable=True)
    engineering_waived_reason = Column(Text, nullable=True)
