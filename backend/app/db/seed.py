"""Idempotent seed data for the complexity criteria catalogue."""

from sqlalchemy import select

from app.db.base import get_session_factory
from app.db.models.complexity_criterion import ComplexityCriterion

COMPLEXITY_CRITERIA = [
    {
        "criteria_code": "heavy_cargo",
        "criteria_name": "Heavy Cargo",
        "description": "Cargo weight above 30 tonnes",
        "weight": 20,
        "auto_detect_rules": {"field": "cargo_weight_kg", "operator": ">", "value": 30000},
        "display_order": 1,
    },
    {
        "criteria_code": "over_length",
        "criteria_name": "Over Length",
        "description": "Cargo longer than 12 m",
        "weight": 15,
        "auto_detect_rules": {"field": "cargo_length_m", "operator": ">", "value": 12},
        "display_order": 2,
    },
    {
        "criteria_code": "over_width",
        "criteria_name": "Over Width",
        "description": "Cargo wider than 2.5 m",
        "weight": 15,
        "auto_detect_rules": {"field": "cargo_width_m", "operator": ">", "value": 2.5},
        "display_order": 3,
    },
    {
        "criteria_code": "over_height",
        "criteria_name": "Over Height",
        "description": "Cargo taller than 4.2 m",
        "weight": 15,
        "auto_detect_rules": {"field": "cargo_height_m", "operator": ">", "value": 4.2},
        "display_order": 4,
    },
    {
        "criteria_code": "high_value",
        "criteria_name": "High Value Cargo",
        "description": "Declared value above Rp 5 billion",
        "weight": 10,
        "auto_detect_rules": {"field": "cargo_value", "operator": ">", "value": 5_000_000_000},
        "display_order": 5,
    },
    {
        "criteria_code": "new_route",
        "criteria_name": "New Route",
        "description": "Route not operated before",
        "weight": 10,
        "auto_detect_rules": {"field": "is_new_route", "operator": "=", "value": True},
        "display_order": 6,
    },
    {
        "criteria_code": "challenging_terrain",
        "criteria_name": "Challenging Terrain",
        "description": "Mountain, unpaved or remote access roads",
        "weight": 15,
        "auto_detect_rules": {"field": "terrain_type", "operator": "in", "value": ["mountain", "unpaved", "remote"]},
        "display_order": 7,
    },
    {
        "criteria_code": "special_permits",
        "criteria_name": "Special Permits",
        "description": "Requires special transport permits",
        "weight": 15,
        "auto_detect_rules": {"field": "requires_special_permit", "operator": "=", "value": True},
        "display_order": 8,
    },
    {
        "criteria_code": "hazardous",
        "criteria_name": "Hazardous Material",
        "description": "Dangerous goods handling required",
        "weight": 20,
        "auto_detect_rules": {"field": "is_hazardous", "operator": "=", "value": True},
        "display_order": 9,
    },
    {
        "criteria_code": "long_duration",
        "criteria_name": "Long Duration",
        "description": "Job runs longer than 30 days",
        "weight": 5,
        "auto_detect_rules": {"field": "duration_days", "operator": ">", "value": 30},
        "display_order": 10,
    },
]


async def seed_complexity_criteria() -> None:
    """Insert default complexity criteria if they don't already exist."""
    factory = get_session_factory()

    async with factory() as session:
        for criterion_data in COMPLEXITY_CRITERIA:
            result = await session.execute(
                select(ComplexityCriterion).where(
                    ComplexityCriterion.criteria_code == criterion_data["criteria_code"]
                )
            )
            existing = result.scalar_one_or_none()

            if existing is None:
                session.add(ComplexityCriterion(**criterion_data))

        await session.commit()
