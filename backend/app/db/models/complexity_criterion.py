"""ComplexityCriterion model: catalogue of scoring rules."""

from sqlalchemy import Boolean, Column, Integer, String, Text

from app.db.base import Base, JSONType


class ComplexityCriterion(Base):
    __tablename__ = "complexity_criteria"

    id = Column(Integer, primary_key=True, autoincrement=True)
    criteria_code = Column(String(50), unique=True, nullable=False, index=True)
    criteria_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    weight = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    # {"field": "cargo_weight_kg", "operator": ">", "value": 30000}
    auto_detect_rules = Column(JSONType, nullable=True)

    display_order = Column(Integer, nullable=False, default=0)
