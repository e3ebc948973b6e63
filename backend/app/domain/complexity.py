"""Cargo complexity scoring and market classification.

Pure domain functions -- no DB access, fully deterministic.

A job is scored by evaluating each active complexity criterion against the cargo
profile. Triggered criteria become ComplexityFactor records whose weights sum to
the complexity score; a score at or above COMPLEXITY_THRESHOLD marks the job as
complex and flags it for engineering review.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass, field, fields
from enum import StrEnum
from typing import Any

from app.domain.money import format_idr

COMPLEXITY_THRESHOLD = 20

# Cargo attributes an auto-detect rule may reference.
CARGO_FIELDS = (
    "cargo_weight_kg",
    "cargo_length_m",
    "cargo_width_m",
    "cargo_height_m",
    "cargo_value",
    "duration_days",
    "is_new_route",
    "terrain_type",
    "requires_special_permit",
    "is_hazardous",
)

RULE_OPERATORS = (">", "<", ">=", "<=", "=", "in")

_NON_NEGATIVE_FIELDS = {
    "cargo_weight_kg": "Weight",
    "cargo_length_m": "Length",
    "cargo_width_m": "Width",
    "cargo_height_m": "Height",
    "cargo_value": "Value",
    "duration_days": "Duration",
}


class MarketType(StrEnum):
    SIMPLE = "simple"
    COMPLEX = "complex"


@dataclass(frozen=True)
class ComplexityFactor:
    """A triggered criterion and the weight it contributes to the score."""

    criteria_code: str
    criteria_name: str
    weight: int
    triggered_value: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComplexityFactor":
        return cls(
            criteria_code=str(data.get("criteria_code", "")),
            criteria_name=str(data.get("criteria_name", "")),
            weight=int(data.get("weight") or 0),
            triggered_value=str(data.get("triggered_value") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AutoDetectRule:
    field: str
    operator: str
    value: Any

    @classmethod
    def parse(cls, raw: Any) -> "AutoDetectRule | None":
        """Build a rule from its stored JSON form. Malformed rules yield None."""
        if not isinstance(raw, dict):
            return None
        rule_field = raw.get("field")
        operator = raw.get("operator")
        if rule_field not in CARGO_FIELDS or operator not in RULE_OPERATORS or "value" not in raw:
            return None
        return cls(field=rule_field, operator=operator, value=raw["value"])


@dataclass(frozen=True)
class ComplexityCriterion:
    criteria_code: str
    criteria_name: str
    weight: int | None = 0
    is_active: bool | None = True
    auto_detect_rules: dict[str, Any] | None = None


@dataclass
class CargoProfile:
    """Cargo and route attributes of a quotation or PJO."""

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

    @classmethod
    def from_record(cls, record: Any) -> "CargoProfile":
        """Snapshot the cargo attributes of any object exposing them."""
        return cls(**{f.name: getattr(record, f.name, None) for f in fields(cls)})


@dataclass
class MarketClassification:
    market_type: MarketType
    complexity_score: int
    complexity_factors: list[ComplexityFactor] = field(default_factory=list)
    requires_engineering: bool = False


def calculate_complexity_score(factors: Iterable[ComplexityFactor] | None) -> int:
    """Sum of the weights of the triggered factors."""
    if not factors:
        return 0
    return sum(factor.weight for factor in factors)


def check_engineering_required(score: int | None) -> bool:
    """True when a complexity score demands engineering review.

    A missing score is never an error; it simply does not require review.
    """
    return score is not None and score >= COMPLEXITY_THRESHOLD


def classify_market_type(score: int) -> MarketType:
    return MarketType.COMPLEX if score >= COMPLEXITY_THRESHOLD else MarketType.SIMPLE


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _compare(field_value: Any, operator: str, rule_value: Any) -> bool:
    if operator == "=":
        if isinstance(field_value, bool) or isinstance(rule_value, bool):
            return field_value is rule_value
        return field_value == rule_value
    if operator == "in":
        return isinstance(rule_value, list) and field_value in rule_value

    left, right = _to_number(field_value), _to_number(rule_value)
    if left is None or right is None:
        return False
    if operator == ">":
        return left > right
    if operator == "<":
        return left < right
    if operator == ">=":
        return left >= right
    return left <= right


def evaluate_criterion(criterion: ComplexityCriterion, cargo: CargoProfile) -> bool:
    """Whether one criterion triggers for the cargo.

    A criterion without a usable rule, or whose field is unset on the cargo,
    does not trigger.
    """
    rule = AutoDetectRule.parse(criterion.auto_detect_rules)
    if rule is None:
        return False

    field_value = getattr(cargo, rule.field, None)
    if field_value is None:
        return False

    return _compare(field_value, rule.operator, rule.value)


def _format_quantity(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,}"


def get_triggered_display_value(criterion: ComplexityCriterion, cargo: CargoProfile) -> str:
    """Human readable value of the cargo attribute a criterion looked at."""
    rule = AutoDetectRule.parse(criterion.auto_detect_rules)
    if rule is None:
        return ""

    value = getattr(cargo, rule.field, None)
    if value is None:
        return ""

    if rule.field == "cargo_weight_kg":
        return f"{_format_quantity(value)} kg"
    if rule.field in ("cargo_length_m", "cargo_width_m", "cargo_height_m"):
        return f"{value} m"
    if rule.field == "cargo_value":
        return format_idr(value)
    if rule.field == "duration_days":
        return f"{value} days"
    if rule.field == "terrain_type":
        text = str(value)
        return text[:1].upper() + text[1:]
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def calculate_market_classification(
    cargo: CargoProfile,
    criteria: Iterable[ComplexityCriterion],
) -> MarketClassification:
    """Score a cargo profile against the complexity criteria catalogue.

    Args:
        cargo: Cargo and route attributes of the record being classified
        criteria: Criteria catalogue; inactive entries are skipped

    Returns:
        MarketClassification with the triggered factors in catalogue order
    """
    factors: list[ComplexityFactor] = []

    for criterion in criteria:
        if criterion.is_active is False:
            continue
        if not evaluate_criterion(criterion, cargo):
            continue
        factors.append(
            ComplexityFactor(
                criteria_code=criterion.criteria_code,
                criteria_name=criterion.criteria_name,
                weight=criterion.weight or 0,
                triggered_value=get_triggered_display_value(criterion, cargo),
            )
        )

    score = calculate_complexity_score(factors)
    return MarketClassification(
        market_type=classify_market_type(score),
        complexity_score=score,
        complexity_factors=factors,
        requires_engineering=check_engineering_required(score),
    )


def validate_cargo_specifications(cargo: CargoProfile) -> tuple[bool, dict[str, str]]:
    """Reject negative measurements. Unset values are fine.

    Returns:
        (valid, errors) where errors maps field name to a message
    """
    errors: dict[str, str] = {}
    for name, label in _NON_NEGATIVE_FIELDS.items():
        value = getattr(cargo, name)
        if value is not None and value < 0:
            errors[name] = f"{label} must be non-negative"
    return not errors, errors
