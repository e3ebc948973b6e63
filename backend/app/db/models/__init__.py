"""Re-export all models so Base.metadata sees them."""

from app.db.models.activity_log import ActivityLog
from app.db.models.complexity_criterion import ComplexityCriterion
from app.db.models.engineering_assessment import EngineeringAssessment
from app.db.models.invoice import Invoice
from app.db.models.job_order import JobOrder
from app.db.models.pjo import PJOCostItem, PJORevenueItem, ProformaJobOrder
from app.db.models.quotation import PursuitCost, Quotation, QuotationCostItem, QuotationRevenueItem

__all__ = [
    "ActivityLog",
    "ComplexityCriterion",
    "EngineeringAssessment",
    "Invoice",
    "JobOrder",
    "PJOCostItem",
    "PJORevenueItem",
    "ProformaJobOrder",
    "PursuitCost",
    "Quotation",
    "QuotationCostItem",
    "QuotationRevenueItem",
]
