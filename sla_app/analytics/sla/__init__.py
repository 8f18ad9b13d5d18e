"""SLA evaluation feature module: per-ticket outcome classification."""

from sla_app.analytics.sla.evaluator import SkipReason, SLAEvaluator, TicketEvaluation

__all__ = [
    "SLAEvaluator",
    "SkipReason",
    "TicketEvaluation",
]
