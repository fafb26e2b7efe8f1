"""Risk severity and treatment effectiveness calculations."""

from complio.errors.exceptions import ValidationError
from complio.models.enums import RiskImpact, RiskLikelihood, RiskSeverity, TreatmentStatus

LIKELIHOOD_SCORES: dict[str, int] = {
    RiskLikelihood.VERY_UNLIKELY: 1,
    RiskLikelihood.UNLIKELY: 2,
    RiskLikelihood.POSSIBLE: 3,
    RiskLikelihood.LIKELY: 4,
    RiskLikelihood.VERY_LIKELY: 5,
    RiskLikelihood.CERTAIN: 6,
}

IMPACT_SCORES: dict[str, int] = {
    RiskImpact.VERY_LOW: 1,
    RiskImpact.LOW: 2,
    RiskImpact.MEDIUM: 3,
    RiskImpact.HIGH: 4,
    RiskImpact.VERY_HIGH: 5,
    RiskImpact.CRITICAL: 6,
}

# (upper bound inclusive, severity)
_SEVERITY_BANDS: list[tuple[int, RiskSeverity]] = [
    (4, RiskSeverity.LOW),
    (9, RiskSeverity.MEDIUM),
    (16, RiskSeverity.HIGH),
    (25, RiskSeverity.VERY_HIGH),
]


def risk_score(likelihood: str, impact: str) -> int:
    if likelihood not in LIKELIHOOD_SCORES:
        raise ValidationError(f"Unknown likelihood '{likelihood}'")
    if impact not in IMPACT_SCORES:
        raise ValidationError(f"Unknown impact '{impact}'")
    return LIKELIHOOD_SCORES[likelihood] * IMPACT_SCORES[impact]


def calculate_risk_score(likelihood: str, impact: str) -> RiskSeverity:
    """Map a likelihood/impact pair to a severity band."""
    score = risk_score(likelihood, impact)
    for upper, severity in _SEVERITY_BANDS:
        if score <= upper:
            return severity
    return RiskSeverity.CRITICAL


def treatment_effectiveness(treatments: list) -> dict:
    """Summarize treatment rows for a risk.

    Effectiveness is averaged over completed treatments that carry a rating.
    Budget variance is ``(actual - budget) / budget * 100``.
    """
    completed = [
        t.effectiveness_rating
        for t in treatments
        if t.status == TreatmentStatus.COMPLETED and t.effectiveness_rating is not None
    ]
    total_budget = sum(t.budget_allocated or 0.0 for t in treatments)
    total_cost = sum(t.actual_cost or 0.0 for t in treatments)
    variance = ((total_cost - total_budget) / total_budget * 100) if total_budget > 0 else 0.0

    return {
        "total_treatments": len(treatments),
        "completed_treatments": len(completed),
        "average_effectiveness": round(sum(completed) / len(completed), 2) if completed else 0.0,
        "total_budget": round(total_budget, 2),
        "total_actual_cost": round(total_cost, 2),
        "budget_variance_percent": round(variance, 2),
    }
