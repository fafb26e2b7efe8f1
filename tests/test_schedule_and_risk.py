"""Schedule interval and risk scoring tests."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from complio.errors.exceptions import ValidationError
from complio.services.risk_scoring import calculate_risk_score, risk_score, treatment_effectiveness
from complio.services.schedule import compute_next_sync, schedule_interval

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "label,expected",
    [("hourly", timedelta(hours=1)), ("daily", timedelta(days=1)), ("weekly", timedelta(weeks=1))],
)
def test_schedule_labels(label, expected):
    assert schedule_interval(label) == expected


def test_minutes_override_label():
    assert schedule_interval("daily", 15) == timedelta(minutes=15)


def test_unknown_label_rejected():
    with pytest.raises(ValidationError) as exc_info:
        schedule_interval("0 * * * *")
    assert exc_info.value.details["allowed"] == ["hourly", "daily", "weekly"]


def test_non_positive_minutes_rejected():
    with pytest.raises(ValidationError):
        schedule_interval(None, 0)


def test_compute_next_sync():
    assert compute_next_sync("hourly", None, NOW) == NOW + timedelta(hours=1)
    assert compute_next_sync(None, None, NOW) is None


# ---------------------------------------------------------------------------
# Risk scoring
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "likelihood,impact,score,severity",
    [
        ("very_unlikely", "very_low", 1, "low"),
        ("unlikely", "low", 4, "low"),
        ("possible", "medium", 9, "medium"),
        ("likely", "high", 16, "high"),
        ("very_likely", "very_high", 25, "very_high"),
        ("certain", "critical", 36, "critical"),
        ("certain", "very_high", 30, "critical"),
    ],
)
def test_severity_bands(likelihood, impact, score, severity):
    assert risk_score(likelihood, impact) == score
    assert calculate_risk_score(likelihood, impact) == severity


def test_unknown_likelihood_rejected():
    with pytest.raises(ValidationError):
        calculate_risk_score("sometimes", "low")


def _treatment(status, rating=None, budget=None, cost=None):
    return SimpleNamespace(status=status, effectiveness_rating=rating, budget_allocated=budget, actual_cost=cost)


def test_treatment_effectiveness():
    result = treatment_effectiveness([
        _treatment("completed", 80, budget=1000, cost=1200),
        _treatment("completed", 60, budget=1000, cost=900),
        _treatment("in_progress", 99, budget=500),
    ])
    assert result == {
        "total_treatments": 3,
        "completed_treatments": 2,
        "average_effectiveness": 70.0,
        "total_budget": 2500.0,
        "total_actual_cost": 2100.0,
        "budget_variance_percent": -16.0,
    }


def test_treatment_effectiveness_empty():
    result = treatment_effectiveness([])
    assert result["average_effectiveness"] == 0.0
    assert result["budget_variance_percent"] == 0.0
