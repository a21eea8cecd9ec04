# backend/esta_risk/extractors/activity_extractor.py
"""
Feature extraction from employer activity.

Reduces the raw requests, accrual balances and compliance alerts of one
tenant into a FeatureVector. Everything here is a pure function of its
arguments: nothing raises for structurally valid input, and empty
collections degrade to zero or default values.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, List, Optional
import math

import numpy as np

from esta_risk.scorecard.types import (
    AccrualBalance,
    ActivityInput,
    ComplianceAlert,
    FeatureValidationResult,
    FeatureVector,
    LeaveRequest,
    RequestStatus,
)
from esta_risk.utils import to_naive_utc, utcnow

DAYS_30 = timedelta(days=30)
DAYS_90 = timedelta(days=90)
DAYS_365 = timedelta(days=365)

# Balances not touched for longer than this count as late accrual updates.
# Heuristic cut-off, not a measured rule: payroll-driven balances may sit idle longer.
STALE_BALANCE_AGE = timedelta(days=30)

TERMINAL_STATUSES = (RequestStatus.APPROVED, RequestStatus.DENIED)

# Fields bounded to [0, 1]
RATE_FIELDS = [
    "denial_rate_30_days",
    "denial_rate_90_days",
    "denial_rate_year",
    "avg_accrual_utilization",
    "documentation_rate",
    "documentation_late_rate",
    "record_retention_compliance",
    "employee_turnover_rate",
    "employee_complaint_rate",
]

TREND_FIELDS = ["denial_trend"]


def _denied_ratio(requests: List[LeaveRequest]) -> float:
    if not requests:
        return 0.0
    denied = sum(1 for r in requests if r.status == RequestStatus.DENIED)
    return denied / len(requests)


def calculate_denial_rate(requests: List[LeaveRequest], period: timedelta, now: datetime) -> float:
    """Share of requests made within `period` of `now` that were denied."""
    cutoff = now - period
    return _denied_ratio([r for r in requests if r.requested_at >= cutoff])


def calculate_denial_trend(requests: List[LeaveRequest], now: datetime) -> float:
    """
    Compare the last 30 days against the 30-90 day window before it.

    Returns a value in [-1, 1]; positive means denials are increasing.
    Zero when either window is empty.
    """
    cutoff_30 = now - DAYS_30
    cutoff_90 = now - DAYS_90

    recent = [r for r in requests if cutoff_30 <= r.requested_at < now]
    previous = [r for r in requests if cutoff_90 <= r.requested_at < cutoff_30]

    if not recent or not previous:
        return 0.0

    diff = _denied_ratio(recent) - _denied_ratio(previous)
    return max(-1.0, min(1.0, diff * 2))


def count_consecutive_denials(requests: List[LeaveRequest]) -> int:
    """Length of the most recent denial streak, broken by an approval."""
    count = 0
    for request in sorted(requests, key=lambda r: r.requested_at, reverse=True):
        if request.status == RequestStatus.DENIED:
            count += 1
        elif request.status == RequestStatus.APPROVED:
            break
        # pending / cancelled neither extend nor break the streak
    return count


def calculate_accrual_utilization(balances: List[AccrualBalance]) -> float:
    valid = [b for b in balances if b.yearly_accrued > 0]
    if not valid:
        return 0.0
    total = sum(min(1.0, b.yearly_used / b.yearly_accrued) for b in valid)
    return total / len(valid)


def count_accrual_calculation_errors(balances: List[AccrualBalance]) -> int:
    """Balances whose figures cannot come out of a correct accrual calculation."""
    return sum(
        1 for b in balances
        if b.current_balance < 0 or b.yearly_accrued < 0 or b.yearly_used < 0
    )


def count_late_accrual_updates(balances: List[AccrualBalance], now: datetime) -> int:
    cutoff = now - STALE_BALANCE_AGE
    return sum(1 for b in balances if b.last_updated < cutoff)


def calculate_approval_latency(requests: List[LeaveRequest]) -> float:
    """Average hours from request to review over reviewed, terminal requests."""
    reviewed = [
        r for r in requests
        if r.reviewed_at is not None and r.status in TERMINAL_STATUSES
    ]
    if not reviewed:
        return 0.0
    total_hours = sum((r.reviewed_at - r.requested_at).total_seconds() / 3600 for r in reviewed)
    return total_hours / len(reviewed)


def calculate_peak_usage_variance(requests: List[LeaveRequest], now: datetime) -> float:
    """
    Coefficient of variation of monthly request counts over the last year.

    High values mean requests bunch into a few months. Needs at least two
    active months; otherwise 0.
    """
    cutoff = now - DAYS_365
    monthly_counts = {}
    for request in requests:
        if request.requested_at < cutoff:
            continue
        month_key = request.requested_at.strftime("%Y-%m")
        monthly_counts[month_key] = monthly_counts.get(month_key, 0) + 1

    if len(monthly_counts) < 2:
        return 0.0

    counts = np.array(list(monthly_counts.values()), dtype=float)
    mean_count = np.mean(counts)
    if mean_count < 0.01:
        return 0.0
    return float(np.std(counts) / mean_count)


def count_alerts(alerts: List[ComplianceAlert], period: timedelta, now: datetime) -> int:
    cutoff = now - period
    return sum(1 for a in alerts if a.created_at >= cutoff)


def count_unresolved_alerts(alerts: List[ComplianceAlert]) -> int:
    return sum(1 for a in alerts if a.resolved_at is None)


def normalize_activity(activity: ActivityInput) -> ActivityInput:
    """Copy of `activity` with every timestamp converted to naive UTC."""
    return replace(
        activity,
        requests=[
            replace(r, requested_at=to_naive_utc(r.requested_at), reviewed_at=to_naive_utc(r.reviewed_at))
            for r in activity.requests or []
        ],
        accrual_balances=[
            replace(b, last_updated=to_naive_utc(b.last_updated))
            for b in activity.accrual_balances or []
        ],
        compliance_alerts=[
            replace(a, created_at=to_naive_utc(a.created_at), resolved_at=to_naive_utc(a.resolved_at))
            for a in activity.compliance_alerts or []
        ],
        previous_scores=[
            replace(p, calculated_at=to_naive_utc(p.calculated_at))
            for p in activity.previous_scores or []
        ],
    )


def extract_risk_features(
    activity: ActivityInput,
    now: Optional[datetime] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FeatureVector:
    """
    Extract the risk feature vector for one tenant.

    Args:
        activity: Raw tenant activity with already-parsed timestamps,
            naive UTC or timezone-aware
        now: Reference time for all windows (defaults to clock())
        clock: Time source used when `now` is not given

    Returns:
        FeatureVector. Fields without an upstream data source yet
        (documentation, record retention, audit trail, turnover,
        complaints, audit history) carry fully-compliant placeholders.
    """
    activity = normalize_activity(activity)
    ref_date = to_naive_utc(now or clock())
    requests = activity.requests or []
    balances = activity.accrual_balances or []
    alerts = activity.compliance_alerts or []

    avg_requests_per_employee = (
        len(requests) / activity.employee_count if activity.employee_count > 0 else 0.0
    )

    return FeatureVector(
        tenant_id=activity.tenant_id,
        extracted_at=ref_date,

        denial_rate_30_days=calculate_denial_rate(requests, DAYS_30, ref_date),
        denial_rate_90_days=calculate_denial_rate(requests, DAYS_90, ref_date),
        denial_rate_year=calculate_denial_rate(requests, DAYS_365, ref_date),
        denial_trend=calculate_denial_trend(requests, ref_date),
        consecutive_denials=count_consecutive_denials(requests),

        avg_accrual_utilization=calculate_accrual_utilization(balances),
        accrual_calculation_errors=count_accrual_calculation_errors(balances),
        late_accrual_updates=count_late_accrual_updates(balances, ref_date),

        avg_requests_per_employee=avg_requests_per_employee,
        request_approval_latency=calculate_approval_latency(requests),
        peak_usage_variance=calculate_peak_usage_variance(requests, ref_date),

        # Placeholders: no documentation source is integrated yet
        documentation_rate=1.0,
        missing_documentation_count=0,
        documentation_late_rate=0.0,

        policy_violations_30_days=count_alerts(alerts, DAYS_30, ref_date),
        policy_violations_90_days=count_alerts(alerts, DAYS_90, ref_date),
        compliance_alert_count=len(alerts),
        unresolved_alerts=count_unresolved_alerts(alerts),

        # Placeholders: no record-keeping audit source is integrated yet
        record_retention_compliance=1.0,
        audit_trail_gaps=0,
        data_integrity_issues=0,

        # Placeholders: no audit history or HR data yet
        previous_audit_findings=0,
        previous_penalties=0,
        years_in_business=1.0,

        employee_count=activity.employee_count,
        employee_turnover_rate=0.0,
        employee_complaint_rate=0.0,

        is_small_employer=activity.employer_size == "small",
    )


def validate_features(features: FeatureVector) -> FeatureValidationResult:
    """
    Check a feature vector for NaN values and out-of-range rates.

    Never raises; callers needing strict input decide what to do with the
    returned errors.
    """
    errors = []

    for name, value in features.to_dict().items():
        if isinstance(value, float) and math.isnan(value):
            errors.append(f"{name} is NaN")

    for name in RATE_FIELDS:
        value = getattr(features, name)
        if value < 0 or value > 1:
            errors.append(f"{name} out of range [0, 1]")

    for name in TREND_FIELDS:
        value = getattr(features, name)
        if value < -1 or value > 1:
            errors.append(f"{name} out of range [-1, 1]")

    return FeatureValidationResult(is_valid=not errors, errors=errors)
