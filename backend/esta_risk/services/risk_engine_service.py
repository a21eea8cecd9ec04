# backend/esta_risk/services/risk_engine_service.py

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional
import logging

from esta_risk.cache import TTLCache, generate_score_cache_key
from esta_risk.extractors.activity_extractor import (
    extract_risk_features,
    normalize_activity,
    validate_features,
)
from esta_risk.rules import AlertRuleDefinition, RuleEvaluator
from esta_risk.scorecard.types import (
    ActivityInput,
    FeatureVector,
    PreviousScore,
    RiskAlert,
    RiskScore,
    ScoreHistory,
    ScoreHistoryEntry,
    Trend,
)
from esta_risk.services.alert_service import generate_alerts, validate_alert_rules
from esta_risk.services.scoring_service import calculate_score
from esta_risk.services.stores import (
    AlertStore,
    InMemoryAlertStore,
    InMemoryScoreHistoryStore,
    ScoreHistoryStore,
)
from esta_risk.utils import new_id, utcnow

logger = logging.getLogger(__name__)

# Moving-average difference that counts as a real change in history trend
HISTORY_TREND_THRESHOLD = 5
HISTORY_RECENT_WINDOW = 5


class InvalidFeaturesError(ValueError):
    """Raised when extracted features fail validation."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Invalid features extracted: {', '.join(errors)}")


@dataclass
class RiskCalculationResult:
    score: RiskScore
    features: FeatureVector
    alerts: List[RiskAlert] = field(default_factory=list)
    from_cache: bool = False


class RiskEngineService:
    """
    Score orchestrator: ties extraction and scoring together with a
    per-tenant score cache, score history and alert bookkeeping.

    All state lives in the injected cache and stores, so one instance can be
    shared across request threads. Calculations for the same tenant are
    serialized on the cache key.
    """

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        history_store: Optional[ScoreHistoryStore] = None,
        alert_store: Optional[AlertStore] = None,
        alert_rules: Optional[List[AlertRuleDefinition]] = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
        history_retention_days: int = 365,
    ):
        self.clock = clock
        self.id_factory = id_factory
        self.cache = cache if cache is not None else TTLCache(clock=clock)
        self.history_store = history_store if history_store is not None else InMemoryScoreHistoryStore()
        self.alert_store = alert_store if alert_store is not None else InMemoryAlertStore()
        self.evaluator = RuleEvaluator()
        if alert_rules is not None:
            errors = validate_alert_rules(alert_rules, self.evaluator)
            if errors:
                raise ValueError(f"Invalid alert rules: {'; '.join(errors)}")
        self.alert_rules = alert_rules
        self.history_retention = timedelta(days=history_retention_days)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------
    def calculate(self, activity: ActivityInput, force_recalculate: bool = False) -> RiskCalculationResult:
        """
        Return the tenant's risk score, computing it when needed.

        Steps:
        1. Serve the cached score unless absent, expired or forced
        2. Extract and validate features
        3. Score against the latest previous score
        4. Cache, record history, raise alerts

        Raises:
            InvalidFeaturesError: if the extracted features fail validation
        """
        activity = normalize_activity(activity)
        key = generate_score_cache_key(activity.tenant_id)

        with self.cache.key_lock(key):
            if not force_recalculate:
                cached = self.cache.get(key)
                if cached is not None:
                    logger.debug(f"Serving cached risk score for tenant {activity.tenant_id}")
                    return RiskCalculationResult(
                        score=cached,
                        # Fresh features for reference; the score itself is cached
                        features=extract_risk_features(activity, now=self.clock()),
                        alerts=[],
                        from_cache=True,
                    )

            now = self.clock()
            features = extract_risk_features(activity, now=now)

            validation = validate_features(features)
            if not validation.is_valid:
                logger.warning(
                    f"Rejected features for tenant {activity.tenant_id}: {validation.errors}"
                )
                raise InvalidFeaturesError(validation.errors)

            previous = self._previous_score(activity)
            score = calculate_score(features, previous, now=now, id_factory=self.id_factory)

            self.cache.set(key, score)
            self._record_history(score, now)

            alerts = generate_alerts(
                score,
                previous.score if previous else None,
                rules=self.alert_rules,
                evaluator=self.evaluator,
                now=now,
                id_factory=self.id_factory,
            )
            self.alert_store.add(alerts)

            logger.info(
                f"Computed risk score for tenant {activity.tenant_id}: "
                f"{score.overall_score:.1f} ({score.risk_level.value}), {len(alerts)} alert(s)"
            )
            return RiskCalculationResult(score=score, features=features, alerts=alerts, from_cache=False)

    def _previous_score(self, activity: ActivityInput) -> Optional[PreviousScore]:
        entries = self.history_store.entries(activity.tenant_id)
        if entries:
            last = entries[-1]
            return PreviousScore(score=last.score, calculated_at=last.date)
        if activity.previous_scores:
            # Caller-supplied history from before this service kept its own
            latest = max(activity.previous_scores, key=lambda p: p.calculated_at)
            return PreviousScore(score=latest.score, calculated_at=latest.calculated_at)
        return None

    def _record_history(self, score: RiskScore, now: datetime) -> None:
        self.history_store.append(score.tenant_id, ScoreHistoryEntry(
            date=score.calculated_at,
            score=score.overall_score,
            risk_level=score.risk_level,
            primary_drivers=list(score.primary_risk_drivers),
        ))
        self.history_store.prune_before(score.tenant_id, now - self.history_retention)

    def get_cached_score(self, tenant_id: str) -> Optional[RiskScore]:
        return self.cache.get(generate_score_cache_key(tenant_id))

    def invalidate(self, tenant_id: str) -> None:
        """Drop the tenant's cached score, e.g. after new activity was recorded."""
        removed = self.cache.clear_tenant(tenant_id)
        logger.info(f"Cleared {removed} cached score(s) for tenant {tenant_id}")

    # ------------------------------------------------------------------
    # History and summary
    # ------------------------------------------------------------------
    def get_history(self, tenant_id: str) -> Optional[ScoreHistory]:
        """
        Historical scores (oldest first) with trend and rolling averages.

        Returns None when the tenant has no recorded scores.
        """
        now = self.clock()
        cutoff_retention = now - self.history_retention
        entries = [e for e in self.history_store.entries(tenant_id) if e.date > cutoff_retention]
        if not entries:
            return None

        recent_90 = [e for e in entries if e.date >= now - timedelta(days=90)]
        recent_365 = [e for e in entries if e.date >= now - timedelta(days=365)]

        return ScoreHistory(
            tenant_id=tenant_id,
            scores=entries,
            trend=self._history_trend(recent_90),
            avg_score_90_days=_mean([e.score for e in recent_90]),
            avg_score_365_days=_mean([e.score for e in recent_365]),
        )

    @staticmethod
    def _history_trend(entries: List[ScoreHistoryEntry]) -> Trend:
        """
        Compare the latest scores against the earlier ones.

        The last five entries form the recent window; at least one entry
        always stays in the earlier window.
        """
        if len(entries) < 2:
            return Trend.STABLE

        split = max(1, len(entries) - HISTORY_RECENT_WINDOW)
        previous_avg = _mean([e.score for e in entries[:split]])
        recent_avg = _mean([e.score for e in entries[split:]])

        if recent_avg > previous_avg + HISTORY_TREND_THRESHOLD:
            return Trend.WORSENING
        if recent_avg < previous_avg - HISTORY_TREND_THRESHOLD:
            return Trend.IMPROVING
        return Trend.STABLE

    def get_summary(self, tenant_id: str) -> Dict[str, Any]:
        """Lightweight dashboard view of the latest cached score."""
        cached = self.get_cached_score(tenant_id)
        active_alerts = len(self.list_alerts(tenant_id))

        if cached is None:
            return {"has_score": False, "active_alerts": active_alerts}

        history = self.get_history(tenant_id)
        return {
            "has_score": True,
            "score": cached.overall_score,
            "risk_level": cached.risk_level.value,
            "risk_bracket": cached.risk_bracket.bracket,
            "last_calculated": cached.calculated_at,
            "active_alerts": active_alerts,
            "trend": history.trend.value if history else None,
        }

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------
    def list_alerts(self, tenant_id: str, active_only: bool = True) -> List[RiskAlert]:
        alerts = self.alert_store.list_for_tenant(tenant_id)
        if active_only:
            return [a for a in alerts if a.is_active]
        return alerts

    def acknowledge_alert(self, tenant_id: str, alert_id: str) -> Optional[RiskAlert]:
        """Mark an alert as seen; it stays active. None if not found."""
        alert = self.alert_store.get(tenant_id, alert_id)
        if alert is None:
            return None
        alert.acknowledged_at = self.clock()
        self.alert_store.save(alert)
        return alert

    def resolve_alert(self, tenant_id: str, alert_id: str) -> Optional[RiskAlert]:
        """Close an alert. None if not found."""
        alert = self.alert_store.get(tenant_id, alert_id)
        if alert is None:
            return None
        alert.resolved_at = self.clock()
        alert.is_active = False
        self.alert_store.save(alert)
        logger.info(f"Resolved alert {alert_id} for tenant {tenant_id}")
        return alert


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def format_risk_message(score: RiskScore) -> str:
    """Human-readable summary of a score for employer notifications."""
    lines = [
        f"ESTA Audit Risk Assessment: {score.risk_bracket.description}",
        "",
        f"Overall Risk Score: {score.overall_score:.1f}/100",
        f"Risk Level: {score.risk_level.value.upper()}",
        "",
    ]

    if score.primary_risk_drivers:
        lines.append("Primary Risk Drivers:")
        lines.extend(f"  - {driver}" for driver in score.primary_risk_drivers)
        lines.append("")

    if score.recommendations:
        lines.append("Top Recommendations:")
        for rec in score.recommendations[:3]:
            lines.append(f"  [{rec.priority.value.upper()}] {rec.title}")
        lines.append("")

    lines.append(f"Analysis period: {score.analysis_period.quarter_label}")
    lines.append(f"Model version: {score.model_version}")
    return "\n".join(lines)
