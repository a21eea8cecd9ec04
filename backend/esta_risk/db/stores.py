"""SQLAlchemy-backed history and alert stores."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import sessionmaker

from esta_risk.db.models import RiskAlertRecord, ScoreHistoryRecord
from esta_risk.scorecard.types import (
    AlertSeverity,
    AlertType,
    RiskAlert,
    RiskFactorCategory,
    RiskLevel,
    ScoreHistoryEntry,
)
from esta_risk.services.stores import AlertStore, ScoreHistoryStore


def _to_alert(record: RiskAlertRecord) -> RiskAlert:
    return RiskAlert(
        id=record.id,
        tenant_id=record.tenant_id,
        alert_type=AlertType(record.alert_type),
        severity=AlertSeverity(record.severity),
        title=record.title,
        message=record.message,
        triggered_at=record.triggered_at,
        related_factors=[RiskFactorCategory(c) for c in (record.related_factors or [])],
        score_impact=record.score_impact or 0.0,
        is_active=bool(record.is_active),
        acknowledged_at=record.acknowledged_at,
        resolved_at=record.resolved_at,
    )


class SqlScoreHistoryStore(ScoreHistoryStore):
    """Score history kept in the risk_score_history table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def append(self, tenant_id: str, entry: ScoreHistoryEntry) -> None:
        with self.session_factory() as db:
            db.add(ScoreHistoryRecord(
                tenant_id=tenant_id,
                calculated_at=entry.date,
                score=entry.score,
                risk_level=entry.risk_level.value,
                primary_drivers=list(entry.primary_drivers),
            ))
            db.commit()

    def entries(self, tenant_id: str) -> List[ScoreHistoryEntry]:
        with self.session_factory() as db:
            records = (
                db.query(ScoreHistoryRecord)
                .filter(ScoreHistoryRecord.tenant_id == tenant_id)
                .order_by(ScoreHistoryRecord.calculated_at.asc(), ScoreHistoryRecord.id.asc())
                .all()
            )
            return [
                ScoreHistoryEntry(
                    date=r.calculated_at,
                    score=r.score,
                    risk_level=RiskLevel(r.risk_level),
                    primary_drivers=list(r.primary_drivers or []),
                )
                for r in records
            ]

    def prune_before(self, tenant_id: str, cutoff: datetime) -> int:
        with self.session_factory() as db:
            removed = (
                db.query(ScoreHistoryRecord)
                .filter(
                    ScoreHistoryRecord.tenant_id == tenant_id,
                    ScoreHistoryRecord.calculated_at <= cutoff,
                )
                .delete(synchronize_session=False)
            )
            db.commit()
            return removed


class SqlAlertStore(AlertStore):
    """Alerts kept in the risk_alerts table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def add(self, alerts: List[RiskAlert]) -> None:
        if not alerts:
            return
        with self.session_factory() as db:
            for alert in alerts:
                db.add(RiskAlertRecord(
                    id=alert.id,
                    tenant_id=alert.tenant_id,
                    alert_type=alert.alert_type.value,
                    severity=alert.severity.value,
                    title=alert.title,
                    message=alert.message,
                    triggered_at=alert.triggered_at,
                    acknowledged_at=alert.acknowledged_at,
                    resolved_at=alert.resolved_at,
                    related_factors=[c.value for c in alert.related_factors],
                    score_impact=alert.score_impact,
                    is_active=alert.is_active,
                ))
            db.commit()

    def list_for_tenant(self, tenant_id: str) -> List[RiskAlert]:
        with self.session_factory() as db:
            records = (
                db.query(RiskAlertRecord)
                .filter(RiskAlertRecord.tenant_id == tenant_id)
                .order_by(RiskAlertRecord.triggered_at.asc())
                .all()
            )
            return [_to_alert(r) for r in records]

    def get(self, tenant_id: str, alert_id: str) -> Optional[RiskAlert]:
        with self.session_factory() as db:
            record = (
                db.query(RiskAlertRecord)
                .filter(RiskAlertRecord.tenant_id == tenant_id, RiskAlertRecord.id == alert_id)
                .first()
            )
            return _to_alert(record) if record else None

    def save(self, alert: RiskAlert) -> None:
        with self.session_factory() as db:
            record = (
                db.query(RiskAlertRecord)
                .filter(RiskAlertRecord.tenant_id == alert.tenant_id, RiskAlertRecord.id == alert.id)
                .first()
            )
            if record is None:
                raise ValueError(f"Alert {alert.id} not found for tenant {alert.tenant_id}")
            record.acknowledged_at = alert.acknowledged_at
            record.resolved_at = alert.resolved_at
            record.is_active = alert.is_active
            db.commit()
