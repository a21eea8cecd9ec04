from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON, Boolean, Index
from datetime import datetime

from esta_risk.db.database import Base


class ScoreHistoryRecord(Base):
    """One overall score per fresh calculation, used for trend analysis"""
    __tablename__ = "risk_score_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String, nullable=False, index=True)
    calculated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    score = Column(Float, nullable=False)
    risk_level = Column(String, nullable=False)  # 'low', 'medium', 'high', 'critical'
    primary_drivers = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index("ix_risk_score_history_tenant_date", "tenant_id", "calculated_at"),
    )


class RiskAlertRecord(Base):
    """Alerts raised by alert rules after a score calculation"""
    __tablename__ = "risk_alerts"

    id = Column(String, primary_key=True)  # UUID
    tenant_id = Column(String, nullable=False, index=True)
    alert_type = Column(String, nullable=False)
    severity = Column(String, nullable=False)  # 'warning', 'critical'
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    triggered_at = Column(DateTime, nullable=False, index=True)
    acknowledged_at = Column(DateTime, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    related_factors = Column(JSON, nullable=False, default=list)
    score_impact = Column(Float, default=0.0)
    is_active = Column(Boolean, default=True, index=True)
