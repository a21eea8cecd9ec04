# backend/esta_risk/services/stores.py
"""
Storage contracts for score history and risk alerts.

The orchestrator only talks to these interfaces. The in-memory versions
below back tests and single-process deployments; SQL versions live in
esta_risk.db.stores.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional
import threading

from esta_risk.scorecard.types import RiskAlert, ScoreHistoryEntry


class ScoreHistoryStore(ABC):
    """All history backends inherit from this"""

    @abstractmethod
    def append(self, tenant_id: str, entry: ScoreHistoryEntry) -> None:
        pass

    @abstractmethod
    def entries(self, tenant_id: str) -> List[ScoreHistoryEntry]:
        """Entries for a tenant, oldest first."""
        pass

    @abstractmethod
    def prune_before(self, tenant_id: str, cutoff: datetime) -> int:
        """Drop entries at or before cutoff; returns how many were removed."""
        pass


class AlertStore(ABC):
    """All alert backends inherit from this"""

    @abstractmethod
    def add(self, alerts: List[RiskAlert]) -> None:
        pass

    @abstractmethod
    def list_for_tenant(self, tenant_id: str) -> List[RiskAlert]:
        """Every alert ever raised for a tenant, oldest first."""
        pass

    @abstractmethod
    def get(self, tenant_id: str, alert_id: str) -> Optional[RiskAlert]:
        pass

    @abstractmethod
    def save(self, alert: RiskAlert) -> None:
        """Persist changes made to an alert returned by get()."""
        pass


class InMemoryScoreHistoryStore(ScoreHistoryStore):

    def __init__(self):
        self._entries: Dict[str, List[ScoreHistoryEntry]] = {}
        self._lock = threading.Lock()

    def append(self, tenant_id: str, entry: ScoreHistoryEntry) -> None:
        with self._lock:
            self._entries.setdefault(tenant_id, []).append(entry)

    def entries(self, tenant_id: str) -> List[ScoreHistoryEntry]:
        with self._lock:
            return sorted(self._entries.get(tenant_id, []), key=lambda e: e.date)

    def prune_before(self, tenant_id: str, cutoff: datetime) -> int:
        with self._lock:
            current = self._entries.get(tenant_id, [])
            kept = [e for e in current if e.date > cutoff]
            self._entries[tenant_id] = kept
            return len(current) - len(kept)


class InMemoryAlertStore(AlertStore):

    def __init__(self):
        self._alerts: Dict[str, List[RiskAlert]] = {}
        self._lock = threading.Lock()

    def add(self, alerts: List[RiskAlert]) -> None:
        with self._lock:
            for alert in alerts:
                self._alerts.setdefault(alert.tenant_id, []).append(alert)

    def list_for_tenant(self, tenant_id: str) -> List[RiskAlert]:
        with self._lock:
            return list(self._alerts.get(tenant_id, []))

    def get(self, tenant_id: str, alert_id: str) -> Optional[RiskAlert]:
        with self._lock:
            for alert in self._alerts.get(tenant_id, []):
                if alert.id == alert_id:
                    return alert
            return None

    def save(self, alert: RiskAlert) -> None:
        # Objects are held by reference; mutations are already visible
        pass
