# backend/esta_risk/api/risk.py

from fastapi import APIRouter, Depends, HTTPException
import logging

from esta_risk.cache import TTLCache
from esta_risk.config import get_settings
from esta_risk.scorecard.factor_config import get_factors_config, get_model_info
from esta_risk.schemas.schemas import (
    ActivityInputIn,
    AlertListResponse,
    AlertResponse,
    CalculateResponse,
    HistoryResponse,
    MessageResponse,
    RiskAlertOut,
    RiskFactorOut,
    RiskScoreOut,
    ScoreHistoryOut,
    SummaryResponse,
)
from esta_risk.services.risk_engine_service import (
    InvalidFeaturesError,
    RiskEngineService,
    format_risk_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/risk", tags=["risk"])

_service = None


def build_risk_service(settings=None) -> RiskEngineService:
    """Wire a service from settings: in-memory stores or SQL-backed ones."""
    settings = settings or get_settings()
    cache = TTLCache(ttl_seconds=settings.cache_ttl_seconds, max_size=settings.cache_max_size)

    history_store = alert_store = None
    if settings.store_backend == "sql":
        from esta_risk.db.database import create_db_engine, create_session_factory, init_db
        from esta_risk.db.stores import SqlAlertStore, SqlScoreHistoryStore

        engine = create_db_engine(settings.database_url)
        init_db(engine)
        session_factory = create_session_factory(engine)
        history_store = SqlScoreHistoryStore(session_factory)
        alert_store = SqlAlertStore(session_factory)

    return RiskEngineService(
        cache=cache,
        history_store=history_store,
        alert_store=alert_store,
        history_retention_days=settings.history_retention_days,
    )


def get_risk_service() -> RiskEngineService:
    """Dependency: one shared service per process. Override in tests."""
    global _service
    if _service is None:
        _service = build_risk_service()
        logger.info(f"Risk engine service initialised ({get_settings().store_backend} stores)")
    return _service


def _require(value, name: str) -> str:
    if not value or not str(value).strip():
        raise HTTPException(status_code=400, detail=f"Missing required field: {name}")
    return value


@router.post("/calculate", response_model=CalculateResponse)
def calculate_risk_score(
    payload: ActivityInputIn,
    force: bool = False,
    service: RiskEngineService = Depends(get_risk_service),
):
    """
    Calculate the ESTA audit risk score for an employer.

    Uses:
    - Sick-leave request history (approvals, denials, review latency)
    - Accrual balances per employee
    - Existing compliance alerts

    Returns the score with its factor breakdown, recommendations and any
    alerts raised by this calculation. `force=true` skips the score cache.
    """
    _require(payload.tenant_id, "tenant_id")
    _require(payload.employer_id, "employer_id")

    try:
        result = service.calculate(payload.to_domain(), force_recalculate=force)
    except InvalidFeaturesError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Risk calculation failed for tenant {payload.tenant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Risk calculation failed: {str(e)}")

    return CalculateResponse(
        score=RiskScoreOut.model_validate(result.score),
        factors=[RiskFactorOut.model_validate(f) for f in result.score.factors],
        alerts=[RiskAlertOut.model_validate(a) for a in result.alerts],
        from_cache=result.from_cache,
        message=format_risk_message(result.score),
    )


@router.get("/summary/{tenant_id}", response_model=SummaryResponse)
def get_risk_summary(tenant_id: str, service: RiskEngineService = Depends(get_risk_service)):
    """Dashboard summary of the latest cached score."""
    return SummaryResponse(summary=service.get_summary(tenant_id))


@router.get("/history/{tenant_id}", response_model=HistoryResponse)
def get_risk_history(tenant_id: str, service: RiskEngineService = Depends(get_risk_service)):
    """Score history with trend and 90/365-day averages."""
    history = service.get_history(tenant_id)
    if history is None:
        return HistoryResponse(history=None, message="No score history available for this employer")
    return HistoryResponse(history=ScoreHistoryOut.model_validate(history))


@router.post("/cache/clear/{tenant_id}", response_model=MessageResponse)
def clear_risk_cache(tenant_id: str, service: RiskEngineService = Depends(get_risk_service)):
    """Force the next calculation for this tenant to recompute."""
    service.invalidate(tenant_id)
    return MessageResponse(message="Risk score cache cleared")


@router.get("/alerts/{tenant_id}", response_model=AlertListResponse)
def list_risk_alerts(
    tenant_id: str,
    active_only: bool = True,
    service: RiskEngineService = Depends(get_risk_service),
):
    """Alerts raised for a tenant, oldest first."""
    alerts = service.list_alerts(tenant_id, active_only=active_only)
    return AlertListResponse(
        alerts=[RiskAlertOut.model_validate(a) for a in alerts],
        count=len(alerts),
    )


@router.post("/alerts/{tenant_id}/{alert_id}/acknowledge", response_model=AlertResponse)
def acknowledge_risk_alert(
    tenant_id: str,
    alert_id: str,
    service: RiskEngineService = Depends(get_risk_service),
):
    alert = service.acknowledge_alert(tenant_id, alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertResponse(alert=RiskAlertOut.model_validate(alert))


@router.post("/alerts/{tenant_id}/{alert_id}/resolve", response_model=AlertResponse)
def resolve_risk_alert(
    tenant_id: str,
    alert_id: str,
    service: RiskEngineService = Depends(get_risk_service),
):
    alert = service.resolve_alert(tenant_id, alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertResponse(alert=RiskAlertOut.model_validate(alert))


@router.get("/factors/config")
def get_risk_factors_config():
    """Factor weights, descriptions, risk level thresholds and brackets."""
    return {"success": True, "config": get_factors_config()}


@router.get("/model/info")
def get_risk_model_info():
    """Model name, version and the features it consumes."""
    return {"success": True, "model": get_model_info()}
