"""
ESTA Risk Engine REST API
Serves the risk router plus health/info endpoints
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from esta_risk.api import risk
from esta_risk.config import get_settings
from esta_risk.scorecard.factor_config import MODEL_VERSION

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="ESTA Risk Engine API",
    description="Predictive ESTA audit risk scoring for employers",
    version=MODEL_VERSION,
)

# CORS config for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(risk.router)


@app.get("/")
def root():
    """API info"""
    return {
        "message": "ESTA Risk Engine API is running",
        "version": MODEL_VERSION,
        "status": "operational",
        "docs": "/docs",
        "endpoints": {
            "calculate": "/api/v1/risk/calculate",
            "summary": "/api/v1/risk/summary/{tenant_id}",
            "history": "/api/v1/risk/history/{tenant_id}",
            "cache_clear": "/api/v1/risk/cache/clear/{tenant_id}",
            "alerts": "/api/v1/risk/alerts/{tenant_id}",
            "factors_config": "/api/v1/risk/factors/config",
            "model_info": "/api/v1/risk/model/info",
        },
    }


@app.get("/health")
def health_check():
    """Simple health endpoint"""
    return {"status": "healthy", "store_backend": settings.store_backend}


# Run with:
#   uvicorn main:app --reload --port 8000   (from backend/)
