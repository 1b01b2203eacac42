"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- liveness plus database connectivity
"""

from fastapi import APIRouter, Request

from rideflow.api.schemas import HealthResponse

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(request: Request):
    db = request.app.state.db
    return HealthResponse(status="ok" if db.is_connected else "degraded")
