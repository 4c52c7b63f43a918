"""
Health Routes
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from supabase import Client

from investor_crm.core.dependencies import get_supabase
from investor_crm.services.health import check_database, liveness

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check():
    return liveness()


@router.get("/ready")
async def readiness_check(supabase: Client = Depends(get_supabase)):
    """503 until Supabase answers."""
    if not check_database(supabase):
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "unreachable"})
    return {"status": "ready", "database": "connected"}
