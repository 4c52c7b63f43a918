"""
Admin Routes
User roles and system metrics (admin role required)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from supabase import Client

from investor_crm.core.dependencies import get_supabase_admin
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import require_admin
from investor_crm.models.schemas.admin import RoleUpdateRequest
from investor_crm.services.admin import get_system_metrics, list_users, update_user_role
from investor_crm.services.health import check_database, configured_integrations, liveness

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
async def list_users_endpoint(
    user: dict = Depends(require_admin),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        return await list_users(supabase_admin)
    except Exception as e:
        logger.error(f"❌ Failed to list users: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch users")


@router.put("/users/role")
async def update_user_role_endpoint(
    data: RoleUpdateRequest,
    user: dict = Depends(require_admin),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        return await update_user_role(supabase_admin, data.user_id, data.role, user)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to update role for {data.user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update role")


@router.get("/metrics")
async def system_metrics_endpoint(
    user: dict = Depends(require_admin),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    try:
        return await get_system_metrics(supabase_admin)
    except Exception as e:
        logger.error(f"❌ Failed to collect metrics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch metrics")


@router.get("/health")
async def admin_health_endpoint(
    user: dict = Depends(require_admin),
    supabase_admin: Client = Depends(get_supabase_admin),
):
    """Liveness plus database status and which integrations are configured."""
    return {
        **liveness(),
        "database": "connected" if check_database(supabase_admin) else "unavailable",
        "integrations": configured_integrations(),
    }
