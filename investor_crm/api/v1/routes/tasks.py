"""
Task Routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import Client

from investor_crm.core.dependencies import get_supabase
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.models.schemas.tasks import TaskCreate, TaskFilters, TaskUpdate
from investor_crm.services.tasks import (
    create_task,
    delete_task,
    get_task,
    get_task_stats,
    get_tasks,
    toggle_task_status,
    update_task,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("")
async def list_tasks_endpoint(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    investor_id: Optional[str] = None,
    overdue: bool = False,
    due_soon: bool = False,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    filters = TaskFilters(
        status=status,
        priority=priority,
        investor_id=investor_id,
        overdue=overdue,
        due_soon=due_soon,
        limit=limit,
        offset=offset,
    )
    try:
        return await get_tasks(supabase, filters)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to list tasks: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch tasks")


@router.get("/stats")
async def task_stats_endpoint(
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_task_stats(supabase)
    except Exception as e:
        logger.error(f"❌ Failed to compute task stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch task stats")


@router.post("", status_code=201)
async def create_task_endpoint(
    data: TaskCreate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await create_task(supabase, data, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to create task: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create task")


@router.get("/{task_id}")
async def get_task_endpoint(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_task(supabase, task_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to fetch task {task_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch task")


@router.patch("/{task_id}")
async def update_task_endpoint(
    task_id: str,
    data: TaskUpdate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await update_task(supabase, task_id, data, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to update task {task_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update task")


@router.post("/{task_id}/toggle")
async def toggle_task_endpoint(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await toggle_task_status(supabase, task_id, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to toggle task {task_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update task")


@router.delete("/{task_id}")
async def delete_task_endpoint(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        await delete_task(supabase, task_id)
        return {"success": True}
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to delete task {task_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete task")
