"""
Meeting Routes
Meeting records, recording upload and transcript analysis
"""
import logging
from typing import Optional

from anthropic import AsyncAnthropic
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from openai import AsyncOpenAI
from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.dependencies import get_anthropic, get_openai, get_supabase, get_supabase_admin
from investor_crm.core.errors import CRMError, http_error_from
from investor_crm.core.security import get_current_user_id
from investor_crm.models.schemas.meetings import MeetingCreate, MeetingStatusUpdate
from investor_crm.services.meetings import (
    analyze_meeting,
    create_meeting,
    delete_meeting,
    get_meeting,
    get_meeting_stats,
    get_meetings,
    process_meeting_recording,
    store_recording,
    update_meeting_status,
    upload_transcript,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meetings", tags=["meetings"])


@router.get("")
async def list_meetings_endpoint(
    investor_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_meetings(supabase, investor_id=investor_id, status=status, limit=limit, offset=offset)
    except Exception as e:
        logger.error(f"❌ Failed to list meetings: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch meetings")


@router.get("/stats")
async def meeting_stats_endpoint(
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_meeting_stats(supabase)
    except Exception as e:
        logger.error(f"❌ Failed to compute meeting stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch meeting stats")


@router.post("", status_code=201)
async def create_meeting_endpoint(
    data: MeetingCreate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await create_meeting(supabase, data, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to create meeting: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create meeting")


@router.get("/{meeting_id}")
async def get_meeting_endpoint(
    meeting_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await get_meeting(supabase, meeting_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to fetch meeting {meeting_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch meeting")


@router.patch("/{meeting_id}/status")
async def update_meeting_status_endpoint(
    meeting_id: str,
    data: MeetingStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        return await update_meeting_status(supabase, meeting_id, data.status, data.processing_error)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to update meeting {meeting_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update meeting")


@router.delete("/{meeting_id}")
async def delete_meeting_endpoint(
    meeting_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    try:
        await delete_meeting(supabase, meeting_id)
        return {"success": True}
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Failed to delete meeting {meeting_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete meeting")


@router.post("/{meeting_id}/recording")
async def upload_recording_endpoint(
    meeting_id: str,
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    supabase_admin: Client = Depends(get_supabase_admin),
    anthropic_client: Optional[AsyncAnthropic] = Depends(get_anthropic),
    openai_client: Optional[AsyncOpenAI] = Depends(get_openai),
):
    """
    Upload an audio/video recording.

    Processed inline by default; with DEFER_MEETING_PROCESSING the recording
    is stored and a worker job does the transcription and analysis.
    """
    try:
        content = await file.read()
        mime_type = file.content_type or "application/octet-stream"
        filename = file.filename or "recording"

        if settings.defer_meeting_processing:
            from investor_crm.services.background.tasks import process_meeting_task

            storage_path = await store_recording(supabase_admin, meeting_id, filename, content, mime_type)
            process_meeting_task.send(meeting_id, storage_path, user_id)
            logger.info(f"📨 Queued processing for meeting {meeting_id}")
            return {"success": True, "meeting_id": meeting_id, "status": "processing", "queued": True}

        return await process_meeting_recording(
            supabase_admin, anthropic_client, openai_client,
            meeting_id, filename, content, mime_type, user_id,
        )
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Recording processing failed for meeting {meeting_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to process recording: {e}")


@router.post("/{meeting_id}/transcript")
async def upload_transcript_endpoint(
    meeting_id: str,
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """Upload a .txt, .vtt or .srt transcript."""
    try:
        content = await file.read()
        return await upload_transcript(supabase, meeting_id, file.filename or "", content)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Transcript upload failed for meeting {meeting_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to upload transcript")


@router.post("/{meeting_id}/analyze")
async def analyze_meeting_endpoint(
    meeting_id: str,
    user_id: str = Depends(get_current_user_id),
    supabase_admin: Client = Depends(get_supabase_admin),
    anthropic_client: Optional[AsyncAnthropic] = Depends(get_anthropic),
):
    try:
        return await analyze_meeting(supabase_admin, anthropic_client, meeting_id, user_id)
    except CRMError as e:
        raise http_error_from(e)
    except Exception as e:
        logger.error(f"❌ Analysis failed for meeting {meeting_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to analyze meeting: {e}")
