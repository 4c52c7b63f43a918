"""
Meeting Processing
Recording upload -> Whisper transcription -> Claude analysis -> tasks + activity

Also accepts plain transcript files (.txt/.vtt/.srt) when no recording exists.
"""
import io
import json
import logging
import re
import time
from typing import Any, Dict, Optional, Tuple

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from pydantic import ValidationError as PydanticValidationError
from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.errors import ExternalServiceError, NotFoundError, ValidationError
from investor_crm.models.schemas.meetings import MeetingAnalysis
from investor_crm.services.activities.service import record_activity, utc_now_iso
from investor_crm.utils.cache import CacheKeys, cache

logger = logging.getLogger(__name__)

ALLOWED_RECORDING_TYPES = frozenset({
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/webm",
    "audio/ogg",
    "audio/mp4",
    "audio/m4a",
    "video/mp4",
    "video/webm",
    "video/quicktime",
})

TRANSCRIPT_EXTENSIONS = ("txt", "vtt", "srt")

MEETING_ANALYSIS_PROMPT = """You are an expert meeting analyst for an investor relations team. Analyze the meeting transcript and extract:

1. **Summary**: A concise 2-3 sentence summary of the meeting's main points.
2. **Key Topics**: 3-7 main topics discussed (array of strings).
3. **Action Items**: Every action item with:
   - description: Clear description of what needs to be done
   - assignee: Person responsible (if mentioned)
   - due_date: Due date in YYYY-MM-DD format (if mentioned)
   - priority: low, medium, or high
4. **Objections**: Investor objections with:
   - objection: The concern raised
   - response: How it was addressed (if applicable)
   - resolved: Boolean
5. **Next Steps**: Concrete next steps (array of strings).
6. **Sentiment**: Overall sentiment (positive, neutral, or negative).

Return your analysis as a JSON object with this exact structure:
{
  "summary": "...",
  "key_topics": ["..."],
  "action_items": [{"description": "...", "assignee": "...", "due_date": "YYYY-MM-DD", "priority": "medium"}],
  "objections": [{"objection": "...", "response": "...", "resolved": true}],
  "next_steps": ["..."],
  "sentiment": "positive"
}"""

_JSON_FENCE_RE = re.compile(r"```json\s*(\{[\s\S]*\})\s*```")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


# ============================================================================
# TRANSCRIPT FILES
# ============================================================================

def clean_caption_text(raw: str) -> str:
    """Strip WEBVTT headers, cue numbers, timestamps and markup from captions."""
    text = raw.replace("\r\n", "\n")
    text = re.sub(r"WEBVTT\n*", "", text)
    text = re.sub(r"^\d+\n", "", text, flags=re.MULTILINE)
    text = re.sub(
        r"\d{2}:\d{2}:\d{2}[.,]\d{3}\s*-->\s*\d{2}:\d{2}:\d{2}[.,]\d{3}[^\n]*\n",
        "",
        text,
        flags=re.MULTILINE,
    )
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def parse_transcript_file(filename: str, content: bytes) -> str:
    ext = _extension(filename or "")
    if ext not in TRANSCRIPT_EXTENSIONS:
        raise ValidationError(
            "Only .txt, .vtt, and .srt files are supported for direct transcript upload. "
            "For audio/video files, use the recording upload."
        )
    if len(content) > settings.max_upload_bytes:
        raise ValidationError("File must be under 10MB")

    text = content.decode("utf-8", errors="replace")
    if ext in ("vtt", "srt"):
        text = clean_caption_text(text)

    if not text.strip():
        raise ValidationError("Transcript file appears to be empty")
    return text


async def upload_transcript(supabase: Client, meeting_id: str, filename: str, content: bytes) -> Dict[str, Any]:
    """Store a manually uploaded transcript on the meeting and mark it completed."""
    if not content:
        raise ValidationError("Transcript file is required")

    text = parse_transcript_file(filename, content)

    result = supabase.table("meetings").update({
        "transcript": {"text": text, "source": "manual_upload", "uploaded_at": utc_now_iso()},
        "status": "completed",
        "updated_at": utc_now_iso(),
    }).eq("id", meeting_id).execute()

    if not result.data:
        raise NotFoundError("Meeting not found")

    cache.delete(CacheKeys.meeting_stats())
    logger.info(f"📄 Transcript uploaded for meeting {meeting_id} ({len(text)} chars)")
    return {
        "success": True,
        "message": "Transcript uploaded successfully",
        "character_count": len(text),
    }


# ============================================================================
# ANALYSIS
# ============================================================================

def extract_analysis_json(text: str) -> Dict[str, Any]:
    """Pull the JSON object out of a model reply (```json fence first, then outermost braces)."""
    text = text.strip()
    match = _JSON_FENCE_RE.search(text)
    if match:
        candidate = match.group(1)
    else:
        match = _JSON_OBJECT_RE.search(text)
        candidate = match.group(0) if match else text

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ExternalServiceError("Failed to parse meeting analysis", details=str(e))

    if not isinstance(data, dict):
        raise ExternalServiceError("Failed to parse meeting analysis")
    return data


async def analyze_transcript(anthropic_client: Optional[AsyncAnthropic], transcript: str) -> MeetingAnalysis:
    if anthropic_client is None:
        raise ExternalServiceError("Server configuration error: API key not configured")

    response = await anthropic_client.messages.create(
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        messages=[{
            "role": "user",
            "content": f"{MEETING_ANALYSIS_PROMPT}\n\nHere is the meeting transcript to analyze:\n\n{transcript}",
        }],
    )

    reply = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")

    try:
        return MeetingAnalysis.model_validate(extract_analysis_json(reply))
    except PydanticValidationError as e:
        raise ExternalServiceError("Meeting analysis did not match the expected format", details=str(e))


async def transcribe_recording(openai_client: Optional[AsyncOpenAI], filename: str, content: bytes) -> str:
    if openai_client is None:
        raise ExternalServiceError("Transcription is not configured (OPENAI_API_KEY missing)")

    audio = io.BytesIO(content)
    audio.name = filename

    transcript = await openai_client.audio.transcriptions.create(
        model=settings.transcription_model,
        file=audio,
        response_format="text",
    )
    return transcript if isinstance(transcript, str) else getattr(transcript, "text", "")


# ============================================================================
# PIPELINE
# ============================================================================

def validate_recording(size: int, mime_type: str) -> None:
    if size > settings.max_recording_bytes:
        raise ValidationError("File size exceeds 50MB limit")
    if mime_type not in ALLOWED_RECORDING_TYPES:
        raise ValidationError("Invalid file type. Supported: audio/video files")


def _mark_failed(supabase_admin: Client, meeting_id: str, error: Exception) -> None:
    message = getattr(error, "message", None) or str(error) or "Processing failed"
    try:
        supabase_admin.table("meetings").update({
            "status": "failed",
            "processing_error": message,
            "updated_at": utc_now_iso(),
        }).eq("id", meeting_id).execute()
    except Exception as update_error:
        logger.error(f"❌ Failed to mark meeting {meeting_id} as failed: {update_error}")


async def _store_analysis(
    supabase_admin: Client,
    meeting: dict,
    transcript_text: str,
    analysis: MeetingAnalysis,
    user_id: str,
    started: float,
) -> Tuple[dict, int]:
    meeting_id = meeting["id"]

    stored = supabase_admin.table("meeting_transcripts").insert({
        "meeting_id": meeting_id,
        "transcript_text": transcript_text,
        "summary": analysis.summary,
        "key_topics": analysis.key_topics,
        "action_items": [item.model_dump() for item in analysis.action_items],
        "objections": [item.model_dump() for item in analysis.objections],
        "next_steps": analysis.next_steps,
        "sentiment": analysis.sentiment,
        "model_used": settings.anthropic_model,
        "processing_duration_ms": int((time.monotonic() - started) * 1000),
    }).execute()

    if not stored.data:
        raise ExternalServiceError("Failed to store analysis results")

    created = 0
    for item in analysis.action_items:
        try:
            supabase_admin.table("tasks").insert({
                "investor_id": meeting["investor_id"],
                "title": item.description[:200],
                "description": f"Auto-created from meeting: {meeting['meeting_title']}",
                "due_date": item.due_date,
                "priority": item.priority,
                "status": "pending",
                "created_by": user_id,
            }).execute()
            created += 1
        except Exception as e:
            logger.error(f"❌ Failed to create task from action item on meeting {meeting_id}: {e}")

    if created:
        cache.delete(CacheKeys.task_stats())
        logger.info(f"   Created {created} tasks from action items")

    await record_activity(
        supabase_admin,
        meeting["investor_id"],
        "meeting",
        f"Meeting: {meeting['meeting_title']}",
        user_id,
        metadata={
            "meeting_id": meeting_id,
            "summary": analysis.summary,
            "sentiment": analysis.sentiment,
            "key_topics": analysis.key_topics,
        },
    )

    supabase_admin.table("meetings").update({
        "status": "completed",
        "processed_at": utc_now_iso(),
        "updated_at": utc_now_iso(),
    }).eq("id", meeting_id).execute()

    cache.delete(CacheKeys.meeting_stats())
    return stored.data[0], created


async def _load_meeting(supabase_admin: Client, meeting_id: str) -> dict:
    result = supabase_admin.table("meetings")\
        .select("id, investor_id, meeting_title, transcript")\
        .eq("id", meeting_id)\
        .maybe_single()\
        .execute()

    if not result or not result.data:
        raise NotFoundError("Meeting not found")
    return result.data


async def store_recording(
    supabase_admin: Client,
    meeting_id: str,
    filename: str,
    content: bytes,
    mime_type: str,
) -> str:
    """Validate, mark the meeting `processing` and upload to storage; returns the storage path."""
    validate_recording(len(content), mime_type)
    await _load_meeting(supabase_admin, meeting_id)

    supabase_admin.table("meetings").update({
        "status": "processing",
        "recording_filename": filename,
        "recording_size_bytes": len(content),
        "recording_mime_type": mime_type,
        "updated_at": utc_now_iso(),
    }).eq("id", meeting_id).execute()

    storage_path = f"{meeting_id}/{filename}"
    try:
        supabase_admin.storage.from_(settings.recordings_bucket).upload(
            storage_path,
            content,
            {"content-type": mime_type, "upsert": "true"},
        )
    except Exception as e:
        logger.error(f"❌ Recording upload failed for meeting {meeting_id}: {e}")
        _mark_failed(supabase_admin, meeting_id, e)
        raise

    logger.info(f"🎙️  Stored recording {storage_path} ({len(content)} bytes)")
    return storage_path


async def process_stored_recording(
    supabase_admin: Client,
    anthropic_client: Optional[AsyncAnthropic],
    openai_client: Optional[AsyncOpenAI],
    meeting_id: str,
    storage_path: str,
    user_id: str,
    content: Optional[bytes] = None,
) -> Dict[str, Any]:
    """
    Transcribe, analyze and store results for an uploaded recording.

    `content` skips the storage download when the bytes are already in hand.
    Any failure marks the meeting `failed` with the error message and re-raises.
    """
    started = time.monotonic()
    meeting = await _load_meeting(supabase_admin, meeting_id)
    filename = storage_path.rsplit("/", 1)[-1]

    try:
        if content is None:
            content = supabase_admin.storage.from_(settings.recordings_bucket).download(storage_path)

        transcript_text = await transcribe_recording(openai_client, filename, content)
        if not transcript_text.strip():
            raise ExternalServiceError("Transcription returned no text")

        analysis = await analyze_transcript(anthropic_client, transcript_text)
        stored, created = await _store_analysis(supabase_admin, meeting, transcript_text, analysis, user_id, started)

    except Exception as e:
        logger.error(f"❌ Meeting {meeting_id} processing failed: {e}")
        _mark_failed(supabase_admin, meeting_id, e)
        raise

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(f"✅ Meeting {meeting_id} processed in {duration_ms}ms")

    return {
        "success": True,
        "meeting_id": meeting_id,
        "transcript_id": stored.get("id"),
        "processing_duration_ms": duration_ms,
        "action_items_created": created,
    }


async def process_meeting_recording(
    supabase_admin: Client,
    anthropic_client: Optional[AsyncAnthropic],
    openai_client: Optional[AsyncOpenAI],
    meeting_id: str,
    filename: str,
    content: bytes,
    mime_type: str,
    user_id: str,
) -> Dict[str, Any]:
    """Full recording pipeline in-process: store, transcribe, analyze."""
    storage_path = await store_recording(supabase_admin, meeting_id, filename, content, mime_type)
    return await process_stored_recording(
        supabase_admin, anthropic_client, openai_client, meeting_id, storage_path, user_id, content=content,
    )


async def analyze_meeting(
    supabase_admin: Client,
    anthropic_client: Optional[AsyncAnthropic],
    meeting_id: str,
    user_id: str,
) -> Dict[str, Any]:
    """Run the analysis over a manually uploaded transcript."""
    meeting = await _load_meeting(supabase_admin, meeting_id)
    transcript = (meeting.get("transcript") or {}).get("text")
    if not transcript:
        raise ValidationError("Meeting has no transcript to analyze")

    started = time.monotonic()
    try:
        analysis = await analyze_transcript(anthropic_client, transcript)
        stored, created = await _store_analysis(supabase_admin, meeting, transcript, analysis, user_id, started)
    except Exception as e:
        logger.error(f"❌ Meeting {meeting_id} analysis failed: {e}")
        _mark_failed(supabase_admin, meeting_id, e)
        raise

    return {
        "success": True,
        "meeting_id": meeting_id,
        "transcript_id": stored.get("id"),
        "action_items_created": created,
    }
