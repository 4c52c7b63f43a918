"""
Meeting Intelligence
Meeting records plus recording/transcript processing
"""
from investor_crm.services.meetings.service import (
    create_meeting,
    get_meetings,
    get_meeting,
    update_meeting_status,
    delete_meeting,
    get_meeting_stats,
)
from investor_crm.services.meetings.processing import (
    process_meeting_recording,
    store_recording,
    process_stored_recording,
    analyze_transcript,
    analyze_meeting,
    upload_transcript,
)

__all__ = [
    "create_meeting",
    "get_meetings",
    "get_meeting",
    "update_meeting_status",
    "delete_meeting",
    "get_meeting_stats",
    "process_meeting_recording",
    "store_recording",
    "process_stored_recording",
    "analyze_transcript",
    "analyze_meeting",
    "upload_transcript",
]
