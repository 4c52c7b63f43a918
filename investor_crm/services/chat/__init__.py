"""
Chat Assistant Service
"""
from investor_crm.services.chat.assistant import run_chat, build_system_prompt, normalize_messages
from investor_crm.services.chat.security import validate_user_input, sanitize_tool_output, redact_pii
from investor_crm.services.chat.tools import TOOL_SCHEMAS, ToolContext, execute_tool

__all__ = [
    "run_chat",
    "build_system_prompt",
    "normalize_messages",
    "validate_user_input",
    "sanitize_tool_output",
    "redact_pii",
    "TOOL_SCHEMAS",
    "ToolContext",
    "execute_tool",
]
