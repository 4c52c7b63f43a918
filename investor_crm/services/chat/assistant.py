"""
Chat Assistant
BDR assistant over the pipeline using Anthropic tool use

Flow:
1. Normalize the conversation and validate the latest user message
2. Call the model with tools; execute requested tools for up to N rounds
3. If the model never produced text, ask once more with the tool results inlined
"""
import json
import logging
from datetime import date
from typing import Any, Dict, FrozenSet, List, Optional

import anthropic
from anthropic import AsyncAnthropic
from pydantic import ValidationError as PydanticValidationError
from supabase import Client

from investor_crm.core.config import settings
from investor_crm.core.errors import CRMError, ExternalServiceError, ValidationError
from investor_crm.models.schemas.chat import ChatMessage, ChatResponse, ToolCallRecord
from investor_crm.services.chat.security import redact_pii, validate_user_input
from investor_crm.services.chat.tools import TOOL_SCHEMAS, ToolContext, execute_tool
from investor_crm.services.pipeline import STAGE_ORDER, TERMINAL_STAGES

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
FALLBACK_MESSAGE = "I encountered an issue processing your request. Please try again."
FOLLOW_UP_INSTRUCTION = "Please provide a helpful response to the user based on these results."


def build_system_prompt(today: Optional[date] = None) -> str:
    stages = "\n".join(f"{i}. {stage}" for i, stage in enumerate(STAGE_ORDER, start=1))
    return f"""You are an AI BDR (Business Development Representative) assistant for an investor relationship CRM.
Today's date is {(today or date.today()).isoformat()}.

# Your Role
You help the fundraising team manage their investor pipeline by:
- Answering questions about specific investors and pipeline status
- Providing strategic recommendations for advancing relationships
- Surfacing relevant context and historical data
- Suggesting prioritization and next actions
- Recording activities, contacts, tasks and field updates when asked

# Tools
- query_pipeline: stalled investors, stage lists, high value deals, recent activity, summary, upcoming actions
- get_investor_detail: call this whenever the user mentions a firm name, even in passing
- strategy_advisor: context for next steps, risk, prioritization and objections; you do the analysis
- create_investor, update_investor, log_activity, create_contact, create_task: write tools

# Constraints
- Never make up investor data. Cite which investors your analysis comes from.
- You receive sanitized data without email addresses or phone numbers.
- Confirm the investor with get_investor_detail before writing to it.
- Stage changes need the exit checklist in the app; recommend them instead of making them.
- If you don't have enough information, say so and suggest what data would help.

# Pipeline Stages
{stages}

Terminal stages ({", ".join(TERMINAL_STAGES)}) are pipeline endpoints but can re-engage to active stages.
An investor is stalled when no meaningful action has occurred in {settings.stalled_threshold_days}+ days (terminal stages excluded).

Be professional, concise and data-driven. Use fundraising terminology (LP, allocator, due diligence, LPA)."""


def normalize_messages(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    """
    Flatten to Anthropic's {role, content: str} form.

    System messages and empty turns are dropped, and the conversation starts
    at the first user turn. The latest user message is validated and
    replaced by its sanitized text.
    """
    normalized = [
        {"role": message.role, "content": message.text()}
        for message in messages
        if message.role in ("user", "assistant") and message.text().strip()
    ]

    while normalized and normalized[0]["role"] != "user":
        normalized.pop(0)

    last_user = next((m for m in reversed(normalized) if m["role"] == "user"), None)
    if last_user is None:
        raise ValidationError("No user message provided")

    validation = validate_user_input(last_user["content"])
    if not validation["valid"]:
        logger.warning(f"⚠️  Rejected chat input: {validation['reason']} ({redact_pii(last_user['content'][:100])})")
        raise ValidationError(validation["reason"])
    last_user["content"] = validation["sanitized"]

    return normalized


def _text_of(response) -> str:
    return "".join(block.text for block in response.content if getattr(block, "type", None) == "text").strip()


async def _run_tool(ctx: ToolContext, block) -> ToolCallRecord:
    record = ToolCallRecord(name=block.name, input=block.input or {})
    try:
        record.result = await execute_tool(ctx, block.name, block.input or {})
    except CRMError as e:
        record.error = e.message
    except PydanticValidationError as e:
        record.error = e.errors()[0].get("msg", "Invalid input") if e.errors() else "Invalid input"
    except TypeError as e:
        record.error = f"Invalid arguments for {block.name}: {e}"
    except Exception as e:
        logger.error(f"❌ Tool {block.name} failed: {e}", exc_info=True)
        record.error = "Tool execution failed"
    return record


def _tool_result_block(block, record: ToolCallRecord) -> dict:
    payload = {"error": record.error} if record.error else record.result
    result = {"type": "tool_result", "tool_use_id": block.id, "content": json.dumps(payload, default=str)}
    if record.error:
        result["is_error"] = True
    return result


def summarize_tool_results(tool_calls: List[ToolCallRecord]) -> str:
    lines = []
    for call in tool_calls:
        outcome = {"error": call.error} if call.error else call.result
        lines.append(f"Tool {call.name} returned: {json.dumps(outcome, default=str)}")
    return "\n\n".join(lines)


async def _create(anthropic_client: AsyncAnthropic, system: str, messages: List[dict], tools: List[dict]):
    try:
        return await anthropic_client.messages.create(
            model=settings.anthropic_model,
            max_tokens=settings.anthropic_max_tokens,
            system=system,
            messages=messages,
            tools=tools,
            temperature=TEMPERATURE,
        )
    except anthropic.APIError as e:
        logger.error(f"❌ Anthropic request failed: {e}")
        raise ExternalServiceError("AI service request failed", details=str(e))


async def run_chat(
    anthropic_client: Optional[AsyncAnthropic],
    supabase: Client,
    messages: List[ChatMessage],
    user: dict,
    today: Optional[date] = None,
    allowed_tools: Optional[FrozenSet[str]] = None,
) -> ChatResponse:
    """
    Run the tool-use loop for one chat turn.

    `allowed_tools` limits both the schemas offered to the model and the
    tools that may execute; None means every tool.
    """
    if anthropic_client is None:
        raise CRMError("Server configuration error: API key not configured")

    conversation = normalize_messages(messages)
    system = build_system_prompt(today)
    ctx = ToolContext(supabase=supabase, user_id=user["user_id"], today=today, allowed_tools=allowed_tools)
    tools = TOOL_SCHEMAS if allowed_tools is None else [s for s in TOOL_SCHEMAS if s["name"] in allowed_tools]
    tool_calls: List[ToolCallRecord] = []
    text = ""

    for round_number in range(settings.chat_max_tool_rounds):
        response = await _create(anthropic_client, system, conversation, tools)
        text = _text_of(response)

        tool_blocks = [block for block in response.content if getattr(block, "type", None) == "tool_use"]
        if response.stop_reason != "tool_use" or not tool_blocks:
            break

        results = []
        for block in tool_blocks:
            record = await _run_tool(ctx, block)
            tool_calls.append(record)
            results.append(_tool_result_block(block, record))

        conversation.append({"role": "assistant", "content": response.content})
        conversation.append({"role": "user", "content": results})
        logger.info(f"🔁 Chat round {round_number + 1}: {len(tool_blocks)} tool call(s)")

    if not text and tool_calls:
        follow_up = conversation + [{
            "role": "user",
            "content": f"{summarize_tool_results(tool_calls)}\n\n{FOLLOW_UP_INSTRUCTION}",
        }]
        text = _text_of(await _create(anthropic_client, system, follow_up, tools))

    if not text:
        text = FALLBACK_MESSAGE

    return ChatResponse(message=text, tool_calls=tool_calls)
