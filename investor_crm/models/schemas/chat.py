"""
Chat Schemas
Messages accept either plain string content or a list of text parts
"""
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel


class MessagePart(BaseModel):
    type: str = "text"
    text: Optional[str] = None


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: Optional[Union[str, List[Any]]] = None
    parts: Optional[List[MessagePart]] = None

    def text(self) -> str:
        """Flatten string content or text parts into one string."""
        if isinstance(self.content, str):
            return self.content
        chunks = []
        if isinstance(self.content, list):
            for part in self.content:
                if isinstance(part, dict) and part.get("type") == "text":
                    chunks.append(part.get("text") or "")
                elif isinstance(part, str):
                    chunks.append(part)
        for part in self.parts or []:
            if part.type == "text" and part.text:
                chunks.append(part.text)
        return "".join(chunks)


class ChatRequest(BaseModel):
    messages: List[ChatMessage]


class ToolCallRecord(BaseModel):
    name: str
    input: Dict[str, Any] = {}
    result: Optional[Any] = None
    error: Optional[str] = None


class ChatResponse(BaseModel):
    message: str
    tool_calls: List[ToolCallRecord] = []
