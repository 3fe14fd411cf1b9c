from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Optional, Any, List, Literal


def utc_timestamp() -> str:
    """ISO-8601 UTC with milliseconds, e.g. 2026-10-19T08:15:30.123Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FunctionCallRequest(BaseModel):
    function_name: str
    arguments: Any = Field(default_factory=dict)

class ChatMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str

class UpstreamChatRequest(BaseModel):
    model: str
    stream: Literal[False] = False
    messages: List[ChatMessage]

class ProxyResponse(BaseModel):
    result: Optional[str] = None
    error: Optional[str] = None
    function_name: Optional[str] = None
    success: bool
    timestamp: Optional[str] = None

class HealthResponse(BaseModel):
    status: str
    endpoints: List[str]
    timestamp: str = Field(default_factory=utc_timestamp)

class NotFoundResponse(BaseModel):
    error: str = "Not Found"
    availableEndpoints: List[str]
