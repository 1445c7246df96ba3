"""Service request, agent chat and inbox stream models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: str
    content: Any = None


class AgentChatRequest(BaseModel):
    messages: List[ChatMessage]
    context: Optional[Dict[str, Any]] = None


class ServiceRequestCreate(BaseModel):
    customer_name: str
    customer_email: EmailStr
    reason: str
    details: str
    department: Optional[str] = None
    policy_id: Optional[UUID] = None
    claim_id: Optional[UUID] = None
    agent_notes: Optional[str] = None


class ServiceRequestMessageCreate(BaseModel):
    role: Literal["user", "agent"]
    content: str


class InboxEventType(str, Enum):
    MESSAGE = "message:created"
    STATUS = "request:status"
    HEARTBEAT = "heartbeat"


class InboxEvent(BaseModel):
    event_type: InboxEventType
    service_request_id: UUID
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any]
