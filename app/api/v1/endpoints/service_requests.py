"""Service request endpoints: the customer service agent, the staff inbox and its live stream."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse

from app.core.auth import get_current_user, require_staff
from app.core.dependencies import get_inbox_stream, get_service_agent, get_service_request_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.service_requests import AgentChatRequest, ServiceRequestCreate, ServiceRequestMessageCreate
from app.services.service_requests.agent_service import ServiceAgentService
from app.services.service_requests.inbox_stream import InboxStream
from app.services.service_requests.service_request_service import ServiceRequestService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.post(
    "/agent/chat",
    summary="Chat with the customer service agent",
    description=(
        "Relay the AI gateway's streamed reply as Server-Sent Events. The agent can "
        "search MediaMarkt products and capture a service request for a human."
    ),
    operation_id="chat_with_service_agent",
)
async def agent_chat(
    body: AgentChatRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    agent_service: Annotated[ServiceAgentService, Depends(get_service_agent)] = None,
) -> StreamingResponse:
    messages = [message.model_dump() for message in body.messages]
    stream = await agent_service.chat(messages)
    return StreamingResponse(stream, media_type="text/event-stream", headers=SSE_HEADERS)


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Raise a service request",
    operation_id="create_service_request",
)
async def create_service_request(
    request: Request,
    body: ServiceRequestCreate,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    service_request_service: Annotated[ServiceRequestService, Depends(get_service_request_service)] = None,
):
    result = await service_request_service.create_service_request(body, UUID(current_user.id))
    return create_api_response(data=result, message="Service request created", request=request)


@router.get(
    "/inbox",
    response_model=ApiResponse,
    summary="Service request inbox",
    operation_id="list_service_request_inbox",
)
async def list_inbox(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    service_request_service: Annotated[ServiceRequestService, Depends(get_service_request_service)] = None,
):
    result = await service_request_service.list_inbox()
    return create_api_response(data=result, request=request)


@router.post(
    "/{request_id}/messages",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a message to a service request",
    operation_id="add_service_request_message",
)
async def add_message(
    request: Request,
    request_id: UUID,
    body: ServiceRequestMessageCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)] = None,
    service_request_service: Annotated[ServiceRequestService, Depends(get_service_request_service)] = None,
):
    result = await service_request_service.add_message(request_id, body.role, body.content)
    return create_api_response(data=result, request=request)


@router.post(
    "/{request_id}/read",
    response_model=ApiResponse,
    summary="Mark a service request's customer messages as read",
    operation_id="mark_service_request_read",
)
async def mark_read(
    request: Request,
    request_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    service_request_service: Annotated[ServiceRequestService, Depends(get_service_request_service)] = None,
):
    result = await service_request_service.mark_read(request_id)
    return create_api_response(data=result, request=request)


@router.get(
    "/{request_id}/stream",
    summary="Stream new messages and status changes of a service request",
    description=(
        "Server-Sent Events stream.\n\n"
        "**Event Types:**\n"
        "- `message:created`: A message was added\n"
        "- `request:status`: The request status changed\n"
        "- `heartbeat`: Keep-alive ping\n"
    ),
    operation_id="stream_service_request",
)
async def stream_service_request(
    request_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_staff)] = None,
    inbox_stream: Annotated[InboxStream, Depends(get_inbox_stream)] = None,
) -> StreamingResponse:
    LOGGER.info("Inbox stream opened", extra={"service_request_id": str(request_id), "user_id": current_user.id})
    return StreamingResponse(inbox_stream.stream(request_id), media_type="text/event-stream", headers=SSE_HEADERS)
