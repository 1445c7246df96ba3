import asyncio
import json
from datetime import datetime
from typing import AsyncGenerator, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.core.database import async_session_maker
from app.repositories.service_request_repository import (
    ServiceRequestMessageRepository,
    ServiceRequestRepository,
)
from app.schemas.service_requests import InboxEvent, InboxEventType
from app.utils.logging import get_logger
from app.utils.serialization import row_to_dict

LOGGER = get_logger(__name__)


class InboxStream:
    """Polls a service request for new messages and status changes as SSE."""

    def __init__(self, poll_interval: float = 2.0):
        self.poll_interval = poll_interval
        self._last_seen: Optional[datetime] = None
        self._last_status: Optional[str] = None

    async def stream(self, request_id: UUID) -> AsyncGenerator[str, None]:
        """Stream existing messages, then new messages as they arrive."""
        try:
            while True:
                async for event in self._poll(request_id):
                    yield self._format_sse(event)

                yield self._format_sse(
                    InboxEvent(
                        event_type=InboxEventType.HEARTBEAT,
                        service_request_id=request_id,
                        data={"message": "keep-alive"},
                    )
                )
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            LOGGER.info(f"Inbox stream closed for service request {request_id}")
            raise
        except SQLAlchemyError as e:
            LOGGER.error(f"Error in inbox stream for {request_id}: {e}", exc_info=True)
            yield self._format_sse(
                InboxEvent(
                    event_type=InboxEventType.STATUS,
                    service_request_id=request_id,
                    data={"message": "Stream error"},
                )
            )

    async def _poll(self, request_id: UUID) -> AsyncGenerator[InboxEvent, None]:
        async with async_session_maker() as session:
            request = await ServiceRequestRepository(session).get_by_id(request_id)
            if request is not None and request.status != self._last_status:
                self._last_status = request.status
                yield InboxEvent(
                    event_type=InboxEventType.STATUS,
                    service_request_id=request_id,
                    data={"status": request.status},
                )

            messages = await ServiceRequestMessageRepository(session).list_since(request_id, self._last_seen)
            for message in messages:
                self._last_seen = message.created_at
                yield InboxEvent(
                    event_type=InboxEventType.MESSAGE,
                    service_request_id=request_id,
                    timestamp=message.created_at,
                    data=row_to_dict(message),
                )

    def _format_sse(self, event: InboxEvent) -> str:
        data = event.model_dump(mode="json")
        return f"event: {data['event_type']}\ndata: {json.dumps(data)}\n\n"
