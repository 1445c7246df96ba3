"""Dependency factories for services and external clients.

Endpoints declare these with ``Annotated[..., Depends(...)]``; tests replace
them through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.ai_gateway import AIGatewayClient, get_ai_gateway_client
from app.core.database import get_async_session
from app.core.email_client import EmailClient, get_email_client
from app.core.supabase_admin import SupabaseAdminClient, get_supabase_admin_client
from app.services.analysis.device_analyzer import DeviceAnalyzer
from app.services.analysis.reanalysis_service import ReanalysisService
from app.services.analysis.receipt_analyzer import ReceiptAnalyzer
from app.services.branding_service import BrandingService
from app.services.claims.claim_document_service import ClaimDocumentService
from app.services.claims.claim_processing_service import ClaimProcessingService
from app.services.communications.communication_service import CommunicationService
from app.services.complaints_service import ComplaintsService
from app.services.fulfillment.advisor_service import FulfillmentAdvisorService
from app.services.fulfillment.assignment_service import AssignmentService
from app.services.fulfillment.fulfillment_service import FulfillmentService
from app.services.policies.policy_documents_service import PolicyDocumentsService
from app.services.policies.policy_lookup_service import PolicyLookupService
from app.services.service_requests.agent_service import ServiceAgentService
from app.services.service_requests.inbox_stream import InboxStream
from app.services.service_requests.service_request_service import ServiceRequestService
from app.services.storage_service import StorageService
from app.services.user_admin_service import UserAdminService

DbSession = Annotated[AsyncSession, Depends(get_async_session)]


async def get_ai_client() -> AIGatewayClient:
    return get_ai_gateway_client()


async def get_mailer() -> EmailClient:
    return get_email_client()


async def get_storage_service() -> StorageService:
    return StorageService()


async def get_admin_client() -> SupabaseAdminClient:
    return get_supabase_admin_client()


AIClient = Annotated[AIGatewayClient, Depends(get_ai_client)]
Mailer = Annotated[EmailClient, Depends(get_mailer)]
Storage = Annotated[StorageService, Depends(get_storage_service)]


async def get_communication_service(db_session: DbSession, email_client: Mailer) -> CommunicationService:
    """Get communication service instance.

    Args:
        db_session: Database session from dependency injection
        email_client: Transactional email client

    Returns:
        CommunicationService: Sends and records customer emails
    """
    return CommunicationService(db_session, email_client)


Communications = Annotated[CommunicationService, Depends(get_communication_service)]


async def get_advisor_service(db_session: DbSession, ai_client: AIClient) -> FulfillmentAdvisorService:
    return FulfillmentAdvisorService(db_session, ai_client)


async def get_assignment_service(db_session: DbSession) -> AssignmentService:
    return AssignmentService(db_session)


async def get_fulfillment_service(db_session: DbSession) -> FulfillmentService:
    return FulfillmentService(db_session)


async def get_device_analyzer(ai_client: AIClient) -> DeviceAnalyzer:
    return DeviceAnalyzer(ai_client)


async def get_receipt_analyzer(ai_client: AIClient) -> ReceiptAnalyzer:
    return ReceiptAnalyzer(ai_client)


async def get_reanalysis_service(db_session: DbSession, ai_client: AIClient, storage: Storage) -> ReanalysisService:
    return ReanalysisService(db_session, ai_client, storage)


async def get_claim_document_service(
    db_session: DbSession,
    storage: Storage,
    ai_client: AIClient,
    communications: Communications,
) -> ClaimDocumentService:
    """Get claim document service instance.

    Args:
        db_session: Database session from dependency injection
        storage: Object storage for the uploaded files
        ai_client: AI gateway used to analyze photos and receipts
        communications: Sends the upload-link email

    Returns:
        ClaimDocumentService: Handles claim uploads and document requests
    """
    return ClaimDocumentService(db_session, storage, ai_client, communications)


async def get_claim_processing_service(
    db_session: DbSession,
    ai_client: AIClient,
    communications: Communications,
) -> ClaimProcessingService:
    return ClaimProcessingService(db_session, ai_client, communications)


async def get_policy_lookup_service(db_session: DbSession) -> PolicyLookupService:
    return PolicyLookupService(db_session)


async def get_policy_documents_service(db_session: DbSession, storage: Storage) -> PolicyDocumentsService:
    return PolicyDocumentsService(db_session, storage)


async def get_branding_service(ai_client: AIClient) -> BrandingService:
    return BrandingService(ai_client)


async def get_service_agent(ai_client: AIClient) -> ServiceAgentService:
    return ServiceAgentService(ai_client)


async def get_service_request_service(db_session: DbSession) -> ServiceRequestService:
    return ServiceRequestService(db_session)


async def get_complaints_service(db_session: DbSession) -> ComplaintsService:
    return ComplaintsService(db_session)


async def get_user_admin_service(
    db_session: DbSession,
    admin_client: Annotated[SupabaseAdminClient, Depends(get_admin_client)],
) -> UserAdminService:
    return UserAdminService(db_session, admin_client)


async def get_inbox_stream() -> InboxStream:
    return InboxStream()
