"""Repository layer modules."""

from app.repositories.claim_repository import ClaimFulfillmentRepository, ClaimRepository
from app.repositories.communication_repository import CommunicationRepository, TemplateRepository
from app.repositories.complaint_repository import ComplaintActivityRepository, ComplaintRepository
from app.repositories.document_repository import DocumentRepository
from app.repositories.policy_repository import PaymentRepository, PolicyRepository, ProductRepository, ProgramRepository
from app.repositories.repairer_repository import DeviceRepository, FulfillmentAssignmentRepository, RepairerRepository
from app.repositories.service_request_repository import ServiceRequestMessageRepository, ServiceRequestRepository
from app.repositories.user_repository import ProfileRepository, UserGroupMemberRepository, UserRoleRepository

__all__ = [
    "ClaimRepository",
    "ClaimFulfillmentRepository",
    "CommunicationRepository",
    "TemplateRepository",
    "ComplaintRepository",
    "ComplaintActivityRepository",
    "DocumentRepository",
    "PolicyRepository",
    "PaymentRepository",
    "ProductRepository",
    "ProgramRepository",
    "RepairerRepository",
    "FulfillmentAssignmentRepository",
    "DeviceRepository",
    "ServiceRequestRepository",
    "ServiceRequestMessageRepository",
    "ProfileRepository",
    "UserRoleRepository",
    "UserGroupMemberRepository",
]
