"""SQLAlchemy models for the insurance admin schema."""

from app.database.models import (
    Claim,
    ClaimFulfillment,
    ClaimStatusHistory,
    CommunicationTemplate,
    Complaint,
    ComplaintActivityLog,
    CoveredItem,
    Device,
    Document,
    FulfillmentAssignment,
    Payment,
    Policy,
    PolicyCommunication,
    Product,
    Profile,
    Program,
    Repairer,
    RepairerSLA,
    ServiceRequest,
    ServiceRequestMessage,
    UserRole,
)

__all__ = [
    "Claim",
    "ClaimFulfillment",
    "ClaimStatusHistory",
    "CommunicationTemplate",
    "Complaint",
    "ComplaintActivityLog",
    "CoveredItem",
    "Device",
    "Document",
    "FulfillmentAssignment",
    "Payment",
    "Policy",
    "PolicyCommunication",
    "Product",
    "Profile",
    "Program",
    "Repairer",
    "RepairerSLA",
    "ServiceRequest",
    "ServiceRequestMessage",
    "UserRole",
]
