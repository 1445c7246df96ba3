from fastapi import APIRouter

from app.api.v1.endpoints import (
    analysis,
    assignments,
    branding,
    claim_uploads,
    claims,
    communications,
    complaints,
    fulfillment,
    policies,
    service_requests,
    users,
)

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(claims.router, prefix="/claims", tags=["Claims"])
api_router.include_router(claim_uploads.router, prefix="/claim-uploads", tags=["Claim Uploads"])
api_router.include_router(fulfillment.router, prefix="/fulfillment", tags=["Fulfillment"])
api_router.include_router(assignments.router, prefix="/fulfillment-assignments", tags=["Fulfillment Assignments"])
api_router.include_router(analysis.router, prefix="/analysis", tags=["Analysis"])
api_router.include_router(communications.router, prefix="/communications", tags=["Communications"])
api_router.include_router(policies.router, prefix="/policies", tags=["Policies"])
api_router.include_router(branding.router, prefix="/branding", tags=["Branding"])
api_router.include_router(service_requests.router, prefix="/service-requests", tags=["Service Requests"])
api_router.include_router(complaints.router, prefix="/complaints", tags=["Complaints"])
api_router.include_router(users.router, prefix="/users", tags=["User"])

__all__ = ["api_router"]
