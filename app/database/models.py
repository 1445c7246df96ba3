"""SQLAlchemy models for all database tables."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    ARRAY,
    Boolean,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)


def _created_at() -> Mapped[datetime]:
    return mapped_column(TIMESTAMP(timezone=True), server_default="NOW()", nullable=False)


def _updated_at() -> Mapped[datetime]:
    return mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", onupdate=lambda: datetime.now(timezone.utc), nullable=False
    )


# --------------------------------------------------------------------------- #
# Programs and products
# --------------------------------------------------------------------------- #


class Program(Base):
    """Retail insurance program (a partner configuration with its own rules)."""

    __tablename__ = "programs"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    data_isolation_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # {"policy_number": {"format": "...", "description": "..."}, ...}
    reference_formats: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    # {"countries": ["DE", "ES"], ...}
    settings: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class Product(Base):
    """Insurance product (extended warranty, insurance lite/max, ...)."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = _uuid_pk()
    product_id: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    monthly_premium: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    excess_1: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    excess_2: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    rrp_min: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    rrp_max: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    coverage: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=list)
    perils: Mapped[list[str] | None] = mapped_column(ARRAY(String), nullable=True)
    device_categories: Mapped[list[str] | None] = mapped_column(ARRAY(String), nullable=True)
    fulfillment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    policy_term_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = _created_at()


class ProgramProduct(Base):
    __tablename__ = "program_products"

    id: Mapped[uuid.UUID] = _uuid_pk()
    program_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("programs.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = _created_at()


class Device(Base):
    """Catalogue device used to resolve categories for covered items."""

    __tablename__ = "devices"

    id: Mapped[uuid.UUID] = _uuid_pk()
    device_category: Mapped[str] = mapped_column(String, nullable=False)
    manufacturer: Mapped[str] = mapped_column(String, nullable=False)
    model_name: Mapped[str] = mapped_column(String, nullable=False)
    rrp: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    external_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    manufacturer_warranty_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


# --------------------------------------------------------------------------- #
# Users
# --------------------------------------------------------------------------- #


class Profile(Base):
    """Profile row keyed by the Supabase auth user id."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    email: Mapped[str] = mapped_column(String, nullable=False)
    full_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    address_line1: Mapped[str | None] = mapped_column(String, nullable=True)
    address_line2: Mapped[str | None] = mapped_column(String, nullable=True)
    city: Mapped[str | None] = mapped_column(String, nullable=True)
    postcode: Mapped[str | None] = mapped_column(String, nullable=True)
    repairer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("repairers.id", ondelete="SET NULL"), nullable=True
    )
    must_change_password: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class UserRole(Base):
    """Application role grant (admin, consultant, claims_agent, ...)."""

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String, nullable=False)
    program_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("programs.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = _created_at()


class UserGroup(Base):
    __tablename__ = "user_groups"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class UserGroupMember(Base):
    __tablename__ = "user_group_members"

    id: Mapped[uuid.UUID] = _uuid_pk()
    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("user_groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    created_at: Mapped[datetime] = _created_at()


# --------------------------------------------------------------------------- #
# Policies
# --------------------------------------------------------------------------- #


class Policy(Base):
    """Insurance policy sold to a customer."""

    __tablename__ = "policies"

    id: Mapped[uuid.UUID] = _uuid_pk()
    policy_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id"), nullable=False
    )
    program_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("programs.id"), nullable=True
    )
    consultant_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="active"
    )  # active | expired | cancelled | pending
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    renewal_date: Mapped[date] = mapped_column(Date, nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_address_line1: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_address_line2: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_city: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_postcode: Mapped[str | None] = mapped_column(String, nullable=True)
    original_premium: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    promotional_premium: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    product: Mapped["Product"] = relationship("Product", lazy="selectin")
    program: Mapped["Program | None"] = relationship("Program", lazy="selectin")
    covered_items: Mapped[list["CoveredItem"]] = relationship(
        "CoveredItem", back_populates="policy", cascade="all, delete-orphan", lazy="selectin"
    )


class CoveredItem(Base):
    """Device insured by a policy."""

    __tablename__ = "covered_items"

    id: Mapped[uuid.UUID] = _uuid_pk()
    policy_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("policies.id", ondelete="CASCADE"), nullable=False
    )
    product_name: Mapped[str] = mapped_column(String, nullable=False)
    model: Mapped[str | None] = mapped_column(String, nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String, nullable=True)
    purchase_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    added_date: Mapped[datetime] = _created_at()
    created_at: Mapped[datetime] = _created_at()

    policy: Mapped["Policy"] = relationship("Policy", back_populates="covered_items")


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    policy_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("policies.id", ondelete="CASCADE"), nullable=True
    )
    claim_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("claims.id", ondelete="CASCADE"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_type: Mapped[str] = mapped_column(String, nullable=False)  # premium | excess
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")  # pending | paid | failed
    reference_number: Mapped[str] = mapped_column(String, nullable=False)
    payment_date: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()


# --------------------------------------------------------------------------- #
# Claims
# --------------------------------------------------------------------------- #


class Claim(Base):
    """Customer claim against a policy."""

    __tablename__ = "claims"

    id: Mapped[uuid.UUID] = _uuid_pk()
    claim_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    policy_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("policies.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    consultant_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    claim_type: Mapped[str] = mapped_column(String, nullable=False)  # breakdown | damage | theft
    status: Mapped[str] = mapped_column(String, nullable=False, default="notified")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    product_condition: Mapped[str | None] = mapped_column(String, nullable=True)
    has_receipt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    decision: Mapped[str | None] = mapped_column(String, nullable=True)
    decision_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_date: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    policy: Mapped["Policy"] = relationship("Policy", lazy="selectin")
    status_history: Mapped[list["ClaimStatusHistory"]] = relationship(
        "ClaimStatusHistory", back_populates="claim", cascade="all, delete-orphan"
    )


class ClaimStatusHistory(Base):
    __tablename__ = "claim_status_history"

    id: Mapped[uuid.UUID] = _uuid_pk()
    claim_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("claims.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    claim: Mapped["Claim"] = relationship("Claim", back_populates="status_history")


class ClaimFulfillment(Base):
    """How a claim is being resolved: repair, voucher or BER settlement."""

    __tablename__ = "claim_fulfillment"

    id: Mapped[uuid.UUID] = _uuid_pk()
    claim_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("claims.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    repairer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("repairers.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending_excess")
    fulfillment_type: Mapped[str | None] = mapped_column(
        String, nullable=True
    )  # in_home_repair | collection_repair | voucher | ber_cash | ber_voucher
    excess_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    excess_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    excess_payment_date: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    excess_payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    device_value: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    appointment_date: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    appointment_slot: Mapped[str | None] = mapped_column(String, nullable=True)
    engineer_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    logistics_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    quote_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    quote_status: Mapped[str | None] = mapped_column(String, nullable=True)  # pending | approved | rejected
    quote_rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    ber_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    inspection_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    repair_outcome: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class Document(Base):
    """Stored file attached to a policy, claim or service request."""

    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    policy_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("policies.id", ondelete="CASCADE"), nullable=True
    )
    claim_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("claims.id", ondelete="CASCADE"), nullable=True
    )
    service_request_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("service_requests.id", ondelete="CASCADE"), nullable=True
    )
    document_type: Mapped[str] = mapped_column(String, nullable=False)  # policy | receipt | photo | other
    document_subtype: Mapped[str | None] = mapped_column(
        String, nullable=True
    )  # ipid | terms_conditions | policy_schedule | receipt | other
    file_name: Mapped[str] = mapped_column(String, nullable=False)
    file_path: Mapped[str] = mapped_column(String, nullable=False)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # {"ai_analysis": {...}}
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    uploaded_date: Mapped[datetime] = _created_at()


# --------------------------------------------------------------------------- #
# Repairers
# --------------------------------------------------------------------------- #


class Repairer(Base):
    """Third-party repair service provider."""

    __tablename__ = "repairers"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String, nullable=False)
    company_name: Mapped[str] = mapped_column(String, nullable=False)
    contact_email: Mapped[str] = mapped_column(String, nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String, nullable=True)
    address_line1: Mapped[str | None] = mapped_column(String, nullable=True)
    address_line2: Mapped[str | None] = mapped_column(String, nullable=True)
    city: Mapped[str | None] = mapped_column(String, nullable=True)
    postcode: Mapped[str | None] = mapped_column(String, nullable=True)
    country: Mapped[str | None] = mapped_column(String, nullable=True)
    connectivity_type: Mapped[str | None] = mapped_column(String, nullable=True)
    specializations: Mapped[list[str] | None] = mapped_column(ARRAY(String), nullable=True)
    coverage_areas: Mapped[list[str] | None] = mapped_column(ARRAY(String), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    slas: Mapped[list["RepairerSLA"]] = relationship(
        "RepairerSLA", back_populates="repairer", cascade="all, delete-orphan", lazy="selectin"
    )


class RepairerSLA(Base):
    """Service levels a repairer commits to for one device category."""

    __tablename__ = "repairer_slas"

    id: Mapped[uuid.UUID] = _uuid_pk()
    repairer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("repairers.id", ondelete="CASCADE"), nullable=False
    )
    device_category: Mapped[str] = mapped_column(String, nullable=False)
    response_time_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    repair_time_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    availability_hours: Mapped[str | None] = mapped_column(String, nullable=True)
    quality_score: Mapped[Decimal | None] = mapped_column(Numeric(3, 2), nullable=True)
    success_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    repairer: Mapped["Repairer"] = relationship("Repairer", back_populates="slas")


class FulfillmentAssignment(Base):
    """Routes claims for a product, category or device model to a repairer."""

    __tablename__ = "fulfillment_assignments"

    id: Mapped[uuid.UUID] = _uuid_pk()
    repairer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("repairers.id", ondelete="SET NULL"), nullable=True
    )
    program_ids: Mapped[list[uuid.UUID] | None] = mapped_column(ARRAY(UUID(as_uuid=True)), nullable=True)
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=True
    )
    device_category: Mapped[str | None] = mapped_column(String, nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String, nullable=True)
    model_name: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    repairer: Mapped["Repairer | None"] = relationship("Repairer", lazy="selectin")


# --------------------------------------------------------------------------- #
# Communications
# --------------------------------------------------------------------------- #


class CommunicationTemplate(Base):
    __tablename__ = "communication_templates"

    id: Mapped[uuid.UUID] = _uuid_pk()
    type: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    subject: Mapped[str] = mapped_column(String, nullable=False)
    message_body: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class PolicyCommunication(Base):
    """Email sent to a policy holder, kept for the communications history."""

    __tablename__ = "policy_communications"

    id: Mapped[uuid.UUID] = _uuid_pk()
    policy_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("policies.id", ondelete="CASCADE"), nullable=False
    )
    claim_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("claims.id", ondelete="SET NULL"), nullable=True
    )
    complaint_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("complaints.id", ondelete="SET NULL"), nullable=True
    )
    communication_type: Mapped[str] = mapped_column(String, nullable=False)
    subject: Mapped[str] = mapped_column(String, nullable=False)
    message_body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="sent")
    sent_at: Mapped[datetime] = _created_at()
    read_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()

    policy: Mapped["Policy"] = relationship("Policy", lazy="selectin")


# --------------------------------------------------------------------------- #
# Service requests and complaints
# --------------------------------------------------------------------------- #


class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id: Mapped[uuid.UUID] = _uuid_pk()
    request_reference: Mapped[str] = mapped_column(String, nullable=False)
    policy_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("policies.id", ondelete="SET NULL"), nullable=True
    )
    claim_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("claims.id", ondelete="SET NULL"), nullable=True
    )
    customer_name: Mapped[str] = mapped_column(String, nullable=False)
    customer_email: Mapped[str] = mapped_column(String, nullable=False)
    reason: Mapped[str] = mapped_column(String, nullable=False)
    department: Mapped[str | None] = mapped_column(String, nullable=True)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")
    created_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    last_activity_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), server_default="NOW()", nullable=True
    )
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()

    messages: Mapped[list["ServiceRequestMessage"]] = relationship(
        "ServiceRequestMessage",
        back_populates="service_request",
        cascade="all, delete-orphan",
        order_by="ServiceRequestMessage.created_at",
        lazy="selectin",
    )


class ServiceRequestMessage(Base):
    __tablename__ = "service_request_messages"

    id: Mapped[uuid.UUID] = _uuid_pk()
    service_request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("service_requests.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String, nullable=False)  # user | agent
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read_by_agent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = _created_at()

    service_request: Mapped["ServiceRequest"] = relationship("ServiceRequest", back_populates="messages")


class Complaint(Base):
    __tablename__ = "complaints"

    id: Mapped[uuid.UUID] = _uuid_pk()
    complaint_reference: Mapped[str] = mapped_column(String, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    policy_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("policies.id", ondelete="SET NULL"), nullable=True
    )
    reason: Mapped[str] = mapped_column(
        String, nullable=False
    )  # claim_processing | customer_service | policy_terms | payment_issue | product_coverage | other
    details: Mapped[str] = mapped_column(Text, nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String, nullable=True)
    complaint_type: Mapped[str | None] = mapped_column(String, nullable=True)
    classification: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    response: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_date: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class ComplaintActivityLog(Base):
    __tablename__ = "complaint_activity_log"

    id: Mapped[uuid.UUID] = _uuid_pk()
    complaint_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    user_name: Mapped[str] = mapped_column(String, nullable=False)
    action_type: Mapped[str] = mapped_column(String, nullable=False)
    action_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    field_changed: Mapped[str | None] = mapped_column(String, nullable=True)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()
