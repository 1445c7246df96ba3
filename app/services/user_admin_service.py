"""Staff account administration through the Supabase Auth admin API."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppError, ConflictError, ValidationError
from app.core.supabase_admin import SupabaseAdminClient
from app.repositories.user_repository import ProfileRepository, UserGroupMemberRepository, UserRoleRepository
from app.schemas.users import BulkUser, UserData
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

CONSULTANT_EMAIL = "consultant@test.com"
CONSULTANT_PASSWORD = "Test123456!"
CONSULTANT_NAME = "Test Consultant"


def _contact_fields(data: Any) -> Dict[str, Optional[str]]:
    return {
        "phone": data.phone or None,
        "address_line1": data.address_line1 or None,
        "address_line2": data.address_line2 or None,
        "city": data.city or None,
        "postcode": data.postcode or None,
    }


class UserAdminService:
    def __init__(self, db_session: AsyncSession, admin_client: SupabaseAdminClient):
        self.admin_client = admin_client
        self.profiles = ProfileRepository(db_session)
        self.roles = UserRoleRepository(db_session)
        self.group_members = UserGroupMemberRepository(db_session)

    async def grant_role(
        self,
        email: Optional[str],
        password: Optional[str],
        full_name: Optional[str],
        role: Optional[str],
        exclusive: bool = False,
    ) -> Dict[str, Any]:
        """Create the user if needed and grant ``role``.

        Args:
            exclusive: Remove every other role the user holds

        Raises:
            ValidationError: If any parameter is missing
            ConflictError: If the auth user exists but has no profile
        """
        if not email or not password or not full_name or not role:
            raise ValidationError("Missing parameters")

        LOGGER.info("Granting role", extra={"email": email, "role": role, "exclusive": exclusive})
        try:
            created = await self.admin_client.create_user(email, password, full_name)
            user_id = UUID(created["id"])
            await self.profiles.upsert(user_id, email=email, full_name=full_name)
        except ConflictError:
            profile = await self.profiles.get_by_email(email)
            if profile is None:
                raise ConflictError("User exists but profile not found")
            user_id = profile.id

        if exclusive:
            await self.roles.delete_other_roles(user_id, keep_role=role)
        await self.roles.upsert_role(user_id, role)

        return {"success": True, "userId": str(user_id), "role": role, "exclusive": exclusive}

    async def manage_user(self, action: str, user_data: UserData) -> Dict[str, Any]:
        if action == "create":
            return await self.create_user(user_data)
        if action == "update":
            return await self.update_user(user_data)
        if action == "bulk-create":
            return await self.bulk_create(user_data.users)
        raise ValidationError("Invalid action")

    async def create_user(self, data: UserData) -> Dict[str, Any]:
        """Create a staff user who must change their password on first login."""
        if not data.email or not data.password:
            raise ValidationError("Email and password are required")

        created = await self.admin_client.create_user(data.email, data.password, data.full_name)
        user_id = UUID(created["id"])

        await self.profiles.upsert(
            user_id,
            email=data.email,
            full_name=data.full_name or "",
            must_change_password=True,
            **_contact_fields(data),
        )
        if data.role:
            await self.roles.upsert_role(user_id, data.role, program_id=data.program_id)
        groups = data.groups()
        if groups:
            await self.group_members.replace_groups(user_id, groups)

        LOGGER.info("User created", extra={"user_id": str(user_id), "role": data.role})
        return {"success": True, "user": created}

    async def update_user(self, data: UserData) -> Dict[str, Any]:
        if not data.user_id:
            raise ValidationError("userId is required")

        if data.email:
            await self.admin_client.update_user(str(data.user_id), email=data.email)

        fields = _contact_fields(data)
        if data.email:
            fields["email"] = data.email
        if data.full_name is not None:
            fields["full_name"] = data.full_name
        await self.profiles.update(data.user_id, **fields)

        if data.role:
            await self.roles.delete_other_roles(data.user_id, keep_role=data.role)
            await self.roles.upsert_role(data.user_id, data.role, program_id=data.program_id)
        await self.group_members.replace_groups(data.user_id, data.groups())

        LOGGER.info("User updated", extra={"user_id": str(data.user_id)})
        return {"success": True}

    async def bulk_create(self, users: List[BulkUser]) -> Dict[str, Any]:
        """Create users one at a time, reporting each outcome."""
        results = []
        for user in users:
            try:
                created = await self.admin_client.create_user(user.email, user.password, user.full_name)
                await self.profiles.upsert(
                    UUID(created["id"]),
                    email=user.email,
                    full_name=user.full_name or "",
                    must_change_password=True,
                    **_contact_fields(user),
                )
                results.append({"success": True, "email": user.email})
            except AppError as e:
                LOGGER.warning(f"Bulk user creation failed for {user.email}: {e.message}")
                results.append({"success": False, "email": user.email, "error": e.message})
            except SQLAlchemyError as e:
                LOGGER.error(f"Bulk user profile failed for {user.email}: {e}", exc_info=True)
                results.append({"success": False, "email": user.email, "error": "Failed to save profile"})
        return {"results": results}

    async def create_consultant(self) -> Dict[str, Any]:
        """Make sure the test consultant account exists with the consultant role."""
        existing = await self.admin_client.find_user_by_email(CONSULTANT_EMAIL)
        if existing is not None:
            await self.roles.upsert_role(UUID(existing["id"]), "consultant")
            return {"success": True, "message": "Consultant account already exists", "email": CONSULTANT_EMAIL}

        try:
            created = await self.admin_client.create_user(CONSULTANT_EMAIL, CONSULTANT_PASSWORD, CONSULTANT_NAME)
        except ConflictError:
            recovered = await self.admin_client.find_user_by_email(CONSULTANT_EMAIL)
            if recovered is None:
                raise
            await self.roles.upsert_role(UUID(recovered["id"]), "consultant")
            return {
                "success": True,
                "message": "Consultant account already exists (recovered)",
                "email": CONSULTANT_EMAIL,
            }

        user_id = UUID(created["id"])
        await self.profiles.upsert(user_id, email=CONSULTANT_EMAIL, full_name=CONSULTANT_NAME)
        await self.roles.upsert_role(user_id, "consultant")
        LOGGER.info("Consultant user created", extra={"user_id": str(user_id)})
        return {
            "success": True,
            "message": "Consultant account created successfully",
            "email": CONSULTANT_EMAIL,
            "password": CONSULTANT_PASSWORD,
        }
