from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import Profile, UserGroupMember, UserRole
from app.repositories.base_repository import BaseRepository
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ProfileRepository(BaseRepository[Profile]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, Profile)

    async def get_by_email(self, email: str) -> Optional[Profile]:
        result = await self.session.execute(select(Profile).where(Profile.email.ilike(email)).limit(1))
        return result.scalar_one_or_none()

    async def upsert(self, user_id: UUID, **fields) -> Profile:
        existing = await self.get_by_id(user_id)
        if existing is None:
            return await self.create(id=user_id, **fields)
        return await self.update(user_id, **fields)


class UserRoleRepository(BaseRepository[UserRole]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserRole)

    async def get_roles(self, user_id: UUID) -> List[str]:
        result = await self.session.execute(select(UserRole.role).where(UserRole.user_id == user_id))
        return list(result.scalars().all())

    async def upsert_role(self, user_id: UUID, role: str, program_id: Optional[UUID] = None) -> UserRole:
        """Grant ``role`` once per user; an existing grant is returned as is."""
        existing = await self.first({"user_id": user_id, "role": role})
        if existing is not None:
            if program_id is not None and existing.program_id != program_id:
                return await self.update(existing.id, program_id=program_id)
            return existing
        return await self.create(user_id=user_id, role=role, program_id=program_id)

    async def delete_other_roles(self, user_id: UUID, keep_role: str) -> None:
        try:
            await self.session.execute(
                delete(UserRole).where(UserRole.user_id == user_id, UserRole.role != keep_role)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error removing roles for {user_id}: {e}", exc_info=True)
            raise


class UserGroupMemberRepository(BaseRepository[UserGroupMember]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserGroupMember)

    async def replace_groups(self, user_id: UUID, group_ids: List[UUID]) -> None:
        """Make ``group_ids`` the user's exact group memberships."""
        try:
            await self.session.execute(delete(UserGroupMember).where(UserGroupMember.user_id == user_id))
            for group_id in group_ids:
                self.session.add(UserGroupMember(user_id=user_id, group_id=group_id))
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            LOGGER.error(f"Error replacing groups for {user_id}: {e}", exc_info=True)
            raise
