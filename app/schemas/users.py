from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.schemas.auth import AppRole


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GrantRoleRequest(_CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    role: Optional[AppRole] = None
    exclusive: bool = False


class BulkUser(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None


class UserData(_CamelModel):
    user_id: Optional[UUID] = Field(None, alias="userId")
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = Field(None, alias="fullName")
    phone: Optional[str] = None
    address_line1: Optional[str] = Field(None, alias="addressLine1")
    address_line2: Optional[str] = Field(None, alias="addressLine2")
    city: Optional[str] = None
    postcode: Optional[str] = None
    role: Optional[AppRole] = None
    program_id: Optional[UUID] = Field(None, alias="programId")
    group_id: Optional[UUID] = Field(None, alias="groupId")
    group_ids: List[UUID] = Field(default_factory=list, alias="groupIds")
    users: List[BulkUser] = Field(default_factory=list)

    def groups(self) -> List[UUID]:
        groups = list(self.group_ids)
        if self.group_id and self.group_id not in groups:
            groups.append(self.group_id)
        return groups


class ManageUserRequest(_CamelModel):
    action: str
    user_data: UserData = Field(default_factory=UserData, alias="userData")
