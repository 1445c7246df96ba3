"""Authenticated caller and application roles."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

AppRole = Literal[
    "admin",
    "consultant",
    "customer",
    "complaints_agent",
    "retail_agent",
    "claims_agent",
    "repairer_agent",
    "system_admin",
    "commercial_agent",
    "backoffice_agent",
]


class CurrentUser(BaseModel):
    """Authenticated caller, populated from the verified access token."""

    id: str = Field(..., description="Supabase user ID")
    email: str = Field(default="", description="User email")
    role: str = Field(default="authenticated", description="Token role claim")
    app_metadata: Optional[Dict[str, Any]] = Field(None, description="Application metadata")
    user_metadata: Optional[Dict[str, Any]] = Field(None, description="User metadata")

    # Filled from user_roles by the role dependencies
    roles: List[str] = Field(default_factory=list, description="Application roles")

    def has_any_role(self, *roles: str) -> bool:
        return any(role in self.roles for role in roles)
