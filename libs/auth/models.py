from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthUser(BaseModel):
    """
    Represents an authenticated user from a Supabase access token.

    ``user_metadata`` carries the hints supplied at signup time
    (full_name, primary_role, branch_id); they are only used when no
    persisted profile exists yet.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: str = "authenticated"
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    app_metadata: dict[str, Any] = Field(default_factory=dict)
    access_token: Optional[str] = Field(default=None, exclude=True)
