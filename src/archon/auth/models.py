"""data models for stored tokens and decoded claims."""
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TokenUser(BaseModel):
    id: int = 0
    username: str
    role: str = "VIEWER"


class TokenData(BaseModel):
    """
    the token record kept for one profile.

    field aliases match the on-disk JSON (`accessToken`, `expiresAt`, ...).
    expires_at is epoch milliseconds.
    """
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    expires_at: int = Field(alias="expiresAt")
    user: TokenUser


class Claims(BaseModel):
    """access token payload fields, for display only."""
    username: Optional[str] = None
    role: Optional[str] = None
    subject: Optional[str] = None
    exp: Optional[int] = None  # epoch milliseconds


class ClaimDecodeError(BaseModel):
    reason: str


ClaimsResult = Union[Claims, ClaimDecodeError]
