"""
Pydantic schemas for authentication endpoints.

Fields are optional at the schema level so that missing values reach the
service layer and come back as 400 with a readable message.
"""
from typing import Optional
from pydantic import BaseModel, Field

from license_api.schemas.account import AccountSummary, SubscriptionSummary


class CredentialsRequest(BaseModel):
    """Request schema for web signup and web login."""
    username: Optional[str] = Field(None, description="Username (3+ characters, case-insensitive)")
    password: Optional[str] = Field(None, description="Password (6-72 bytes)")

    class Config:
        json_schema_extra = {
            "example": {
                "username": "player_one",
                "password": "SecurePass123"
            }
        }


class ClientLoginRequest(BaseModel):
    """Request schema for the desktop client login."""
    username: Optional[str] = Field(None, description="Username")
    password: Optional[str] = Field(None, description="Password")
    hwid: Optional[str] = Field(None, description="Hardware fingerprint, compared byte for byte")

    class Config:
        json_schema_extra = {
            "example": {
                "username": "player_one",
                "password": "SecurePass123",
                "hwid": "4C4C4544-0042-3510-8052-B4C04F564433"
            }
        }


class SessionResponse(BaseModel):
    """Response schema for signup and web login."""
    success: bool = True
    message: str
    user: AccountSummary
    access_token: str
    token_type: str = "bearer"


class ClientLoginResponse(BaseModel):
    """Response schema for the desktop client login."""
    success: bool = True
    message: str
    username: str
    subscription: SubscriptionSummary


class SessionCheckResponse(BaseModel):
    loggedIn: bool
    user: Optional[AccountSummary] = None


class UsernameAvailabilityResponse(BaseModel):
    available: bool
