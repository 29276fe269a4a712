"""
Pydantic schemas for billing endpoints.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from license_api.schemas.account import SubscriptionSummary


class PackageInfo(BaseModel):
    id: str = Field(..., description="Package identifier")
    name: str
    price: float = Field(..., description="Display price in USD")
    price_id: Optional[str] = Field(None, description="Stripe price ID")
    billing: str = Field(..., description="monthly or one-time")
    features: List[str] = Field(default_factory=list)


class PackagesResponse(BaseModel):
    packages: List[PackageInfo]


class StripeConfigResponse(BaseModel):
    publishable_key: Optional[str] = None


class CreateCheckoutSessionRequest(BaseModel):
    """Request schema for creating checkout session."""
    package: str = Field(..., description="Package identifier, e.g. 'monthly' or 'lifetime'")
    success_url: Optional[str] = Field(None, description="URL to redirect after successful payment")
    cancel_url: Optional[str] = Field(None, description="URL to redirect if payment is canceled")

    class Config:
        json_schema_extra = {
            "example": {
                "package": "monthly",
                "success_url": "https://example.com/dashboard?success=true",
                "cancel_url": "https://example.com/?cancelled=true"
            }
        }


class CreateCheckoutSessionResponse(BaseModel):
    """Response schema for checkout session creation."""
    success: bool = True
    session_id: str = Field(..., description="Stripe checkout session ID")
    url: Optional[str] = Field(None, description="Stripe checkout session URL")


class SubscriptionResponse(BaseModel):
    success: bool = True
    subscription: SubscriptionSummary


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class WebhookAck(BaseModel):
    received: bool = True
    result: str = Field(..., description="applied | duplicate | ignored | stale | unmatched | unhandled")
