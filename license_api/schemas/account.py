"""
Pydantic schemas describing accounts and their license.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from license_api.db.models.account import Account


class SubscriptionSummary(BaseModel):
    """License state as shown to the account owner and the desktop client."""
    status: str = Field(..., description="none | inactive | active | cancelled | raw processor status")
    package: Optional[str] = Field(None, description="Package identifier, e.g. monthly or lifetime")
    billing_mode: Optional[str] = Field(None, description="subscription or payment")
    current_period_end: Optional[datetime] = Field(None, description="Paid-through date; null means no expiry for one-time packages")
    activated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    last_hwid_reset: Optional[datetime] = None
    payment_failed: bool = False

    @classmethod
    def from_account(cls, account: Account) -> "SubscriptionSummary":
        return cls(
            status=account.subscription_status,
            package=account.subscription_package,
            billing_mode=account.billing_mode,
            current_period_end=account.current_period_end,
            activated_at=account.activated_at,
            cancelled_at=account.cancelled_at,
            last_hwid_reset=account.last_hwid_reset,
            payment_failed=bool(account.payment_failed),
        )


class AccountStats(BaseModel):
    total_logins: int
    last_login_date: Optional[datetime] = None


class AccountSummary(BaseModel):
    """Public view of an account. Never includes the password hash or full HWID."""
    id: int
    username: str
    created_at: Optional[datetime] = None
    is_hwid_locked: bool = False
    hwid_locked_at: Optional[datetime] = None
    stats: AccountStats

    @classmethod
    def from_account(cls, account: Account) -> "AccountSummary":
        return cls(
            id=account.id,
            username=account.username,
            created_at=account.created_at,
            is_hwid_locked=account.is_hwid_locked,
            hwid_locked_at=account.hwid_locked_at,
            stats=AccountStats(
                total_logins=account.total_logins,
                last_login_date=account.last_login_at,
            ),
        )
