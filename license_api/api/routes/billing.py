import logging
from fastapi import APIRouter, Depends

from license_api.core import config
from license_api.core.auth_dependency import get_account_repository, get_current_account
from license_api.db.account_repository import AccountRepository
from license_api.db.models.account import Account
from license_api.schemas.account import SubscriptionSummary
from license_api.schemas.billing import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    MessageResponse,
    PackageInfo,
    PackagesResponse,
    StripeConfigResponse,
    SubscriptionResponse,
)
from license_api.services import license_service, stripe_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Billing"])


@router.get("/packages", response_model=PackagesResponse)
def list_packages():
    return PackagesResponse(packages=[PackageInfo(**package) for package in config.PACKAGES])


@router.get("/stripe/config", response_model=StripeConfigResponse)
def stripe_config():
    return StripeConfigResponse(publishable_key=config.STRIPE_PUBLISHABLE_KEY)


@router.post("/stripe/create-checkout-session", response_model=CreateCheckoutSessionResponse)
def create_checkout_session(
    body: CreateCheckoutSessionRequest,
    account: Account = Depends(get_current_account)
):
    session = stripe_service.create_checkout_session(
        account, body.package, body.success_url, body.cancel_url
    )
    return CreateCheckoutSessionResponse(session_id=session["session_id"], url=session["url"])


@router.get("/subscription", response_model=SubscriptionResponse)
def get_subscription(account: Account = Depends(get_current_account)):
    return SubscriptionResponse(subscription=SubscriptionSummary.from_account(account))


@router.post("/stripe/cancel-subscription", response_model=MessageResponse)
def cancel_subscription(
    account: Account = Depends(get_current_account),
    repo: AccountRepository = Depends(get_account_repository)
):
    """
    Cancel the recurring subscription at Stripe, then locally.

    The customer.subscription.deleted webhook that follows is a no-op.
    """
    if account.subscription_status == license_service.STATUS_CANCELLED:
        return MessageResponse(message="Subscription is already cancelled")

    license_service.ensure_cancellable(account)
    stripe_service.cancel_subscription(account.stripe_subscription_id)
    license_service.cancel(repo, account)
    return MessageResponse(message="Subscription cancelled successfully")
