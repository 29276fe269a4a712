"""
Outbound Stripe calls: checkout sessions and subscription cancellation.

The API key is passed per request rather than set on the stripe module.
"""
import logging
from typing import Optional

import stripe

from license_api.core import config
from license_api.core.errors import PaymentProviderError, ValidationError
from license_api.db.models.account import Account
from license_api.services.license_service import is_one_time_package, MODE_PAYMENT, MODE_SUBSCRIPTION

logger = logging.getLogger(__name__)


def get_package(package_id: str) -> Optional[dict]:
    for package in config.PACKAGES:
        if package["id"] == package_id:
            return package
    return None


def _require_api_key() -> str:
    if not config.STRIPE_SECRET_KEY:
        raise PaymentProviderError("Stripe not configured - STRIPE_SECRET_KEY required")
    return config.STRIPE_SECRET_KEY


def create_checkout_session(
    account: Account,
    package_id: str,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> dict:
    """
    Create a Stripe Checkout session for `package_id`.

    One-time packages use payment mode, everything else subscription mode.
    The account id and package travel in metadata for the webhook.

    Returns:
        Dictionary with 'session_id' and 'url'
    """
    package = get_package(package_id)
    if package is None:
        raise ValidationError(f"Unknown package: {package_id}")
    if not package.get("price_id"):
        raise PaymentProviderError(f"Price for package '{package_id}' is not configured")
    api_key = _require_api_key()

    mode = MODE_PAYMENT if is_one_time_package(package_id) else MODE_SUBSCRIPTION
    metadata = {"user_id": str(account.id), "username": account.username, "package": package_id}

    params = dict(
        mode=mode,
        line_items=[{"price": package["price_id"], "quantity": 1}],
        success_url=success_url or f"{config.FRONTEND_URL}/dashboard?success=true",
        cancel_url=cancel_url or f"{config.FRONTEND_URL}/?cancelled=true",
        client_reference_id=str(account.id),
        metadata=metadata,
    )
    if account.stripe_customer_id:
        params["customer"] = account.stripe_customer_id
    if mode == MODE_SUBSCRIPTION:
        params["subscription_data"] = {"metadata": metadata}

    try:
        session = stripe.checkout.Session.create(api_key=api_key, **params)
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating checkout session: {e}")
        raise PaymentProviderError("Failed to create checkout session")

    logger.info(f"Created checkout session: session_id={session.id}, account_id={account.id}, package={package_id}")
    return {"session_id": session.id, "url": session.url}


def cancel_subscription(subscription_id: str) -> None:
    api_key = _require_api_key()
    try:
        stripe.Subscription.cancel(subscription_id, api_key=api_key)
    except stripe.StripeError as e:
        logger.error(f"Stripe error cancelling subscription {subscription_id}: {e}")
        raise PaymentProviderError("Failed to cancel subscription")
    logger.info(f"Cancelled Stripe subscription {subscription_id}")
