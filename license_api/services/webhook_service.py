"""
Stripe webhook processing.

verify_event() authenticates the raw request body before anything parses
it. WebhookProcessor.process() dispatches a verified event to the license
state machine.

Stripe delivers at least once and in no particular order, so every handler:
- sets absolute values (replays are no-ops),
- ignores events older than the last one applied to the account,
- acknowledges events it cannot match to an account instead of failing.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

import stripe

from license_api.core.clock import from_timestamp, as_utc
from license_api.core.errors import (
    ExternalVerificationFailure,
    NotCancellable,
    TransientInfra,
    ValidationError,
)
from license_api.db.account_repository import AccountRepository
from license_api.db.models.account import Account
from license_api.services import license_service

logger = logging.getLogger(__name__)

EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"
EVENT_CHECKOUT_ASYNC_SUCCEEDED = "checkout.session.async_payment_succeeded"
EVENT_SUBSCRIPTION_CREATED = "customer.subscription.created"
EVENT_SUBSCRIPTION_UPDATED = "customer.subscription.updated"
EVENT_SUBSCRIPTION_DELETED = "customer.subscription.deleted"
EVENT_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
EVENT_PAYMENT_FAILED = "invoice.payment_failed"

# Handler results, echoed back in the acknowledgement
APPLIED = "applied"
DUPLICATE = "duplicate"
IGNORED = "ignored"
STALE = "stale"
UNMATCHED = "unmatched"
UNHANDLED = "unhandled"


def verify_event(payload: bytes, signature: Optional[str], secret: Optional[str]) -> stripe.Event:
    """
    Verify the Stripe-Signature header over the exact raw bytes and build the event.

    Raises:
        TransientInfra: webhook secret not configured (500 so Stripe retries)
        ExternalVerificationFailure: missing or invalid signature
        ValidationError: authentic payload that is not an event object
    """
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET not configured - rejecting webhook")
        raise TransientInfra("Webhook secret not configured")
    if not signature:
        raise ExternalVerificationFailure("Missing Stripe-Signature header")

    try:
        # Checks the signature over the raw bytes before parsing them
        event = stripe.Webhook.construct_event(
            payload=payload,
            sig_header=signature,
            secret=secret,
        )
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise ExternalVerificationFailure()
    except ValueError as e:
        raise ValidationError(f"Invalid webhook payload: {e}")

    if not event.get("type"):
        raise ValidationError("Invalid webhook payload: missing event type")

    logger.info(f"Verified webhook event: {event['type']}, id={event.get('id')}")
    return event


def _subscription_period_end(subscription: dict) -> Optional[datetime]:
    # Newer API versions moved current_period_end onto the subscription items
    period_end = subscription.get("current_period_end")
    if period_end is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            period_end = items[0].get("current_period_end")
    return from_timestamp(period_end)


def _invoice_failure_reason(invoice: dict) -> str:
    error = invoice.get("last_finalization_error") or {}
    if error.get("message"):
        return error["message"]
    return f"Payment attempt {invoice.get('attempt_count') or 1} failed"


class WebhookProcessor:
    def __init__(self, repo: AccountRepository):
        self.repo = repo
        self.handlers: Dict[str, Callable[[dict, Optional[datetime]], str]] = {
            EVENT_CHECKOUT_COMPLETED: self.handle_checkout_completed,
            EVENT_CHECKOUT_ASYNC_SUCCEEDED: self.handle_checkout_completed,
            EVENT_SUBSCRIPTION_CREATED: self.handle_subscription_updated,
            EVENT_SUBSCRIPTION_UPDATED: self.handle_subscription_updated,
            EVENT_SUBSCRIPTION_DELETED: self.handle_subscription_deleted,
            EVENT_PAYMENT_SUCCEEDED: self.handle_payment_succeeded,
            EVENT_PAYMENT_FAILED: self.handle_payment_failed,
        }

    def process(self, event: dict) -> str:
        event_type = event.get("type")
        handler = self.handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled Stripe event type {event_type}, id={event.get('id')}")
            return UNHANDLED

        data = (event.get("data") or {}).get("object") or {}
        event_at = from_timestamp(event.get("created"))
        result = handler(data, event_at)
        logger.info(f"Webhook {event_type} id={event.get('id')} -> {result}")
        return result

    # ---- helpers -------------------------------------------------------------

    def _account_for_customer(self, event_type: str, customer_id: Optional[str]) -> Optional[Account]:
        account = self.repo.find_by_external_customer_id(customer_id)
        if account is None:
            logger.warning(f"{event_type}: no account for customer_id={customer_id}")
        return account

    @staticmethod
    def _is_stale(account: Account, event_at: Optional[datetime]) -> bool:
        last_applied = as_utc(account.subscription_event_at)
        if event_at is None or last_applied is None:
            return False
        if event_at < last_applied:
            logger.warning(
                f"Stale event ignored: account_id={account.id}, "
                f"event_at={event_at.isoformat()}, last_applied={last_applied.isoformat()}"
            )
            return True
        return False

    @staticmethod
    def _is_foreign_subscription(account: Account, subscription_id: Optional[str]) -> bool:
        """Event concerns a subscription other than the one this license tracks."""
        if account.stripe_subscription_id:
            return bool(subscription_id) and subscription_id != account.stripe_subscription_id
        # one-time licenses never track a recurring subscription
        return license_service.is_one_time(account) and account.subscription_status == license_service.STATUS_ACTIVE

    # ---- handlers ------------------------------------------------------------

    def handle_checkout_completed(self, session: dict, event_at: Optional[datetime]) -> str:
        metadata = session.get("metadata") or {}
        package = metadata.get("package")
        customer_id = session.get("customer")
        subscription_id = session.get("subscription")
        mode = session.get("mode")

        if session.get("payment_status") == "unpaid":
            logger.info(f"checkout.session.completed: payment pending for session={session.get('id')}")
            return IGNORED

        account = None
        user_id = metadata.get("user_id") or session.get("client_reference_id")
        if user_id:
            try:
                account = self.repo.find_by_id(int(user_id))
            except (TypeError, ValueError):
                logger.warning(f"checkout.session.completed: malformed user_id={user_id!r}")
        if account is None and customer_id:
            account = self.repo.find_by_external_customer_id(customer_id)
        if account is None:
            logger.warning(
                f"checkout.session.completed: no account for user_id={user_id}, customer_id={customer_id}"
            )
            return UNMATCHED

        if not package:
            logger.warning(f"checkout.session.completed: no package in metadata, account_id={account.id}")
            return IGNORED
        if self._is_stale(account, event_at):
            return STALE

        license_service.activate(
            self.repo,
            account,
            package=package,
            customer_id=customer_id,
            subscription_id=subscription_id,
            billing_mode=mode,
            event_at=event_at,
        )
        return APPLIED

    def handle_subscription_updated(self, subscription: dict, event_at: Optional[datetime]) -> str:
        account = self._account_for_customer("customer.subscription.updated", subscription.get("customer"))
        if account is None:
            return UNMATCHED

        subscription_id = subscription.get("id")
        if self._is_foreign_subscription(account, subscription_id):
            logger.warning(
                f"customer.subscription.updated: subscription {subscription_id} is not tracked by "
                f"account_id={account.id}"
            )
            return IGNORED
        if self._is_stale(account, event_at):
            return STALE
        if account.subscription_status == license_service.STATUS_CANCELLED:
            # Stripe never revives a deleted subscription; this update predates the cancel
            logger.warning(
                f"customer.subscription.updated: subscription {subscription_id} already cancelled for "
                f"account_id={account.id}, status={subscription.get('status')} ignored"
            )
            return IGNORED

        license_service.update_status(
            self.repo,
            account,
            new_status=subscription.get("status"),
            period_end=_subscription_period_end(subscription),
            subscription_id=subscription_id,
            event_at=event_at,
        )
        return APPLIED

    def handle_subscription_deleted(self, subscription: dict, event_at: Optional[datetime]) -> str:
        account = self._account_for_customer("customer.subscription.deleted", subscription.get("customer"))
        if account is None:
            return UNMATCHED

        subscription_id = subscription.get("id")
        if self._is_foreign_subscription(account, subscription_id):
            logger.warning(
                f"customer.subscription.deleted: subscription {subscription_id} is not tracked by "
                f"account_id={account.id}"
            )
            return IGNORED
        if self._is_stale(account, event_at):
            return STALE
        if account.subscription_status == license_service.STATUS_CANCELLED:
            latest = license_service.latest_event_at(account, event_at)
            if latest != as_utc(account.subscription_event_at):
                self.repo.update(account.id, {"subscription_event_at": latest})
            return DUPLICATE

        try:
            license_service.cancel(self.repo, account, now=event_at, event_at=event_at)
        except NotCancellable as e:
            logger.warning(f"customer.subscription.deleted: account_id={account.id} refused: {e.message}")
            return IGNORED
        return APPLIED

    def handle_payment_succeeded(self, invoice: dict, event_at: Optional[datetime]) -> str:
        account = self._account_for_customer("invoice.payment_succeeded", invoice.get("customer"))
        if account is None:
            return UNMATCHED

        license_service.record_payment_succeeded(
            self.repo,
            account,
            invoice_id=invoice.get("id"),
            amount=invoice.get("amount_paid"),
            currency=invoice.get("currency"),
            paid_at=event_at,
        )
        return APPLIED

    def handle_payment_failed(self, invoice: dict, event_at: Optional[datetime]) -> str:
        account = self._account_for_customer("invoice.payment_failed", invoice.get("customer"))
        if account is None:
            return UNMATCHED

        license_service.record_payment_failed(
            self.repo,
            account,
            invoice_id=invoice.get("id"),
            reason=_invoice_failure_reason(invoice),
        )
        return APPLIED
