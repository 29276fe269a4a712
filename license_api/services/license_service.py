"""
License (subscription) state machine.

Statuses: none -> inactive -> active -> cancelled. Processor-driven syncs
store Stripe's raw status verbatim (e.g. past_due, trialing).

Transitions are driven by the Stripe webhook processor or administrative
action. Every write is an absolute-value set, so replaying a transition
leaves the record unchanged.
"""
import logging
from datetime import datetime
from typing import Optional

from license_api.core import config
from license_api.core.clock import utcnow, as_utc
from license_api.core.errors import NotCancellable
from license_api.db.account_repository import AccountRepository
from license_api.db.models.account import Account

logger = logging.getLogger(__name__)

STATUS_NONE = "none"
STATUS_INACTIVE = "inactive"
STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"

MODE_SUBSCRIPTION = "subscription"
MODE_PAYMENT = "payment"


def is_one_time_package(package: Optional[str], billing_mode: Optional[str] = None) -> bool:
    """Lifetime-type purchase: no expiry, no subscription id, not cancellable."""
    if billing_mode == MODE_PAYMENT:
        return True
    return (package or "").lower() in config.ONE_TIME_PACKAGES


def is_one_time(account: Account) -> bool:
    return is_one_time_package(account.subscription_package, account.billing_mode)


def activate(
    repo: AccountRepository,
    account: Account,
    package: str,
    customer_id: Optional[str],
    subscription_id: Optional[str] = None,
    period_end: Optional[datetime] = None,
    billing_mode: Optional[str] = None,
    now: Optional[datetime] = None,
    event_at: Optional[datetime] = None,
) -> None:
    """
    Mark the license active for `package`.

    Re-activating the same package and subscription keeps the original
    activated_at, so replays leave the record as it was.
    """
    one_time = is_one_time_package(package, billing_mode)
    if one_time:
        subscription_id = None
        period_end = None
        billing_mode = MODE_PAYMENT
    else:
        billing_mode = billing_mode or MODE_SUBSCRIPTION

    already_active = (
        account.subscription_status == STATUS_ACTIVE
        and account.subscription_package == package
        and account.stripe_subscription_id == subscription_id
    )

    fields = {
        "subscription_status": STATUS_ACTIVE,
        "subscription_package": package,
        "billing_mode": billing_mode,
        "stripe_customer_id": customer_id,
        "stripe_subscription_id": subscription_id,
        "cancelled_at": None,
    }
    # A recurring checkout carries no period end; keep one a prior
    # subscription event may already have stored.
    if one_time or period_end is not None:
        fields["current_period_end"] = period_end
    if not already_active:
        fields["activated_at"] = event_at or now or utcnow()
    if event_at is not None:
        fields["subscription_event_at"] = event_at

    repo.update(account.id, fields)

    if already_active:
        logger.info(f"License re-activation (no-op): account_id={account.id}, package={package}")
    else:
        logger.info(
            f"License activated: account_id={account.id}, package={package}, "
            f"mode={billing_mode}, subscription_id={subscription_id}"
        )


def update_status(
    repo: AccountRepository,
    account: Account,
    new_status: str,
    period_end: Optional[datetime] = None,
    subscription_id: Optional[str] = None,
    event_at: Optional[datetime] = None,
) -> None:
    """Store the processor's status and period end verbatim."""
    fields = {
        "subscription_status": new_status,
        "current_period_end": period_end,
    }
    if subscription_id and not account.stripe_subscription_id:
        fields["stripe_subscription_id"] = subscription_id
    if event_at is not None:
        fields["subscription_event_at"] = event_at

    repo.update(account.id, fields)
    logger.info(
        f"License status synced: account_id={account.id}, status={new_status}, "
        f"period_end={period_end.isoformat() if period_end else None}"
    )


def latest_event_at(account: Account, event_at: Optional[datetime]) -> Optional[datetime]:
    """The later of the stored subscription_event_at and `event_at`."""
    stored = as_utc(account.subscription_event_at)
    if event_at is None or (stored is not None and stored >= event_at):
        return stored
    return event_at


def ensure_cancellable(account: Account) -> None:
    if is_one_time(account):
        raise NotCancellable("Lifetime licenses are a one-time payment and cannot be cancelled")
    if not account.stripe_subscription_id:
        raise NotCancellable("No subscription ID found")


def cancel(
    repo: AccountRepository,
    account: Account,
    now: Optional[datetime] = None,
    event_at: Optional[datetime] = None,
) -> None:
    """
    Cancel a recurring license.

    The stored status flips immediately; whether access continues until
    current_period_end is decided by is_entitled. Cancelling an already
    cancelled license keeps the original cancelled_at.

    Raises:
        NotCancellable: one-time package, or no subscription id on record
    """
    ensure_cancellable(account)
    if account.subscription_status == STATUS_CANCELLED:
        logger.info(f"License already cancelled: account_id={account.id}")
        return

    cancelled_at = now or utcnow()
    fields = {
        "subscription_status": STATUS_CANCELLED,
        "cancelled_at": cancelled_at,
        # Processor events created before the cancellation are stale from here on
        "subscription_event_at": latest_event_at(account, event_at or cancelled_at),
    }

    repo.update(account.id, fields)
    logger.info(f"License cancelled: account_id={account.id}, subscription_id={account.stripe_subscription_id}")


def is_entitled(
    account: Account,
    now: Optional[datetime] = None,
    allow_grace: Optional[bool] = None,
) -> bool:
    """
    Access check for client login.

    Strict by default: only `active` is entitled. With the grace-period
    policy enabled, a cancelled license stays entitled until its paid-through
    date passes.
    """
    if account.subscription_status == STATUS_ACTIVE:
        return True

    if allow_grace is None:
        allow_grace = config.LICENSE_GRACE_PERIOD
    if not allow_grace or account.subscription_status not in (STATUS_CANCELLED, "canceled"):
        return False

    period_end = as_utc(account.current_period_end)
    return period_end is not None and period_end > (now or utcnow())


def record_payment_succeeded(
    repo: AccountRepository,
    account: Account,
    invoice_id: Optional[str],
    amount: Optional[int],
    currency: Optional[str],
    paid_at: Optional[datetime] = None,
) -> None:
    repo.update(account.id, {
        "last_payment_at": paid_at or utcnow(),
        "last_payment_amount": amount,
        "last_payment_currency": currency,
        "last_invoice_id": invoice_id,
        "payment_failed": False,
        "payment_failure_reason": None,
    })
    logger.info(f"Payment succeeded: account_id={account.id}, invoice_id={invoice_id}, amount={amount} {currency}")


def record_payment_failed(
    repo: AccountRepository,
    account: Account,
    invoice_id: Optional[str],
    reason: Optional[str],
) -> None:
    repo.update(account.id, {
        "last_invoice_id": invoice_id,
        "payment_failed": True,
        "payment_failure_reason": reason,
    })
    logger.warning(f"Payment failed: account_id={account.id}, invoice_id={invoice_id}, reason={reason}")
