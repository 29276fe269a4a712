"""
Unit tests for webhook verification and event processing.
"""
import json
import pytest
import stripe
from datetime import timedelta

from license_api.core.clock import as_utc, from_timestamp
from license_api.core.errors import ExternalVerificationFailure, NotCancellable, TransientInfra, ValidationError
from license_api.db.account_repository import AccountRepository
from license_api.services import license_service
from license_api.services.webhook_service import WebhookProcessor, verify_event

CREATED = 1772366400  # 2026-03-01T12:00:00Z
PERIOD_END = CREATED + 30 * 24 * 3600


def make_event(event_type, obj, created=CREATED, event_id="evt_1"):
    return {"id": event_id, "type": event_type, "created": created, "data": {"object": obj}}


def checkout_session(account_id, package="monthly", mode="subscription", customer="cus_1", subscription="sub_1"):
    return {
        "id": "cs_test_1",
        "mode": mode,
        "payment_status": "paid",
        "customer": customer,
        "subscription": subscription if mode == "subscription" else None,
        "client_reference_id": str(account_id),
        "metadata": {"user_id": str(account_id), "package": package},
    }


def subscription_object(status="active", sub_id="sub_1", customer="cus_1", period_end=PERIOD_END):
    return {"id": sub_id, "customer": customer, "status": status, "current_period_end": period_end}


@pytest.fixture
def processor(repo: AccountRepository):
    return WebhookProcessor(repo)


# ---- verification ------------------------------------------------------------

def test_verify_event_accepts_valid_signature(sign):
    payload = json.dumps(make_event("checkout.session.completed", {})).encode()

    event = verify_event(payload, sign(payload), "whsec_test_secret")

    assert event["type"] == "checkout.session.completed"


def test_verify_event_rejects_wrong_secret(sign):
    payload = json.dumps(make_event("checkout.session.completed", {})).encode()

    with pytest.raises(ExternalVerificationFailure):
        verify_event(payload, sign(payload, secret="whsec_other"), "whsec_test_secret")


def test_verify_event_rejects_tampered_body(sign):
    payload = json.dumps(make_event("checkout.session.completed", {})).encode()
    header = sign(payload)

    with pytest.raises(ExternalVerificationFailure):
        verify_event(payload.replace(b"evt_1", b"evt_2"), header, "whsec_test_secret")


def test_verify_event_rejects_old_timestamp(sign):
    payload = json.dumps(make_event("checkout.session.completed", {})).encode()

    with pytest.raises(ExternalVerificationFailure):
        verify_event(payload, sign(payload, timestamp=CREATED - 3600), "whsec_test_secret")


def test_verify_event_missing_header():
    with pytest.raises(ExternalVerificationFailure):
        verify_event(b"{}", None, "whsec_test_secret")


def test_verify_event_without_secret_configured(sign):
    payload = b"{}"

    with pytest.raises(TransientInfra):
        verify_event(payload, sign(payload), None)


def test_verify_event_requires_event_type(sign):
    payload = json.dumps({"id": "evt_1"}).encode()

    with pytest.raises(ValidationError):
        verify_event(payload, sign(payload), "whsec_test_secret")


# ---- processing --------------------------------------------------------------

def test_checkout_completed_activates(make_account, repo, processor):
    account = make_account()

    result = processor.process(make_event("checkout.session.completed", checkout_session(account.id)))

    assert result == "applied"
    account = repo.find_by_id(account.id)
    assert account.subscription_status == "active"
    assert account.subscription_package == "monthly"
    assert account.stripe_customer_id == "cus_1"
    assert account.stripe_subscription_id == "sub_1"
    assert as_utc(account.activated_at) == from_timestamp(CREATED)
    assert as_utc(account.subscription_event_at) == from_timestamp(CREATED)


def test_checkout_replay_is_idempotent(make_account, repo, processor):
    """The same event delivered twice leaves the account exactly as after the first."""
    account = make_account()
    event = make_event("checkout.session.completed", checkout_session(account.id))

    processor.process(event)
    first = {c.name: getattr(repo.find_by_id(account.id), c.name) for c in account.__table__.columns}
    processor.process(event)
    second = {c.name: getattr(repo.find_by_id(account.id), c.name) for c in account.__table__.columns}

    assert first == second


def test_lifetime_checkout_end_to_end(make_account, repo, processor):
    account = make_account()
    session = checkout_session(account.id, package="lifetime", mode="payment")

    assert processor.process(make_event("checkout.session.completed", session)) == "applied"

    account = repo.find_by_id(account.id)
    assert account.subscription_status == "active"
    assert account.current_period_end is None
    assert account.stripe_subscription_id is None
    with pytest.raises(NotCancellable):
        license_service.cancel(repo, account)


def test_checkout_falls_back_to_customer_id(make_account, repo, processor):
    account = make_account(stripe_customer_id="cus_1")
    session = checkout_session(account.id)
    session["metadata"] = {"package": "monthly"}
    session["client_reference_id"] = None

    assert processor.process(make_event("checkout.session.completed", session)) == "applied"
    assert repo.find_by_id(account.id).subscription_status == "active"


def test_checkout_unpaid_is_ignored(make_account, repo, processor):
    account = make_account()
    session = checkout_session(account.id)
    session["payment_status"] = "unpaid"

    assert processor.process(make_event("checkout.session.completed", session)) == "ignored"
    assert repo.find_by_id(account.id).subscription_status == "none"


def test_checkout_for_unknown_account(processor):
    session = checkout_session(9999, customer="cus_nobody")

    assert processor.process(make_event("checkout.session.completed", session)) == "unmatched"


def test_unknown_event_type(processor):
    assert processor.process(make_event("charge.refunded", {"id": "ch_1"})) == "unhandled"


def test_subscription_updated_syncs_status_and_period(make_account, repo, processor):
    account = make_account()
    processor.process(make_event("checkout.session.completed", checkout_session(account.id)))

    result = processor.process(make_event(
        "customer.subscription.updated", subscription_object(status="past_due"), created=CREATED + 60,
    ))

    assert result == "applied"
    account = repo.find_by_id(account.id)
    assert account.subscription_status == "past_due"
    assert as_utc(account.current_period_end) == from_timestamp(PERIOD_END)


def test_subscription_period_end_from_items(make_account, repo, processor):
    account = make_account()
    processor.process(make_event("checkout.session.completed", checkout_session(account.id)))
    subscription = subscription_object(period_end=None)
    subscription["items"] = {"data": [{"current_period_end": PERIOD_END}]}

    processor.process(make_event("customer.subscription.updated", subscription, created=CREATED + 60))

    assert as_utc(repo.find_by_id(account.id).current_period_end) == from_timestamp(PERIOD_END)


def test_subscription_updated_unmatched_customer(processor):
    result = processor.process(make_event("customer.subscription.updated", subscription_object(customer="cus_nobody")))

    assert result == "unmatched"


def test_stale_event_is_ignored(make_account, repo, processor):
    """An event older than the last one applied does not roll the license back."""
    account = make_account()
    processor.process(make_event("checkout.session.completed", checkout_session(account.id), created=CREATED))
    processor.process(make_event(
        "customer.subscription.updated", subscription_object(status="active"), created=CREATED + 120,
    ))

    result = processor.process(make_event(
        "customer.subscription.updated", subscription_object(status="incomplete"), created=CREATED + 60,
    ))

    assert result == "stale"
    assert repo.find_by_id(account.id).subscription_status == "active"


def test_foreign_subscription_is_ignored(make_account, repo, processor):
    account = make_account()
    processor.process(make_event("checkout.session.completed", checkout_session(account.id)))

    result = processor.process(make_event(
        "customer.subscription.deleted", subscription_object(sub_id="sub_old"), created=CREATED + 60,
    ))

    assert result == "ignored"
    assert repo.find_by_id(account.id).subscription_status == "active"


def test_subscription_deleted_cancels(make_account, repo, processor):
    account = make_account()
    processor.process(make_event("checkout.session.completed", checkout_session(account.id)))
    event = make_event("customer.subscription.deleted", subscription_object(status="canceled"), created=CREATED + 60)

    assert processor.process(event) == "applied"
    account = repo.find_by_id(account.id)
    assert account.subscription_status == "cancelled"
    assert as_utc(account.cancelled_at) == from_timestamp(CREATED + 60)

    assert processor.process(event) == "duplicate"


def test_subscription_deleted_does_not_touch_lifetime(make_account, repo, processor):
    account = make_account()
    processor.process(make_event(
        "checkout.session.completed", checkout_session(account.id, package="lifetime", mode="payment"),
    ))

    result = processor.process(make_event(
        "customer.subscription.deleted", subscription_object(sub_id="sub_previous"), created=CREATED + 60,
    ))

    assert result == "ignored"
    assert repo.find_by_id(account.id).subscription_status == "active"


def test_invoice_events_record_payment(make_account, repo, processor):
    account = make_account(stripe_customer_id="cus_1")
    failed = {"id": "in_1", "customer": "cus_1", "attempt_count": 2}
    paid = {"id": "in_2", "customer": "cus_1", "amount_paid": 2000, "currency": "usd"}

    assert processor.process(make_event("invoice.payment_failed", failed)) == "applied"
    account = repo.find_by_id(account.id)
    assert account.payment_failed is True
    assert account.payment_failure_reason == "Payment attempt 2 failed"

    assert processor.process(make_event("invoice.payment_succeeded", paid, created=CREATED + 60)) == "applied"
    account = repo.find_by_id(account.id)
    assert account.payment_failed is False
    assert account.last_payment_amount == 2000
    assert account.last_payment_currency == "usd"
    assert as_utc(account.last_payment_at) == from_timestamp(CREATED + 60)
    assert account.subscription_status == "none"


def test_events_created_in_same_second_both_apply(make_account, repo, processor):
    account = make_account()
    processor.process(make_event("checkout.session.completed", checkout_session(account.id)))

    result = processor.process(make_event(
        "customer.subscription.updated", subscription_object(status="active"), created=CREATED,
    ))

    assert result == "applied"
    assert as_utc(repo.find_by_id(account.id).current_period_end) == from_timestamp(CREATED) + timedelta(days=30)


def test_verify_event_builds_stripe_event(sign):
    payload = json.dumps(make_event("customer.subscription.updated", subscription_object())).encode()

    event = verify_event(payload, sign(payload), "whsec_test_secret")

    assert isinstance(event, stripe.Event)
    assert event["data"]["object"]["id"] == "sub_1"


def test_verify_event_rejects_malformed_json(sign):
    payload = b"{not json"

    with pytest.raises(ValidationError):
        verify_event(payload, sign(payload), "whsec_test_secret")


def test_late_update_after_local_cancel_stays_cancelled(make_account, repo, processor):
    """A cancel through the API followed by Stripe's own events in any order never revives the license."""
    account = make_account()
    processor.process(make_event("checkout.session.completed", checkout_session(account.id), created=CREATED))
    license_service.cancel(repo, repo.find_by_id(account.id), now=from_timestamp(CREATED + 20))

    deleted = processor.process(make_event(
        "customer.subscription.deleted", subscription_object(status="canceled"), created=CREATED + 30,
    ))
    late_update = processor.process(make_event(
        "customer.subscription.updated", subscription_object(status="active"), created=CREATED + 10,
    ))

    assert deleted == "duplicate"
    assert late_update == "stale"
    account = repo.find_by_id(account.id)
    assert account.subscription_status == "cancelled"
    assert as_utc(account.subscription_event_at) == from_timestamp(CREATED + 30)
    assert not license_service.is_entitled(account, allow_grace=False)


def test_local_cancel_marks_earlier_events_stale(make_account, repo, processor):
    account = make_account()
    processor.process(make_event("checkout.session.completed", checkout_session(account.id), created=CREATED))

    license_service.cancel(repo, repo.find_by_id(account.id))

    result = processor.process(make_event(
        "customer.subscription.updated", subscription_object(status="active"), created=CREATED + 10,
    ))
    assert result == "stale"
    assert repo.find_by_id(account.id).subscription_status == "cancelled"


def test_update_for_cancelled_subscription_is_ignored(make_account, repo, processor):
    account = make_account()
    processor.process(make_event("checkout.session.completed", checkout_session(account.id), created=CREATED))
    processor.process(make_event("customer.subscription.deleted", subscription_object(), created=CREATED + 30))

    result = processor.process(make_event(
        "customer.subscription.updated", subscription_object(status="active"), created=CREATED + 40,
    ))

    assert result == "ignored"
    assert repo.find_by_id(account.id).subscription_status == "cancelled"
