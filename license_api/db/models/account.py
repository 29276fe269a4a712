from sqlalchemy import Column, Integer, String, DateTime, Boolean, CheckConstraint
from sqlalchemy.sql import func
from license_api.db.base import Base


class Account(Base):
    """
    User account with its license embedded as columns.

    hwid and hwid_locked_at are either both set or both NULL.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    # Lower-cased username; the unique index is what enforces case-insensitive uniqueness
    username_key = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    total_logins = Column(Integer, nullable=False, default=1)

    # Hardware lock
    hwid = Column(String, nullable=True)
    hwid_locked_at = Column(DateTime(timezone=True), nullable=True)

    # License / subscription
    subscription_status = Column(String, nullable=False, default="none")  # none | inactive | active | cancelled | <raw stripe status>
    subscription_package = Column(String, nullable=True)  # monthly | lifetime | ...
    billing_mode = Column(String, nullable=True)  # "subscription" | "payment"
    stripe_customer_id = Column(String, nullable=True, index=True)
    stripe_subscription_id = Column(String, nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)  # NULL = no expiry for one-time packages
    activated_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    last_hwid_reset = Column(DateTime(timezone=True), nullable=True)
    # created timestamp of the newest Stripe event applied to this license
    subscription_event_at = Column(DateTime(timezone=True), nullable=True)

    # Payment bookkeeping
    last_payment_at = Column(DateTime(timezone=True), nullable=True)
    last_payment_amount = Column(Integer, nullable=True)  # minor units
    last_payment_currency = Column(String(3), nullable=True)
    last_invoice_id = Column(String, nullable=True)
    payment_failed = Column(Boolean, nullable=False, default=False)
    payment_failure_reason = Column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(hwid IS NULL AND hwid_locked_at IS NULL) OR (hwid IS NOT NULL AND hwid_locked_at IS NOT NULL)",
            name="ck_accounts_hwid_lock",
        ),
    )

    @property
    def is_hwid_locked(self) -> bool:
        return self.hwid is not None
