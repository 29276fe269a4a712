"""
Account repository.

All writes are field-scoped UPDATE statements so concurrent requests touching
different columns of the same account do not overwrite each other. The two
races that matter (duplicate usernames, first HWID bind) are closed in the
database: a unique index on username_key and a conditional
UPDATE ... WHERE hwid IS NULL.
"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from license_api.core.clock import utcnow
from license_api.core.errors import DuplicateUsername, NotFound
from license_api.db.models.account import Account

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = frozenset({"id", "username_key", "created_at"})
UPDATABLE_FIELDS = frozenset(c.name for c in Account.__table__.columns) - IMMUTABLE_FIELDS


def normalize_username(username: str) -> str:
    return username.strip().lower()


class AccountRepository:
    def __init__(self, db: Session):
        self.db = db

    # ---- reads ---------------------------------------------------------------

    def find_by_username(self, username: str) -> Optional[Account]:
        if not username:
            return None
        return self.db.query(Account).filter(
            Account.username_key == normalize_username(username)
        ).first()

    def find_by_id(self, account_id: int) -> Optional[Account]:
        return self.db.query(Account).filter(Account.id == account_id).first()

    def find_by_external_customer_id(self, customer_id: str) -> Optional[Account]:
        if not customer_id:
            return None
        return self.db.query(Account).filter(
            Account.stripe_customer_id == customer_id
        ).order_by(Account.id).first()

    def username_available(self, username: str) -> bool:
        return self.find_by_username(username) is None

    # ---- writes --------------------------------------------------------------

    def create(self, username: str, password_hash: str, is_admin: bool = False) -> Account:
        """
        Insert a new account.

        Raises:
            DuplicateUsername: username already exists (case-insensitive)
        """
        if self.find_by_username(username):
            raise DuplicateUsername()

        now = utcnow()
        account = Account(
            username=username.strip(),
            username_key=normalize_username(username),
            password_hash=password_hash,
            is_admin=is_admin,
            created_at=now,
            last_login_at=now,
            total_logins=1,
            subscription_status="none",
        )
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError:
            # lost the race against a concurrent signup with the same name
            self.db.rollback()
            raise DuplicateUsername()
        self.db.refresh(account)

        logger.info(f"Account created: account_id={account.id}, username={account.username}")
        return account

    def update(self, account_id: int, fields: dict) -> None:
        """
        Partial update of the given columns only.

        Raises:
            ValueError: unknown or immutable field
            NotFound: no account with this id
        """
        if not fields:
            return
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update account fields: {sorted(unknown)}")

        result = self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFound("Account not found")
        self.db.commit()

    def record_login(self, account_id: int, now: Optional[datetime] = None) -> None:
        """Atomic increment of the login counter."""
        result = self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(total_logins=Account.total_logins + 1, last_login_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFound("Account not found")
        self.db.commit()

    def bind_hwid_if_null(self, account_id: int, hwid: str, now: Optional[datetime] = None) -> bool:
        """Set the hardware lock only if none is set. Returns True if this call bound it."""
        result = self.db.execute(
            update(Account)
            .where(Account.id == account_id, Account.hwid.is_(None))
            .values(hwid=hwid, hwid_locked_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def clear_hwid_if_bound(self, account_id: int, **extra_fields) -> bool:
        """Remove the hardware lock only if one is set. Returns True if this call cleared it."""
        unknown = set(extra_fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update account fields: {sorted(unknown)}")
        result = self.db.execute(
            update(Account)
            .where(Account.id == account_id, Account.hwid.isnot(None))
            .values(hwid=None, hwid_locked_at=None, **extra_fields)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1
