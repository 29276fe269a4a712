"""
Hardware lock for accounts.

An account is Unbound until the first client login presents a fingerprint,
which binds it. Later logins must present the identical string. Only an
explicit reset returns the account to Unbound. Fingerprints are opaque:
no trimming, case folding or parsing.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from license_api.core import config
from license_api.core.clock import utcnow, as_utc
from license_api.core.errors import ValidationError, NotLocked, CooldownActive
from license_api.core.logging_config import mask_hwid
from license_api.db.account_repository import AccountRepository
from license_api.db.models.account import Account

logger = logging.getLogger(__name__)


class BindOutcome(str, enum.Enum):
    BOUND = "bound"          # first use, fingerprint stored
    MATCHED = "matched"      # same fingerprint as stored
    MISMATCH = "mismatch"    # different fingerprint, denied


@dataclass(frozen=True)
class BindDecision:
    outcome: BindOutcome

    @property
    def admitted(self) -> bool:
        return self.outcome is not BindOutcome.MISMATCH


def attempt_bind(
    repo: AccountRepository,
    account: Account,
    presented_hwid: str,
    now: Optional[datetime] = None,
) -> BindDecision:
    """
    Admit or deny a client presenting `presented_hwid`.

    Never mutates the account except on first bind.
    """
    if not presented_hwid:
        raise ValidationError("Hardware ID is required")

    if account.hwid is None:
        if repo.bind_hwid_if_null(account.id, presented_hwid, now or utcnow()):
            logger.info(f"HWID bound: account_id={account.id}, hwid={mask_hwid(presented_hwid)}")
            return BindDecision(BindOutcome.BOUND)
        # Another request bound the account between our read and write;
        # the commit expired `account`, so this re-reads the winner.
        logger.warning(f"HWID first-bind race lost: account_id={account.id}")

    if account.hwid == presented_hwid:
        return BindDecision(BindOutcome.MATCHED)

    logger.warning(
        f"HWID mismatch: account_id={account.id}, "
        f"expected={mask_hwid(account.hwid)}, got={mask_hwid(presented_hwid)}"
    )
    return BindDecision(BindOutcome.MISMATCH)


def reset(
    repo: AccountRepository,
    account: Account,
    self_service: bool = False,
    now: Optional[datetime] = None,
    cooldown_days: Optional[int] = None,
) -> None:
    """
    Clear the hardware lock.

    The administrative path has no cooldown. The self-service path refuses a
    reset within `cooldown_days` of the previous self-service reset and
    records the reset time.

    Raises:
        NotLocked: account has no bound hardware
        CooldownActive: self-service reset inside the cooldown window
    """
    now = now or utcnow()
    if account.hwid is None:
        raise NotLocked()

    extra = {}
    if self_service:
        if cooldown_days is None:
            cooldown_days = config.HWID_RESET_COOLDOWN_DAYS
        last_reset = as_utc(account.last_hwid_reset)
        if last_reset is not None and now - last_reset < timedelta(days=cooldown_days):
            available_at = last_reset + timedelta(days=cooldown_days)
            raise CooldownActive(
                f"Hardware ID can be reset once every {cooldown_days} days. "
                f"Next reset available at {available_at.isoformat()}"
            )
        extra["last_hwid_reset"] = now

    if not repo.clear_hwid_if_bound(account.id, **extra):
        raise NotLocked()

    logger.info(
        f"HWID reset: account_id={account.id}, "
        f"mode={'self-service' if self_service else 'admin'}"
    )
