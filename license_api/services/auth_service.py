"""
Signup and login flows.

Web login only checks credentials. Desktop client login additionally
requires an entitled license and a matching (or first-bound) hardware ID.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from license_api.core import config
from license_api.core.errors import (
    HardwareMismatch,
    InvalidCredentials,
    LicenseRequired,
    ValidationError,
)
from license_api.core.security import hash_password, verify_password, MAX_PASSWORD_BYTES
from license_api.db.account_repository import AccountRepository
from license_api.db.models.account import Account
from license_api.services import hwid_service, license_service
from license_api.services.hwid_service import BindDecision

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 32
MIN_PASSWORD_LENGTH = 6


def register(repo: AccountRepository, username: Optional[str], password: Optional[str]) -> Account:
    """
    Create an account.

    Raises:
        ValidationError: missing or malformed username/password
        DuplicateUsername: name taken (case-insensitive)
    """
    if not username or not password:
        raise ValidationError("Username and password are required")
    username = username.strip()
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValidationError(f"Username must be {MAX_USERNAME_LENGTH} characters or fewer")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be {MAX_PASSWORD_BYTES} bytes or fewer")

    return repo.create(username, hash_password(password))


def authenticate(repo: AccountRepository, username: Optional[str], password: Optional[str]) -> Account:
    if not username or not password:
        raise ValidationError("Username and password are required")

    account = repo.find_by_username(username)
    if account is None or not verify_password(password, account.password_hash):
        logger.info(f"Failed login for username={username}")
        raise InvalidCredentials()
    return account


def web_login(repo: AccountRepository, username: Optional[str], password: Optional[str]) -> Account:
    account = authenticate(repo, username, password)
    repo.record_login(account.id)
    logger.info(f"Web login: account_id={account.id}")
    return account


def client_login(
    repo: AccountRepository,
    username: Optional[str],
    password: Optional[str],
    hwid: Optional[str],
    now: Optional[datetime] = None,
) -> Tuple[Account, BindDecision]:
    """
    Admit a desktop client.

    License gating runs before the hardware check so an unlicensed account
    never gets bound to a machine.

    Raises:
        ValidationError: missing username, password or hwid
        InvalidCredentials: unknown user or wrong password
        LicenseRequired: gating enabled and license not entitled
        HardwareMismatch: account bound to a different fingerprint
    """
    if not username or not password or not hwid:
        raise ValidationError("Username, password and hardware ID are required")

    account = authenticate(repo, username, password)

    if config.REQUIRE_ACTIVE_LICENSE and not license_service.is_entitled(account, now):
        logger.info(f"Client login refused, no active license: account_id={account.id}")
        raise LicenseRequired("No active license - purchase a package to use the client")

    decision = hwid_service.attempt_bind(repo, account, hwid, now)
    if not decision.admitted:
        raise HardwareMismatch()

    repo.record_login(account.id, now)
    logger.info(f"Client login: account_id={account.id}, hwid={decision.outcome.value}")
    return account, decision
