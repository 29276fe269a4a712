from typing import Optional
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from license_api.core.errors import AuthFailure, AdminRequired
from license_api.core.security import decode_access_token
from license_api.db.session import get_db
from license_api.db.account_repository import AccountRepository
from license_api.db.models.account import Account

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/web-login", auto_error=False)


def get_account_repository(db: Session = Depends(get_db)) -> AccountRepository:
    return AccountRepository(db)


def get_current_account_id(token: Optional[str] = Depends(oauth2_scheme)) -> Optional[int]:
    """Account id carried by the bearer token, or None when absent/invalid."""
    if not token:
        return None
    subject = decode_access_token(token)
    try:
        return int(subject) if subject is not None else None
    except ValueError:
        return None


def get_optional_account(
    account_id: Optional[int] = Depends(get_current_account_id),
    db: Session = Depends(get_db)
) -> Optional[Account]:
    if account_id is None:
        return None
    return AccountRepository(db).find_by_id(account_id)


def get_current_account(account: Optional[Account] = Depends(get_optional_account)) -> Account:
    """Authenticated Account, or 401."""
    if account is None:
        raise AuthFailure("Not logged in")
    return account


def require_admin(account: Account = Depends(get_current_account)) -> Account:
    if not account.is_admin:
        raise AdminRequired()
    return account
