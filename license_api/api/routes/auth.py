import logging
from typing import Optional
from fastapi import APIRouter, Depends, status

from license_api.core.auth_dependency import get_account_repository, get_optional_account
from license_api.core.security import create_access_token
from license_api.db.account_repository import AccountRepository
from license_api.db.models.account import Account
from license_api.schemas.account import AccountSummary, SubscriptionSummary
from license_api.schemas.auth import (
    CredentialsRequest,
    ClientLoginRequest,
    ClientLoginResponse,
    SessionCheckResponse,
    SessionResponse,
    UsernameAvailabilityResponse,
)
from license_api.services import auth_service
from license_api.services.hwid_service import BindOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


def _session_response(account: Account, message: str) -> SessionResponse:
    return SessionResponse(
        message=message,
        user=AccountSummary.from_account(account),
        access_token=create_access_token({"sub": str(account.id)}),
    )


# ✅ WEB SIGNUP (auto-login)
@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=SessionResponse)
def signup(
    body: CredentialsRequest,
    repo: AccountRepository = Depends(get_account_repository)
):
    account = auth_service.register(repo, body.username, body.password)
    return _session_response(account, "Account created successfully!")


# ✅ WEB LOGIN
@router.post("/web-login", response_model=SessionResponse)
def web_login(
    body: CredentialsRequest,
    repo: AccountRepository = Depends(get_account_repository)
):
    account = auth_service.web_login(repo, body.username, body.password)
    return _session_response(account, "Login successful")


# ✅ DESKTOP CLIENT LOGIN (license gate + hardware lock)
@router.post("/login", response_model=ClientLoginResponse)
def client_login(
    body: ClientLoginRequest,
    repo: AccountRepository = Depends(get_account_repository)
):
    account, decision = auth_service.client_login(repo, body.username, body.password, body.hwid)

    message = "Login successful"
    if decision.outcome is BindOutcome.BOUND:
        message = "Login successful - Account locked to this computer"

    return ClientLoginResponse(
        message=message,
        username=account.username,
        subscription=SubscriptionSummary.from_account(account),
    )


@router.get("/check-session", response_model=SessionCheckResponse)
def check_session(account: Optional[Account] = Depends(get_optional_account)):
    if account is None:
        return SessionCheckResponse(loggedIn=False)
    return SessionCheckResponse(loggedIn=True, user=AccountSummary.from_account(account))


@router.get("/check-username/{username}", response_model=UsernameAvailabilityResponse)
def check_username(
    username: str,
    repo: AccountRepository = Depends(get_account_repository)
):
    return UsernameAvailabilityResponse(available=repo.username_available(username))
