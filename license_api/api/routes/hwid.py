"""
Hardware lock reset endpoints.

/api/reset-hwid is the administrative path (no cooldown);
/api/hwid/reset lets an account owner reset their own lock once per cooldown.
"""
import logging
from fastapi import APIRouter, Depends

from license_api.core.auth_dependency import get_account_repository, get_current_account, require_admin
from license_api.core.errors import NotFound, ValidationError
from license_api.db.account_repository import AccountRepository
from license_api.db.models.account import Account
from license_api.schemas.billing import MessageResponse
from license_api.schemas.hwid import ResetHwidRequest
from license_api.services import hwid_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["HWID"])


@router.post("/reset-hwid", response_model=MessageResponse)
def admin_reset_hwid(
    body: ResetHwidRequest,
    admin: Account = Depends(require_admin),
    repo: AccountRepository = Depends(get_account_repository)
):
    if not body.username:
        raise ValidationError("Username is required")

    account = repo.find_by_username(body.username)
    if account is None:
        raise NotFound("User not found")

    hwid_service.reset(repo, account, self_service=False)
    logger.info(f"Admin HWID reset: account_id={account.id}, admin_id={admin.id}")
    return MessageResponse(message="Hardware ID lock removed successfully")


@router.post("/hwid/reset", response_model=MessageResponse)
def self_service_reset_hwid(
    account: Account = Depends(get_current_account),
    repo: AccountRepository = Depends(get_account_repository)
):
    hwid_service.reset(repo, account, self_service=True)
    return MessageResponse(message="Hardware ID lock removed successfully")
