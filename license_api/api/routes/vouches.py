"""
Vouch endpoints.

Anyone can read approved vouches and statistics; logged-in accounts can
submit; administrators moderate.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from license_api.core.auth_dependency import get_current_account, require_admin
from license_api.db.session import get_db
from license_api.db.models.account import Account
from license_api.schemas.vouch import (
    FeatureResponse,
    RejectRequest,
    VouchCreate,
    VouchListResponse,
    VouchResponse,
    VouchStatsResponse,
)
from license_api.services.vouch_service import VouchStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vouches", tags=["Vouches"])


def get_vouch_store(db: Session = Depends(get_db)) -> VouchStore:
    return VouchStore(db)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=VouchResponse)
def submit_vouch(
    body: VouchCreate,
    account: Account = Depends(get_current_account),
    store: VouchStore = Depends(get_vouch_store)
):
    vouch = store.submit(
        author_id=str(account.id),
        author_name=account.username,
        target_user_id=body.target_user_id,
        target_name=body.target_name,
        rating=body.rating,
        message=body.message,
        source="web",
    )
    return VouchResponse.model_validate(vouch)


@router.get("", response_model=VouchListResponse)
def list_approved_vouches(
    target_user_id: Optional[str] = Query(None, description="Only vouches for this user"),
    cursor: Optional[str] = Query(None, description="next_cursor from the previous page"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    store: VouchStore = Depends(get_vouch_store)
):
    vouches, next_cursor = store.list_approved(target_user_id, cursor, limit)
    return VouchListResponse(
        vouches=[VouchResponse.model_validate(v) for v in vouches],
        next_cursor=next_cursor,
    )


@router.get("/featured", response_model=VouchListResponse)
def list_featured_vouches(
    limit: int = Query(20, ge=1, le=100),
    store: VouchStore = Depends(get_vouch_store)
):
    return VouchListResponse(vouches=[VouchResponse.model_validate(v) for v in store.list_featured(limit)])


@router.get("/stats", response_model=VouchStatsResponse)
def vouch_stats(
    target_user_id: Optional[str] = Query(None),
    store: VouchStore = Depends(get_vouch_store)
):
    stats = store.stats(target_user_id)
    return VouchStatsResponse(count=stats.count, average_rating=stats.average_rating, histogram=stats.histogram)


@router.get("/pending", response_model=VouchListResponse)
def list_pending_vouches(
    limit: int = Query(50, ge=1, le=100),
    admin: Account = Depends(require_admin),
    store: VouchStore = Depends(get_vouch_store)
):
    return VouchListResponse(vouches=[VouchResponse.model_validate(v) for v in store.list_pending(limit)])


@router.post("/{vouch_id}/approve", response_model=VouchResponse)
def approve_vouch(
    vouch_id: int,
    admin: Account = Depends(require_admin),
    store: VouchStore = Depends(get_vouch_store)
):
    return VouchResponse.model_validate(store.approve(vouch_id, moderator_id=str(admin.id)))


@router.post("/{vouch_id}/reject", response_model=VouchResponse)
def reject_vouch(
    vouch_id: int,
    body: Optional[RejectRequest] = None,
    admin: Account = Depends(require_admin),
    store: VouchStore = Depends(get_vouch_store)
):
    reason = body.reason if body else None
    return VouchResponse.model_validate(store.reject(vouch_id, moderator_id=str(admin.id), reason=reason))


@router.post("/{vouch_id}/feature", response_model=FeatureResponse)
def toggle_featured_vouch(
    vouch_id: int,
    admin: Account = Depends(require_admin),
    store: VouchStore = Depends(get_vouch_store)
):
    return FeatureResponse(featured=store.toggle_featured(vouch_id))
