"""
Vouch moderation store.

Submissions land pending. Moderators approve or reject them; approved
vouches can be featured on the website. Statistics are aggregated per
query over approved vouches.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from license_api.core.clock import utcnow
from license_api.core.errors import NotApproved, NotFound, ValidationError, VouchRejected
from license_api.db.models.vouch import Vouch

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_LENGTH = 500
DEFAULT_REJECTION_REASON = "No reason provided"


@dataclass
class VouchStats:
    count: int = 0
    average_rating: float = 0.0
    histogram: Dict[int, int] = field(default_factory=lambda: {r: 0 for r in range(MIN_RATING, MAX_RATING + 1)})


def validate_submission(author_id, target_user_id, rating, message) -> str:
    """Return the cleaned message or raise ValidationError."""
    if not author_id or not target_user_id:
        raise ValidationError("Author and target are required")
    if str(author_id) == str(target_user_id):
        raise ValidationError("You cannot vouch for yourself")
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Please provide a valid rating ({MIN_RATING}-{MAX_RATING})")
    if not isinstance(message, str):
        raise ValidationError("Please provide a vouch message")
    message = message.strip()
    if len(message) < MIN_MESSAGE_LENGTH:
        raise ValidationError(f"Vouch message must be at least {MIN_MESSAGE_LENGTH} characters")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Vouch message is too long (max {MAX_MESSAGE_LENGTH} characters)")
    return message


class VouchStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, vouch_id: int) -> Vouch:
        vouch = self.db.query(Vouch).filter(Vouch.id == vouch_id).first()
        if vouch is None:
            raise NotFound("Vouch not found")
        return vouch

    def submit(
        self,
        author_id: str,
        target_user_id: str,
        rating: int,
        message: str,
        author_name: Optional[str] = None,
        target_name: Optional[str] = None,
        source: str = "web",
    ) -> Vouch:
        message = validate_submission(author_id, target_user_id, rating, message)

        vouch = Vouch(
            author_id=str(author_id),
            author_name=author_name,
            target_user_id=str(target_user_id),
            target_name=target_name,
            source=source,
            rating=rating,
            message=message,
            approved=False,
            featured=False,
            rejected=False,
            created_at=utcnow(),
        )
        self.db.add(vouch)
        self.db.commit()
        self.db.refresh(vouch)

        logger.info(f"Vouch submitted: vouch_id={vouch.id}, author={vouch.author_id}, target={vouch.target_user_id}, rating={rating}")
        return vouch

    def approve(self, vouch_id: int, moderator_id: str, now: Optional[datetime] = None) -> Vouch:
        vouch = self.get(vouch_id)
        if vouch.rejected:
            raise VouchRejected()
        if vouch.approved:
            return vouch

        vouch.approved = True
        vouch.approved_by = str(moderator_id)
        vouch.approved_at = now or utcnow()
        self.db.commit()

        logger.info(f"Vouch approved: vouch_id={vouch_id}, moderator={moderator_id}")
        return vouch

    def reject(
        self,
        vouch_id: int,
        moderator_id: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Vouch:
        vouch = self.get(vouch_id)
        if vouch.rejected:
            return vouch

        vouch.approved = False
        vouch.featured = False
        vouch.rejected = True
        vouch.rejected_by = str(moderator_id)
        vouch.rejected_at = now or utcnow()
        vouch.rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
        self.db.commit()

        logger.info(f"Vouch rejected: vouch_id={vouch_id}, moderator={moderator_id}, reason={vouch.rejection_reason}")
        return vouch

    def toggle_featured(self, vouch_id: int) -> bool:
        """Flip `featured` on an approved vouch and return the new value."""
        vouch = self.get(vouch_id)
        if not vouch.approved:
            raise NotApproved()

        vouch.featured = not vouch.featured
        self.db.commit()

        logger.info(f"Vouch featured={vouch.featured}: vouch_id={vouch_id}")
        return vouch.featured

    def _approved_query(self, target_user_id: Optional[str] = None):
        query = self.db.query(Vouch).filter(Vouch.approved.is_(True), Vouch.rejected.is_(False))
        if target_user_id:
            query = query.filter(Vouch.target_user_id == str(target_user_id))
        return query

    def list_approved(
        self,
        target_user_id: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: int = 20,
    ) -> Tuple[List[Vouch], Optional[str]]:
        """
        Newest approved vouches first.

        `cursor` is the opaque value returned as next_cursor by the previous
        page; None when there are no more pages.
        """
        if limit < 1:
            raise ValidationError("limit must be at least 1")

        query = self._approved_query(target_user_id)
        if cursor:
            try:
                query = query.filter(Vouch.id < int(cursor))
            except ValueError:
                raise ValidationError("Invalid cursor")

        rows = query.order_by(Vouch.id.desc()).limit(limit + 1).all()
        next_cursor = str(rows[limit - 1].id) if len(rows) > limit else None
        return rows[:limit], next_cursor

    def list_featured(self, limit: int = 20) -> List[Vouch]:
        return (
            self._approved_query()
            .filter(Vouch.featured.is_(True))
            .order_by(Vouch.id.desc())
            .limit(limit)
            .all()
        )

    def list_pending(self, limit: int = 50) -> List[Vouch]:
        return (
            self.db.query(Vouch)
            .filter(Vouch.approved.is_(False), Vouch.rejected.is_(False))
            .order_by(Vouch.id.asc())
            .limit(limit)
            .all()
        )

    def stats(self, target_user_id: Optional[str] = None) -> VouchStats:
        query = self.db.query(Vouch.rating, func.count(Vouch.id)).filter(
            Vouch.approved.is_(True), Vouch.rejected.is_(False)
        )
        if target_user_id:
            query = query.filter(Vouch.target_user_id == str(target_user_id))

        stats = VouchStats()
        total = 0
        for rating, count in query.group_by(Vouch.rating).all():
            stats.histogram[rating] = count
            stats.count += count
            total += rating * count
        if stats.count:
            stats.average_rating = round(total / stats.count, 2)
        return stats
