from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, CheckConstraint, Index
from sqlalchemy.sql import func
from license_api.db.base import Base


class Vouch(Base):
    """
    User-submitted testimonial.

    Moderation is a status overlay: rows are never deleted. A vouch starts
    pending, then becomes approved or rejected; only approved vouches may be
    featured.
    """
    __tablename__ = "vouches"

    id = Column(Integer, primary_key=True, index=True)

    author_id = Column(String, nullable=False, index=True)
    author_name = Column(String, nullable=True)
    target_user_id = Column(String, nullable=False, index=True)
    target_name = Column(String, nullable=True)
    source = Column(String, nullable=False, default="web")  # "web" | "discord"

    rating = Column(Integer, nullable=False)
    message = Column(Text, nullable=False)

    approved = Column(Boolean, nullable=False, default=False)
    featured = Column(Boolean, nullable=False, default=False)
    rejected = Column(Boolean, nullable=False, default=False)
    rejection_reason = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_vouches_rating"),
        CheckConstraint("NOT featured OR approved", name="ck_vouches_featured_approved"),
        Index("idx_vouches_target_approved", "target_user_id", "approved"),
    )
