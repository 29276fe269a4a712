"""
Pydantic schemas for vouch endpoints.

Range and length rules live in the vouch service so every client (web and
chat bot) gets the same validation.
"""
from typing import Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class VouchCreate(BaseModel):
    target_user_id: str = Field(..., description="ID of the user being vouched for")
    target_name: Optional[str] = Field(None, description="Display name of the target")
    rating: int = Field(..., description="Rating from 1 to 5")
    message: str = Field(..., description="Testimonial text, 10-500 characters")

    class Config:
        json_schema_extra = {
            "example": {
                "target_user_id": "42",
                "target_name": "seller",
                "rating": 5,
                "message": "Great service, very fast!"
            }
        }


class VouchResponse(BaseModel):
    id: int
    author_id: str
    author_name: Optional[str] = None
    target_user_id: str
    target_name: Optional[str] = None
    rating: int
    message: str
    approved: bool
    featured: bool
    rejected: bool
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VouchListResponse(BaseModel):
    vouches: List[VouchResponse]
    next_cursor: Optional[str] = Field(None, description="Pass as `cursor` to fetch the next page")


class VouchStatsResponse(BaseModel):
    count: int
    average_rating: float
    histogram: Dict[int, int] = Field(..., description="Number of vouches per rating 1-5")


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, description="Shown to the author; defaults to 'No reason provided'")


class FeatureResponse(BaseModel):
    success: bool = True
    featured: bool
