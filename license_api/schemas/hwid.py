from typing import Optional
from pydantic import BaseModel, Field


class ResetHwidRequest(BaseModel):
    username: Optional[str] = Field(None, description="Account whose hardware lock is removed")
