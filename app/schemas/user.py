from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.my_base_model import CustomBaseModel


class UserResponse(CustomBaseModel):
    """Response model for user profile"""

    id: str
    public_address: str
    nonce: str
    username: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UpdateUserRequest(BaseModel):
    """Request model for profile update - input validation"""

    username: str = Field(..., min_length=3, description="New display name, at least 3 characters")
