# citymarket/models.py
"""Domain models shared by the listing store and the auth session manager.

Listings and categories are immutable values; a new listing is a new object
and the store's sequence is replaced, never edited.
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

ALL_CATEGORY = "all"

DEFAULT_ITEM_IMAGE = "https://images.pexels.com/photos/1649771/pexels-photo-1649771.jpeg?auto=compress&cs=tinysrgb&w=500"
DEFAULT_AVATAR = "https://images.pexels.com/photos/220453/pexels-photo-220453.jpeg?auto=compress&cs=tinysrgb&w=100"

class Condition(str, Enum):
    NEW = "new"
    LIKE_NEW = "like-new"
    GOOD = "good"
    FAIR = "fair"

class Seller(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    avatar: str
    rating: float

class MarketplaceItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    price: float = Field(..., ge=0)
    description: str
    category: str
    image: str
    seller: Seller
    location: str
    posted_at: datetime
    condition: Condition

class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon: str
    count: int = 0

class AuthUser(BaseModel):
    """User record as issued by the identity provider."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    phone: Optional[str] = None
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

class Session(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    user: AuthUser

class UserProfile(BaseModel):
    """Read-only projection of the session handed to view code."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    display_name: str
    avatar: str
    phone: Optional[str] = None
    email: Optional[str] = None
