# citymarket/schemas.py
from pydantic import BaseModel, Field
from typing import List, Optional
from .models import Category, Condition, MarketplaceItem, UserProfile

class ListingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    description: str = ""
    category: str
    condition: Condition = Condition.GOOD
    images: List[str] = Field(default_factory=list)

class CategoryPage(BaseModel):
    category: Category
    items: List[MarketplaceItem]

class CategorySection(BaseModel):
    category: Category
    total: int
    items: List[MarketplaceItem]

class SearchResults(BaseModel):
    query: str
    total: int
    items: List[MarketplaceItem]
    suggestions: List[str]

class OTPRequest(BaseModel):
    # at least one digit; "+" alone is not a phone number
    phone: str = Field(..., min_length=1, pattern=r"\d")

class OTPVerify(BaseModel):
    phone: str = Field(..., min_length=1, pattern=r"\d")
    code: str = Field(..., pattern=r"^\d{6}$")

class AuthStep(BaseModel):
    state: str

class SessionOut(BaseModel):
    loading: bool
    authenticated: bool
    profile: Optional[UserProfile] = None

class SignOutOut(BaseModel):
    status: str
    error: Optional[str] = None
