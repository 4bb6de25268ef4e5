# citymarket/services.py
from datetime import datetime, timezone
import re
from typing import Dict, Iterable, Optional
from .models import (
    ALL_CATEGORY, DEFAULT_AVATAR, DEFAULT_ITEM_IMAGE,
    AuthUser, Category, Condition, MarketplaceItem, Seller, Session, UserProfile,
)
from .utils import logger

MAX_IMAGES = 10
DEFAULT_SELLER_RATING = 4.8
DEFAULT_LOCATION = "Your Area"

def format_phone_number(value: str) -> str:
    """Normalise user input to E.164, assuming +1 when no country code is typed."""
    digits = re.sub(r"\D", "", value or "")
    if digits and not digits.startswith("1"):
        return "+1" + digits
    return "+" + digits

def seller_name(user: Optional[AuthUser]) -> str:
    if user is None:
        return "Demo User"
    return user.user_metadata.get("full_name") or user.phone or "Demo User"

def user_avatar(user: Optional[AuthUser]) -> str:
    if user is None:
        return DEFAULT_AVATAR
    return user.user_metadata.get("avatar_url") or DEFAULT_AVATAR

def profile_from_session(session: Optional[Session]) -> Optional[UserProfile]:
    if session is None:
        return None
    user = session.user
    return UserProfile(
        user_id=user.id,
        display_name=user.user_metadata.get("full_name") or user.phone or "User",
        avatar=user_avatar(user),
        phone=user.phone,
        email=user.email,
    )

def build_listing(
    payload: Dict,
    categories: Iterable[Category],
    user: Optional[AuthUser] = None,
    now: Optional[datetime] = None,
) -> MarketplaceItem:
    # Basic normalization/validation
    now = now or datetime.now(timezone.utc)
    title = (payload.get("title") or "").strip()
    if not title:
        raise ValueError("title missing")
    try:
        price = float(payload.get("price"))
    except (TypeError, ValueError):
        raise ValueError("price must be a number")
    if price < 0:
        raise ValueError("price must not be negative")

    category = payload.get("category")
    known = {c.id for c in categories if c.id != ALL_CATEGORY}
    if category not in known:
        raise ValueError(f"unknown category: {category!r}")
    try:
        condition = Condition(payload.get("condition") or Condition.GOOD.value)
    except ValueError:
        raise ValueError(f"unknown condition: {payload.get('condition')!r}")

    images = list(payload.get("images") or [])
    if len(images) > MAX_IMAGES:
        raise ValueError(f"at most {MAX_IMAGES} images per listing")

    item = MarketplaceItem(
        id=str(int(now.timestamp() * 1000)),
        title=title,
        price=price,
        description=payload.get("description") or "",
        category=category,
        image=images[0] if images else DEFAULT_ITEM_IMAGE,
        seller=Seller(name=seller_name(user), avatar=user_avatar(user), rating=DEFAULT_SELLER_RATING),
        location=DEFAULT_LOCATION,
        posted_at=now,
        condition=condition,
    )
    logger.info("Built listing %s (%s)", item.id, item.category)
    return item
