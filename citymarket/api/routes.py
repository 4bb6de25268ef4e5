# citymarket/api/routes.py
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from typing import List
from .. import schemas, services
from ..auth import AuthSessionManager
from ..models import ALL_CATEGORY, Category, MarketplaceItem, UserProfile
from ..store import ListingStore, SEARCH_SUGGESTIONS, SECTION_PREVIEW_LIMIT
from ..utils import logger
from .deps import get_auth, get_store, raise_for_auth_error

router = APIRouter()

@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/categories", response_model=List[Category])
def categories(store: ListingStore = Depends(get_store)):
    return list(store.categories)

@router.get("/categories/{category_id}", response_model=schemas.CategoryPage)
def category_page(category_id: str, store: ListingStore = Depends(get_store)):
    category = store.category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return {"category": category, "items": list(store.by_category(category_id))}

@router.get("/listings", response_model=List[MarketplaceItem])
def listings(
    category: str = Query(ALL_CATEGORY),
    store: ListingStore = Depends(get_store)
):
    return list(store.by_category(category))

@router.get("/listings/grouped", response_model=List[schemas.CategorySection])
def grouped_listings(store: ListingStore = Depends(get_store)):
    sections = []
    for category_id, items in store.grouped().items():
        sections.append({
            "category": store.category(category_id),
            "total": len(items),
            "items": list(items[:SECTION_PREVIEW_LIMIT]),
        })
    return sections

@router.get("/listings/{listing_id}", response_model=MarketplaceItem)
def get_listing(listing_id: str, store: ListingStore = Depends(get_store)):
    obj = store.get(listing_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Item not found")
    return obj

@router.post("/listings", response_model=MarketplaceItem, status_code=201)
def create_listing(
    payload: schemas.ListingCreate,
    store: ListingStore = Depends(get_store),
    auth: AuthSessionManager = Depends(get_auth)
):
    session = auth.get_current_session()
    try:
        item = services.build_listing(
            payload.model_dump(), store.categories, user=session.user if session else None
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    item = store.add(item)
    return item

@router.get("/search", response_model=schemas.SearchResults)
def search(q: str = Query(""), store: ListingStore = Depends(get_store)):
    results = store.search(q)
    return {
        "query": q,
        "total": len(results),
        "items": list(results),
        "suggestions": list(SEARCH_SUGGESTIONS),
    }

@router.get("/auth/session", response_model=schemas.SessionOut)
def current_session(auth: AuthSessionManager = Depends(get_auth)):
    profile = auth.profile()
    return {"loading": auth.loading, "authenticated": profile is not None, "profile": profile}

@router.post("/auth/otp", response_model=schemas.AuthStep)
async def request_otp(payload: schemas.OTPRequest, auth: AuthSessionManager = Depends(get_auth)):
    phone = services.format_phone_number(payload.phone)
    result = await auth.sign_in_with_otp(phone)
    raise_for_auth_error(result)
    return {"state": auth.login_state(phone).value}

@router.post("/auth/otp/verify", response_model=schemas.SessionOut)
async def verify_otp(payload: schemas.OTPVerify, auth: AuthSessionManager = Depends(get_auth)):
    phone = services.format_phone_number(payload.phone)
    result = await auth.verify_otp(phone, payload.code)
    raise_for_auth_error(result)
    profile = services.profile_from_session(result.value)
    return {"loading": False, "authenticated": True, "profile": profile}

@router.get("/auth/google")
async def sign_in_with_google(auth: AuthSessionManager = Depends(get_auth)):
    result = await auth.sign_in_with_google()
    raise_for_auth_error(result)
    return RedirectResponse(result.value.url, status_code=307)

@router.get("/auth/callback", response_model=schemas.SessionOut)
async def oauth_callback(
    flow: str = Query(...),
    code: str = Query(...),
    auth: AuthSessionManager = Depends(get_auth)
):
    result = await auth.complete_oauth(flow, code)
    raise_for_auth_error(result)
    profile = services.profile_from_session(result.value)
    return {"loading": False, "authenticated": True, "profile": profile}

@router.post("/auth/signout", response_model=schemas.SignOutOut)
async def sign_out(auth: AuthSessionManager = Depends(get_auth)):
    result = await auth.sign_out()
    if not result.ok:
        logger.warning("Signed out locally; provider reported: %s", result.error.message)
        return {"status": "signed_out", "error": result.error.message}
    return {"status": "signed_out"}

@router.get("/profile", response_model=UserProfile)
def profile(auth: AuthSessionManager = Depends(get_auth)):
    obj = auth.profile()
    if not obj:
        raise HTTPException(status_code=401, detail="Not signed in")
    return obj
