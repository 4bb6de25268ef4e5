import asyncio
import pytest
from datetime import datetime, timezone

from citymarket.config import Settings
from citymarket.models import AuthUser, Condition, MarketplaceItem, Seller, Session
from citymarket.provider import AuthEvent, ProviderRequestError, Subscription


class FakeProvider:
    """In-memory identity provider that pushes events like the hosted one."""

    def __init__(self, valid_code="123456"):
        self.valid_code = valid_code
        self.session = None
        self.sent_to = []
        self.listeners = {}
        self.fail_otp = None
        self.fail_sign_out = False
        self.fail_refresh_status = None
        # per-phone latency, to interleave concurrent calls
        self.delays = {}
        self.calls = []
        self._next_id = 0

    def on_auth_state_change(self, callback):
        self._next_id += 1
        self.listeners[self._next_id] = callback
        return Subscription(self._next_id, self.listeners.pop)

    def emit(self, event, session):
        self.session = session
        for callback in list(self.listeners.values()):
            callback(event, session)

    async def get_session(self):
        return self.session

    def authorization_url(self, provider, redirect_to, code_challenge):
        return f"https://auth.test/authorize?provider={provider}&redirect_to={redirect_to}"

    async def sign_in_with_otp(self, phone):
        self.calls.append(("otp", phone))
        await asyncio.sleep(self.delays.get(phone, 0))
        if self.fail_otp:
            raise ProviderRequestError(self.fail_otp, status=400)
        self.sent_to.append(phone)

    async def verify_otp(self, phone, token):
        self.calls.append(("verify", phone))
        await asyncio.sleep(self.delays.get(phone, 0))
        if phone not in self.sent_to or token != self.valid_code:
            raise ProviderRequestError("Token has expired or is invalid", status=403)
        session = make_session(phone=phone)
        self.emit(AuthEvent.SIGNED_IN, session)
        return session

    async def exchange_code_for_session(self, auth_code, code_verifier):
        self.calls.append(("exchange", auth_code))
        if auth_code != "good-code":
            raise ProviderRequestError("invalid flow state, no valid flow state found", status=404)
        session = make_session(full_name="Google User", avatar_url="https://avatar.test/g.png")
        self.emit(AuthEvent.SIGNED_IN, session)
        return session

    async def refresh_session(self, refresh_token):
        self.calls.append(("refresh", refresh_token))
        if self.fail_refresh_status:
            raise ProviderRequestError("Invalid Refresh Token: Refresh Token Not Found", status=self.fail_refresh_status)
        session = make_session(phone=self.session.user.phone if self.session else None, access_token="refreshed")
        self.emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def sign_out(self, access_token):
        self.calls.append(("sign_out", access_token))
        try:
            if self.fail_sign_out:
                raise ProviderRequestError("network down")
        finally:
            self.emit(AuthEvent.SIGNED_OUT, None)


def make_session(phone=None, full_name=None, avatar_url=None, access_token="access-1"):
    metadata = {}
    if full_name:
        metadata["full_name"] = full_name
    if avatar_url:
        metadata["avatar_url"] = avatar_url
    return Session(
        access_token=access_token,
        refresh_token="refresh-1",
        expires_in=3600,
        user=AuthUser(id="user-1", phone=phone, user_metadata=metadata),
    )


def make_item(item_id, category, title="Thing", description="", seller="Seller", location="Carmen"):
    return MarketplaceItem(
        id=item_id,
        title=title,
        price=10,
        description=description,
        category=category,
        image="https://img.test/x.jpg",
        seller=Seller(name=seller, avatar="https://img.test/a.jpg", rating=4.5),
        location=location,
        posted_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        condition=Condition.GOOD,
    )


@pytest.fixture
def configured_settings():
    return Settings(
        supabase_url="https://project.supabase.test",
        supabase_anon_key="anon-key",
        auth_refresh_minutes=0,
    )


@pytest.fixture
def placeholder_settings():
    return Settings(auth_refresh_minutes=0)


@pytest.fixture
def fake_provider():
    return FakeProvider()
