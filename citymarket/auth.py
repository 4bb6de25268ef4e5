# citymarket/auth.py
"""Auth session manager.

Wraps an ``IdentityProvider`` and keeps a local copy of the current session,
updated from the provider's push events. Expected failures (missing
configuration, provider rejections) come back inside an ``AuthResult``
instead of being raised, so callers can show the message and let the user
retry.

Each login attempt moves through ``LoginState``:

    phone:  IDLE -> AWAITING_PHONE_SUBMIT -> CODE_SENT -> VERIFYING -> AUTHENTICATED
            (a failed verification drops the code and returns to AWAITING_PHONE_SUBMIT)
    oauth:  IDLE -> REDIRECTING_TO_PROVIDER -> AUTHENTICATED
"""
from __future__ import annotations

import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .config import Settings
from .models import Session, UserProfile
from .provider import (
    AuthEvent,
    IdentityProvider,
    ProviderRequestError,
    Subscription,
    code_challenge_for,
    generate_code_verifier,
)
from .services import profile_from_session
from .utils import logger, mask

CONFIGURATION_MESSAGE = "Please configure Supabase credentials in .env file"
ATTEMPT_TTL_SECONDS = 600
MAX_PENDING_ATTEMPTS = 1000
# a rejected refresh token means the session is gone for good
REVOKED_REFRESH_STATUSES = (400, 401)


class LoginState(str, Enum):
    IDLE = "idle"
    AWAITING_PHONE_SUBMIT = "awaiting_phone_submit"
    CODE_SENT = "code_sent"
    VERIFYING = "verifying"
    REDIRECTING_TO_PROVIDER = "redirecting_to_provider"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class ConfigurationError:
    """The provider has no real credentials; only an operator can fix this."""

    message: str = CONFIGURATION_MESSAGE
    kind: str = "configuration"


@dataclass(frozen=True)
class ProviderError:
    """The provider rejected the request; the user may re-submit."""

    message: str
    kind: str = "provider"


AuthError = Union[ConfigurationError, ProviderError]


@dataclass(frozen=True)
class AuthResult:
    value: Any = None
    error: Optional[AuthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class OAuthRedirect:
    flow_id: str
    url: str


class AuthSessionManager:
    """Owns the current session and the pending login attempts.

    Attempts (per phone or per OAuth flow) expire after ``attempt_ttl``
    seconds without activity, and at most ``max_attempts`` are kept; the
    least recently touched ones go first.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        settings: Settings,
        attempt_ttl: float = ATTEMPT_TTL_SECONDS,
        max_attempts: int = MAX_PENDING_ATTEMPTS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self.loading = True
        self.attempt_ttl = attempt_ttl
        self.max_attempts = max_attempts
        self._clock = clock
        self._session: Optional[Session] = None
        self._subscription: Optional[Subscription] = None
        self._event_seen = False
        # key -> (state, last touched); ordered oldest first
        self._attempts: "OrderedDict[str, Tuple[LoginState, float]]" = OrderedDict()
        self._oauth_verifiers: Dict[str, str] = {}

    # lifecycle

    async def start(self) -> None:
        """Read the initial session and subscribe to provider events (once)."""
        if self._subscription is not None:
            return
        self._subscription = self.provider.on_auth_state_change(self._on_auth_event)
        try:
            session = await self.provider.get_session()
        except ProviderRequestError as e:
            logger.warning("Could not read initial session: %s", e.message)
            session = None
        # a pushed event is newer than the initial read
        if not self._event_seen:
            self._session = session
        self.loading = False
        logger.info("Auth session manager started (signed in: %s)", self._session is not None)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_auth_event(self, event: AuthEvent, session: Optional[Session]) -> None:
        self._event_seen = True
        self._session = session
        self.loading = False
        logger.info("Auth state changed: %s", event.value)

    # reads

    def get_current_session(self) -> Optional[Session]:
        return self._session

    def profile(self) -> Optional[UserProfile]:
        return profile_from_session(self._session)

    def login_state(self, key: str) -> LoginState:
        self._prune()
        entry = self._attempts.get(key)
        return entry[0] if entry else LoginState.IDLE

    def pending_attempts(self) -> int:
        self._prune()
        return len(self._attempts)

    # attempt bookkeeping

    def _set_attempt(self, key: str, state: LoginState) -> None:
        self._attempts[key] = (state, self._clock())
        self._attempts.move_to_end(key)
        self._prune()

    def _drop_attempt(self, key: str) -> None:
        self._attempts.pop(key, None)
        self._oauth_verifiers.pop(key, None)

    def _prune(self) -> None:
        cutoff = self._clock() - self.attempt_ttl
        while self._attempts:
            key, (_, touched) = next(iter(self._attempts.items()))
            if touched > cutoff and len(self._attempts) <= self.max_attempts:
                break
            self._drop_attempt(key)

    def _clear_local(self) -> None:
        self._session = None
        self._attempts.clear()
        self._oauth_verifiers.clear()

    def _configuration_error(self) -> Optional[AuthResult]:
        if self.settings.is_placeholder:
            logger.error("Auth provider is not configured")
            return AuthResult(error=ConfigurationError())
        return None

    # phone OTP

    async def sign_in_with_otp(self, phone: str) -> AuthResult:
        failed = self._configuration_error()
        if failed:
            return failed
        # a resend keeps the previously sent code usable
        if self.login_state(phone) != LoginState.CODE_SENT:
            self._set_attempt(phone, LoginState.AWAITING_PHONE_SUBMIT)
        try:
            await self.provider.sign_in_with_otp(phone)
        except ProviderRequestError as e:
            logger.warning("OTP request for %s failed: %s", mask(phone), e.message)
            return AuthResult(error=ProviderError(e.message))
        self._set_attempt(phone, LoginState.CODE_SENT)
        return AuthResult(value=LoginState.CODE_SENT)

    async def verify_otp(self, phone: str, code: str) -> AuthResult:
        failed = self._configuration_error()
        if failed:
            return failed
        if self.login_state(phone) not in (LoginState.CODE_SENT, LoginState.VERIFYING):
            return AuthResult(error=ProviderError("No verification code was requested for this phone number"))
        self._set_attempt(phone, LoginState.VERIFYING)
        try:
            session = await self.provider.verify_otp(phone, code)
        except ProviderRequestError as e:
            logger.warning("OTP verification for %s failed: %s", mask(phone), e.message)
            self._set_attempt(phone, LoginState.AWAITING_PHONE_SUBMIT)
            return AuthResult(error=ProviderError(e.message))
        self._set_attempt(phone, LoginState.AUTHENTICATED)
        return AuthResult(value=session)

    # OAuth

    async def sign_in_with_google(self, redirect_to: Optional[str] = None) -> AuthResult:
        failed = self._configuration_error()
        if failed:
            return failed
        flow_id = secrets.token_urlsafe(16)
        verifier = generate_code_verifier()
        target = redirect_to or f"{self.settings.site_url}/auth/callback"
        separator = "&" if "?" in target else "?"
        url = self.provider.authorization_url(
            "google", f"{target}{separator}flow={flow_id}", code_challenge_for(verifier)
        )
        self._oauth_verifiers[flow_id] = verifier
        self._set_attempt(flow_id, LoginState.REDIRECTING_TO_PROVIDER)
        return AuthResult(value=OAuthRedirect(flow_id=flow_id, url=url))

    async def complete_oauth(self, flow_id: str, code: str) -> AuthResult:
        failed = self._configuration_error()
        if failed:
            return failed
        verifier = self._oauth_verifiers.pop(flow_id, None)
        if verifier is None:
            return AuthResult(error=ProviderError("Unknown or expired sign-in attempt"))
        try:
            session = await self.provider.exchange_code_for_session(code, verifier)
        except ProviderRequestError as e:
            logger.warning("OAuth code exchange failed: %s", e.message)
            self._drop_attempt(flow_id)
            return AuthResult(error=ProviderError(e.message))
        self._set_attempt(flow_id, LoginState.AUTHENTICATED)
        return AuthResult(value=session)

    # session upkeep

    async def refresh_session(self) -> AuthResult:
        session = self._session
        if session is None or not session.refresh_token:
            return AuthResult()
        try:
            refreshed = await self.provider.refresh_session(session.refresh_token)
        except ProviderRequestError as e:
            if e.status in REVOKED_REFRESH_STATUSES:
                logger.warning("Refresh token rejected, clearing session: %s", e.message)
                self._clear_local()
            else:
                logger.warning("Session refresh failed: %s", e.message)
            return AuthResult(error=ProviderError(e.message))
        return AuthResult(value=refreshed)

    async def sign_out(self) -> AuthResult:
        token = self._session.access_token if self._session else None
        error = None
        try:
            await self.provider.sign_out(token)
        except ProviderRequestError as e:
            logger.warning("Provider sign-out failed, clearing local session anyway: %s", e.message)
            error = ProviderError(e.message)
        finally:
            self._clear_local()
        return AuthResult(error=error)
