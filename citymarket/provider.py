# citymarket/provider.py
"""Identity provider boundary.

``IdentityProvider`` is everything the auth session manager needs from a
hosted identity backend. ``GoTrueProvider`` implements it over the Supabase
Auth REST API. Like the hosted JS client it keeps the current session itself
and pushes ``AuthEvent`` notifications to subscribers whenever it changes.
"""
from __future__ import annotations

import base64
import hashlib
import itertools
import secrets
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from .config import Settings
from .models import Session
from .utils import logger, mask, retry


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


AuthListener = Callable[[AuthEvent, Optional[Session]], None]


class ProviderRequestError(Exception):
    """The provider rejected a request or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class ProviderTransportError(ProviderRequestError):
    """Network level failure; safe to retry for idempotent calls."""


class Subscription:
    def __init__(self, sub_id: int, on_unsubscribe: Callable[[int], None]) -> None:
        self.id = sub_id
        self._on_unsubscribe = on_unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._on_unsubscribe(self.id)


class IdentityProvider(Protocol):
    async def get_session(self) -> Optional[Session]:  # pragma: no cover - protocol definition
        ...

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:  # pragma: no cover
        ...

    def authorization_url(self, provider: str, redirect_to: str, code_challenge: str) -> str:  # pragma: no cover
        ...

    async def sign_in_with_otp(self, phone: str) -> None:  # pragma: no cover
        ...

    async def verify_otp(self, phone: str, token: str) -> Session:  # pragma: no cover
        ...

    async def exchange_code_for_session(self, auth_code: str, code_verifier: str) -> Session:  # pragma: no cover
        ...

    async def refresh_session(self, refresh_token: str) -> Session:  # pragma: no cover
        ...

    async def sign_out(self, access_token: Optional[str]) -> None:  # pragma: no cover
        ...


def generate_code_verifier() -> str:
    return secrets.token_urlsafe(48)


def code_challenge_for(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"Auth request failed with status {response.status_code}"
    if isinstance(data, dict):
        for key in ("msg", "message", "error_description", "error"):
            if data.get(key):
                return str(data[key])
    return f"Auth request failed with status {response.status_code}"


class GoTrueProvider:
    """Async client for the Supabase Auth (GoTrue) API."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self.base_url = f"{settings.supabase_url.rstrip('/')}/auth/v1"
        self._client = client
        self._owns_client = client is None
        self._session: Optional[Session] = None
        self._listeners: Dict[int, AuthListener] = {}
        self._ids = itertools.count(1)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.settings.http_timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.settings.supabase_anon_key,
            "Authorization": f"Bearer {token or self.settings.supabase_anon_key}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        client = self._get_client()
        try:
            response = await client.request(
                method, f"{self.base_url}{path}", json=json, params=params, headers=self._headers(token)
            )
        except httpx.HTTPError as e:
            raise ProviderTransportError(f"Auth provider unreachable: {e}") from e
        if response.status_code >= 400:
            raise ProviderRequestError(_error_message(response), status=response.status_code)
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderRequestError("Auth provider returned a non-JSON body", status=response.status_code) from e
        return data if isinstance(data, dict) else {}

    def _parse_session(self, data: Dict[str, Any]) -> Session:
        try:
            return Session.model_validate(data)
        except ValidationError as e:
            raise ProviderRequestError("Auth provider returned an unexpected session payload") from e

    # subscriptions

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        sub_id = next(self._ids)
        self._listeners[sub_id] = callback
        return Subscription(sub_id, self._listeners.pop)

    def _emit(self, event: AuthEvent, session: Optional[Session]) -> None:
        logger.debug("Auth event %s", event.value)
        for callback in list(self._listeners.values()):
            try:
                callback(event, session)
            except Exception:
                logger.exception("Auth listener failed on %s", event.value)

    def _set_session(self, event: AuthEvent, session: Optional[Session]) -> None:
        self._session = session
        self._emit(event, session)

    # operations

    async def get_session(self) -> Optional[Session]:
        return self._session

    def authorization_url(self, provider: str, redirect_to: str, code_challenge: str) -> str:
        query = urlencode({
            "provider": provider,
            "redirect_to": redirect_to,
            "code_challenge": code_challenge,
            "code_challenge_method": "s256",
        })
        return f"{self.base_url}/authorize?{query}"

    async def sign_in_with_otp(self, phone: str) -> None:
        await self._request("POST", "/otp", json={"phone": phone, "create_user": True, "channel": "sms"})
        logger.info("OTP requested for %s", mask(phone))

    async def verify_otp(self, phone: str, token: str) -> Session:
        data = await self._request("POST", "/verify", json={"type": "sms", "phone": phone, "token": token})
        session = self._parse_session(data)
        self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    async def exchange_code_for_session(self, auth_code: str, code_verifier: str) -> Session:
        data = await self._request(
            "POST", "/token",
            params={"grant_type": "pkce"},
            json={"auth_code": auth_code, "code_verifier": code_verifier},
        )
        session = self._parse_session(data)
        self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    @retry(ProviderTransportError, tries=3, delay=1, backoff=2)
    async def refresh_session(self, refresh_token: str) -> Session:
        data = await self._request(
            "POST", "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        session = self._parse_session(data)
        self._set_session(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def sign_out(self, access_token: Optional[str]) -> None:
        try:
            if access_token:
                try:
                    await self._request("POST", "/logout", token=access_token)
                except ProviderRequestError as e:
                    # token already revoked or expired counts as signed out
                    if e.status not in (401, 403, 404):
                        raise
        finally:
            self._set_session(AuthEvent.SIGNED_OUT, None)
