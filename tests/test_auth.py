import asyncio
import pytest

from citymarket.auth import (
    CONFIGURATION_MESSAGE,
    AuthSessionManager,
    ConfigurationError,
    LoginState,
    ProviderError,
)
from citymarket.provider import AuthEvent

from conftest import make_session

PHONE = "+15551234567"


@pytest.mark.asyncio
async def test_unconfigured_provider_reports_configuration_error(fake_provider, placeholder_settings):
    auth = AuthSessionManager(fake_provider, placeholder_settings)
    await auth.start()
    for result in (
        await auth.sign_in_with_otp(PHONE),
        await auth.verify_otp(PHONE, "123456"),
        await auth.sign_in_with_google(),
    ):
        assert isinstance(result.error, ConfigurationError)
        assert result.error.message == CONFIGURATION_MESSAGE
    assert fake_provider.calls == []


@pytest.mark.asyncio
async def test_phone_login_flow(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings)
    await auth.start()
    assert auth.loading is False
    assert auth.login_state(PHONE) == LoginState.IDLE

    sent = await auth.sign_in_with_otp(PHONE)
    assert sent.ok
    assert auth.login_state(PHONE) == LoginState.CODE_SENT

    verified = await auth.verify_otp(PHONE, "123456")
    assert verified.ok
    assert auth.login_state(PHONE) == LoginState.AUTHENTICATED
    assert auth.get_current_session() is not None
    assert auth.profile().display_name == PHONE


@pytest.mark.asyncio
async def test_verify_before_sending_code_fails(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings)
    await auth.start()
    result = await auth.verify_otp(PHONE, "123456")
    assert isinstance(result.error, ProviderError)
    assert auth.get_current_session() is None


@pytest.mark.asyncio
async def test_wrong_code_returns_to_phone_step(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings)
    await auth.start()
    await auth.sign_in_with_otp(PHONE)
    result = await auth.verify_otp(PHONE, "000000")
    assert isinstance(result.error, ProviderError)
    assert result.error.message == "Token has expired or is invalid"
    assert auth.login_state(PHONE) == LoginState.AWAITING_PHONE_SUBMIT
    assert auth.get_current_session() is None


@pytest.mark.asyncio
async def test_provider_rejects_phone(fake_provider, configured_settings):
    fake_provider.fail_otp = "Invalid phone number format"
    auth = AuthSessionManager(fake_provider, configured_settings)
    result = await auth.sign_in_with_otp("+1")
    assert result.error == ProviderError("Invalid phone number format")
    assert auth.login_state("+1") == LoginState.AWAITING_PHONE_SUBMIT


@pytest.mark.asyncio
async def test_sign_out_clears_even_when_provider_fails(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings)
    await auth.start()
    await auth.sign_in_with_otp(PHONE)
    await auth.verify_otp(PHONE, "123456")

    fake_provider.fail_sign_out = True
    result = await auth.sign_out()
    assert isinstance(result.error, ProviderError)
    assert auth.get_current_session() is None
    assert auth.login_state(PHONE) == LoginState.IDLE


@pytest.mark.asyncio
async def test_session_follows_deferred_provider_events(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings)
    await auth.start()
    loop = asyncio.get_running_loop()
    loop.call_soon(fake_provider.emit, AuthEvent.SIGNED_IN, make_session(phone=PHONE))
    assert auth.get_current_session() is None
    await asyncio.sleep(0)
    assert auth.get_current_session().user.phone == PHONE


@pytest.mark.asyncio
async def test_start_picks_up_existing_session_and_close_unsubscribes(fake_provider, configured_settings):
    fake_provider.session = make_session(full_name="Ana")
    auth = AuthSessionManager(fake_provider, configured_settings)
    assert auth.loading is True
    await auth.start()
    await auth.start()
    assert len(fake_provider.listeners) == 1
    assert auth.profile().display_name == "Ana"
    auth.close()
    assert fake_provider.listeners == {}
    fake_provider.emit(AuthEvent.SIGNED_OUT, None)
    assert auth.get_current_session() is not None


@pytest.mark.asyncio
async def test_google_flow(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings)
    await auth.start()
    started = await auth.sign_in_with_google()
    redirect = started.value
    assert "provider=google" in redirect.url
    assert f"flow={redirect.flow_id}" in redirect.url
    assert auth.login_state(redirect.flow_id) == LoginState.REDIRECTING_TO_PROVIDER

    done = await auth.complete_oauth(redirect.flow_id, "good-code")
    assert done.ok
    assert auth.profile().display_name == "Google User"
    assert auth.login_state(redirect.flow_id) == LoginState.AUTHENTICATED


@pytest.mark.asyncio
async def test_google_callback_with_unknown_flow(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings)
    result = await auth.complete_oauth("nope", "good-code")
    assert isinstance(result.error, ProviderError)


@pytest.mark.asyncio
async def test_refresh_session(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings)
    await auth.start()
    assert (await auth.refresh_session()).value is None
    await auth.sign_in_with_otp(PHONE)
    await auth.verify_otp(PHONE, "123456")
    refreshed = await auth.refresh_session()
    assert refreshed.ok
    assert auth.get_current_session().access_token == "refreshed"


@pytest.mark.asyncio
async def test_concurrent_logins_last_event_wins(fake_provider, configured_settings):
    other = "+15559876543"
    fake_provider.delays = {PHONE: 0.02, other: 0}
    auth = AuthSessionManager(fake_provider, configured_settings)
    await auth.start()

    sent = await asyncio.gather(auth.sign_in_with_otp(PHONE), auth.sign_in_with_otp(other))
    assert all(result.ok for result in sent)
    assert auth.login_state(PHONE) == auth.login_state(other) == LoginState.CODE_SENT

    # the slower phone's SIGNED_IN event arrives last
    verified = await asyncio.gather(auth.verify_otp(PHONE, "123456"), auth.verify_otp(other, "123456"))
    assert all(result.ok for result in verified)
    assert fake_provider.session.user.phone == PHONE
    assert auth.get_current_session().user.phone == PHONE


@pytest.mark.asyncio
async def test_abandoned_google_flows_are_bounded(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings, max_attempts=3)
    flows = [(await auth.sign_in_with_google()).value.flow_id for _ in range(5)]

    assert auth.pending_attempts() == 3
    assert auth.login_state(flows[0]) == LoginState.IDLE
    stale = await auth.complete_oauth(flows[0], "good-code")
    assert isinstance(stale.error, ProviderError)
    done = await auth.complete_oauth(flows[-1], "good-code")
    assert done.ok


@pytest.mark.asyncio
async def test_pending_attempts_expire(fake_provider, configured_settings):
    now = [1000.0]
    auth = AuthSessionManager(fake_provider, configured_settings, attempt_ttl=60, clock=lambda: now[0])
    flow = (await auth.sign_in_with_google()).value.flow_id
    await auth.sign_in_with_otp(PHONE)
    assert auth.pending_attempts() == 2

    now[0] += 61
    assert auth.pending_attempts() == 0
    assert auth.login_state(PHONE) == LoginState.IDLE
    assert isinstance((await auth.complete_oauth(flow, "good-code")).error, ProviderError)
    assert isinstance((await auth.verify_otp(PHONE, "123456")).error, ProviderError)


@pytest.mark.asyncio
async def test_revoked_refresh_token_clears_session(fake_provider, configured_settings):
    auth = AuthSessionManager(fake_provider, configured_settings)
    await auth.start()
    await auth.sign_in_with_otp(PHONE)
    await auth.verify_otp(PHONE, "123456")

    fake_provider.fail_refresh_status = 400
    result = await auth.refresh_session()
    assert isinstance(result.error, ProviderError)
    assert auth.get_current_session() is None
    assert auth.login_state(PHONE) == LoginState.IDLE
