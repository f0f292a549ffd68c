import asyncio

from portal.config import Settings
from portal.services.auth_service import AuthSession, SessionManager, SessionState
from portal.services.snapshots import PROFILE_KEY, SnapshotStore
from portal.services.supa import Gateway
from tests.conftest import STAFF_EMAIL, STAFF_PASSWORD


def sign_in(context, email=STAFF_EMAIL, password=STAFF_PASSWORD):
    return asyncio.run(context.sessions.sign_in(email, password))


def test_blank_credentials_are_rejected_locally(context, fake):
    fake.auth.sign_in_error = RuntimeError("must not be called")

    result = sign_in(context, email="  ", password="")

    assert not result.ok
    assert result.error == "Please enter email and password"


def test_wrong_password_shows_backend_message(context):
    result = sign_in(context, password="nope")

    assert not result.ok
    assert result.error == "Invalid login credentials"


def test_unexpected_error_during_login(context, fake):
    fake.auth.sign_in_error = RuntimeError("socket closed")

    result = sign_in(context)

    assert result.error == "Unexpected error during login"


def test_login_without_backend():
    settings = Settings(supabase_url=None, supabase_key=None, secret_key="secret")
    manager = SessionManager(Gateway(settings), SnapshotStore(), settings)

    result = asyncio.run(manager.sign_in(STAFF_EMAIL, STAFF_PASSWORD))

    assert result.error == "Database not connected"


def test_successful_login(context):
    result = sign_in(context)

    assert result.ok
    assert result.session.user_id == "user-staff"
    assert result.session.email == STAFF_EMAIL
    assert result.session.sid


def test_sign_in_leaves_data_client_on_service_role(context, fake):
    sign_in(context)
    sign_in(context)

    assert fake.headers["Authorization"] == "Bearer service-role-key"
    assert fake.auth.signed_in == []
    assert fake.auth_client.signed_in == [STAFF_EMAIL, STAFF_EMAIL]


def test_refresh_leaves_data_client_on_service_role(context, fake):
    session = sign_in(context).session
    fake.auth.expire(session.access_token)

    check = asyncio.run(context.sessions.check(context.sessions.issue_token(session)))

    assert check.refreshed
    assert fake.headers["Authorization"] == "Bearer service-role-key"
    assert fake.auth.refreshed == []
    assert fake.auth_client.refreshed == [session.refresh_token]


def test_cookie_token_round_trip(context):
    session = sign_in(context).session
    token = context.sessions.issue_token(session)

    assert context.sessions.read_token(token) == session
    assert context.sessions.read_token(token[:-2] + "xx") is None
    assert context.sessions.read_token("garbage") is None
    assert context.sessions.read_token(None) is None


def test_check_valid_session(context):
    token = context.sessions.issue_token(sign_in(context).session)

    check = asyncio.run(context.sessions.check(token))

    assert check.state is SessionState.AUTHENTICATED
    assert not check.refreshed
    assert check.session.user_id == "user-staff"


def test_check_refreshes_expired_access_token(context, fake):
    session = sign_in(context).session
    fake.auth.expire(session.access_token)

    check = asyncio.run(context.sessions.check(context.sessions.issue_token(session)))

    assert check.state is SessionState.AUTHENTICATED
    assert check.refreshed
    assert check.session.sid == session.sid
    assert check.session.access_token != session.access_token


def test_check_fails_when_refresh_fails(context, fake):
    session = sign_in(context).session
    fake.auth.expire(session.access_token)
    fake.auth.refresh_tokens.clear()

    check = asyncio.run(context.sessions.check(context.sessions.issue_token(session)))

    assert check.state is SessionState.UNAUTHENTICATED
    assert not check.authenticated


def test_check_without_cookie(context):
    assert asyncio.run(context.sessions.check(None)).state is SessionState.UNAUTHENTICATED


def test_sign_out_purges_snapshots_even_when_server_fails(context, fake):
    session = sign_in(context).session
    context.snapshots.set(session.sid, PROFILE_KEY, {"display_name": "Morgan"})
    fake.auth.admin.error = RuntimeError("network down")

    asyncio.run(context.sessions.sign_out(session))

    assert fake.auth.admin.signed_out == [session.access_token]
    assert not context.snapshots.has_session(session.sid)


def test_concurrent_sign_out_calls_server_once(context, fake):
    session = sign_in(context).session

    async def scenario():
        await asyncio.gather(context.sessions.sign_out(session), context.sessions.sign_out(session))

    asyncio.run(scenario())

    assert fake.auth.admin.signed_out == [session.access_token]


def test_sign_out_without_session_is_a_no_op(context, fake):
    asyncio.run(context.sessions.sign_out(None))

    assert fake.auth.admin.signed_out == []


def test_session_payload_rejects_incomplete_data():
    assert AuthSession.from_payload({"sid": "abc"}) is None
    assert AuthSession.from_payload("not a dict") is None
