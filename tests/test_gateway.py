import asyncio

from supabase import ASupabaseAuthClient

from portal.config import Settings
from portal.services.supa import Gateway, create_auth_client


def make_settings(**overrides):
    values = {"supabase_url": "https://project.supabase.co", "supabase_key": "key", "secret_key": "secret"}
    values.update(overrides)
    return Settings(**values)


def counting_factory(result=None, error=None):
    calls = []

    async def factory(url, key):
        calls.append((url, key))
        await asyncio.sleep(0)
        if error is not None:
            raise error
        return result

    return factory, calls


def test_missing_url_degrades_without_calling_driver():
    factory, calls = counting_factory(result=object())
    gateway = Gateway(make_settings(supabase_url=None), factory)

    assert asyncio.run(gateway.get_client()) is None
    assert calls == []


def test_missing_key_degrades():
    factory, calls = counting_factory(result=object())
    gateway = Gateway(make_settings(supabase_key=None), factory)

    assert asyncio.run(gateway.get_client()) is None
    assert calls == []


def test_concurrent_callers_share_one_client():
    handle = object()
    factory, calls = counting_factory(result=handle)
    gateway = Gateway(make_settings(), factory)

    async def scenario():
        return await asyncio.gather(*(gateway.get_client() for _ in range(5)))

    results = asyncio.run(scenario())

    assert all(result is handle for result in results)
    assert calls == [("https://project.supabase.co", "key")]


def test_driver_error_returns_none_and_is_not_retried():
    factory, calls = counting_factory(error=RuntimeError("bad url"))
    gateway = Gateway(make_settings(), factory)

    async def scenario():
        return await gateway.get_client(), await gateway.get_client()

    assert asyncio.run(scenario()) == (None, None)
    assert len(calls) == 1


def test_reset_builds_a_fresh_client():
    factory, calls = counting_factory(result=object())
    gateway = Gateway(make_settings(), factory)

    asyncio.run(gateway.get_client())
    gateway.reset()
    asyncio.run(gateway.get_client())

    assert len(calls) == 2


def test_auth_client_is_separate_and_cached():
    factory, calls = counting_factory(result=object())
    built = []

    def auth_factory(url, key):
        built.append((url, key))
        return object()

    gateway = Gateway(make_settings(), factory, auth_factory)

    first = gateway.get_auth_client()
    assert gateway.get_auth_client() is first
    assert first is not asyncio.run(gateway.get_client())
    assert built == [("https://project.supabase.co", "key")]


def test_auth_client_missing_configuration_or_driver_error():
    def broken(url, key):
        raise RuntimeError("bad url")

    assert Gateway(make_settings(supabase_key=None)).get_auth_client() is None
    assert Gateway(make_settings(), auth_factory=broken).get_auth_client() is None


def test_default_auth_client_keeps_no_session():
    auth = create_auth_client("https://project.supabase.co/", "service-role-key")

    assert isinstance(auth, ASupabaseAuthClient)
    assert auth._url == "https://project.supabase.co/auth/v1"
    assert auth._headers["Authorization"] == "Bearer service-role-key"
    assert auth._persist_session is False
    assert auth._auto_refresh_token is False
