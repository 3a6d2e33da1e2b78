"""Tests for rate limit key resolution."""

from starlette.requests import Request

from ratelimiter.services.key_resolver import KeyType, RateLimitKey, resolve_key


def _request(headers: dict[str, str] | None = None, client: tuple[str, int] | None = ("127.0.0.1", 8080)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_token_header_wins_over_client_address() -> None:
    key = resolve_key(_request({"API_KEY": "test_api_key"}))

    assert key == RateLimitKey(identity="test_api_key", key_type=KeyType.TOKEN)


def test_falls_back_to_client_address() -> None:
    key = resolve_key(_request())

    assert key.identity == "127.0.0.1"
    assert key.key_type is KeyType.IP


def test_empty_token_header_falls_back_to_ip() -> None:
    key = resolve_key(_request({"API_KEY": ""}))

    assert key.key_type is KeyType.IP


def test_custom_token_header() -> None:
    request = _request({"X-API-Key": "abc", "API_KEY": "ignored"})

    key = resolve_key(request, token_header="X-API-Key")

    assert key.identity == "abc"


def test_missing_client_uses_placeholder() -> None:
    key = resolve_key(_request(client=None))

    assert key == RateLimitKey(identity="unknown", key_type=KeyType.IP)


def test_storage_keys_are_namespaced_by_type() -> None:
    ip_key = RateLimitKey(identity="same", key_type=KeyType.IP)
    token_key = RateLimitKey(identity="same", key_type=KeyType.TOKEN)

    assert ip_key.storage_key == "ip:same"
    assert token_key.storage_key == "api_key:same"
    assert ip_key.storage_key != token_key.storage_key
