import pytest

from tests._client import get_async_client


@pytest.mark.anyio
async def test_error_responses_include_request_id_in_body_and_header():
    async with get_async_client() as client:
        r = await client.get("/this-route-does-not-exist")
    assert r.status_code == 404

    payload = r.json()
    assert payload["error"] == "Not Found"
    assert payload["request_id"], payload
    assert r.headers.get("x-request-id") == payload["request_id"]


@pytest.mark.anyio
async def test_caller_request_id_is_reused():
    async with get_async_client() as client:
        r = await client.get("/this-route-does-not-exist", headers={"X-Request-ID": "req-123"})

    assert r.json()["request_id"] == "req-123"
    assert r.headers.get("x-request-id") == "req-123"

