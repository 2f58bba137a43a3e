"""Service-level behaviour: health, authentication, request tracing and error envelopes."""

import pytest
from jose import jwt
from libs.common.config import get_settings


@pytest.mark.integration
@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "orders"}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_real_token_is_accepted(client, auth_headers):
    response = await client.get("/api/orders", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["items"] == []
    assert body["data"]["total"] == 0


@pytest.mark.integration
@pytest.mark.asyncio
async def test_missing_token_is_rejected(client):
    response = await client.get("/api/orders")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "HTTP_ERROR"
    assert body["message"] == "Could not validate credentials"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_token_signed_with_wrong_secret_is_rejected(client):
    token = jwt.encode(
        {"sub": "1", "role": "customer"},
        "not-the-secret",
        algorithm=get_settings().JWT_ALGORITHM,
    )

    response = await client.post(
        "/api/orders/checkout",
        json={},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 401


@pytest.mark.integration
@pytest.mark.asyncio
async def test_token_without_subject_is_rejected(client):
    token = jwt.encode(
        {"role": "admin"},
        get_settings().JWT_SECRET,
        algorithm=get_settings().JWT_ALGORITHM,
    )

    response = await client.get(
        "/api/admin/orders", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401


@pytest.mark.integration
@pytest.mark.asyncio
async def test_request_id_is_echoed(client, auth_headers):
    response = await client.get(
        "/api/orders/stats",
        headers={**auth_headers, "X-Request-ID": "req-123"},
    )

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_request_id_is_generated(client):
    response = await client.get("/health")

    assert response.headers.get("X-Request-ID")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_invalid_body_uses_error_envelope(client, login):
    login(1)

    response = await client.post(
        "/api/orders/checkout", json={"shipping_address_id": "home"}
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "VALIDATION_ERROR"
    assert "shipping_address_id" in body["message"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_unknown_route(client):
    response = await client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.json()["success"] is False
