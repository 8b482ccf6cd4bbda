from datetime import timedelta
import pytest
from conftest import STRONG_PASSWORD, auth_headers, register, url_prefix
from storefront.auth.session import SessionIssuer


@pytest.mark.asyncio
async def test_login_with_password(ac_client):
    await register(ac_client, "asha@example.com")

    resp = await ac_client.post(f"{url_prefix}/users/login",
                                json={"email": "Asha@Example.com", "password": STRONG_PASSWORD})
    assert resp.status_code == 200
    token = resp.json()["data"]["token"]

    profile = await ac_client.get(f"{url_prefix}/users/profile", headers=auth_headers(token))
    assert profile.status_code == 200
    assert profile.json()["data"]["email"] == "asha@example.com"


@pytest.mark.asyncio
async def test_login_wrong_password(ac_client):
    await register(ac_client, "asha@example.com")

    resp = await ac_client.post(f"{url_prefix}/users/login",
                                json={"email": "asha@example.com", "password": "Wrong#Pass1"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_unknown_email_gives_same_error(ac_client):
    resp = await ac_client.post(f"{url_prefix}/users/login",
                                json={"email": "ghost@example.com", "password": STRONG_PASSWORD})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_login_rejected_for_identity_without_password(ac_client, otp_channel):
    await ac_client.post(f"{url_prefix}/users/send-otp", json={"email": "otp.only@example.com"})
    code = otp_channel.last_code("otp.only@example.com")
    resp = await ac_client.post(f"{url_prefix}/users/verify-otp",
                                json={"email": "otp.only@example.com", "otp": code, "name": "Otp Only"})
    assert resp.status_code == 200

    resp = await ac_client.post(f"{url_prefix}/users/login",
                                json={"email": "otp.only@example.com", "password": STRONG_PASSWORD})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"


@pytest.mark.asyncio
async def test_profile_requires_session_header(ac_client):
    resp = await ac_client.get(f"{url_prefix}/users/profile")
    assert resp.status_code == 401
    assert resp.json()["status"] == "error"


@pytest.mark.asyncio
async def test_profile_rejects_garbage_token(ac_client):
    resp = await ac_client.get(f"{url_prefix}/users/profile", headers=auth_headers("not-a-jwt"))
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_profile_rejects_expired_token(ac_client):
    token = await register(ac_client, "asha@example.com")
    profile = await ac_client.get(f"{url_prefix}/users/profile", headers=auth_headers(token))
    identity_id = profile.json()["data"]["id"]

    expired = SessionIssuer(lifetime=timedelta(seconds=-5)).issue(identity_id)
    resp = await ac_client.get(f"{url_prefix}/users/profile", headers=auth_headers(expired))

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "TOKEN_EXPIRED"


@pytest.mark.asyncio
async def test_token_for_unknown_identity_is_rejected(ac_client):
    token = SessionIssuer().issue("0190c1b2-6d3e-7a4f-8b21-9f0e2d3c4b5a")
    resp = await ac_client.get(f"{url_prefix}/users/profile", headers=auth_headers(token))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_health_is_public(ac_client):
    resp = await ac_client.get(f"{url_prefix}/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "healthy"
    assert resp.headers.get("X-Request-ID")


@pytest.mark.asyncio
async def test_login_normalises_email_like_registration(ac_client):
    # decomposed "é" at registration, precomposed at login
    await register(ac_client, "jose\u0301@example.com")

    resp = await ac_client.post(f"{url_prefix}/users/login",
                                json={"email": " JOS\u00c9@Example.com ", "password": STRONG_PASSWORD})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_login_with_malformed_email_is_invalid_credentials(ac_client):
    resp = await ac_client.post(f"{url_prefix}/users/login",
                                json={"email": "not-an-email", "password": STRONG_PASSWORD})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"
