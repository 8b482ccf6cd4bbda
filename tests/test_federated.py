import httpx
import pytest
from conftest import auth_headers, register, url_prefix
from storefront.auth.federated import ExternalProfile, TokenInfoVerifier, get_federated_verifier
from storefront.common.custom_exceptions import ExternalProviderError, InvalidCredentials
from storefront.main import app

CLIENT_ID = "storefront-test-client"


def tokeninfo_transport(status_code=200, **claims):
    body = {"aud": CLIENT_ID, "sub": "g-1001", "email": "asha@example.com", "email_verified": "true", "name": "Asha"}
    body.update(claims)

    def handler(request):
        assert request.url.params["id_token"] == "id-token"
        return httpx.Response(status_code, json=body)
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_tokeninfo_verifier_accepts_valid_token():
    verifier = TokenInfoVerifier(tokeninfo_url="https://idp.test/tokeninfo", client_id=CLIENT_ID,
                                 transport=tokeninfo_transport())
    profile = await verifier.verify("id-token")
    assert profile == ExternalProfile(subject="g-1001", email="asha@example.com", name="Asha")


@pytest.mark.asyncio
async def test_tokeninfo_verifier_rejects_other_audience():
    verifier = TokenInfoVerifier(tokeninfo_url="https://idp.test/tokeninfo", client_id=CLIENT_ID,
                                 transport=tokeninfo_transport(aud="someone-else"))
    with pytest.raises(InvalidCredentials):
        await verifier.verify("id-token")


@pytest.mark.asyncio
async def test_tokeninfo_verifier_rejects_unverified_email():
    verifier = TokenInfoVerifier(tokeninfo_url="https://idp.test/tokeninfo", client_id=CLIENT_ID,
                                 transport=tokeninfo_transport(email_verified="false"))
    with pytest.raises(InvalidCredentials):
        await verifier.verify("id-token")


@pytest.mark.asyncio
async def test_tokeninfo_verifier_rejected_token():
    verifier = TokenInfoVerifier(tokeninfo_url="https://idp.test/tokeninfo", client_id=CLIENT_ID,
                                 transport=tokeninfo_transport(status_code=400))
    with pytest.raises(InvalidCredentials):
        await verifier.verify("id-token")


@pytest.mark.asyncio
async def test_tokeninfo_verifier_provider_down():
    def handler(request):
        raise httpx.ConnectError("connection refused")

    verifier = TokenInfoVerifier(tokeninfo_url="https://idp.test/tokeninfo", client_id=CLIENT_ID,
                                 transport=httpx.MockTransport(handler))
    with pytest.raises(ExternalProviderError):
        await verifier.verify("id-token")


class StaticVerifier:
    def __init__(self, profile):
        self.profile = profile

    async def verify(self, token):
        return self.profile


def use_profile(subject, email="asha@example.com", name="Asha"):
    app.dependency_overrides[get_federated_verifier] = lambda: StaticVerifier(ExternalProfile(subject, email, name))


async def federated_login(ac):
    return await ac.post(f"{url_prefix}/users/federated-login", json={"externalToken": "id-token"})


@pytest.mark.asyncio
async def test_federated_login_creates_identity(ac_client):
    use_profile("g-1001")

    resp = await federated_login(ac_client)
    assert resp.status_code == 200

    profile = await ac_client.get(f"{url_prefix}/users/profile", headers=auth_headers(resp.json()["data"]["token"]))
    data = profile.json()["data"]
    assert data["externalId"] == "g-1001"
    assert data["hasPassword"] is False


@pytest.mark.asyncio
async def test_federated_login_is_stable_for_same_subject(ac_client):
    use_profile("g-1001")
    first = await federated_login(ac_client)
    second = await federated_login(ac_client)

    ids = []
    for resp in (first, second):
        profile = await ac_client.get(f"{url_prefix}/users/profile", headers=auth_headers(resp.json()["data"]["token"]))
        ids.append(profile.json()["data"]["id"])
    assert ids[0] == ids[1]


@pytest.mark.asyncio
async def test_federated_login_links_existing_password_identity(ac_client):
    await register(ac_client, "asha@example.com")
    use_profile("g-1001")

    resp = await federated_login(ac_client)
    assert resp.status_code == 200

    profile = await ac_client.get(f"{url_prefix}/users/profile", headers=auth_headers(resp.json()["data"]["token"]))
    data = profile.json()["data"]
    assert data["externalId"] == "g-1001"
    assert data["hasPassword"] is True


@pytest.mark.asyncio
async def test_federated_login_conflicting_subject(ac_client):
    use_profile("g-1001")
    await federated_login(ac_client)

    use_profile("g-2002")
    resp = await federated_login(ac_client)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "EXTERNAL_IDENTITY_CONFLICT"
