from datetime import timedelta
import pytest
from jose import jwt
from storefront.auth.session import SessionIssuer
from storefront.common.custom_exceptions import InvalidToken, TokenExpired
from conftest import FakeClock


def test_issued_token_validates_to_identity():
    issuer = SessionIssuer(secret="unit-secret")
    token = issuer.issue("identity-123", "user")
    assert issuer.validate(token) == "identity-123"


def test_token_expires_after_lifetime():
    clock = FakeClock()
    issuer = SessionIssuer(secret="unit-secret", clock=clock)
    token = issuer.issue("identity-123")

    claims = jwt.get_unverified_claims(token)
    assert claims["exp"] - claims["iat"] == int(timedelta(days=5).total_seconds())


def test_expired_token_raises_token_expired():
    issuer = SessionIssuer(secret="unit-secret", lifetime=timedelta(seconds=-1))
    token = issuer.issue("identity-123")

    with pytest.raises(TokenExpired):
        issuer.validate(token)


def test_token_expired_is_an_invalid_token():
    assert issubclass(TokenExpired, InvalidToken)


def test_token_signed_with_other_secret_is_rejected():
    token = SessionIssuer(secret="someone-else").issue("identity-123")
    with pytest.raises(InvalidToken):
        SessionIssuer(secret="unit-secret").validate(token)


@pytest.mark.parametrize("token", [None, "", "abc.def.ghi", "plain"])
def test_malformed_tokens_are_rejected(token):
    with pytest.raises(InvalidToken):
        SessionIssuer(secret="unit-secret").validate(token)


def test_tokens_are_unique_per_issue():
    issuer = SessionIssuer(secret="unit-secret")
    assert issuer.issue("identity-123") != issuer.issue("identity-123")
