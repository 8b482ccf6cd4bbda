"""
Session tokens.

A session token is a signed, time-limited JWT naming the identity's public id.
Tokens are stateless: validity is signature plus expiry, there is no server
side revocation list and logout is the client discarding its token.
"""
import secrets
from datetime import timedelta
from typing import Callable, Optional
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from storefront.auth.constants import SESSION_TOKEN_LIFETIME, logger
from storefront.common.custom_exceptions import InvalidToken, TokenExpired
from storefront.common.utils import now
from storefront.config.settings import config_settings


class SessionIssuer:

    def __init__(self, secret: str = config_settings.JWT_SECRET, algorithm: str = config_settings.JWT_ALGO,
                 lifetime: timedelta = SESSION_TOKEN_LIFETIME, clock: Callable = now):
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime
        self.clock = clock

    def issue(self, identity_id: str, role: Optional[str] = None) -> str:
        issued_at = self.clock()
        expires_at = issued_at + self.lifetime
        payload = {
            "sub": str(identity_id),
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": secrets.token_hex(16),
        }
        if role:
            payload["role"] = role
        return jwt.encode(claims=payload, key=self.secret, algorithm=self.algorithm)

    def validate(self, token: Optional[str]) -> str:
        """Return the identity id the token was issued for."""
        if not token:
            raise InvalidToken("Missing session token")
        try:
            claims = jwt.decode(token, key=self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError as e:
            logger.debug("session.token_rejected", extra={"reason": str(e)})
            raise InvalidToken()

        identity_id = claims.get("sub")
        if not identity_id:
            raise InvalidToken()
        return identity_id


session_issuer = SessionIssuer()


def get_session_issuer() -> SessionIssuer:
    return session_issuer
