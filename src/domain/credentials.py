"""
Credential service - signed access and refresh tokens.

Access tokens carry the account id and role; refresh tokens carry only the
account id and are signed with a separate secret. Both include a random
``jti`` so two tokens issued in the same second are still distinct, which
matters for the exact-match refresh-token list kept on each vendor.

Verification failures of any sort surface as Unauthorized with a single
message. The underlying reason is logged, never returned.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import jwt

from .exceptions import Unauthorized
from .models import Principal, PrincipalKind, TokenPair
from .ports import Clock, SystemClock

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass
class CredentialService:
    access_secret: str
    refresh_secret: str
    access_ttl: timedelta = timedelta(hours=24)
    refresh_ttl: timedelta = timedelta(days=30)
    algorithm: str = "HS256"
    issuer: str = "clinickart-api"
    audience: str = "clinickart-users"
    clock: Clock = field(default_factory=SystemClock)

    def issue_access_token(self, account_id: str, role: PrincipalKind) -> str:
        return self._encode(
            {"id": account_id, "role": PrincipalKind(role).value, "type": ACCESS},
            self.access_secret,
            self.access_ttl,
        )

    def issue_refresh_token(self, account_id: str) -> str:
        return self._encode(
            {"id": account_id, "type": REFRESH}, self.refresh_secret, self.refresh_ttl
        )

    def issue_pair(self, account_id: str, role: PrincipalKind) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(account_id, role),
            refresh_token=self.issue_refresh_token(account_id),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def verify_access_token(self, token: str) -> Principal:
        """
        Decode an access token into the calling principal.

        Raises:
            Unauthorized: Bad signature, expired, malformed, wrong token type
                or unknown role
        """
        claims = self._decode(token, self.access_secret, ACCESS)
        try:
            kind = PrincipalKind(claims.get("role"))
        except ValueError:
            logger.info("Token rejected: unknown role %r", claims.get("role"))
            raise Unauthorized() from None
        return Principal(kind=kind, id=claims["id"], claims=claims)

    def verify_refresh_token(self, token: str) -> str:
        """
        Decode a refresh token.

        Returns:
            The account id it was issued for

        Raises:
            Unauthorized: For any verification failure
        """
        claims = self._decode(token, self.refresh_secret, REFRESH)
        return claims["id"]

    def _encode(self, payload: dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = self.clock.now()
        claims = {
            **payload,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + ttl,
            "iss": self.issuer,
            "aud": self.audience,
        }
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def _decode(self, token: str, secret: str, token_type: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "id", "type"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Token rejected: expired")
            raise Unauthorized() from None
        except jwt.PyJWTError as e:
            logger.info("Token rejected: %s", e)
            raise Unauthorized() from None

        if claims.get("type") != token_type:
            logger.info("Token rejected: expected %s token, got %r", token_type, claims.get("type"))
            raise Unauthorized()
        return claims
