"""JWT access/refresh token codec."""

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Protocol

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from app.core.config import Settings, settings as default_settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
BEARER = "Bearer"

# Time claims every accepted token must carry
REQUIRED_TIME_CLAIMS = ("exp", "iat", "nbf")


class TokenErrorKind(str, Enum):
    MALFORMED = "MALFORMED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    EXPIRED = "EXPIRED"
    WRONG_TYPE = "WRONG_TYPE"
    WRONG_ISSUER = "WRONG_ISSUER"
    WRONG_AUDIENCE = "WRONG_AUDIENCE"


class TokenValidationError(Exception):
    """A presented token was rejected. Callers map every kind to a generic 401."""

    def __init__(self, kind: TokenErrorKind, message: str | None = None) -> None:
        self.kind = kind
        super().__init__(message or kind.value)


class TokenSubject(Protocol):
    id: uuid.UUID
    username: str


@dataclass(frozen=True)
class TokenClaims:
    user_id: uuid.UUID
    username: str
    token_id: str
    type: str
    issued_at: datetime | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_id: str
    expires_in: int
    token_type: str = BEARER


class TokenCodec:
    """
    Issues and validates signed access and refresh tokens.

    Access and refresh tokens are signed with different secrets so that a
    token of one kind never verifies as the other.
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        issuer: str,
        audience: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
    ) -> None:
        if access_secret == refresh_secret:
            raise ValueError("access and refresh secrets must differ")
        self._secrets = {ACCESS_TOKEN_TYPE: access_secret, REFRESH_TOKEN_TYPE: refresh_secret}
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TokenCodec":
        settings = settings or default_settings
        return cls(
            access_secret=settings.JWT_ACCESS_SECRET_KEY,
            refresh_secret=settings.JWT_REFRESH_SECRET_KEY,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            algorithm=settings.JWT_ALGORITHM,
        )

    def generate_token_pair(self, user: TokenSubject) -> TokenPair:
        """
        Issue an access/refresh pair sharing one fresh token_id.

        Args:
            user: Object exposing ``id`` and ``username``

        Returns:
            Signed token pair
        """
        token_id = secrets.token_hex(16)
        now = datetime.now(timezone.utc)
        access_token = self._encode(user, token_id, ACCESS_TOKEN_TYPE, now, self.access_ttl)
        refresh_token = self._encode(user, token_id, REFRESH_TOKEN_TYPE, now, self.refresh_ttl)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            token_id=token_id,
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def validate_access_token(self, token: str) -> TokenClaims:
        return self._decode(token, ACCESS_TOKEN_TYPE)

    def validate_refresh_token(self, token: str) -> TokenClaims:
        return self._decode(token, REFRESH_TOKEN_TYPE)

    def _encode(
        self,
        user: TokenSubject,
        token_id: str,
        token_type: str,
        now: datetime,
        ttl: timedelta,
    ) -> str:
        claims = {
            "user_id": str(user.id),
            "username": user.username,
            "token_id": token_id,
            "type": token_type,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "nbf": now,
            "exp": now + ttl,
        }
        return jwt.encode(claims, self._secrets[token_type], algorithm=self.algorithm)

    def _decode(self, token: str, expected_type: str) -> TokenClaims:
        try:
            jwt.get_unverified_header(token)
        except JWTError as exc:
            raise TokenValidationError(TokenErrorKind.MALFORMED) from exc

        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise TokenValidationError(TokenErrorKind.MALFORMED) from exc
        missing = [claim for claim in REQUIRED_TIME_CLAIMS if claim not in unverified]
        if missing:
            raise TokenValidationError(TokenErrorKind.MALFORMED, f"missing claims: {', '.join(missing)}")

        try:
            payload = jwt.decode(
                token,
                self._secrets[expected_type],
                algorithms=[self.algorithm],
                options={
                    "verify_aud": False,
                    "verify_iss": False,
                    "require_exp": True,
                    "require_iat": True,
                    "require_nbf": True,
                },
            )
        except (ExpiredSignatureError, JWTClaimsError) as exc:
            raise TokenValidationError(TokenErrorKind.EXPIRED) from exc
        except JWTError as exc:
            raise TokenValidationError(TokenErrorKind.INVALID_SIGNATURE) from exc

        if payload.get("type") != expected_type:
            raise TokenValidationError(TokenErrorKind.WRONG_TYPE)
        if payload.get("iss") != self.issuer:
            raise TokenValidationError(TokenErrorKind.WRONG_ISSUER)
        if not self._audience_matches(payload.get("aud")):
            raise TokenValidationError(TokenErrorKind.WRONG_AUDIENCE)

        return self._extract_claims(payload)

    def _audience_matches(self, audience: Any) -> bool:
        if isinstance(audience, str):
            return audience == self.audience
        if isinstance(audience, list):
            return self.audience in audience
        return False

    @staticmethod
    def _extract_claims(payload: dict[str, Any]) -> TokenClaims:
        raw_user_id = payload.get("user_id")
        username = payload.get("username")
        token_id = payload.get("token_id")

        if not isinstance(raw_user_id, str):
            raise TokenValidationError(TokenErrorKind.MALFORMED, "user_id claim missing")
        try:
            user_id = uuid.UUID(raw_user_id)
        except ValueError as exc:
            raise TokenValidationError(TokenErrorKind.MALFORMED, "user_id claim is not a UUID") from exc
        if not isinstance(username, str) or not username:
            raise TokenValidationError(TokenErrorKind.MALFORMED, "username claim missing")
        if not isinstance(token_id, str) or not token_id:
            raise TokenValidationError(TokenErrorKind.MALFORMED, "token_id claim missing")

        return TokenClaims(
            user_id=user_id,
            username=username,
            token_id=token_id,
            type=payload["type"],
            issued_at=_from_timestamp(payload.get("iat")),
            expires_at=_from_timestamp(payload.get("exp")),
        )


def _from_timestamp(value: Any) -> datetime | None:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
    return None
