"""
JWT Authentication for the management API.

Validates bearer tokens and turns their claims into the SecurityUser that
every use case runs as. HMAC secrets (HS*) and PEM public keys (RS*, ES*,
PS*) are both supported.

Claims:
    sub          user id (required)
    scopes       authority, a string or a list; the first known value wins
    tenant_id    required except for SYS_ADMIN, who gets the nil tenant
    customer_id  required for CUSTOMER_USER

Environment Variables:
- JWT_SECRET / JWT_PUBLIC_KEY: Verification key (PEM text or a file path)
- JWT_ALGORITHM: Algorithm to use (default: HS256)
- JWT_ISSUER / JWT_AUDIENCE: Expected iss / aud claims (optional)
- JWT_CLOCK_SKEW_SECONDS: Leeway for exp / nbf (default: 30)
- JWT_TENANT_ID_CLAIM / JWT_USER_ID_CLAIM / JWT_CUSTOMER_ID_CLAIM /
  JWT_AUTHORITY_CLAIM: Claim names
- REQUIRE_AUTH: "false" runs every request as a tenant admin of DEV_TENANT_ID
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional, Union
from uuid import UUID

import jwt
from fastapi import Depends, Header, HTTPException, status
from pydantic import BaseModel

from .security import NULL_UUID, Authority, SecurityUser

logger = logging.getLogger(__name__)

_HMAC_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})
_KEY_ALGORITHMS = frozenset({
    "RS256", "RS384", "RS512",
    "ES256", "ES384", "ES512",
    "PS256", "PS384", "PS512",
})


class JWTConfig:
    """JWT configuration from environment variables."""

    SECRET: Optional[str] = os.getenv("JWT_SECRET")
    PUBLIC_KEY: Optional[str] = os.getenv("JWT_PUBLIC_KEY")
    ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ISSUER: Optional[str] = os.getenv("JWT_ISSUER")
    AUDIENCE: Optional[str] = os.getenv("JWT_AUDIENCE")
    REQUIRE_AUTH: bool = os.getenv("REQUIRE_AUTH", "true").lower() == "true"
    CLOCK_SKEW_SECONDS: int = int(os.getenv("JWT_CLOCK_SKEW_SECONDS", "30"))

    TENANT_ID_CLAIM: str = os.getenv("JWT_TENANT_ID_CLAIM", "tenant_id")
    USER_ID_CLAIM: str = os.getenv("JWT_USER_ID_CLAIM", "sub")
    CUSTOMER_ID_CLAIM: str = os.getenv("JWT_CUSTOMER_ID_CLAIM", "customer_id")
    AUTHORITY_CLAIM: str = os.getenv("JWT_AUTHORITY_CLAIM", "scopes")

    DEV_TENANT_ID: str = os.getenv("DEV_TENANT_ID", str(NULL_UUID))

    _pem_cache: Optional[str] = None

    @classmethod
    def validate_algorithm(cls) -> str:
        """Return the configured algorithm, upper-cased.

        Raises:
            ValueError: For 'none' or anything outside the HS/RS/ES/PS families
        """
        alg = cls.ALGORITHM.upper()
        if alg not in _HMAC_ALGORITHMS | _KEY_ALGORITHMS:
            raise ValueError(f"JWT algorithm '{cls.ALGORITHM}' is not allowed")
        return alg

    @classmethod
    def get_verification_key(cls) -> str:
        """The HMAC secret or the PEM public key matching the algorithm.

        Raises:
            ValueError: If the matching key is not configured
        """
        if cls.ALGORITHM.upper() in _HMAC_ALGORITHMS:
            if not cls.SECRET:
                raise ValueError(f"JWT_SECRET required for {cls.ALGORITHM}")
            return cls.SECRET

        if cls._pem_cache is None:
            if not cls.PUBLIC_KEY:
                raise ValueError(f"JWT_PUBLIC_KEY required for {cls.ALGORITHM}")
            pem = cls.PUBLIC_KEY
            if os.path.isfile(pem):
                logger.info(f"Loading JWT public key from {pem}")
                with open(pem, "r") as f:
                    pem = f.read()
            if not pem.lstrip().startswith("-----BEGIN"):
                raise ValueError("JWT_PUBLIC_KEY must be a PEM key")
            cls._pem_cache = pem
        return cls._pem_cache


class TokenPayload(BaseModel):
    """Claims of a validated token, normalized to the configured names."""

    user_id: str
    tenant_id: str
    authority: Authority
    customer_id: Optional[str] = None

    iss: Optional[str] = None
    aud: Optional[Union[str, list[str]]] = None
    exp: Optional[int] = None
    iat: Optional[int] = None


class AuthenticationError(HTTPException):
    """401 with a Bearer challenge."""

    def __init__(self, detail: str, headers: Optional[dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers=headers or {"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(HTTPException):
    """403 raised by authority gates."""

    def __init__(self, detail: str = "You don't have permission to perform this operation!"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _verification_settings() -> tuple[str, str]:
    """Algorithm and key, or a 500 when the server is misconfigured."""
    try:
        return JWTConfig.validate_algorithm(), JWTConfig.get_verification_key()
    except ValueError as e:
        logger.error(f"JWT configuration error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server authentication not configured",
        )


def _extract_token(authorization: str) -> str:
    """Return the token of a 'Bearer <token>' header."""
    if not authorization:
        raise AuthenticationError("Authorization header required")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token.strip():
        raise AuthenticationError(
            "Invalid authorization header format. Expected: Bearer <token>"
        )
    return token.strip()


def _extract_authority(value: Any) -> Optional[Authority]:
    """Pick the first known authority from a string or list claim."""
    candidates = value if isinstance(value, (list, tuple)) else [value]
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.upper() in Authority.__members__:
            return Authority[candidate.upper()]
    return None


def _missing_claim(claim: str) -> AuthenticationError:
    logger.warning(f"Token rejected: missing {claim} claim")
    return AuthenticationError(f"Token missing required claim: {claim}")


def _decode(token: str) -> dict:
    algorithm, key = _verification_settings()
    try:
        return jwt.decode(
            token,
            key,
            algorithms=[algorithm],
            issuer=JWTConfig.ISSUER,
            audience=JWTConfig.AUDIENCE,
            leeway=JWTConfig.CLOCK_SKEW_SECONDS,
            options={
                "require": ["exp"],
                "verify_aud": bool(JWTConfig.AUDIENCE),
            },
        )
    except jwt.ExpiredSignatureError:
        logger.warning("JWT expired")
        raise AuthenticationError("Token has expired")
    except jwt.ImmatureSignatureError as e:
        raise AuthenticationError(f"Token not yet valid: {e}")
    except (jwt.InvalidAudienceError, jwt.InvalidIssuerError) as e:
        logger.warning(f"JWT claim error: {e}")
        raise AuthenticationError(f"Invalid token claims: {e}")
    except jwt.InvalidTokenError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise AuthenticationError("Invalid token")


def _validate_token(token: str) -> TokenPayload:
    """Verify the token and map its claims.

    Raises:
        AuthenticationError: If the token is invalid or misses a claim its
            authority requires
    """
    claims = _decode(token)

    user_id = claims.get(JWTConfig.USER_ID_CLAIM)
    if not user_id:
        raise _missing_claim(JWTConfig.USER_ID_CLAIM)

    authority = _extract_authority(claims.get(JWTConfig.AUTHORITY_CLAIM))
    if authority is None:
        raise _missing_claim(JWTConfig.AUTHORITY_CLAIM)

    tenant_id = claims.get(JWTConfig.TENANT_ID_CLAIM)
    if not tenant_id:
        if authority != Authority.SYS_ADMIN:
            raise _missing_claim(JWTConfig.TENANT_ID_CLAIM)
        tenant_id = NULL_UUID

    customer_id = claims.get(JWTConfig.CUSTOMER_ID_CLAIM)
    if authority == Authority.CUSTOMER_USER and not customer_id:
        raise _missing_claim(JWTConfig.CUSTOMER_ID_CLAIM)

    return TokenPayload(
        user_id=str(user_id),
        tenant_id=str(tenant_id),
        authority=authority,
        customer_id=str(customer_id) if customer_id else None,
        iss=claims.get("iss"),
        aud=claims.get("aud"),
        exp=claims.get("exp"),
        iat=claims.get("iat"),
    )


async def validate_jwt_token(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> TokenPayload:
    """FastAPI dependency for JWT validation."""
    if not JWTConfig.REQUIRE_AUTH:
        logger.debug("REQUIRE_AUTH=false, using dev tenant admin")
        return TokenPayload(
            user_id="dev-user",
            tenant_id=JWTConfig.DEV_TENANT_ID,
            authority=Authority.TENANT_ADMIN,
        )

    return _validate_token(_extract_token(authorization))


def _parse_claim_uuid(value: Optional[str], claim: str) -> UUID:
    if not value:
        return NULL_UUID
    try:
        return UUID(value)
    except ValueError:
        logger.warning(f"Claim {claim} is not a UUID: {value!r}")
        raise AuthenticationError(f"Invalid token claim: {claim}")


def get_current_user(
    token_payload: TokenPayload = Depends(validate_jwt_token),
) -> SecurityUser:
    """Build the SecurityUser from a validated JWT."""
    return SecurityUser(
        user_id=token_payload.user_id,
        tenant_id=_parse_claim_uuid(token_payload.tenant_id, JWTConfig.TENANT_ID_CLAIM),
        authority=token_payload.authority,
        customer_id=_parse_claim_uuid(token_payload.customer_id, JWTConfig.CUSTOMER_ID_CLAIM),
    )


def require_authority(*authorities: Authority):
    """Dependency factory gating an endpoint on the caller's authority.

    Example:
        @router.post("/dashboard")
        async def save(user: SecurityUser = Depends(require_authority(Authority.TENANT_ADMIN))):
            ...
    """
    allowed = frozenset(authorities)

    def dependency(user: SecurityUser = Depends(get_current_user)) -> SecurityUser:
        if user.authority not in allowed:
            logger.info(f"User {user.user_id} with {user.authority.value} denied by authority gate")
            raise AuthorizationError()
        return user

    return dependency
