"""Bearer-token authentication against Supabase-issued JWTs.

Tokens signed with the project secret (HS256) and tokens signed with the
project's asymmetric key (ES256, published as JWKS) are both accepted. The
``alg`` of the unverified header decides which check runs first.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

import jwt
from fastapi import Header
from jwt import PyJWKClient

from taskproof.core.config import Settings, get_settings
from taskproof.core.errors import InternalError, Unauthorized

logger = logging.getLogger(__name__)

JWKS_PATH = "/auth/v1/.well-known/jwks.json"
JWKS_CACHE_SECONDS = 3600

# One client per JWKS URL for the process lifetime; PyJWKClient caches the keys.
_jwks_clients: dict[str, PyJWKClient] = {}
_jwks_lock = threading.Lock()


@dataclass
class CurrentUser:
    id: str
    email: Optional[str] = None


def _jwks_client(supabase_url: str) -> PyJWKClient:
    url = supabase_url.rstrip("/") + JWKS_PATH
    with _jwks_lock:
        client = _jwks_clients.get(url)
        if client is None:
            client = PyJWKClient(url, cache_keys=True, lifespan=JWKS_CACHE_SECONDS)
            _jwks_clients[url] = client
        return client


def _audience_kwargs(settings: Settings) -> dict[str, Any]:
    audience = (settings.supabase_jwt_audience or "").strip()
    if audience:
        return {"audience": audience, "options": {"verify_aud": True}}
    return {"options": {"verify_aud": False}}


def _verify_with_secret(token: str, settings: Settings) -> Optional[dict]:
    if not settings.supabase_jwt_secret:
        return None
    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            **_audience_kwargs(settings),
        )
    except jwt.InvalidTokenError as exc:
        logger.debug("HS256 verification failed: %s", exc)
        return None


def _verify_with_jwks(token: str, settings: Settings) -> Optional[dict]:
    if not settings.supabase_url:
        return None
    try:
        signing_key = _jwks_client(settings.supabase_url).get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            **_audience_kwargs(settings),
        )
    except (jwt.InvalidTokenError, jwt.PyJWKClientError) as exc:
        logger.debug("ES256 verification failed: %s", exc)
        return None


def authenticate_token(token: str, settings: Settings) -> CurrentUser:
    if not settings.supabase_jwt_secret and not settings.supabase_url:
        raise InternalError("Token verification is not configured")

    try:
        alg = jwt.get_unverified_header(token).get("alg", "")
    except jwt.DecodeError:
        raise Unauthorized("Invalid token")

    if alg == "ES256":
        checks = (_verify_with_jwks, _verify_with_secret)
    else:
        checks = (_verify_with_secret, _verify_with_jwks)

    payload = None
    for check in checks:
        payload = check(token, settings)
        if payload is not None:
            break

    subject = (payload or {}).get("sub")
    if not subject:
        raise Unauthorized("Invalid token")
    return CurrentUser(id=str(subject), email=payload.get("email"))


def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> CurrentUser:
    if not authorization:
        raise Unauthorized("Missing authorization header")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthorized("Missing bearer token")
    return authenticate_token(token, get_settings())
