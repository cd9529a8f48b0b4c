"""
JWT validation and employee lookup for Supabase Auth.
Supports both HS256 (legacy) and ES256 (JWKS) token verification.
"""

import base64
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any
import jwt
from jwt import PyJWKClient
import azure.functions as func
from .config import Settings, get_settings
from .errors import AuthenticationError
from .supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

# Cache the JWKS client to avoid repeated fetches
_jwks_client: Optional[PyJWKClient] = None


@dataclass
class AuthContext:
    """Authenticated caller: the employee row plus the raw bearer token."""

    employee: Dict[str, Any]
    auth_token: str


def get_jwks_client(settings: Settings) -> PyJWKClient:
    """
    Get or create the JWKS client for Supabase token verification.
    Uses the Supabase JWKS endpoint for ES256 token verification.
    """
    global _jwks_client
    if _jwks_client is None:
        settings.require("supabase_url")
        jwks_url = f"{settings.supabase_url.rstrip('/')}/auth/v1/.well-known/jwks.json"
        logger.info(f"Initializing JWKS client with URL: {jwks_url}")
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True)
    return _jwks_client


def extract_bearer_token(req: func.HttpRequest) -> str:
    """
    Read the bearer token from the Authorization header.

    Raises:
        AuthenticationError: If the header is missing or malformed
    """
    auth_header = req.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer ") or not auth_header[7:].strip():
        raise AuthenticationError("ไม่พบข้อมูลการยืนยันตัวตน")

    return auth_header[7:].strip()


def verify_token(token: str, settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Verify a Supabase access token and return its claims.

    Args:
        token: Raw JWT
        settings: Settings carrying the JWT secret / Supabase URL

    Returns:
        Decoded JWT payload

    Raises:
        AuthenticationError: If the token is expired or invalid
    """
    settings = settings or get_settings()

    try:
        try:
            token_alg = jwt.get_unverified_header(token).get("alg")
        except jwt.exceptions.DecodeError as e:
            logger.warning(f"Could not read token header: {e}")
            raise AuthenticationError("Invalid token format")

        if token_alg == "ES256":
            payload = _verify_es256_token(token, settings)
        elif token_alg == "HS256":
            payload = _verify_hs256_token(token, settings)
        else:
            logger.error(f"Unsupported algorithm: {token_alg}")
            raise AuthenticationError(f"Unsupported token algorithm: {token_alg}")

        return payload

    except AuthenticationError:
        raise
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        raise AuthenticationError("Session หมดอายุกรุณาเข้าใช้งานใหม่")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {str(e)}")
        raise AuthenticationError("Session หมดอายุกรุณาเข้าใช้งานใหม่")
    except Exception as e:
        logger.error(f"Token verification error: {str(e)}")
        raise AuthenticationError("Token verification failed")


_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_aud": True,
    "verify_exp": True,
    "require": ["sub", "exp", "aud"]
}


def _verify_es256_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Verify an ES256 token using JWKS."""
    signing_key = get_jwks_client(settings).get_signing_key_from_jwt(token)

    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["ES256"],
        audience="authenticated",
        options=_DECODE_OPTIONS
    )


def _verify_hs256_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Verify an HS256 token using the static JWT secret (legacy)."""
    settings.require("supabase_jwt_secret")
    secret = settings.supabase_jwt_secret

    # Handle base64-encoded secrets
    try:
        if secret.endswith("="):
            jwt_secret = base64.b64decode(secret)
        else:
            jwt_secret = secret.encode("utf-8")
    except ValueError:
        jwt_secret = secret.encode("utf-8")

    return jwt.decode(
        token,
        jwt_secret,
        algorithms=["HS256"],
        audience="authenticated",
        options=_DECODE_OPTIONS
    )


def load_employee(auth_user_id: str, client=None) -> Dict[str, Any]:
    """
    Load the active employee linked to an auth user, with role data.

    Raises:
        AuthenticationError: If no active employee is linked
    """
    client = client or get_supabase_client()

    result = client.table("v_employees") \
        .select("*") \
        .eq("auth_user_id", auth_user_id) \
        .eq("is_active", True) \
        .limit(1) \
        .execute()

    if not result.data:
        raise AuthenticationError("ไม่พบข้อมูลพนักงาน")

    employee = dict(result.data[0])
    employee["role_data"] = {
        "id": employee.get("role_id"),
        "code": employee.get("role_code"),
        "name_th": employee.get("role_name_th"),
        "level": employee.get("role_level"),
    }
    return employee


async def authenticate(
    req: func.HttpRequest,
    settings: Optional[Settings] = None,
    client=None
) -> AuthContext:
    """
    Authenticate a request: verify the bearer token and load the employee.

    Args:
        req: The HTTP request object
        settings: Optional settings override
        client: Optional Supabase client override

    Returns:
        AuthContext with the employee row and token

    Raises:
        AuthenticationError: If the token is missing or invalid, or no employee matches
    """
    token = extract_bearer_token(req)
    payload = verify_token(token, settings)

    employee = load_employee(payload["sub"], client)
    logger.info(f"Authenticated employee {employee.get('id')} (level {employee['role_data']['level']})")

    return AuthContext(employee=employee, auth_token=token)
