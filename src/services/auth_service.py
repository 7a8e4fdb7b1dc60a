"""Bearer token issuance and verification."""

import logging

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import settings


logger = logging.getLogger(__name__)

_TOKEN_SALT = "access-token"


class InvalidTokenError(Exception):
    """Raised when a bearer token is malformed, tampered with, or expired."""


def _get_serializer() -> URLSafeTimedSerializer:
    secret = settings.require_credential("secret_key", "Token signing")
    return URLSafeTimedSerializer(secret, salt=_TOKEN_SALT)


def issue_access_token(user_id: str) -> str:
    """Sign a token identifying ``user_id``."""
    if not user_id:
        raise ValueError("user_id must not be empty")
    return _get_serializer().dumps({"sub": user_id})


def verify_access_token(token: str, *, max_age: int | None = None) -> str:
    """Return the user id carried by a valid token.

    Raises:
        InvalidTokenError: If the token is tampered with, expired, or has no subject
    """
    age = max_age if max_age is not None else settings.token_max_age_seconds
    try:
        payload = _get_serializer().loads(token, max_age=age)
    except SignatureExpired as e:
        logger.warning("access_token_expired")
        raise InvalidTokenError("Token expired") from e
    except BadSignature as e:
        logger.warning("access_token_invalid")
        raise InvalidTokenError("Invalid token") from e

    user_id = payload.get("sub") if isinstance(payload, dict) else None
    if not isinstance(user_id, str) or not user_id:
        raise InvalidTokenError("Token has no subject")
    return user_id
