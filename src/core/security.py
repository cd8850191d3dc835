"""Password hashing and bearer token signing."""

import base64
import hashlib
import hmac
import logging
import secrets

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import constants, settings


logger = logging.getLogger(__name__)

_HASH_ALGORITHM = "pbkdf2_sha256"

token_serializer = URLSafeTimedSerializer(settings.get_secret_key(), salt="tarefas-auth-token")


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(encoded: str) -> bytes:
    padding = "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(encoded + padding)


def hash_password(password: str) -> str:
    """Hash a password as `pbkdf2_sha256$iterations$salt$digest`."""
    salt = secrets.token_bytes(constants.PASSWORD_SALT_BYTES)
    iterations = constants.PASSWORD_HASH_ITERATIONS
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{_HASH_ALGORITHM}${iterations}${_b64encode(salt)}${_b64encode(digest)}"


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash in constant time."""
    try:
        algorithm, iterations_str, salt_b64, digest_b64 = password_hash.split("$")
        iterations = int(iterations_str)
        salt = _b64decode(salt_b64)
        expected = _b64decode(digest_b64)
    except (ValueError, TypeError):
        logger.warning("Malformed password hash")
        return False

    if algorithm != _HASH_ALGORITHM:
        logger.warning("Unsupported password hash algorithm: %s", algorithm)
        return False

    candidate = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(candidate, expected)


def create_access_token(user_id: str) -> str:
    """Sign a bearer token carrying the user id."""
    return token_serializer.dumps({"user_id": user_id})


def decode_access_token(token: str) -> str | None:
    """Return the user id carried by a valid token, or None if tampered with or expired."""
    try:
        payload = token_serializer.loads(token, max_age=settings.token_max_age_seconds)
    except SignatureExpired:
        logger.info("auth_token_expired")
        return None
    except BadSignature:
        logger.warning("auth_token_invalid_signature")
        return None

    user_id = payload.get("user_id") if isinstance(payload, dict) else None
    return str(user_id) if user_id else None
