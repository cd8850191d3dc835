"""User service for registration, authentication and profile management."""

import logging
from typing import Any

from src.core import db_client
from src.core.db_client import DatabaseError, sanitize_param
from src.core.errors import InputValidationError, InvalidTokenError, NotFoundError, UnauthorizedError
from src.core.logging import span
from src.core.security import create_access_token, decode_access_token, hash_password, verify_password
from src.domain.create_models import UserCreate
from src.domain.update_models import PasswordChange, ProfileUpdate
from src.domain.user import User, UserPublic
from src.models.service_models import AuthResult


logger = logging.getLogger(__name__)

COLLECTION = "users"

INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


def _to_user(record: dict[str, Any]) -> User:
    return User(
        id=str(record["id"]),
        name=record["name"],
        email=record["email"],
        password_hash=record["password_hash"],
    )


def to_public(user: User) -> UserPublic:
    return UserPublic(id=user.id, name=user.name, email=user.email)


async def get_user_by_id(*, user_id: str) -> User | None:
    """Get user by ID.

    Args:
        user_id: User's unique ID

    Returns:
        User or None if not found

    Raises:
        db_client.DatabaseError: If database operation fails
    """
    record = await db_client.get_first_record(
        collection=COLLECTION,
        filter_query=f'id = "{sanitize_param(user_id)}"',
    )
    return _to_user(record) if record else None


async def get_user_by_email(*, email: str) -> User | None:
    """Get user by email (compared lower-cased)."""
    record = await db_client.get_first_record(
        collection=COLLECTION,
        filter_query=f'email = "{sanitize_param(email.strip().lower())}"',
    )
    return _to_user(record) if record else None


async def user_exists(*, user_id: str) -> bool:
    return await get_user_by_id(user_id=user_id) is not None


async def register(*, data: UserCreate) -> AuthResult:
    """Create an account and sign the caller in.

    Args:
        data: Validated registration payload

    Returns:
        AuthResult with a bearer token and the public profile

    Raises:
        InputValidationError: If the email is already registered
    """
    with span("user_service.register"):
        if await get_user_by_email(email=data.email):
            logger.warning("Registration rejected, email already registered")
            raise InputValidationError("Email already registered")

        try:
            record = await db_client.create_record(
                collection=COLLECTION,
                data={
                    "name": data.name,
                    "email": data.email,
                    "password_hash": hash_password(data.password),
                },
            )
        except DatabaseError as e:
            # Unique index caught a concurrent registration
            if "constraint" in str(e).lower():
                raise InputValidationError("Email already registered") from e
            raise

        user = _to_user(record)
        logger.info("Registered user %s", user.id)
        return AuthResult(token=create_access_token(user.id), user=to_public(user))


async def login(*, email: str, password: str) -> AuthResult:
    """Authenticate with email and password.

    Unknown emails and wrong passwords fail with the same message.

    Raises:
        InputValidationError: On bad credentials
    """
    with span("user_service.login"):
        user = await get_user_by_email(email=email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            raise InputValidationError(INVALID_CREDENTIALS_MESSAGE)

        logger.info("User %s logged in", user.id)
        return AuthResult(token=create_access_token(user.id), user=to_public(user))


async def resolve_token(*, token: str) -> User:
    """Resolve a bearer token to its user.

    Raises:
        InvalidTokenError: If the token is tampered with or expired
        UnauthorizedError: If the token's user no longer exists
    """
    user_id = decode_access_token(token)
    if user_id is None:
        raise InvalidTokenError

    user = await get_user_by_id(user_id=user_id)
    if user is None:
        logger.warning("Token references unknown user %s", user_id)
        raise UnauthorizedError("User not found for token")
    return user


async def update_profile(*, user_id: str, data: ProfileUpdate) -> UserPublic:
    """Update name and email.

    Raises:
        InputValidationError: If the email belongs to another account
        NotFoundError: If the user does not exist
    """
    with span("user_service.update_profile"):
        existing = await get_user_by_email(email=data.email)
        if existing and existing.id != user_id:
            logger.warning("Profile update rejected, email in use", extra={"user_id": user_id})
            raise InputValidationError("Email already in use")

        if not await user_exists(user_id=user_id):
            raise NotFoundError("User not found")

        try:
            record = await db_client.update_record(
                collection=COLLECTION,
                record_id=user_id,
                data={"name": data.name, "email": data.email},
            )
        except DatabaseError as e:
            if "constraint" in str(e).lower():
                raise InputValidationError("Email already in use") from e
            raise

        logger.info("Updated profile for user %s", user_id)
        return to_public(_to_user(record))


async def change_password(*, user_id: str, data: PasswordChange) -> None:
    """Replace the password hash after checking the current password.

    Raises:
        InputValidationError: If the current password is wrong
        NotFoundError: If the user does not exist
    """
    with span("user_service.change_password"):
        user = await get_user_by_id(user_id=user_id)
        if user is None:
            raise NotFoundError("User not found")

        if not verify_password(data.current_password, user.password_hash):
            logger.info("Password change rejected for user %s", user_id)
            raise InputValidationError("Current password is incorrect")

        await db_client.update_record(
            collection=COLLECTION,
            record_id=user_id,
            data={"password_hash": hash_password(data.new_password)},
        )
        logger.info("Changed password for user %s", user_id)
