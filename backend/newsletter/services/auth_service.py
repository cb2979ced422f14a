"""
Newsletter Backend: Authentication Service
==========================================

What:  Password hashing and username/password validation for publishers.
How:   Argon2id via argon2-cffi. Hashing is CPU-bound, so every hash and
       verify call runs in Starlette's thread pool instead of on the event loop.
Who:   POST /newsletters (Basic auth), POST /login, and the create-user CLI.

Timing:
    When the username does not exist, the supplied password is still verified
    against a fixed dummy hash, so a failed login takes the same time whether
    or not the user exists.
"""

import logging
import uuid

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from newsletter.exceptions import AuthenticationError, DatabaseError, ValidationError
from newsletter.models.user import User

logger = logging.getLogger(__name__)

# Argon2id, m=15000 KiB, t=2, p=1
password_hasher = PasswordHasher(time_cost=2, memory_cost=15000, parallelism=1)

# Valid Argon2id hash of a random string nobody knows
DUMMY_PASSWORD_HASH = (
    "$argon2id$v=19$m=15000,t=2,p=1$"
    "gZiV/M1gPc22ElAH/Jh1Hw$"
    "CWOrkoo7oJBQ/iyh7uJ0LO2aLEfrHwTWllSAxT0zRno"
)


def hash_password(password: str) -> str:
    return password_hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    try:
        return password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


class AuthService:

    async def validate_credentials(
        self,
        db: AsyncSession,
        username: str,
        password: str,
    ) -> uuid.UUID:
        """
        Check a username/password pair.

        Returns:
            The user's id.

        Raises:
            AuthenticationError: Unknown username or wrong password.
            DatabaseError: The user lookup failed.
        """
        try:
            result = await db.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error loading user credentials: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__}) from e

        expected_hash = user.password_hash if user is not None else DUMMY_PASSWORD_HASH
        is_valid = await run_in_threadpool(verify_password, expected_hash, password)

        if user is None or not is_valid:
            logger.warning("Rejected credentials for username '%s'", username)
            raise AuthenticationError("Invalid username or password.")

        return user.user_id

    async def create_user(
        self,
        db: AsyncSession,
        username: str,
        password: str,
    ) -> User:
        """
        Store a new publisher account.

        Raises:
            ValidationError: Blank username/password, or the username is taken.
            DatabaseError: Any other database failure.
        """
        if not username.strip():
            raise ValidationError("Username must not be empty.", field="username")
        if not password:
            raise ValidationError("Password must not be empty.", field="password")

        password_hash = await run_in_threadpool(hash_password, password)
        user = User(user_id=uuid.uuid4(), username=username, password_hash=password_hash)

        try:
            db.add(user)
            await db.flush()
        except IntegrityError as e:
            raise ValidationError(
                f"Username '{username}' is already taken.", field="username"
            ) from e
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e))
            raise DatabaseError(context={"error_type": type(e).__name__}) from e

        logger.info("Created user '%s' (%s)", username, user.user_id)
        return user


auth_service = AuthService()
