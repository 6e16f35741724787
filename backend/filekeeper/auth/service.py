"""User registration and token flows.

UserStore wraps the ``users`` table; the module-level coroutines compose it
with the password hasher, the token service and the refresh-token registry
to implement signup, signin, refresh and logout.
"""
import logging
from typing import Any, Optional, Tuple

import duckdb
from fastapi.concurrency import run_in_threadpool

from ..config import get_config
from ..database import Database, utc_now
from ..errors import ForbiddenError, StorageError, UnauthenticatedError, ValidationError
from .passwords import hash_password, verify_password
from .registry import RefreshTokenRegistry
from .schemas import SignupRequest, UserRecord
from .tokens import InvalidTokenError, TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"

_USER_COLUMNS = "id, first_name, last_name, email, phone_number, password, created_at"


def _row_to_user(row) -> UserRecord:
    return UserRecord(
        id=row[0],
        first_name=row[1],
        last_name=row[2],
        email=row[3],
        phone_number=row[4],
        password_hash=row[5],
        created_at=row[6],
    )


class InvalidCredentialsError(UnauthenticatedError):
    """Unknown identifier or wrong password; both answer with the same body."""
    has_body = True

    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS)


class UserStore:
    """Singleton access to the users table."""

    _instance: Optional["UserStore"] = None

    def __init__(self, database: Optional[Database] = None) -> None:
        self._db = database or Database.get_instance()

    @classmethod
    def get_instance(cls) -> "UserStore":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    def create(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: str,
        password_hash: str,
    ) -> int:
        """Insert a user and return its id.

        Raises:
            duckdb.ConstraintException: If the email is already registered.
        """
        row = self._db.connection.execute(
            """
            INSERT INTO users (first_name, last_name, email, phone_number, password, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            [first_name, last_name, email, phone_number, password_hash, utc_now()],
        ).fetchone()
        return row[0]

    def find_by_identifier(self, identifier: str) -> Optional[UserRecord]:
        """Look a user up by email or phone number (lowest id wins)."""
        row = self._db.connection.execute(
            f"""
            SELECT {_USER_COLUMNS}
            FROM users
            WHERE email = ? OR phone_number = ?
            ORDER BY id ASC
            LIMIT 1
            """,
            [identifier, identifier],
        ).fetchone()
        return _row_to_user(row) if row else None

    def count(self) -> int:
        return self._db.connection.execute("SELECT COUNT(*) FROM users").fetchone()[0]


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


async def signup(request: SignupRequest, users: UserStore) -> int:
    """Hash the password and persist a new user.

    Returns:
        The new user's id.

    Raises:
        ValidationError: If the email is already registered.
        StorageError: On any other database fault.
    """
    rounds = get_config().auth.bcrypt_rounds
    password_hash = await run_in_threadpool(hash_password, request.password, rounds)

    try:
        user_id = users.create(
            first_name=request.first_name,
            last_name=request.last_name,
            email=request.email,
            phone_number=request.phone_number,
            password_hash=password_hash,
        )
    except duckdb.ConstraintException as e:
        raise ValidationError("Email is already registered") from e
    except duckdb.Error as e:
        logger.exception("Error during user registration")
        raise StorageError("Error during user registration") from e

    logger.info("Registered user %s", user_id)
    return user_id


async def signin(
    identifier: str,
    password: str,
    users: UserStore,
    tokens: TokenService,
    registry: RefreshTokenRegistry,
) -> Tuple[str, str]:
    """Authenticate and issue a fresh (access, refresh) token pair.

    Raises:
        InvalidCredentialsError: Unknown identifier or wrong password.
        StorageError: If the user lookup fails.
    """
    try:
        user = users.find_by_identifier(identifier)
    except duckdb.Error as e:
        logger.exception("Error retrieving user from database")
        raise StorageError("Internal server error") from e

    if user is None:
        raise InvalidCredentialsError()
    if not await run_in_threadpool(verify_password, password, user.password_hash):
        raise InvalidCredentialsError()

    access_token = tokens.issue_access(user.id)
    refresh_token = tokens.issue_refresh(user.id)
    await registry.register(refresh_token)

    logger.info("User %s signed in", user.id)
    return access_token, refresh_token


async def refresh_access_token(
    token: Any,
    tokens: TokenService,
    registry: RefreshTokenRegistry,
) -> str:
    """Exchange a registered refresh token for a new access token.

    Raises:
        UnauthenticatedError: No token was supplied.
        ForbiddenError: The token is unregistered, tampered or expired.
    """
    if not token:
        raise UnauthenticatedError()
    if not isinstance(token, str) or not await registry.is_valid(token):
        raise ForbiddenError()
    try:
        claims = tokens.verify_refresh(token)
    except InvalidTokenError as e:
        logger.info("Rejected refresh token: %s", e)
        raise ForbiddenError() from e
    return tokens.issue_access(claims["userId"])


async def logout(token: Any, registry: RefreshTokenRegistry) -> None:
    if token and isinstance(token, str):
        await registry.revoke(token)
