"""
UserService -- operator accounts and credential verification.

Passwords are stored as salted PBKDF2-SHA256 hashes
(``pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>``).  Verification
compares digests in constant time and reports an unknown email and a wrong
password with the same InvalidCredentialsError.
"""

import hashlib
import hmac
import secrets

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from logistics_kernel.domain.clock import Clock
from logistics_kernel.domain.dtos import UserInfo
from logistics_kernel.exceptions import DuplicateRecordError, InvalidCredentialsError, ValidationError
from logistics_kernel.logging_config import get_logger
from logistics_kernel.models import User
from logistics_kernel.services.base import BaseService

logger = get_logger("services.user")

HASH_ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 600_000
MIN_PASSWORD_LENGTH = 8


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS, salt: bytes | None = None) -> str:
    salt = salt or secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt.hex()}${digest.hex()}"


def check_password(password: str, encoded: str) -> bool:
    """True if ``password`` matches the stored ``encoded`` hash."""
    try:
        algorithm, iterations, salt_hex, digest_hex = encoded.split("$")
    except ValueError:
        return False
    if algorithm != HASH_ALGORITHM:
        return False
    try:
        salt = bytes.fromhex(salt_hex)
        rounds = int(iterations)
    except ValueError:
        return False
    candidate = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(candidate.hex(), digest_hex)


class UserService(BaseService[User]):
    """Account creation and login checks."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        iterations: int = DEFAULT_ITERATIONS,
    ):
        super().__init__(session, clock)
        self.iterations = iterations

    def create_user(self, email: str, password: str, full_name: str | None = None) -> UserInfo:
        """
        Create an account.

        Raises:
            ValidationError: Malformed email or password shorter than
                MIN_PASSWORD_LENGTH.
            DuplicateRecordError: Email already registered.
        """
        normalized = (email or "").strip().lower()
        if "@" not in normalized:
            raise ValidationError("email", "must be an email address")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                "password", f"must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        now = self.clock.timestamp()
        user = User(
            email=normalized,
            password_hash=hash_password(password, self.iterations),
            full_name=full_name,
            created_at=now,
            updated_at=now,
        )
        savepoint = self.session.begin_nested()
        try:
            self.session.add(user)
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            raise DuplicateRecordError("users", f"email={normalized}") from exc

        logger.info("user_created", extra={"user_id": user.id})
        return UserInfo.from_model(user)

    def verify_credentials(self, email: str, password: str) -> UserInfo:
        """
        Return the account for a matching email/password pair.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
        """
        normalized = (email or "").strip().lower()
        user = self.session.execute(
            select(User).where(User.email == normalized)
        ).scalar_one_or_none()

        if user is None or not check_password(password or "", user.password_hash):
            logger.warning("login_failed", extra={"email_domain": normalized.partition("@")[2]})
            raise InvalidCredentialsError()

        logger.info("login_succeeded", extra={"user_id": user.id})
        return UserInfo.from_model(user)
