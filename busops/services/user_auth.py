"""Session issuing: login, token verification, password and profile changes."""

import re
from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any

from jose import jwt, JWTError

from busops.core.config import Settings
from busops.core.errors import AuthError, PasswordChangeError, ProfileUpdateError
from busops.core.logging import get_logger
from busops.models.auth import Account, PASSWORD_MAX_BYTES
from busops.services.accounts import AccountRepository

logger = get_logger(__name__)

TOKEN_LIFETIME = timedelta(hours=24)
PASSWORD_MIN_LENGTH = 8
PASSWORD_SYMBOLS = "@$!%*?&"

_PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"\d"), "a number"),
    (re.compile(f"[{re.escape(PASSWORD_SYMBOLS)}]"), f"a special character ({PASSWORD_SYMBOLS})"),
)


def check_password_strength(password: str) -> Optional[str]:
    """Return a description of the first policy violation, or None."""
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"New password must be at least {PASSWORD_MIN_LENGTH} characters long"
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return f"New password must be at most {PASSWORD_MAX_BYTES} bytes long"

    missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(password)]
    if missing:
        return "New password must contain " + ", ".join(missing)
    return None


class UserAuthService:
    """Verifies credentials and issues signed, 24 hour session tokens."""

    def __init__(self, repository: AccountRepository, settings: Settings):
        self.repository = repository
        self.settings = settings
        self._algorithm = "HS256"

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Authenticate an account by exact email match.
        Unknown email and wrong password fail with the same message.
        """
        account = await self.repository.get_by_email(email)
        if not account or not account.verify_password(password):
            logger.info("Login rejected")
            raise AuthError("Invalid credentials")

        logger.info("Account logged in", account_id=account.id, role=account.role)
        return {
            "token": self.create_access_token(account),
            "user": account.summary(),
        }

    def create_access_token(self, account: Account, issued_at: Optional[datetime] = None) -> str:
        """Create JWT access token for an account."""
        issued_at = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(account.id),
            "id": account.id,
            "email": account.email,
            "role": account.role,
            "iat": issued_at,
            "exp": issued_at + TOKEN_LIFETIME,
        }
        return jwt.encode(payload, self.settings.jwt_secret_key, algorithm=self._algorithm)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Verify JWT token and return its claims."""
        try:
            return jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self._algorithm]
            )
        except JWTError as e:
            logger.debug("Token verification failed", error=str(e))
            raise AuthError("Invalid token") from e

    async def change_password(self, account_id: int, current_password: str,
                              new_password: str) -> Dict[str, Any]:
        """Replace the password hash after checking the current password and policy."""
        account = await self.repository.get_by_id(account_id)
        if not account:
            raise PasswordChangeError("User not found")

        if not account.verify_password(current_password):
            raise PasswordChangeError("Current password is incorrect")

        violation = check_password_strength(new_password)
        if violation:
            raise PasswordChangeError(violation)

        if new_password == current_password or account.verify_password(new_password):
            raise PasswordChangeError("New password must be different from current password")

        account.set_password(new_password, rounds=self.settings.password_hash_rounds)
        await self.repository.save(account)

        logger.info("Password changed", account_id=account_id)
        return {
            "success": True,
            "message": "Password changed successfully",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def update_profile(self, account_id: int, name: Optional[str] = None,
                             email: Optional[str] = None,
                             phone: Optional[str] = None) -> Dict[str, Any]:
        """Overwrite only the supplied profile fields."""
        account = await self.repository.get_by_id(account_id)
        if not account:
            raise ProfileUpdateError("User not found")

        if email and email != account.email:
            other = await self.repository.get_by_email(email)
            if other is not None and other.id != account.id:
                raise ProfileUpdateError("Email is already in use")
            account.email = email
        if name:
            account.name = name
        if phone:
            account.phone = phone

        await self.repository.save(account)
        logger.info("Profile updated", account_id=account_id)
        return account.summary()
