"""Account model for dashboard authentication."""

from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import SQLModel, Field
import bcrypt

from busops.core.errors import PasswordChangeError

# bcrypt only reads the first 72 bytes of a password
PASSWORD_MAX_BYTES = 72


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"


class Account(SQLModel, table=True):
    """Dashboard operator account."""

    __tablename__ = "accounts"

    id: int = Field(primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    name: str = Field(max_length=100)
    password_hash: str = Field(max_length=255)
    role: str = Field(default=Role.MANAGER.value, max_length=20)
    phone: Optional[str] = Field(default=None, max_length=40)

    def set_password(self, password: str, rounds: int = 12) -> None:
        """Hash and set password using bcrypt."""
        encoded = password.encode('utf-8')
        if len(encoded) > PASSWORD_MAX_BYTES:
            raise PasswordChangeError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")
        try:
            hashed = bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds))
        except ValueError as e:
            raise PasswordChangeError(f"Password cannot be hashed: {e}") from e
        self.password_hash = hashed.decode('utf-8')

    def verify_password(self, password: str) -> bool:
        """Verify password against stored hash."""
        try:
            return bcrypt.checkpw(
                password.encode('utf-8'),
                self.password_hash.encode('utf-8')
            )
        except ValueError:
            # stored hash is not a bcrypt hash
            return False

    def summary(self) -> Dict[str, Any]:
        """Public view of the account, never includes the hash."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "phone": self.phone,
        }

    @classmethod
    def create(cls, id: int, email: str, name: str, password: str,
               role: str = Role.MANAGER.value, phone: Optional[str] = None,
               rounds: int = 12) -> "Account":
        """Factory method to create an account with hashed password."""
        account = cls(
            id=id,
            email=email.strip(),
            name=name.strip(),
            password_hash="",  # Will be set below
            role=Role(role).value,
            phone=phone,
        )
        account.set_password(password, rounds=rounds)
        return account
