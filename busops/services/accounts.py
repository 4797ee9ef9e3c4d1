"""Account storage behind a small repository interface.

Accounts are provisioned out-of-band as a base64 encoded JSON list (see
``busops.cli create-users``) and seeded into the configured store at startup.
The database store keeps password and profile changes across restarts; the
memory store loses them and is mainly used in tests.
"""

import base64
import binascii
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlmodel import select

from busops.core.database import Database
from busops.core.logging import get_logger
from busops.models.auth import Account, Role

logger = get_logger(__name__)


def decode_seed_accounts(encoded: str) -> List[Account]:
    """Decode a ``USER_ACCOUNTS`` value into Account objects.

    Each entry needs ``id``, ``email``, ``name``, ``role`` and a bcrypt hash
    under ``password`` or ``passwordHash``; ``phone`` is optional.
    """
    if not encoded:
        return []

    try:
        raw = json.loads(base64.b64decode(encoded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"USER_ACCOUNTS is not valid base64 encoded JSON: {e}") from e

    if not isinstance(raw, list):
        raise ValueError("USER_ACCOUNTS must decode to a JSON list")

    accounts = []
    for entry in raw:
        password_hash = entry.get("password") or entry.get("passwordHash")
        if not password_hash:
            raise ValueError(f"Seed account {entry.get('email')!r} has no password hash")
        accounts.append(Account(
            id=int(entry["id"]),
            email=entry["email"],
            name=entry.get("name", ""),
            password_hash=password_hash,
            role=Role(entry.get("role", Role.MANAGER.value)).value,
            phone=entry.get("phone"),
        ))
    return accounts


def encode_seed_accounts(entries: Iterable[Dict[str, Any]]) -> str:
    """Encode seed entries (with hashed passwords) into a ``USER_ACCOUNTS`` value."""
    return base64.b64encode(json.dumps(list(entries)).encode("utf-8")).decode("ascii")


class AccountRepository(ABC):
    """Lookup and update of a small set of operator accounts."""

    @abstractmethod
    async def get_by_id(self, account_id: int) -> Optional[Account]:
        ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Account]:
        """Case-sensitive exact match."""

    @abstractmethod
    async def save(self, account: Account) -> Account:
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    async def seed(self, accounts: Iterable[Account]) -> int:
        """Insert accounts whose id is not stored yet. Returns how many were added."""
        added = 0
        for account in accounts:
            if await self.get_by_id(account.id) is not None:
                continue
            if await self.get_by_email(account.email) is not None:
                logger.warning("Skipping seed account with duplicate email", account_id=account.id)
                continue
            await self.save(account)
            added += 1

        if added:
            logger.info("Seeded accounts", added=added)
        return added


class InMemoryAccountRepository(AccountRepository):
    """Accounts held in process memory for the process lifetime."""

    def __init__(self, accounts: Optional[Iterable[Account]] = None):
        self._accounts: Dict[int, Account] = {}
        for account in accounts or ():
            self._accounts[account.id] = account

    async def get_by_id(self, account_id: int) -> Optional[Account]:
        return self._accounts.get(account_id)

    async def get_by_email(self, email: str) -> Optional[Account]:
        for account in self._accounts.values():
            if account.email == email:
                return account
        return None

    async def save(self, account: Account) -> Account:
        self._accounts[account.id] = account
        return account

    async def count(self) -> int:
        return len(self._accounts)


class SqlAccountRepository(AccountRepository):
    """Accounts persisted in the application database."""

    def __init__(self, database: Database):
        self.database = database

    async def get_by_id(self, account_id: int) -> Optional[Account]:
        async with self.database.session() as session:
            return await session.get(Account, account_id)

    async def get_by_email(self, email: str) -> Optional[Account]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Account).where(Account.email == email)
            )
            return result.scalars().first()

    async def save(self, account: Account) -> Account:
        async with self.database.session() as session:
            merged = await session.merge(account)
        return merged

    async def count(self) -> int:
        async with self.database.session() as session:
            result = await session.execute(select(func.count()).select_from(Account))
            return result.scalar_one()
