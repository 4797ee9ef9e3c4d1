#!/usr/bin/env python3
"""
Out-of-band provisioning for the dashboard backend.

Usage:
  python -m busops.cli create-users --account "1:admin@example.com:Administrator:admin:S3cret!pw"
  python -m busops.cli create-users --account "..." --account "..." [--rounds 12]
  python -m busops.cli generate-secret
"""
import argparse
import secrets
import sys
from typing import Any, Dict, List

from busops.core.errors import PasswordChangeError
from busops.models.auth import Account, Role
from busops.services.accounts import encode_seed_accounts

SECRET_BYTES = 64


def parse_account_spec(spec: str) -> Dict[str, str]:
    """Split ``id:email:name:role:password[:phone]``. The password may not contain ':'."""
    parts = spec.split(":")
    if len(parts) not in (5, 6):
        raise ValueError(f"Expected id:email:name:role:password[:phone], got {spec!r}")

    account_id, email, name, role, password = parts[:5]
    if not account_id.isdigit():
        raise ValueError(f"Account id must be an integer, got {account_id!r}")
    if role not in {r.value for r in Role}:
        raise ValueError(f"Role must be one of admin, manager, got {role!r}")

    return {
        "id": account_id,
        "email": email,
        "name": name,
        "role": role,
        "password": password,
        "phone": parts[5] if len(parts) == 6 else None,
    }


def build_seed_entries(specs: List[str], rounds: int = 12) -> List[Dict[str, Any]]:
    """Hash each account's password and return the seed entries."""
    entries = []
    for spec in specs:
        fields = parse_account_spec(spec)
        account = Account.create(
            id=int(fields["id"]),
            email=fields["email"],
            name=fields["name"],
            password=fields["password"],
            role=fields["role"],
            phone=fields["phone"],
            rounds=rounds,
        )
        entry = {
            "id": account.id,
            "email": account.email,
            "name": account.name,
            "password": account.password_hash,
            "role": account.role,
        }
        if account.phone:
            entry["phone"] = account.phone
        entries.append(entry)
    return entries


def generate_secret(num_bytes: int = SECRET_BYTES) -> str:
    return secrets.token_hex(num_bytes)


def cmd_create_users(args) -> int:
    try:
        entries = build_seed_entries(args.account, rounds=args.rounds)
    except (ValueError, PasswordChangeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    print("Add this to your .env file:")
    print(f"USER_ACCOUNTS={encode_seed_accounts(entries)}")
    for entry in entries:
        print(f"  {entry['role']}: {entry['email']}")
    return 0


def cmd_generate_secret(args) -> int:
    print("Add this to your .env file:")
    print(f"JWT_SECRET_KEY={generate_secret()}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Dashboard backend provisioning")
    subparsers = parser.add_subparsers(dest="command")

    create = subparsers.add_parser("create-users", help="Hash passwords and print USER_ACCOUNTS")
    create.add_argument("--account", action="append", required=True,
                        help="id:email:name:role:password[:phone], repeatable")
    create.add_argument("--rounds", type=int, default=12, help="bcrypt cost factor")
    create.set_defaults(func=cmd_create_users)

    secret = subparsers.add_parser("generate-secret", help="Print a random JWT_SECRET_KEY")
    secret.set_defaults(func=cmd_generate_secret)

    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
