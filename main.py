#!/usr/bin/env python3
"""
Upholstr -- account administration from the command line.

Usage:
  python main.py create-user admin@example.com --name "Site Admin" --role admin
  python main.py history alice@example.com
  python main.py history alice@example.com --limit 10

The password for create-user is read from the terminal (or from
UPHOLSTR_PASSWORD when stdin is not a terminal, for provisioning scripts).

Environment variables:
  SECRET_KEY     Required unless DEBUG=true (see core/config.py).
  DATABASE_URL   Auth database; defaults to auth/upholstr_auth.db.
"""

import argparse
import getpass
import os
import sys
from typing import Optional

from auth.credentials import CredentialService
from auth.errors import AuthError
from auth.models import Role
from auth.store import UserStore
from auth.tokens import TokenContext
from core.config import get_settings


def _read_password() -> Optional[str]:
    if not sys.stdin.isatty():
        return os.environ.get("UPHOLSTR_PASSWORD")
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    return first


def _create_user(service: CredentialService, args: argparse.Namespace) -> int:
    password = _read_password()
    if not password:
        print("  [!] No password provided.")
        return 1
    try:
        user = service.register(
            args.email,
            password,
            args.name,
            phone_number=args.phone,
            role=Role(args.role),
        )
    except AuthError as exc:
        print(f"  [!] {exc.message}")
        return 1
    print(f"  Created {user.role.value} account {user.email} (id {user.id}).")
    return 0


def _history(store: UserStore, args: argparse.Namespace) -> int:
    user = store.get_by_email(args.email)
    if user is None:
        print(f"  [!] No account for '{args.email}'.")
        return 1
    entries = store.list_login_history(user.id, limit=args.limit)
    if not entries:
        print("  No login attempts recorded.")
        return 0
    print(f"\n  Login history for {user.email}")
    print("  " + "─" * 60)
    for entry in entries:
        outcome = "ok    " if entry.successful else "FAILED"
        reason = f" ({entry.failure_reason})" if entry.failure_reason else ""
        print(f"  {entry.login_date}  {outcome}  {entry.ip_address}{reason}")
    print()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="upholstr",
        description="Upholstr account administration.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create an account (e.g. the first admin)")
    create.add_argument("email")
    create.add_argument("--name", required=True, help="Full name")
    create.add_argument("--phone", default=None, help="Optional phone number")
    create.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.client.value,
        help="Account role (default: client)",
    )

    history = sub.add_parser("history", help="Show an account's login attempts")
    history.add_argument("email")
    history.add_argument("--limit", type=int, default=20)

    args = parser.parse_args(argv)

    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        if args.command == "create-user":
            service = CredentialService(store, TokenContext.from_settings(settings), settings.bcrypt_rounds)
            return _create_user(service, args)
        return _history(store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
