#!/usr/bin/env python3
"""
Chirpy auth -- developer command line for the credential and token core.

Usage:
  python main.py hash-password
  python main.py issue-token 6f1c0a4e-8d0b-4c8e-9a59-0d6b1f3f4c21
  python main.py issue-token 6f1c0a4e-8d0b-4c8e-9a59-0d6b1f3f4c21 --ttl 60
  python main.py validate-token eyJhbGciOi...
  python main.py make-refresh-token
  python main.py revoke-refresh-token 3f9a...e1
  python main.py purge-expired

Environment variables:
  SECRET_KEY    Access token signing secret (>= 32 chars). Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy URL of the credential store. Defaults to auth/chirpy_auth.db.
"""

import argparse
import getpass
import sys
from datetime import timedelta
from uuid import UUID

from auth.errors import AuthError
from auth.passwords import hash_password
from auth.refresh import RefreshTokenManager
from auth.store import DEFAULT_DB_URL, UserStore
from auth.tokens import create_access_token, make_refresh_token, validate_access_token
from core.config import get_settings


def _open_store() -> UserStore:
    return UserStore(db_url=get_settings().database_url or DEFAULT_DB_URL)


def _cmd_hash_password(args: argparse.Namespace) -> int:
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat: "):
        print("  [!] Passwords do not match.", file=sys.stderr)
        return 1
    print(hash_password(password))
    return 0


def _cmd_issue_token(args: argparse.Namespace) -> int:
    settings = get_settings()
    ttl = timedelta(seconds=args.ttl) if args.ttl else settings.access_token_lifetime
    print(create_access_token(args.user_id, settings.secret_key, ttl))
    return 0


def _cmd_validate_token(args: argparse.Namespace) -> int:
    user_id = validate_access_token(args.token, get_settings().secret_key)
    print(user_id)
    return 0


def _cmd_make_refresh_token(args: argparse.Namespace) -> int:
    print(make_refresh_token())
    return 0


def _cmd_revoke(args: argparse.Namespace) -> int:
    store = _open_store()
    try:
        RefreshTokenManager(store).revoke(args.token)
    finally:
        store.close()
    print("Revoked.")
    return 0


def _cmd_purge(args: argparse.Namespace) -> int:
    store = _open_store()
    try:
        removed = store.purge_expired_refresh_tokens()
    finally:
        store.close()
    print(f"{removed} expired refresh token(s) removed.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="chirpy-auth",
        description="Password hashing, access tokens and refresh-token sessions.",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("hash-password", help="Prompt for a password and print its bcrypt hash")
    p.set_defaults(func=_cmd_hash_password)

    p = sub.add_parser("issue-token", help="Print an access token for USER_ID")
    p.add_argument("user_id", type=UUID, metavar="USER_ID")
    p.add_argument("--ttl", type=int, default=0, metavar="SECONDS", help="Lifetime (default: ACCESS_TOKEN_EXPIRE_SECONDS)")
    p.set_defaults(func=_cmd_issue_token)

    p = sub.add_parser("validate-token", help="Validate an access token and print its user ID")
    p.add_argument("token")
    p.set_defaults(func=_cmd_validate_token)

    p = sub.add_parser("make-refresh-token", help="Print a fresh random refresh token value")
    p.set_defaults(func=_cmd_make_refresh_token)

    p = sub.add_parser("revoke-refresh-token", help="Revoke a stored refresh token")
    p.add_argument("token")
    p.set_defaults(func=_cmd_revoke)

    p = sub.add_parser("purge-expired", help="Delete expired refresh tokens from the store")
    p.set_defaults(func=_cmd_purge)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except AuthError as exc:
        print(f"  [!] {exc.code}: {exc.message}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
