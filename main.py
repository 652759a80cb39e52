#!/usr/bin/env python3
"""
Portfolio auth -- administrative command line.

Runs the same services as the HTTP API against the configured directory
backend, so the rules (duplicate email, role defaults) are identical.
create-user input is checked with the POST /users request model first.

Usage:
  python main.py create-user --email admin@example.com --first-name Ada --last-name Admin --role admin
  python main.py stats

The password for create-user is read from the PORTFOLIO_PASSWORD environment
variable when set, otherwise prompted for without echo.

Configuration comes from the environment / .env (see core/config.py):
  DIRECTORY_BACKEND, SUPABASE_URL, SUPABASE_SERVICE_KEY, DATABASE_URL, SECRET_KEY, DEBUG
"""

import argparse
import getpass
import logging
import os
import sys

from pydantic import ValidationError

from api.models import UserCreate
from auth.models import ROLE_ADMIN, ROLES, Principal
from auth.service import provision_user
from core.config import get_settings
from core.errors import ServiceError
from directory.factory import build_store
from directory.service import UserDirectoryService

logger = logging.getLogger("portfolio.cli")

# Caller identity for every CLI command.
_OPERATOR = Principal(id="cli-operator", email="operator@localhost", role=ROLE_ADMIN)


def _read_password() -> str:
    password = os.environ.get("PORTFOLIO_PASSWORD")
    if password:
        return password
    first = getpass.getpass("Password: ")
    if first != getpass.getpass("Repeat password: "):
        raise SystemExit("Passwords do not match.")
    return first


def _cmd_create_user(args: argparse.Namespace) -> int:
    password = _read_password()
    try:
        body = UserCreate(
            email=args.email,
            password=password,
            first_name=args.first_name,
            last_name=args.last_name,
            role=args.role,
        )
    except ValidationError as exc:
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"])
            print(f"  [!] {field}: {err['msg']}")
        return 2

    store = build_store(get_settings())
    try:
        user = provision_user(
            store,
            body.email,
            body.password,
            body.first_name,
            body.last_name,
            body.role.value if body.role else None,
        )
    except ServiceError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        store.close()
    print(f"Created {user.role} {user.email} (id={user.id})")
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    store = build_store(get_settings())
    try:
        stats = UserDirectoryService(store).get_stats(_OPERATOR)
    finally:
        store.close()
    print(f"total={stats.total} photographers={stats.photographers} admins={stats.admins}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Portfolio auth administration.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level.")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="Create an account and directory record.")
    create.add_argument("--email", required=True)
    create.add_argument("--first-name", required=True)
    create.add_argument("--last-name", required=True)
    create.add_argument("--role", choices=ROLES, default=None)
    create.set_defaults(func=_cmd_create_user)

    stats = sub.add_parser("stats", help="Print user counts by role.")
    stats.set_defaults(func=_cmd_stats)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
