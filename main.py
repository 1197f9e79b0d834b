#!/usr/bin/env python3
"""
Biblio -- command-line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload
  python main.py create-user admin@example.com Ada Lovelace --admin
  python main.py create-user reader@example.com Rea Der --password s3cret

Environment variables (see core/config.py for the full list):
  DATABASE_URL           SQLAlchemy URL. Default: sqlite:///biblio.db
  ACCESS_TOKEN_SECRET    Required outside DEBUG mode, >= 32 chars.
  REFRESH_TOKEN_SECRET   Required outside DEBUG mode, >= 32 chars, != access secret.
  BCRYPT_WORK_FACTOR     bcrypt cost, 4..31. Default: 12
"""

import argparse
import getpass
import sys
from typing import Optional

from core.config import get_settings
from core.errors import DuplicateEmailError


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def create_user(
    db_url: Optional[str],
    email: str,
    first_name: str,
    last_name: str,
    password: str,
    is_admin: bool = False,
) -> int:
    """Insert a user directly into the store. Returns the new user id.

    Used to bootstrap the first admin: POST /users needs an admin token, and
    public registration should not be how the first admin appears.
    """
    from auth.flows import create_user_account
    from auth.store import UserStore

    store = UserStore(db_url)
    try:
        user = create_user_account(
            store,
            email=email,
            first_name=first_name,
            last_name=last_name,
            password=password,
            is_admin=is_admin,
        )
    finally:
        store.close()
    return user.id


def _create_user(args: argparse.Namespace) -> int:
    password = args.password
    if not password:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Repeat password: "):
            print("  [!] Passwords do not match.", file=sys.stderr)
            return 1
    if not password:
        print("  [!] Password must not be empty.", file=sys.stderr)
        return 1
    try:
        user_id = create_user(args.database_url, args.email, args.first_name, args.last_name, password, args.admin)
    except DuplicateEmailError as e:
        print(f"  [!] {e.message}", file=sys.stderr)
        return 1
    role = "admin" if args.admin else "user"
    print(f"Created {role} {args.email} with id {user_id}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="biblio",
        description="Biblio API server and administration commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the API with uvicorn")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(handler=_serve)

    create = sub.add_parser("create-user", help="Create a user account directly in the database")
    create.add_argument("email")
    create.add_argument("first_name")
    create.add_argument("last_name")
    create.add_argument("--admin", action="store_true", help="Grant admin rights")
    create.add_argument("--password", default=None, help="Password (prompted for when omitted)")
    create.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    create.set_defaults(handler=_create_user)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 0
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
