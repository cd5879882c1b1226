#!/usr/bin/env python
"""Create a user directly in the database, e.g. the first Admin account."""
from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

from pydantic import ValidationError

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from site_tracker.db import SessionLocal
from site_tracker.errors import ApiError
from site_tracker.models import UserRole
from site_tracker.repositories.users import create_user
from site_tracker.schemas import UserCreate


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("username")
    parser.add_argument("--name", required=True)
    parser.add_argument(
        "--role",
        default=UserRole.ADMIN.value,
        choices=[role.value for role in UserRole],
    )
    parser.add_argument("--email")
    parser.add_argument("--password", help="Prompted for when omitted")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    password = args.password or getpass.getpass("Password: ")

    try:
        payload = UserCreate(
            username=args.username,
            password=password,
            name=args.name,
            role=UserRole(args.role),
            email=args.email,
        )
    except ValidationError as exc:
        print(exc, file=sys.stderr)
        return 2

    with SessionLocal() as db:
        try:
            user = create_user(db, payload)
        except ApiError as exc:
            print(f"{exc.code}: {exc.message}", file=sys.stderr)
            return 1

    print(f"Created user {user.username} (id={user.id}, role={user.role.value})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
