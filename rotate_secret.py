#!/usr/bin/env python3
"""
Rotate a user's password in the Feed API SQLite database.

This script does not read or reveal any existing password.  It stores a
new PBKDF2 hash for the given identifier.  Tokens issued before the
rotation stay valid until they expire; to cut them off immediately,
restart the server with a new SECRET_KEY.

Usage:
    python rotate_secret.py --db ./feed.db --identifier user@example.com --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
"""

import argparse
import asyncio
import getpass
import os
import sys

from feed_api.app.core.config import settings
from feed_api.app.core.db import Database
from feed_api.app.core.security import hash_password_async
from feed_api.app.repositories import UserRepository


async def rotate(db_path: str, identifier: str, password: str) -> bool:
    users = UserRepository(Database(db_path))
    user = await users.get_by_identifier(identifier)
    if user is None:
        return False
    hashed = await hash_password_async(password, settings.password_hash_iterations)
    return await users.set_password_hash(user.id, hashed)


def main():
    ap = argparse.ArgumentParser(description="Rotate a Feed API user's password (SQLite).")
    ap.add_argument("--db", required=True, help="Path to SQLite DB file (e.g., ./feed.db)")
    ap.add_argument("--identifier", required=True, help="Login identifier of the user")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args()

    if not os.path.exists(args.db):
        print(f"[!] DB not found: {args.db}", file=sys.stderr)
        sys.exit(1)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < 5:
        print("[!] Password must be at least 5 characters.", file=sys.stderr)
        sys.exit(1)

    if not asyncio.run(rotate(os.path.abspath(args.db), args.identifier, new_password)):
        print(f"[!] No user found with identifier: {args.identifier}", file=sys.stderr)
        sys.exit(2)
    print(f"[+] Password updated for user: {args.identifier}")


if __name__ == "__main__":
    main()
