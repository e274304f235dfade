"""
Create a users row so an allow-listed admin can log in with a password.

Usage:
    python scripts/create_user.py admin@example.com 'S3cret-pass'
"""
import argparse
import asyncio
import sys

from wl_app.core.errors import StorageError
from wl_app.db.base import async_session, engine, init_db
from wl_app.storage.users import UserStorage


async def create_user(username: str, password: str) -> int:
    await init_db(engine)
    try:
        user = await UserStorage(async_session).create_user(username.strip().lower(), password)
    finally:
        await engine.dispose()
    return user.id


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("username", help="admin email, must also be on the admin allow-list")
    parser.add_argument("password")
    args = parser.parse_args(argv)

    if len(args.password) < 8:
        print("✗ password must be at least 8 characters")
        return 1
    try:
        user_id = asyncio.run(create_user(args.username, args.password))
    except StorageError as e:
        print(f"✗ {e.message}")
        return 1
    print(f"✓ user {args.username} created (id={user_id})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
