"""
Bootstrap tool: create a user and print a bearer token for the API.

Usage:
  python create_user.py <username> [email]

Example:
  python create_user.py priya priya@example.com
"""
import asyncio
import sys

from sqlalchemy import select

from shiftclock.core.config import settings
from shiftclock.core.database import Database
from shiftclock.core.security import create_access_token
from shiftclock.models.user import User


async def main(username: str, email: str | None) -> None:
    database = Database.from_settings(settings)
    await database.connect()
    try:
        await database.create_tables()
        async with database.session() as db:
            existing = await db.execute(select(User).where(User.username == username))
            user = existing.scalar_one_or_none()
            if user:
                print(f"User '{username}' already exists (ID: {user.id})")
            else:
                user = User(username=username, email=email)
                db.add(user)
                await db.commit()
                await db.refresh(user)
                print(f"✓ User '{username}' created (ID: {user.id})")
        print(f"Token: {create_access_token(user.id)}")
    finally:
        await database.dispose()


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print("Usage: python create_user.py <username> [email]")
        sys.exit(1)

    asyncio.run(main(sys.argv[1], sys.argv[2] if len(sys.argv) == 3 else None))
