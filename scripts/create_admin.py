#!/usr/bin/env python3
"""Create an admin account.

Registration through the API only ever creates ``user`` accounts, so the
first admin is created here.

Usage:
    ADMIN_EMAIL=admin@example.com ADMIN_PASSWORD='S3curePassword' python scripts/create_admin.py
    python scripts/create_admin.py --email admin@example.com --password 'S3curePassword' --name Admin

Environment Variables:
    ADMIN_NAME: Display name (default: Administrator)
    ADMIN_EMAIL: Email for the admin user
    ADMIN_PASSWORD: Password for the admin user
    DATABASE_URL: Database connection string
"""

import argparse
import asyncio
import os
import sys

from football_auth.core import async_session_maker, init_models
from football_auth.models.user import UserRole
from football_auth.services.credentials import NewPrincipal, SqlCredentialStore
from football_auth.services.passwords import Argon2PasswordHasher


async def create_admin(name: str, email: str, password: str) -> int:
    await init_models()
    async with async_session_maker() as session:
        store = SqlCredentialStore(session)
        existing = await store.find_by_email(email)
        if existing is not None:
            print(f"User already exists: {existing.email} (id={existing.id}, role={existing.role})")
            return 0

        admin = await store.create(
            NewPrincipal(
                name=name,
                email=email,
                password_hash=Argon2PasswordHasher().hash(password),
                role=UserRole.admin.value,
                is_active=True,
                is_verified=True,
            )
        )
        print(f"Admin created: {admin.email} (id={admin.id})")
        return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Create an admin account")
    parser.add_argument("--name", default=os.getenv("ADMIN_NAME", "Administrator"))
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", ""))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD", ""))
    args = parser.parse_args()

    email = args.email.strip().lower()
    if not email or not args.password:
        print("ADMIN_EMAIL and ADMIN_PASSWORD (or --email/--password) must be set", file=sys.stderr)
        return 1
    if len(args.password) < 8:
        print("Password must be at least 8 characters", file=sys.stderr)
        return 1

    return asyncio.run(create_admin(args.name, email, args.password))


if __name__ == "__main__":
    sys.exit(main())
