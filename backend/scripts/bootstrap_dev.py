"""
Seed a local Errly database with a user, a project and its API key.

Usage (from backend/):
    python -m scripts.bootstrap_dev [--user-id UUID] [--project NAME] [--phone +15551234567]

Pass the `sub` of your dev session token as --user-id so GET /logs/volume
accepts you as the project owner. With --phone the number becomes the
user's primary SMS recipient. The raw API key is printed once; only its
hash is stored.
"""

import argparse
import asyncio
import sys
import uuid

sys.path.insert(0, ".")

from errly.auth.hashing import generate_api_key
from errly.core.database import async_session_factory, engine
from errly.models.project import Project
from errly.models.user import User
from errly.services.phone_numbers import add_phone_number


async def bootstrap(user_id: uuid.UUID, project_name: str, phone: str | None) -> None:
    raw_key, key_hash, prefix = generate_api_key()

    try:
        async with async_session_factory() as session:
            if await session.get(User, user_id) is None:
                session.add(User(id=user_id, notifications_enabled=True))
                await session.flush()

            project = Project(
                owner_user_id=user_id,
                name=project_name,
                api_key_hash=key_hash,
                api_key_prefix=prefix,
            )
            session.add(project)
            await session.commit()

            if phone:
                await add_phone_number(session, user_id, phone, label="dev", make_primary=True)
    finally:
        await engine.dispose()

    rule = "-" * 64
    print(rule)
    print(f"User        {user_id}")
    print(f"Project     {project.name} ({project.id})")
    if phone:
        print(f"SMS alerts  {phone}")
    print()
    print(f"ERRLY API KEY  {raw_key}")
    print("Store it now. It cannot be recovered; issue a new project to rotate it.")
    print(rule)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a dev user, project and API key.")
    parser.add_argument("--user-id", type=uuid.UUID, default=None)
    parser.add_argument("--project", default="Dev Project")
    parser.add_argument("--phone", default=None, help="E.164 number for SMS alerts")
    args = parser.parse_args()

    asyncio.run(bootstrap(args.user_id or uuid.uuid4(), args.project, args.phone))
