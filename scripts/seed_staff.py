import argparse
import asyncio

from app.core.logging import configure_logging
from app.core.settings import settings
from app.services.staff_users import DEFAULT_STAFF, seed_default_staff
from app.services.storage.service import build_record_store


async def seed_staff(backend: str = "sql") -> None:
    """
    Create one staff account per role; existing usernames are left untouched.
    """
    store = build_record_store(backend)
    print(f"Seeding staff users ({store.backend} backend)...")
    created = await seed_default_staff(store, settings.seed_staff_password)
    for user in created:
        print(f"Created {user.username} ({user.role})")
    skipped = len(DEFAULT_STAFF) - len(created)
    if skipped:
        print(f"{skipped} user(s) already existed.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Seed default staff users into the SQL database. The memory backend is per-process; "
            "set SEED_STAFF_ON_STARTUP=true to seed it when the app starts."
        )
    )
    parser.add_argument("--backend", choices=["sql"], default="sql")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    configure_logging()
    asyncio.run(seed_staff(args.backend))


if __name__ == "__main__":
    main()
