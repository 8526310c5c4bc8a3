"""
Seed the ens_names directory from a text file (one name per line)

Usage:
  python scripts/seed_ens_names.py names.txt
"""

import sys
import asyncio
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from cats_admin.database import database, connect_db, disconnect_db
from cats_admin.services.name_normalizer import parse_name_list


async def seed_ens_names(path: str):
    valid, invalid = parse_name_list(Path(path).read_text(encoding="utf-8"))

    for line in invalid:
        print(f"skipped {line!r}: invalid ENS name")

    await connect_db()

    try:
        inserted = 0
        async with database.transaction():
            for name in valid:
                row = await database.fetch_one(
                    """
                    INSERT INTO ens_names (name, clubs, created_at)
                    VALUES (:name, ARRAY[]::TEXT[], NOW())
                    ON CONFLICT (name) DO NOTHING
                    RETURNING name
                    """,
                    {"name": name}
                )
                if row:
                    inserted += 1

        print(f"Seeded {inserted} names ({len(valid) - inserted} already present, {len(invalid)} invalid)")

    finally:
        await disconnect_db()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(seed_ens_names(sys.argv[1]))
