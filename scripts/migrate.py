#!/usr/bin/env python3
"""Apply migrations/versions/*.sql against POSTGRES_APP_URL, skipping versions already recorded."""
import asyncio
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

import asyncpg

from migrations.env import migration_files, split_statements
from navia.core.config.env import load_env_from_path
from navia.data_access.relational.postgres import normalize_url

load_env_from_path(None, ROOT)


async def run_migrations(url: str) -> None:
    conn = await asyncpg.connect(normalize_url(url))
    try:
        await conn.execute("CREATE SCHEMA IF NOT EXISTS app;")
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS app.schema_migrations "
            "(version text PRIMARY KEY, applied_at timestamptz NOT NULL DEFAULT now());"
        )
        applied = {r["version"] for r in await conn.fetch("SELECT version FROM app.schema_migrations")}
        for path in migration_files():
            if path.name in applied:
                print(f"Migration {path.name} already applied.")
                continue
            async with conn.transaction():
                for stmt in split_statements(path.read_text(encoding="utf-8")):
                    await conn.execute(stmt)
                await conn.execute("INSERT INTO app.schema_migrations (version) VALUES ($1)", path.name)
            print(f"Migration {path.name} applied successfully.")
    finally:
        await conn.close()


def main():
    url = os.getenv("POSTGRES_APP_URL")
    if not url:
        print("POSTGRES_APP_URL not set. Set it in config/env/.env or .env")
        sys.exit(1)
    asyncio.run(run_migrations(url))


if __name__ == "__main__":
    main()
