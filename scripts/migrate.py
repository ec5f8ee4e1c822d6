#!/usr/bin/env python3
"""Apply every migrations/versions/*.sql file, in name order, to the record store."""
import argparse
import asyncio
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

import asyncpg

from src.core.config.loader import load_app_config
from src.core.exceptions import ConfigError


def _statements(sql: str) -> list[str]:
    lines = [line for line in sql.split("\n") if not line.strip().startswith("--")]
    return [stmt.strip() for stmt in "\n".join(lines).split(";") if stmt.strip()]


async def run_migrations(url: str, files: list[Path]) -> None:
    conn = await asyncpg.connect(url)
    try:
        for path in files:
            async with conn.transaction():
                for stmt in _statements(path.read_text(encoding="utf-8")):
                    await conn.execute(stmt)
            print(f"Applied {path.name}")
    finally:
        await conn.close()


def main():
    parser = argparse.ArgumentParser(description="Create the app schema (financial activities, support docs, classified items, agent steps).")
    parser.add_argument("--config", default=None, help="Config path (default: CONFIG_PATH or config/app.json)")
    args = parser.parse_args()
    try:
        config = load_app_config(args.config, project_root=ROOT)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        sys.exit(1)
    url = config.get_store_url(dict(os.environ))
    if not url:
        print("Record store URL not set (session_store.connection_id). Set it in config/env/.env or .env", file=sys.stderr)
        sys.exit(1)
    files = sorted((ROOT / "migrations" / "versions").glob("*.sql"))
    asyncio.run(run_migrations(url, files))


if __name__ == "__main__":
    main()
