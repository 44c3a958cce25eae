"""
Create the current reporting schema on an empty database.

Existing tables are left untouched; afterwards the live schema is inspected
and the resolved capabilities are printed, which is the value to compare
against SCHEMA_VERSION before starting the API.

Run with: python -m scripts.create_schema
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import models  # noqa: E402,F401
from db.base import Base  # noqa: E402
from db.capabilities import resolve_capabilities  # noqa: E402
from db.session import close_db, get_engine  # noqa: E402


async def create_schema() -> None:
    """Create missing tables and report the resulting capabilities."""
    engine = get_engine()
    print("Creating missing tables...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    capabilities = await resolve_capabilities(engine)
    missing = [name for name, enabled in capabilities.to_dict().items() if enabled is False]
    if missing:
        print(f"Schema is missing optional features: {', '.join(missing)}")
    else:
        print("Schema supports every optional feature (v3)")

    await close_db()


if __name__ == "__main__":
    asyncio.run(create_schema())
