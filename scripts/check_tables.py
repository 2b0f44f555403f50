#!/usr/bin/env python3
"""
Report which required tables exist in the database.
Exits 1 when any table is missing.
Usage: python scripts/check_tables.py
"""

import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from medplus.database import engine
from medplus.diagnostics.tables import get_database_status
from medplus.storage.repositories import SqlRelationProbe


async def check() -> int:
    try:
        status = await get_database_status(SqlRelationProbe(engine))
    finally:
        await engine.dispose()

    print(f"{status.status} ({status.total_tables_found}/{status.total_tables_required} tables)")
    for t in status.missing_tables:
        print(f"  missing: {t.table_name} - {t.error}")
    for t in status.ambiguous_tables:
        print(f"  unclear: {t.table_name} - {t.error}")
    return 0 if status.tables_ready else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(check()))
