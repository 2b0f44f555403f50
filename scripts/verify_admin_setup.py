#!/usr/bin/env python3
"""
Verify that the admin setup succeeded and the user can sign in.

Usage:
    python scripts/verify_admin_setup.py [email]
    ADMIN_EMAIL=admin@example.com python scripts/verify_admin_setup.py
"""

import asyncio
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from medplus.auth.identity import SupabaseIdentityProvider
from medplus.config import settings
from medplus.database import async_session_maker, engine
from medplus.exceptions import ConfigurationError
from medplus.provisioning.verify import verify_admin_setup
from medplus.storage.repositories import SqlPermissionStore, SqlProfileStore, SqlTenantStore


async def verify() -> int:
    email = (sys.argv[1] if len(sys.argv) > 1 else os.environ.get("ADMIN_EMAIL")) or input(
        "Admin email to verify: "
    ).strip()
    try:
        identities = SupabaseIdentityProvider(
            settings.get_credentials(), timeout=settings.identity_request_timeout
        )
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1

    async with identities:
        try:
            report = await verify_admin_setup(
                email,
                profiles=SqlProfileStore(async_session_maker),
                tenants=SqlTenantStore(async_session_maker),
                permissions=SqlPermissionStore(async_session_maker),
                identities=identities,
            )
        finally:
            await engine.dispose()

    print(f"Checking {email}...\n")
    for check in report.checks:
        print(f"[{check.level.value.upper():7}] {check.name}: {check.detail}")

    if not report.ok:
        print("\nVerification FAILED. Run: python scripts/create_first_admin.py")
        return 1
    print("\nVerification successful - the user can sign in.")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(verify()))
