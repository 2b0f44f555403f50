#!/usr/bin/env python3
"""
Create the first admin user: default company, auth user, profile, permission.

Usage:
    python scripts/create_first_admin.py [email] [password] [full_name]
    ADMIN_EMAIL=admin@example.com ADMIN_PASSWORD=secure123 python scripts/create_first_admin.py

Requires SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY and DATABASE_URL.
"""

import asyncio
import getpass
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from medplus.api.deps import saga_defaults
from medplus.auth.identity import SupabaseIdentityProvider
from medplus.config import settings
from medplus.database import async_session_maker, engine
from medplus.exceptions import ConfigurationError, ValidationError
from medplus.provisioning.saga import AdminProvisioningSaga
from medplus.storage.repositories import SqlPermissionStore, SqlProfileStore, SqlTenantStore

DEFAULT_FULL_NAME = "Admin User"


def _arg(index: int, env: str) -> str | None:
    if len(sys.argv) > index and sys.argv[index]:
        return sys.argv[index]
    return os.environ.get(env)


async def create_first_admin() -> int:
    email = _arg(1, "ADMIN_EMAIL") or input("Admin email address: ").strip()
    password = _arg(2, "ADMIN_PASSWORD")
    confirm = None
    if not password:
        password = getpass.getpass("Admin password (min 8 characters): ")
        confirm = getpass.getpass("Confirm password: ")
    full_name = _arg(3, "ADMIN_FULL_NAME") or DEFAULT_FULL_NAME

    credentials = settings.get_credentials()
    try:
        credentials.require()
    except ConfigurationError as e:
        print(f"Error: {e}")
        print("Copy the service role key (not the anon key) from the project API settings")
        print('and run: export SUPABASE_SERVICE_ROLE_KEY="your-service-role-key"')
        return 1

    async with SupabaseIdentityProvider(
        credentials, timeout=settings.identity_request_timeout
    ) as identities:
        saga = AdminProvisioningSaga(
            credentials=credentials,
            tenants=SqlTenantStore(async_session_maker),
            identities=identities,
            profiles=SqlProfileStore(async_session_maker),
            permissions=SqlPermissionStore(async_session_maker),
            defaults=saga_defaults(settings),
        )
        try:
            result = await saga.run(
                email, password, full_name, confirm_password=confirm, on_progress=print
            )
        except ValidationError as e:
            print(f"Error: {e}")
            return 1
        finally:
            await engine.dispose()

    if not result.success:
        print(f"\nFAILED: {result.error}")
        if result.compensation_failed:
            print(f"Auth user {result.user_id} was left behind; delete it manually.")
        return 1

    for warning in result.warnings:
        print(f"Warning: {warning}")
    print(f"\nSUCCESS: {result.message}")
    print(f"   Email:   {email}")
    print(f"   User ID: {result.user_id}")
    print("   Role:    admin")
    print("   Status:  active")
    print(f"\nSign in at {settings.app_url}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(create_first_admin()))
