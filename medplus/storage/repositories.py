"""SQLAlchemy-backed stores for companies, profiles, permissions and relation probes."""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import Select, func, literal_column, select, table, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from medplus.backend.errors import (
    BackendError,
    BackendErrorKind,
    classify_message,
    kind_for_sqlstate,
)
from medplus.backend.records import (
    CompanyRecord,
    PermissionRecord,
    ProfileRecord,
    ProfileRole,
    ProfileStatus,
)
from medplus.models import Company, Profile, UserPermission


def _now() -> datetime:
    return datetime.now(timezone.utc)


def translate_db_error(exc: DBAPIError) -> BackendError:
    """Turn a driver error into a BackendError, preferring the SQLSTATE over the text."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    message = str(orig) if orig is not None else str(exc)
    kind = kind_for_sqlstate(sqlstate) or classify_message(message)
    return BackendError(kind, message)


@contextmanager
def db_errors() -> Iterator[None]:
    """Re-raise driver, pool and connection failures as BackendError."""
    try:
        yield
    except DBAPIError as exc:
        raise translate_db_error(exc) from exc
    except (SQLAlchemyError, OSError) as exc:
        raise BackendError(BackendErrorKind.OTHER, str(exc)) from exc


def profile_by_email_query(email: str) -> Select:
    """Emails are matched case-insensitively, like identity lookups."""
    return select(Profile).where(func.lower(Profile.email) == func.lower(email)).limit(1)


def _company_record(company: Company) -> CompanyRecord:
    return CompanyRecord(
        id=str(company.id),
        name=company.name,
        email=company.email,
        currency=company.currency,
        logo_url=company.logo_url,
        primary_color=company.primary_color,
    )


def _profile_record(profile: Profile) -> ProfileRecord:
    return ProfileRecord(
        id=str(profile.id),
        email=profile.email,
        full_name=profile.full_name,
        role=ProfileRole(profile.role),
        status=ProfileStatus(profile.status),
        company_id=str(profile.company_id) if profile.company_id else None,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


class _SessionStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker


class SqlTenantStore(_SessionStore):
    """Company lookups and creation."""

    async def first_company(self) -> CompanyRecord | None:
        with db_errors():
            async with self._session_maker() as session:
                result = await session.execute(select(Company).limit(1))
                company = result.scalar_one_or_none()
        return _company_record(company) if company else None

    async def get_company(self, company_id: str) -> CompanyRecord | None:
        with db_errors():
            async with self._session_maker() as session:
                company = await session.get(Company, company_id)
        return _company_record(company) if company else None

    async def create_company(self, name: str, email: str, currency: str) -> CompanyRecord:
        now = _now()
        company = Company(
            id=str(uuid4()),
            name=name,
            email=email,
            currency=currency,
            created_at=now,
            updated_at=now,
        )
        with db_errors():
            async with self._session_maker() as session:
                session.add(company)
                await session.commit()
                await session.refresh(company)
        return _company_record(company)


class SqlProfileStore(_SessionStore):
    """Profile upsert/update keyed by the identity id."""

    async def upsert_profile(self, profile: ProfileRecord) -> None:
        values = {
            "id": profile.id,
            "email": profile.email,
            "full_name": profile.full_name,
            "role": profile.role.value,
            "status": profile.status.value,
            "company_id": profile.company_id,
            "created_at": profile.created_at or _now(),
            "updated_at": profile.updated_at or _now(),
        }
        stmt = pg_insert(Profile).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Profile.id],
            set_={k: stmt.excluded[k] for k in values if k != "id"},
        )
        with db_errors():
            async with self._session_maker() as session:
                await session.execute(stmt)
                await session.commit()

    async def update_profile(self, profile_id: str, values: dict[str, Any]) -> int:
        with db_errors():
            async with self._session_maker() as session:
                result = await session.execute(
                    update(Profile).where(Profile.id == profile_id).values(**values)
                )
                await session.commit()
        return result.rowcount

    async def get_profile_by_email(self, email: str) -> ProfileRecord | None:
        with db_errors():
            async with self._session_maker() as session:
                result = await session.execute(profile_by_email_query(email))
                profile = result.scalar_one_or_none()
        return _profile_record(profile) if profile else None


class SqlPermissionStore(_SessionStore):
    """Permission grants; (user_id, permission_name) is unique."""

    async def grant_permission(
        self, user_id: str, permission_name: str, granted: bool = True
    ) -> None:
        with db_errors():
            async with self._session_maker() as session:
                session.add(
                    UserPermission(
                        id=str(uuid4()),
                        user_id=user_id,
                        permission_name=permission_name,
                        granted=granted,
                    )
                )
                await session.commit()

    async def list_permissions(self, user_id: str) -> list[PermissionRecord]:
        with db_errors():
            async with self._session_maker() as session:
                result = await session.execute(
                    select(UserPermission)
                    .where(UserPermission.user_id == user_id)
                    .order_by(UserPermission.permission_name)
                )
                rows = result.scalars().all()
        return [
            PermissionRecord(
                user_id=str(r.user_id), permission_name=r.permission_name, granted=r.granted
            )
            for r in rows
        ]


class SqlRelationProbe:
    """Existence probe: ``SELECT 1 FROM <relation> LIMIT 1`` on its own connection."""

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def probe(self, relation: str) -> bool:
        stmt = select(literal_column("1")).select_from(table(relation)).limit(1)
        with db_errors():
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                return result.first() is not None
