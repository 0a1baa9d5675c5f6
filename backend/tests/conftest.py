from __future__ import annotations

import os
import uuid
from datetime import datetime, timedelta, timezone

# Settings are read at import time; give the app module engines something
# harmless. Tests never use them (get_db / get_system_db are overridden).
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE_URL_SYNC", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from cowork.core.config import settings
from cowork.core.roles import Role
from cowork.db.session import get_db, get_system_db

# Ensure Base + models are registered before create_all
from cowork.db.base import Base  # noqa: F401
import cowork.models  # noqa: F401
from cowork.models.tenant import Tenant
from cowork.models.user import User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------
# Engine + schema lifecycle
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(tmp_path):
    """
    One SQLite file per test. A file (not :memory:) so the request's
    system session and scoped session get their own connections.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'cowork.db'}",
        future=True,
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )


# ---------------------------------------------------------
# DB session for setup / assertions
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    """
    Session for test setup & assertions ONLY. Commit before calling the API.
    """
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker):
    from cowork.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_system_db] = _override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------
# Identity provider tokens
# ---------------------------------------------------------
def make_token(external_id: str, email: str, *, expires_in: int = 300, **claims) -> str:
    """Sign a token the way the identity provider would."""
    payload = {
        "sub": external_id,
        "email": email,
        "exp": utcnow() + timedelta(seconds=expires_in),
        **claims,
    }
    if settings.IDP_ISSUER:
        payload["iss"] = settings.IDP_ISSUER
    if settings.IDP_AUDIENCE:
        payload["aud"] = settings.IDP_AUDIENCE
    return jwt.encode(payload, settings.IDP_JWT_KEY, algorithm=settings.IDP_JWT_ALGORITHM)


def auth_headers(user: User, **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(user.external_id, user.email, **claims)}"}


# ---------------------------------------------------------
# Factories
# ---------------------------------------------------------
async def create_tenant(db, name: str | None = None) -> Tenant:
    tenant = Tenant(name=name or f"Cowork {uuid.uuid4().hex[:8]}", is_active=True)
    db.add(tenant)
    await db.flush()
    return tenant


async def create_user(
    db,
    role: Role = Role.END_USER,
    tenant: Tenant | None = None,
    *,
    email: str | None = None,
    is_onboarded: bool = True,
    is_active: bool = True,
) -> User:
    suffix = uuid.uuid4().hex[:8]
    user = User(
        external_id=f"idp|{suffix}",
        email=(email or f"user-{suffix}@example.com").lower(),
        tenant_id=tenant.id if tenant is not None else None,
        role=role.value,
        is_onboarded=is_onboarded,
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    return user


async def create_invitation_row(
    db,
    tenant: Tenant | None,
    email: str,
    role: Role = Role.END_USER,
    *,
    expires_at: datetime | None = None,
    status: str = "PENDING",
):
    from cowork.models.invitation import Invitation

    inv = Invitation(
        tenant_id=tenant.id if tenant is not None else None,
        email=email.lower().strip(),
        role=role.value,
        token=f"tok_{uuid.uuid4().hex}",
        status=status,
        expires_at=expires_at or utcnow() + timedelta(days=7),
    )
    db.add(inv)
    await db.flush()
    return inv


# ---------------------------------------------------------
# A small two-tenant world with one row per resource table
# ---------------------------------------------------------
class World:
    """Handles to everything seed_world() created."""

    def __init__(self):
        self.tenants: dict[str, Tenant] = {}
        self.users: dict[str, User] = {}


async def seed_world(db) -> World:
    """
    Tenants T1 and T2. In T1: members U1 and U2 (each owning a booking and an
    access log). In T2: member U3. U0 has no tenant. Every other resource has
    one row per tenant, and each quotation has one item.
    """
    from decimal import Decimal

    from cowork.models import (
        AccessLog,
        Activity,
        Booking,
        Client,
        Invitation,
        Invoice,
        Lead,
        Membership,
        Opportunity,
        Quotation,
        QuotationItem,
        Service,
        Space,
    )

    world = World()
    t1 = await create_tenant(db, "T1")
    t2 = await create_tenant(db, "T2")
    world.tenants = {"T1": t1, "T2": t2}

    world.users = {
        "U0": await create_user(db, Role.END_USER, None, is_onboarded=False),
        "U1": await create_user(db, Role.END_USER, t1),
        "U2": await create_user(db, Role.END_USER, t1),
        "U3": await create_user(db, Role.END_USER, t2),
    }

    start = utcnow()
    owners = {"T1": ["U1", "U2"], "T2": ["U3"]}
    for label, tenant in world.tenants.items():
        quotation = Quotation(tenant_id=tenant.id, number=f"Q-{label}")
        db.add_all(
            [
                Client(tenant_id=tenant.id, name=f"client {label}"),
                Lead(tenant_id=tenant.id, name=f"lead {label}"),
                Opportunity(tenant_id=tenant.id, title=f"opportunity {label}"),
                quotation,
                Space(tenant_id=tenant.id, name=f"space {label}"),
                Service(tenant_id=tenant.id, name=f"service {label}"),
                Invoice(tenant_id=tenant.id, number=f"INV-{label}"),
                Membership(tenant_id=tenant.id, plan_name=f"plan {label}"),
                Activity(tenant_id=tenant.id, kind="call"),
                Invitation(
                    tenant_id=tenant.id,
                    email=f"invitee-{label.lower()}@example.com",
                    role=Role.END_USER.value,
                    token=f"tok_{uuid.uuid4().hex}",
                    status="PENDING",
                    expires_at=start + timedelta(days=7),
                ),
            ]
        )
        await db.flush()
        db.add(QuotationItem(quotation_id=quotation.id, description=f"desk {label}", unit_price=Decimal("10.00")))

        for owner in owners[label]:
            user_id = world.users[owner].id
            db.add_all(
                [
                    Booking(
                        tenant_id=tenant.id,
                        user_id=user_id,
                        starts_at=start,
                        ends_at=start + timedelta(hours=1),
                    ),
                    AccessLog(tenant_id=tenant.id, user_id=user_id, event="check_in"),
                ]
            )

    # platform level invitation (no tenant)
    db.add(
        Invitation(
            tenant_id=None,
            email="platform@example.com",
            role=Role.SUPER_ADMIN.value,
            token=f"tok_{uuid.uuid4().hex}",
            status="PENDING",
            expires_at=start + timedelta(days=7),
        )
    )
    await db.commit()
    return world
