from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cowork.auth.errors import Unauthenticated
from cowork.auth.identity import resolve_token
from cowork.auth.policy import require_min_role
from cowork.auth.rls import bind_session_claims
from cowork.auth.subject import Subject
from cowork.core.roles import Role
from cowork.core.security import bearer_scheme
from cowork.db.session import get_db, get_system_db


async def get_current_subject(
    credentials=Depends(bearer_scheme),
    system_db: AsyncSession = Depends(get_system_db),
) -> Subject:
    """
    Verified token -> Subject. The users table is read through the system
    session: before this runs there are no claims to satisfy RLS with.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("missing bearer token")
    return await resolve_token(system_db, credentials.credentials)


async def get_scoped_db(
    subject: Subject = Depends(get_current_subject),
    db: AsyncSession = Depends(get_db),
) -> AsyncGenerator[AsyncSession, None]:
    """Request session with the subject's claims bound for RLS."""
    await bind_session_claims(db, subject)
    yield db


def require_role(min_role: Role):
    """
    Coarse route guard. Resource level checks still go through can_access.
    """

    async def _checker(subject: Subject = Depends(get_current_subject)) -> Subject:
        require_min_role(subject, min_role)
        return subject

    return _checker
