"""FastAPI dependency injection helpers."""

from typing import Callable

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import AuthorizationError
from src.domain.enums import UserRole
from src.infrastructure.database import async_session_factory
from src.services.booking_actions import Actor


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_actor(
    x_actor_id: int = Header(..., description="Caller user id, set by the gateway"),
    x_actor_role: UserRole = Header(..., description="Caller role, set by the gateway"),
) -> Actor:
    return Actor(id=x_actor_id, role=x_actor_role)


def require_role(*allowed_roles: UserRole) -> Callable[..., Actor]:
    """Dependency that rejects callers outside *allowed_roles* with 403."""

    async def role_checker(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in allowed_roles:
            raise AuthorizationError(
                f"Role '{actor.role.value}' is not authorized for this action"
            )
        return actor

    return role_checker


require_admin = require_role(UserRole.ADMIN, UserRole.SUPER_ADMIN)
require_driver = require_role(UserRole.DRIVER)
require_customer = require_role(UserRole.CUSTOMER)
require_booking_viewer = require_role(
    UserRole.CUSTOMER, UserRole.ADMIN, UserRole.SUPER_ADMIN
)
