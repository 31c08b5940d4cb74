import asyncio
from typing import Annotated
import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, OperationalError

from shiftclock.core.database import Database
from shiftclock.core.exceptions import StoreUnavailableError
from shiftclock.core.security import decode_token
from shiftclock.models.user import User
from shiftclock.services.shift_service import ShiftService
from shiftclock.services.status_classifier import ShiftPolicy

security = HTTPBearer()


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db(database: Annotated[Database, Depends(get_database)]):
    async with database.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_shift_service(request: Request) -> ShiftService:
    return request.app.state.shift_service


def get_policy(request: Request) -> ShiftPolicy:
    return request.app.state.policy


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(credentials.credentials)
        if payload.get("type") != "access":
            raise credentials_exception
        user_id = uuid.UUID(payload["sub"])
    except (ValueError, KeyError):
        raise credentials_exception

    timeout = request.app.state.settings.STORE_TIMEOUT_SECONDS
    try:
        result = await asyncio.wait_for(db.execute(select(User).where(User.id == user_id)), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise StoreUnavailableError(f"user lookup timed out after {timeout}s") from e
    except (OperationalError, DBAPIError) as e:
        raise StoreUnavailableError(f"user lookup failed: {e}") from e
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
Shifts = Annotated[ShiftService, Depends(get_shift_service)]
Policy = Annotated[ShiftPolicy, Depends(get_policy)]
