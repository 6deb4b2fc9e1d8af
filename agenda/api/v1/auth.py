# agenda/api/v1/auth.py

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.api.deps import http_error
from agenda.config import settings
from agenda.core.auth.schemas import RegisterRequest, TestLoginRequest, Token
from agenda.core.auth.security import create_access_token
from agenda.core.users.service import UsersService
from agenda.db.base import get_async_db_session

router = APIRouter(prefix="/v1/auth", tags=["Authentication"])
log = logging.getLogger(__name__)


@router.post(
    "/register",
    response_model=Token,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user from the identity provider",
    description="Creates the user together with its default calendar and returns a JWT.",
)
async def register(
    request_data: RegisterRequest = Body(...),
    db: AsyncSession = Depends(get_async_db_session),
) -> Token:
    try:
        user = await UsersService(db).register_user(
            request_data.user_id, name=request_data.name, email=request_data.email
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        raise http_error(e, "register_user") from e
    log.info("Registered user %s", user.id)
    return Token(access_token=create_access_token(data={"user_id": user.id}))


@router.post(
    "/login/test",
    response_model=Token,
    summary="[Development Only] Get JWT for a user ID",
    description=(
        "**WARNING:** Use only for development/testing. "
        "Creates the user (with its default calendar) if it doesn't exist "
        "and returns a JWT. Disabled when ENVIRONMENT=prod."
    ),
)
async def test_login_for_access_token(
    login_data: TestLoginRequest = Body(...),
    db: AsyncSession = Depends(get_async_db_session),
) -> Token:
    if settings.ENVIRONMENT == "prod":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    log.warning("Executing TEST login for user_id: %s. Ensure this is NOT production!", login_data.user_id)
    try:
        user = await UsersService(db).get_or_create_user(login_data.user_id)
        await db.commit()
    except Exception as e:
        await db.rollback()
        raise http_error(e, "ensure_user") from e
    return Token(access_token=create_access_token(data={"user_id": user.id}))
