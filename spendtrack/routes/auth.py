"""
SpendTrack Backend — Account Route Handlers
=============================================

What:  POST /api/auth/register and POST /api/auth/login.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from spendtrack.database import get_db_session
from spendtrack.schemas.common import ErrorResponse
from spendtrack.schemas.user import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
)
from spendtrack.services.auth_service import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=MessageResponse,
    responses={
        400: {"description": "Passwords do not match", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await auth_service.register(db, body)
    return MessageResponse(message="User registered successfully")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in and receive an access token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    return await auth_service.login(db, body.email, body.password)
