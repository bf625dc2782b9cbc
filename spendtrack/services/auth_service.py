"""
SpendTrack Backend — Account Service
======================================

What:  Registration and login.
How:   Passwords are hashed with bcrypt (cost from bcrypt.gensalt()) in the
       threadpool; login issues an HS256 JWT whose claims are
       {"user": {"id": <uuid>}, "exp": <expiry>}.
Who:   Called by routes/auth.py.
"""

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from spendtrack.config import settings
from spendtrack.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    ValidationError,
)
from spendtrack.models.user import User
from spendtrack.schemas.user import LoginResponse, RegisterRequest, UserSummary

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def create_access_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {"user": {"id": str(user.id)}, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class AuthService:

    async def register(self, db: AsyncSession, request: RegisterRequest) -> User:
        """
        Create an account.

        Raises:
            ValidationError: password and confirm_password differ
            ConflictError: email already registered
            DatabaseError: the insert failed
        """
        if request.password != request.confirm_password:
            raise ValidationError(message="Passwords do not match", field="confirm_password")

        existing = await self._find_by_email(db, request.email)
        if existing is not None:
            raise ConflictError(message="User already exists", context={"field": "email"})

        user = User(
            full_name=request.full_name.strip(),
            email=request.email,
            password_hash=await run_in_threadpool(hash_password, request.password),
            monthly_budget=request.monthly_budget,
            preferred_currency=request.preferred_currency,
            notification_pref=request.notification_pref,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            raise ConflictError(message="User already exists", context={"field": "email"})
        except SQLAlchemyError as e:
            logger.error("Database error registering %s: %s", request.email, e, exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})

        logger.info("Registered user %s", user.id)
        return user

    async def login(self, db: AsyncSession, email: str, password: str) -> LoginResponse:
        """
        Check credentials and issue an access token.

        Unknown email and wrong password produce the same error so the
        response does not reveal which accounts exist.
        """
        user = await self._find_by_email(db, email)
        if user is None:
            raise AuthenticationError()

        if not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.info("Failed login for user %s", user.id)
            raise AuthenticationError()

        return LoginResponse(
            token=create_access_token(user),
            user=UserSummary.model_validate(user),
        )

    @staticmethod
    async def _find_by_email(db: AsyncSession, email: str):
        try:
            result = await db.execute(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            logger.error("Database error looking up %s: %s", email, e)
            raise DatabaseError(context={"error_type": type(e).__name__})
        return result.scalar_one_or_none()


auth_service = AuthService()
