"""
User service - registration, account verification, login and profile updates.
"""
import logging
import secrets
from urllib.parse import urlencode

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Config
from app.db.database import transaction
from app.errors import ErrorType
from app.exceptions import AppException
from app.models import User
from app.schemas.user import (
    LoginRequest,
    RegisterRequest,
    UserOut,
    UserUpdateRequest,
    VerifyAccountRequest,
)
from app.security import (
    REFRESH_TOKEN,
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.services.storage_service import ImageStorage, image_storage

logger = logging.getLogger(__name__)

AVATAR_FOLDER = "users"


class UserService:
    def __init__(self, storage: ImageStorage = image_storage):
        self.storage = storage

    async def register(self, session: AsyncSession, data: RegisterRequest) -> UserOut:
        if await self._find_by_email(session, data.email) is not None:
            raise AppException(ErrorType.CONFLICT, "Email already exists!")

        email = data.email.lower()
        username = email.split("@")[0]
        user = User(
            email=email,
            password_hash=hash_password(data.password),
            username=username,
            display_name=username,
            verify_token=secrets.token_urlsafe(32),
        )
        async with transaction(session):
            session.add(user)
        await session.refresh(user)

        verification_link = f"{Config.WEBSITE_DOMAIN}/account/verification?" + urlencode(
            {"email": user.email, "token": user.verify_token}
        )
        logger.info(f"Registered user {user.id}, verification link: {verification_link}")
        return UserOut.model_validate(user)

    async def verify_account(self, session: AsyncSession, data: VerifyAccountRequest) -> UserOut:
        user = await self._find_by_email(session, data.email)
        if user is None:
            raise AppException(ErrorType.NOT_FOUND, "Account not found!")
        if user.is_active:
            raise AppException(ErrorType.NOT_ACCEPTABLE, "Your account is already active!")
        if not user.verify_token or not secrets.compare_digest(user.verify_token, data.token):
            raise AppException(ErrorType.NOT_ACCEPTABLE, "Token is invalid!")

        async with transaction(session):
            user.is_active = True
            user.verify_token = None
        await session.refresh(user)

        logger.info(f"User {user.id} verified")
        return UserOut.model_validate(user)

    async def login(self, session: AsyncSession, data: LoginRequest) -> dict:
        """Check credentials and issue a token pair.

        Returns:
            dict with 'user', 'access_token' and 'refresh_token' keys
        """
        user = await self._find_by_email(session, data.email)
        if user is None:
            raise AppException(ErrorType.NOT_FOUND, "Account not found!")
        if not user.is_active:
            raise AppException(ErrorType.NOT_ACCEPTABLE, "Your account is not active!")
        if not verify_password(data.password, user.password_hash):
            raise AppException(ErrorType.NOT_ACCEPTABLE, "Your Email or Password is incorrect!")

        logger.info(f"User {user.id} logged in")
        return {
            "user": UserOut.model_validate(user),
            "access_token": create_access_token(user.id, user.email),
            "refresh_token": create_refresh_token(user.id, user.email),
        }

    def refresh_token(self, token: str | None) -> str:
        """Return a new access token for a valid refresh token."""
        try:
            claims = decode_token(token, REFRESH_TOKEN)
        except TokenError as e:
            logger.info(f"Refresh rejected: {e}")
            raise AppException(ErrorType.FORBIDDEN, "Please Sign In! (Error from refresh Token)")
        return create_access_token(int(claims["sub"]), claims["email"])

    async def update(
        self,
        session: AsyncSession,
        user_id: int,
        data: UserUpdateRequest,
        avatar: UploadFile | None = None,
    ) -> UserOut:
        user = await session.get(User, user_id)
        if user is None:
            raise AppException(ErrorType.NOT_FOUND, "Account not found!")
        if not user.is_active:
            raise AppException(ErrorType.NOT_ACCEPTABLE, "Your account is not active!")

        if data.current_password and data.new_password:
            if not verify_password(data.current_password, user.password_hash):
                raise AppException(ErrorType.NOT_ACCEPTABLE, "Your Current Password is incorrect!")
            changes = {"password_hash": hash_password(data.new_password)}
        elif avatar is not None:
            changes = {"avatar": await self.storage.upload_image(avatar, AVATAR_FOLDER)}
        else:
            changes = data.model_dump(include={"display_name"}, exclude_none=True)

        async with transaction(session):
            for field, value in changes.items():
                setattr(user, field, value)
        await session.refresh(user)

        logger.info(f"Updated user {user_id}: {', '.join(changes) or 'nothing'}")
        return UserOut.model_validate(user)

    async def _find_by_email(self, session: AsyncSession, email: str) -> User | None:
        return await session.scalar(select(User).where(User.email == email.lower()))


user_service = UserService()
