from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Config
from app.db.database import get_session
from app.dependencies import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, get_current_user_id
from app.schemas.user import (
    LoginRequest,
    RegisterRequest,
    TokenOut,
    UserOut,
    UserUpdateRequest,
    VerifyAccountRequest,
)
from app.services.user_service import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def _set_auth_cookie(response: Response, key: str, value: str):
    # Cookie lifetime is independent of the token lifetime
    response.set_cookie(
        key,
        value,
        max_age=Config.COOKIE_MAX_AGE,
        httponly=True,
        secure=Config.COOKIE_SECURE,
        samesite="strict",
    )


def _clear_auth_cookie(response: Response, key: str):
    response.delete_cookie(key, httponly=True, secure=Config.COOKIE_SECURE, samesite="strict")


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, session: AsyncSession = Depends(get_session)):
    return await user_service.register(session, data)


@router.put("/verify", response_model=UserOut)
async def verify_account(data: VerifyAccountRequest, session: AsyncSession = Depends(get_session)):
    return await user_service.verify_account(session, data)


@router.post("/login", response_model=UserOut)
async def login(data: LoginRequest, response: Response, session: AsyncSession = Depends(get_session)):
    """Log in and hand the token pair to the browser as HTTP-only cookies."""
    result = await user_service.login(session, data)
    _set_auth_cookie(response, ACCESS_TOKEN_COOKIE, result["access_token"])
    _set_auth_cookie(response, REFRESH_TOKEN_COOKIE, result["refresh_token"])
    return result["user"]


@router.delete("/logout")
async def logout(response: Response):
    _clear_auth_cookie(response, ACCESS_TOKEN_COOKIE)
    _clear_auth_cookie(response, REFRESH_TOKEN_COOKIE)
    return {"loggedOut": True}


@router.get("/refresh_token", response_model=TokenOut)
async def refresh_token(request: Request, response: Response):
    access_token = user_service.refresh_token(request.cookies.get(REFRESH_TOKEN_COOKIE))
    _set_auth_cookie(response, ACCESS_TOKEN_COOKIE, access_token)
    return TokenOut(access_token=access_token)


@router.put("/update", response_model=UserOut)
async def update_user(
    user_id: int = Depends(get_current_user_id),
    display_name: str | None = Form(None, alias="displayName"),
    current_password: str | None = Form(None, alias="currentPassword"),
    new_password: str | None = Form(None, alias="newPassword"),
    avatar: UploadFile | None = File(None),
    session: AsyncSession = Depends(get_session),
):
    data = UserUpdateRequest(
        display_name=display_name or None,
        current_password=current_password or None,
        new_password=new_password or None,
    )
    return await user_service.update(session, user_id, data, avatar)
