import re
from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, EmailStr, Field, model_validator
from app.schemas.common import CamelModel

PASSWORD_RULE = re.compile(r"^(?=.*[a-zA-Z])(?=.*\d)\S{8,256}$")
PASSWORD_RULE_MESSAGE = "Password must include at least 1 letter, a number, and at least 8 characters."


def _check_password(value: str) -> str:
    if not PASSWORD_RULE.match(value):
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return value


Password = Annotated[str, AfterValidator(_check_password)]


class RegisterRequest(CamelModel):
    email: EmailStr
    password: Password


class VerifyAccountRequest(CamelModel):
    email: EmailStr
    token: str = Field(min_length=1)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserUpdateRequest(CamelModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    current_password: str | None = None
    new_password: Password | None = None

    @model_validator(mode="after")
    def check_password_pair(self) -> "UserUpdateRequest":
        if bool(self.current_password) != bool(self.new_password):
            raise ValueError("currentPassword and newPassword must be sent together")
        return self


class UserOut(CamelModel):
    id: int
    email: str
    username: str
    display_name: str | None = None
    avatar: str | None = None
    role: str
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TokenOut(CamelModel):
    access_token: str
