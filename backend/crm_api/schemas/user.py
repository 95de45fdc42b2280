import re

from pydantic import BaseModel, Field, field_validator

from crm_api.core.constants import (
    DefaultStatus,
    ERROR_MESSAGE_FOR_PASSWORD,
    PASSWORD_SPECIALS,
    UserRole,
)

_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[" + re.escape(PASSWORD_SPECIALS) + r"])")


def _length(name: str, v: str, lo: int, hi: int) -> str:
    if len(v) < lo:
        raise ValueError(f"{name} must be longer than or equal to {lo} characters")
    if len(v) > hi:
        raise ValueError(f"{name} must be shorter than or equal to {hi} characters")
    return v


def _password(v: str) -> str:
    v = str(v)
    _length("password", v, 8, 100)
    if not _PASSWORD_RE.match(v):
        raise ValueError(ERROR_MESSAGE_FOR_PASSWORD)
    return v


class UserCreate(BaseModel):
    full_name: str
    username: str
    password: str
    role: UserRole
    status: DefaultStatus = DefaultStatus.ACTIVE

    @field_validator("full_name")
    @classmethod
    def full_name_len(cls, v: str):
        return _length("full_name", v.strip(), 2, 200)

    @field_validator("username")
    @classmethod
    def username_len(cls, v: str):
        return _length("username", v.strip(), 3, 50)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str):
        return _password(v)


class UserUpdate(BaseModel):
    full_name: str | None = None
    username: str | None = None
    password: str | None = None
    role: UserRole | None = None

    @field_validator("full_name")
    @classmethod
    def full_name_len(cls, v: str | None):
        if v is None:
            return None
        return _length("full_name", v.strip(), 2, 200)

    @field_validator("username")
    @classmethod
    def username_len(cls, v: str | None):
        if v is None:
            return None
        return _length("username", v.strip(), 3, 50)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str | None):
        if v is None:
            return None
        return _password(v)


class UserQuery(BaseModel):
    full_name: str | None = None
    username: str | None = None
    role: UserRole | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)


class UserOut(BaseModel):
    id: int
    full_name: str
    username: str
    role: str
    status: int
    created_at: int
    updated_at: int | None = None
    deleted_at: int | None = None

    class Config:
        from_attributes = True


class UserPage(BaseModel):
    total_docs: int
    total_page: int
    current_page: int
    data: list[UserOut]
