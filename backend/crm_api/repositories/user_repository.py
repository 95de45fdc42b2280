from __future__ import annotations

import re
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm_api.core.constants import DefaultStatus, StoreErrorCode, UserRole
from crm_api.core.errors import (
    CastError,
    DuplicateKeyError,
    FieldValidationError,
    StoreError,
)
from crm_api.models.user import User


class UserRepository(Protocol):
    """Store contract the lifecycle service depends on."""

    async def find_one(
        self,
        *,
        status: int,
        user_id: Any = None,
        username: str | None = None,
    ) -> User | None:
        raise NotImplementedError

    async def find_page(
        self,
        *,
        status: int,
        full_name: str | None = None,
        username: str | None = None,
        role: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[int, list[User]]:
        raise NotImplementedError

    async def insert(self, user: User) -> User:
        raise NotImplementedError

    async def save(self, user: User) -> User:
        raise NotImplementedError


_PG_DUPLICATE = re.compile(r"Key \((?P<fields>.+?)\)=\((?P<values>.*)\) already exists")
_SQLITE_DUPLICATE = re.compile(r"UNIQUE constraint failed: (?P<cols>.+)$")

_LENGTHS = {
    "full_name": (2, 200),
    "username": (3, 50),
}
_REQUIRED = ("full_name", "username", "password", "role", "status", "created_at")
_UNIQUE = ("username",)


_ID_RE = re.compile(r"[0-9]+")
# users.id is a 32-bit INTEGER
_MAX_ID = 2**31 - 1


def _coerce_id(value: Any) -> int | None:
    """Parse a path id; None means no row can carry it."""
    if isinstance(value, bool) or not (isinstance(value, int) or _ID_RE.fullmatch(str(value))):
        raise CastError("integer", value, "id")
    v = int(value)
    if v < 1 or v > _MAX_ID:
        return None
    return v


def _check_document(user: User) -> None:
    errors: dict[str, str] = {}
    for field in _REQUIRED:
        v = getattr(user, field, None)
        if v is None or v == "":
            errors[field] = f"Path `{field}` is required."
            continue
        if field in _LENGTHS:
            lo, hi = _LENGTHS[field]
            if len(v) < lo:
                errors[field] = f"Path `{field}` (`{v}`) is shorter than the minimum allowed length ({lo})."
            elif len(v) > hi:
                errors[field] = f"Path `{field}` (`{v}`) is longer than the maximum allowed length ({hi})."
        elif field == "role" and v not in {r.value for r in UserRole}:
            errors[field] = f"`{v}` is not a valid enum value for path `role`."
        elif field == "status" and v not in {int(st) for st in DefaultStatus}:
            errors[field] = f"`{v}` is not a valid enum value for path `status`."
    if errors:
        raise FieldValidationError(errors)


def _store_code(exc: DBAPIError) -> int:
    orig = exc.orig
    state = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if state and str(state).isdigit():
        return int(state)
    text = str(orig)
    if "UNIQUE constraint failed" in text:
        return StoreErrorCode.UNIQUE_VIOLATION
    if "NOT NULL constraint failed" in text:
        return StoreErrorCode.NOT_NULL_VIOLATION
    if "CHECK constraint failed" in text:
        return StoreErrorCode.CHECK_VIOLATION
    code = getattr(orig, "sqlite_errorcode", None)
    return code if isinstance(code, int) else 0


def _duplicate_key(exc: IntegrityError, user: User) -> DuplicateKeyError:
    text = str(exc.orig)
    diag = getattr(exc.orig, "diag", None)
    detail = getattr(diag, "message_detail", None) or text

    m = _PG_DUPLICATE.search(detail)
    if m:
        fields = [f.strip() for f in m["fields"].split(",")]
        values = [v.strip() for v in m["values"].split(",")]
        if len(fields) == len(values):
            return DuplicateKeyError(dict(zip(fields, values)), text)
    else:
        m = _SQLITE_DUPLICATE.search(text)
        fields = [c.strip().split(".")[-1] for c in m["cols"].split(",")] if m else list(_UNIQUE)

    return DuplicateKeyError({f: getattr(user, f, None) for f in fields}, text)


class SqlUserRepository:
    def __init__(self, s: AsyncSession):
        self.s = s

    async def find_one(
        self,
        *,
        status: int,
        user_id: Any = None,
        username: str | None = None,
    ) -> User | None:
        q = select(User).where(User.status == int(status))
        if user_id is not None:
            uid = _coerce_id(user_id)
            if uid is None:
                return None
            q = q.where(User.id == uid)
        if username is not None:
            q = q.where(User.username == username)
        return (await self.s.execute(q)).scalars().first()

    async def find_page(
        self,
        *,
        status: int,
        full_name: str | None = None,
        username: str | None = None,
        role: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[int, list[User]]:
        conds = [User.status == int(status)]
        if full_name:
            conds.append(User.full_name.icontains(full_name, autoescape=True))
        if username:
            conds.append(User.username.icontains(username, autoescape=True))
        if role:
            conds.append(User.role == role)

        total = (await self.s.execute(select(func.count()).select_from(User).where(*conds))).scalar_one()
        rows = (
            await self.s.execute(
                select(User)
                .where(*conds)
                .order_by(User.created_at.asc(), User.id.asc())
                .offset(offset)
                .limit(limit)
            )
        ).scalars().all()
        return int(total), list(rows)

    async def insert(self, user: User) -> User:
        _check_document(user)
        self.s.add(user)
        await self._commit(user)
        return user

    async def save(self, user: User) -> User:
        _check_document(user)
        self.s.add(user)
        await self._commit(user)
        return user

    async def _commit(self, user: User) -> None:
        try:
            await self.s.commit()
        except IntegrityError as exc:
            # read the offending values before rollback expires them
            code = _store_code(exc)
            if code == StoreErrorCode.UNIQUE_VIOLATION:
                err = _duplicate_key(exc, user)
            else:
                err = StoreError(code, str(exc.orig))
            await self.s.rollback()
            raise err from exc
        except DBAPIError as exc:
            await self.s.rollback()
            raise StoreError(_store_code(exc), str(exc.orig)) from exc
