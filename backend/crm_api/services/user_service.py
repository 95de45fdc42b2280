from __future__ import annotations

import logging
import math
from typing import Any

from crm_api.core.constants import (
    DefaultStatus,
    INVALID_CREDENTIALS,
    USER_NOT_FOUND,
    UserRole,
)
from crm_api.core.errors import NotFound, Unauthorized
from crm_api.core.security import PasswordHasher, TokenIssuer
from crm_api.models.user import User
from crm_api.repositories.user_repository import UserRepository
from crm_api.schemas.auth import LoginOut, LoginUser
from crm_api.schemas.user import UserCreate, UserOut, UserPage, UserQuery, UserUpdate
from crm_api.utils.timestamps import now_ts

log = logging.getLogger("crm_api.users.service")

# fields a PATCH may touch; id, status and the timestamps are never copied from input
UPDATABLE_FIELDS = ("full_name", "username", "password", "role")


class UserService:
    def __init__(
        self,
        repository: UserRepository,
        hasher: PasswordHasher | None = None,
        tokens: TokenIssuer | None = None,
        logger: logging.Logger | None = None,
    ):
        self.repository = repository
        self.hasher = hasher or PasswordHasher()
        self.tokens = tokens or TokenIssuer()
        self.log = logger or log

    async def validate_credentials(self, username: str, password: str) -> User:
        self.log.debug("validate_credentials: username=%s", username)

        user = await self.repository.find_one(status=DefaultStatus.ACTIVE, username=username)
        if not user:
            self.log.debug("validate_credentials: user not found")
            raise Unauthorized(INVALID_CREDENTIALS)

        if not self.hasher.verify(password, user.password):
            self.log.debug("validate_credentials: password mismatch for user_id=%s", user.id)
            raise Unauthorized(INVALID_CREDENTIALS)

        return user

    async def log_in(self, username: str, password: str) -> LoginOut:
        user = await self.validate_credentials(username, password)
        token = self.tokens.create_access_token(sub=str(user.id), role=user.role)
        self.log.debug("log_in: issued token for user_id=%s", user.id)
        return LoginOut(
            access_token=token,
            permissions=[],
            user=LoginUser(id=user.id, full_name=user.full_name, role=user.role),
        )

    async def create(self, data: UserCreate) -> UserOut:
        self.log.debug("create: username=%s role=%s", data.username, data.role.value)

        user = User(
            full_name=data.full_name,
            username=data.username,
            password=self.hasher.hash(data.password),
            role=data.role.value,
            status=int(DefaultStatus.ACTIVE),
            created_at=now_ts(),
            updated_at=None,
            deleted_at=None,
        )
        # a duplicate username comes back from the store's unique index
        await self.repository.insert(user)

        self.log.debug("create: user_id=%s", user.id)
        return UserOut.model_validate(user)

    async def get_by_id(self, user_id: Any) -> UserOut:
        user = await self._find(user_id, DefaultStatus.ACTIVE)
        return UserOut.model_validate(user)

    async def get_all(self, query: UserQuery) -> UserPage:
        self.log.debug(
            "get_all: full_name=%s username=%s role=%s page=%s limit=%s",
            query.full_name, query.username, query.role, query.page, query.limit,
        )

        total, rows = await self.repository.find_page(
            status=DefaultStatus.ACTIVE,
            full_name=query.full_name,
            username=query.username,
            role=query.role.value if query.role else None,
            offset=(query.page - 1) * query.limit,
            limit=query.limit,
        )

        self.log.debug("get_all: total=%s", total)
        return UserPage(
            total_docs=total,
            total_page=math.ceil(total / query.limit),
            current_page=query.page,
            data=[UserOut.model_validate(u) for u in rows],
        )

    async def update(self, user_id: Any, data: UserUpdate) -> UserOut:
        user = await self._find(user_id, DefaultStatus.ACTIVE)

        changed = []
        for field in UPDATABLE_FIELDS:
            v = getattr(data, field)
            if v is None:
                continue
            if field == "password":
                v = self.hasher.hash(v)
            elif field == "role":
                v = UserRole(v).value
            setattr(user, field, v)
            changed.append(field)
        user.updated_at = now_ts()

        await self.repository.save(user)
        self.log.debug("update: user_id=%s fields=%s", user.id, changed)
        return UserOut.model_validate(user)

    async def delete(self, user_id: Any) -> None:
        user = await self._find(user_id, DefaultStatus.ACTIVE)

        ts = now_ts()
        user.status = int(DefaultStatus.INACTIVE)
        user.deleted_at = ts
        user.updated_at = ts
        await self.repository.save(user)

        self.log.debug("delete: user_id=%s", user.id)

    async def restore(self, user_id: Any) -> UserOut:
        user = await self._find(user_id, DefaultStatus.INACTIVE)

        user.status = int(DefaultStatus.ACTIVE)
        user.deleted_at = None
        user.updated_at = now_ts()
        await self.repository.save(user)

        self.log.debug("restore: user_id=%s", user.id)
        return UserOut.model_validate(user)

    async def seed_admin(self, username: str, password: str, full_name: str) -> UserOut | None:
        for status in DefaultStatus:
            if await self.repository.find_one(status=status, username=username):
                self.log.info("seed_admin: %s already present", username)
                return None

        return await self.create(
            UserCreate(
                full_name=full_name,
                username=username,
                password=password,
                role=UserRole.CONSTRUCTOR_ADMIN,
            )
        )

    async def _find(self, user_id: Any, status: DefaultStatus) -> User:
        # a record in the other state is reported the same as a missing one
        user = await self.repository.find_one(status=status, user_id=user_id)
        if not user:
            self.log.debug("user_id=%s not found with status=%s", user_id, int(status))
            raise NotFound(USER_NOT_FOUND)
        return user
