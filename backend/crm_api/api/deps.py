import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm_api.core.security import PasswordHasher, TokenIssuer
from crm_api.db.session import SessionLocal
from crm_api.repositories.user_repository import SqlUserRepository
from crm_api.services.user_service import UserService

_hasher = PasswordHasher()
_tokens = TokenIssuer()

async def db():
    async with SessionLocal() as s:
        yield s

def password_hasher() -> PasswordHasher:
    return _hasher

def token_issuer() -> TokenIssuer:
    return _tokens

def user_service(
    s: AsyncSession = Depends(db),
    hasher: PasswordHasher = Depends(password_hasher),
    tokens: TokenIssuer = Depends(token_issuer),
) -> UserService:
    return UserService(
        SqlUserRepository(s),
        hasher=hasher,
        tokens=tokens,
        logger=logging.getLogger("crm_api.users.service"),
    )
