import asyncio

from crm_api.core.config import settings
from crm_api.core.logger import configure_logging
from crm_api.db.session import SessionLocal, init_models
from crm_api.repositories.user_repository import SqlUserRepository
from crm_api.services.user_service import UserService

async def seed() -> None:
    log = configure_logging()
    await init_models()

    async with SessionLocal() as s:
        svc = UserService(SqlUserRepository(s), logger=log.getChild("seed"))
        created = await svc.seed_admin(
            settings.seed_admin_user,
            settings.seed_admin_pass,
            settings.seed_admin_full_name,
        )
    if created:
        log.info("seeded admin user %s (id=%s)", created.username, created.id)

def main():
    asyncio.run(seed())

if __name__ == "__main__":
    main()
