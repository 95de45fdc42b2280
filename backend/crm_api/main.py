import logging

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm_api.api.envelope import EnvelopeRoute, ResponseNormalizer, install_envelope
from crm_api.api.routes.auth import router as auth_router
from crm_api.api.routes.users import router as users_router
from crm_api.core.classifier import ErrorClassifier
from crm_api.core.config import settings
from crm_api.core.logger import configure_logging

health_router = APIRouter(route_class=EnvelopeRoute)

@health_router.get("/health")
def health():
    return {"status": "ok"}


def create_app(logger: logging.Logger | None = None) -> FastAPI:
    logger = logger or configure_logging()

    app = FastAPI(title="crm-api")

    origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_envelope(
        app,
        ResponseNormalizer(
            ErrorClassifier(logger.getChild("classifier")),
            logger.getChild("envelope"),
        ),
    )

    app.include_router(health_router)
    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(users_router, prefix=settings.api_prefix)

    @app.on_event("startup")
    async def _create_tables():
        if settings.db_auto_create:
            from crm_api.db.session import init_models

            await init_models()

    return app


app = create_app()
