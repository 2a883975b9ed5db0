from fastapi import FastAPI
from tortoise.contrib.fastapi import register_tortoise

from app import settings
from app.auth import get_token_service
from app.errors import register_exception_handlers
from app.routers import auth, booking, events, users

TORTOISE_ORM = {
    "connections": {"default": settings.db_url},
    "apps": {"models": {"models": ["app.models"], "default_connection": "default"}},
    "use_tz": True,
}


def create_app() -> FastAPI:
    # Fail at startup rather than on the first authenticated request
    get_token_service()

    app = FastAPI(title="BDE events")
    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(events.router)
    app.include_router(booking.router)

    register_tortoise(
        app,
        config=TORTOISE_ORM,
        generate_schemas=settings.db_url.startswith("sqlite"),
        add_exception_handlers=False,
    )
    return app


app = create_app()
