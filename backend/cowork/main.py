import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cowork.core.config import settings
from cowork.core.logging_config import configure_logging
import cowork.models  # noqa: F401  # force model registration

from cowork.auth.errors import AuthorizationError, Unauthenticated
from cowork.api.v1.auth import router as auth_router
from cowork.api.v1.invitations import router as invitations_router
from cowork.api.v1.tenants import router as tenants_router
from cowork.api.v1.users import router as users_router
from cowork.api.v1.clients import router as clients_router
from cowork.api.v1.bookings import router as bookings_router
from cowork.api.v1.quotations import router as quotations_router

logger = logging.getLogger(__name__)


async def authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    # reason stays in the logs; the body only carries the class's generic message
    logger.info(
        "%s %s -> %s %s reason=%s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.code,
        exc.reason,
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"code": exc.code, "message": exc.message}},
        headers=headers,
    )


def create_application() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Cowork API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AuthorizationError, authorization_error_handler)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "cowork"}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(invitations_router, prefix="/api/v1")
    app.include_router(tenants_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(clients_router, prefix="/api/v1")
    app.include_router(bookings_router, prefix="/api/v1")
    app.include_router(quotations_router, prefix="/api/v1")

    return app


app = create_application()
