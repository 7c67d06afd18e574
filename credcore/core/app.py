"""FastAPI application factory for the credcore service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlencode

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from credcore.core.errors import (
    HTTP_FOUND,
    AuthenticationRequired,
    CredcoreError,
    InvalidRequestError,
    SelfAliasRedirect,
)
from credcore.core.logging import configure_logging, get_logger
from credcore.core.settings import DatabaseSettings, ServiceSettings
from credcore.db.engine import create_schema, dispose_engine
from credcore.registry.routes import router as registry_router
from credcore.web.routes_keys import router as keys_router
from credcore.web.routes_settings import router as settings_router

log = get_logger(__name__)


def _login_redirect(request: Request, login_url: str) -> RedirectResponse:
    """Send an unauthenticated caller to log in, then back here."""
    return_to = request.url.path
    if request.url.query:
        return_to = f"{return_to}?{request.url.query}"
    separator = "&" if "?" in login_url else "?"
    return RedirectResponse(
        url=f"{login_url}{separator}{urlencode({'return_to': return_to})}",
        status_code=HTTP_FOUND,
    )


def _self_alias_redirect(request: Request, login: str) -> RedirectResponse:
    """Redirect a .me route to the same route for the concrete login."""
    route = request.scope["route"]
    params = {**request.path_params, "login": login}
    url = str(request.url_for(route.name, **params))
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return RedirectResponse(url=url, status_code=HTTP_FOUND)


def _validation_message(exc: RequestValidationError) -> str:
    """Flatten validation errors into "location: message" pairs."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts) or "invalid request"


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    settings = ServiceSettings()
    configure_logging(level=settings.log_level, json=settings.log_json)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if DatabaseSettings().create_schema:
            await create_schema()
        yield
        await dispose_engine()

    app = FastAPI(
        title="credcore",
        version="0.1.0",
        lifespan=lifespan,
    )

    async def handle_credcore_error(request: Request, exc: Exception) -> Response:
        if isinstance(exc, SelfAliasRedirect):
            return _self_alias_redirect(request, exc.login)
        if isinstance(exc, AuthenticationRequired):
            return _login_redirect(request, settings.login_url)
        assert isinstance(exc, CredcoreError)
        log.info(
            "request.rejected",
            path=request.url.path,
            error=exc.code,
            status=exc.status_code,
        )
        return JSONResponse(
            {"error": exc.code, "error_description": exc.message},
            status_code=exc.status_code,
        )

    async def handle_validation_error(request: Request, exc: Exception) -> Response:
        assert isinstance(exc, RequestValidationError)
        return await handle_credcore_error(
            request, InvalidRequestError(_validation_message(exc))
        )

    app.add_exception_handler(CredcoreError, handle_credcore_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    app.include_router(registry_router)
    app.include_router(settings_router)
    app.include_router(keys_router)

    return app
