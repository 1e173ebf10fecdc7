"""Main FastAPI application"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from oauth_service.api.v1 import oauth
from oauth_service.core.config import logger, settings
from oauth_service.middleware import RequestContextMiddleware

TOKEN_PATH = "/oauth/token"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting OAuth Token Service...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Storage backend: {settings.storage_backend}")

    if settings.storage_backend == "sqlalchemy":
        from oauth_service.models import init_db

        try:
            await init_db()
            logger.info("Database initialized")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    yield

    logger.info("Shutting down OAuth Token Service...")
    if settings.storage_backend == "sqlalchemy":
        from oauth_service.models import close_db

        await close_db()


app = FastAPI(
    title="OAuth Token Service",
    description="OAuth 2.0 token endpoint for third-party platform integrations",
    version=settings.version,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)


@app.exception_handler(StarletteHTTPException)
async def token_method_not_allowed(request: Request, exc: StarletteHTTPException):
    """Render 405s on the token endpoint as OAuth2 errors with CORS headers"""
    if exc.status_code == 405 and request.url.path == TOKEN_PATH:
        return oauth.method_not_allowed_response()
    return await http_exception_handler(request, exc)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return JSONResponse(
        content={
            "status": "healthy",
            "version": settings.version,
            "environment": settings.environment,
        }
    )


app.include_router(oauth.router, prefix="/oauth", tags=["OAuth2"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "oauth_service.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
