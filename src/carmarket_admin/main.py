# src/carmarket_admin/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from carmarket_admin.core.config import settings
from carmarket_admin.core import db
from carmarket_admin.core.initial_data import init_super_admin
from carmarket_admin.core.redis_cache import RateLimiter, connect_redis
from carmarket_admin.service.email import Mailer

from carmarket_admin.api.admin import router as admin_router

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        logger.info("Starting server...")

        #  Initialize DB
        await db.init_db()
        async for session in db.get_session():
            await init_super_admin(session)
        logger.info("DB initialized")

        # Rate limiter + mailer live on app.state for the process lifetime
        app.state.rate_limiter = RateLimiter(await connect_redis())
        app.state.mailer = Mailer.from_settings(settings)

        yield

    finally:
        limiter = getattr(app.state, "rate_limiter", None)
        if limiter is not None:
            await limiter.close()
        await db.shutdown()
        logger.info("Shutting down server...")


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.API_VERSION,
    lifespan=lifespan,
)

if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# Error bodies are {"message": ...}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


# Health check route
@app.get(f"{settings.API_PREFIX}/health")
async def health_check():
    return {"status": "OK"}


app.include_router(admin_router, prefix=settings.API_PREFIX)
