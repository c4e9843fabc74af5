import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import health, partitions, sessions
from app.core.config import get_settings
from app.core.exceptions import AppError
from app.core.middleware import RequestSizeLimitMiddleware

settings = get_settings()

logging.getLogger("app").setLevel(settings.log_level.upper())
logger = logging.getLogger(__name__)


async def app_error_handler(request: Request, exc: AppError):
    logger.info(
        "REQUEST REJECTED | method=%s | path=%s | status=%s | message=%s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )

app = FastAPI(title=settings.project_name)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(partitions.router, prefix=settings.api_prefix, tags=["partitions"])
app.include_router(sessions.router, prefix=settings.api_prefix, tags=["sessions"])
