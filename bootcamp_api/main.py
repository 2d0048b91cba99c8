"""
Bootcamp Directory API - FastAPI Backend

Main application entry point.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bootcamp_api.config import get_settings
from bootcamp_api.errors import AppError
from bootcamp_api.auth.routes import router as auth_router
from bootcamp_api.routers.users import router as users_router
from bootcamp_api.routers.bootcamps import router as bootcamps_router
from bootcamp_api.routers.courses import router as courses_router
from bootcamp_api.routers.reviews import router as reviews_router

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Directory of coding bootcamps with their courses and reviews.",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _envelope(status_code: int, message: str, headers=None) -> JSONResponse:
    status = "fail" if 400 <= status_code < 500 else "error"
    return JSONResponse(
        status_code=status_code,
        content={"status": status, "message": message},
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _envelope(exc.status_code, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"Invalid input data. {location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Invalid input data"
    return _envelope(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        message = f"Can't find {request.url.path} on this server!"
    return _envelope(exc.status_code, str(message), getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.debug else "Something went very wrong!"
    return _envelope(500, message)


# Include routers; auth routes are registered before /api/users/{user_id}
app.include_router(auth_router, prefix="/api/users", tags=["Authentication"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(bootcamps_router, prefix="/api/bootcamps", tags=["Bootcamps"])
app.include_router(courses_router, prefix="/api", tags=["Courses"])
app.include_router(reviews_router, prefix="/api", tags=["Reviews"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("bootcamp_api.main:app", host="0.0.0.0", port=8000, reload=True)
