from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.requests import Request
from app.api.loan_routes import router as loan_router
from contextlib import asynccontextmanager
from app.database.connection import init_db
from app.core.config import settings
from app.core.errors import LoanError, HTTP_STATUS_BY_KIND
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from fastapi.responses import JSONResponse
import logging
import traceback


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to all API responses.

    OPTIONS requests are left to CORSMiddleware, which is registered last so
    it runs first and can answer preflight requests itself.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        if request.method != "OPTIONS":
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Loan application instantiation, cycle validation and status workflow",
    version="1.0.0",
    lifespan=lifespan
)


# Global exception handlers to return structured JSON and log tracebacks
logger = logging.getLogger("server_exception_handler")


@app.exception_handler(LoanError)
async def loan_error_handler(request: Request, exc: LoanError):
    # Typed loan failures carry their machine-readable kind as the error code
    status_code = HTTP_STATUS_BY_KIND.get(exc.kind, 400)
    body = {"error": {**exc.to_dict(), "status_code": status_code}}
    logger.warning(f"{exc.kind.value} error handled: {exc.message}")
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    body = {
        "error": {
            "code": "http_error",
            "message": str(exc.detail) if exc.detail else exc.status_code,
            "status_code": exc.status_code
        }
    }
    logger.warning(f"HTTPException handled: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Validation errors from FastAPI/Pydantic
    body = {
        "error": {
            "code": "VALIDATION",
            "message": "Request validation failed",
            "details": exc.errors()
        }
    }
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    # Catch-all for unexpected exceptions
    tb = traceback.format_exc()
    logger.error(f"Unhandled exception: {str(exc)}\n{tb}")
    body = {
        "error": {
            "code": "internal_server_error",
            "message": "An unexpected error occurred",
            "details": str(exc)
        }
    }
    return JSONResponse(status_code=500, content=body)

# Support comma-separated CLIENT_URL values (e.g. "http://localhost:3000,http://localhost:3001")
raw_origins = settings.CLIENT_URL or ""
allowed_origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

# Middleware runs last-added-first: CORS is added last so it handles preflights first
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=3600,
)

app.include_router(loan_router)


@app.get("/")
async def root():
    return {"message": "Loan Application API is running!"}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "message": "API is running"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
