"""
Student Records API - FastAPI Application Entry Point.

This is the main application module that:
1. Builds the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Owns the StudentStore lifecycle (created at startup, disposed at shutdown)
5. Converts validation and unexpected errors into the JSON error envelope
6. Registers the student routes and a health check endpoint

The application follows a modular architecture:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: Store operations and the predicate builder
- errors.py: Error taxonomy and response envelope
- logging_config.py: Structured logging configuration
- database.py: StudentStore and session dependencies
"""

import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from student_api.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from student_api.routes import students
from student_api.database import DATABASE_URL, StudentStore
from student_api.errors import error_response

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

SERVICE_NAME = "student-records-api"
VERSION = "1.0.0"


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append("{}: {}".format(location, err.get("msg")) if location else err.get("msg"))
    return "; ".join(parts) or "Invalid request"


def create_app(store: StudentStore = None) -> FastAPI:
    """
    Build the application.

    Args:
        store: StudentStore to serve from. When omitted, one is created for
            DATABASE_URL at startup and disposed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.store is None
        if owned:
            app.state.store = StudentStore(DATABASE_URL)
            # Auto-create tables for SQLite local development
            if app.state.store.is_sqlite:
                logger.info("Using SQLite, creating tables directly")
                app.state.store.create_tables()
        log_with_context(logger, "INFO", "Service started",
                         extra_data={"service": SERVICE_NAME, "version": VERSION})
        try:
            yield
        finally:
            if owned:
                app.state.store.dispose()
                app.state.store = None

    app = FastAPI(
        title="Student Records API",
        description=(
            "CRUD, filtering, name search and per-course statistics "
            "over a single collection of student records."
        ),
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.store = store

    # ──────────────────────────────────────────────────────────
    # CORS Middleware
    # ──────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"]
    )

    # ──────────────────────────────────────────────────────────
    # Request ID Middleware
    #
    # Stores a fresh UUID in the request_id context variable so every
    # log entry of the request carries it, and returns it in the
    # X-Request-ID response header.
    # ──────────────────────────────────────────────────────────
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        req_id = generate_request_id()
        request_id_var.set(req_id)
        start_time = time.time()

        log_with_context(logger, "INFO",
            f"Request started: {request.method} {request.url.path}",
            context={"request_id": req_id},
            extra_data={
                "ip": request.client.host if request.client else "unknown",
                "user_agent": request.headers.get("user-agent", ""),
                "query_params": dict(request.query_params)
            })

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        response.headers["X-Request-ID"] = req_id

        log_with_context(logger, "INFO",
            f"Request completed: {request.method} {request.url.path} → {response.status_code}",
            context={"request_id": req_id},
            extra_data={
                "duration_ms": round(duration_ms, 2),
                "status_code": response.status_code
            })

        return response

    # ──────────────────────────────────────────────────────────
    # Error envelope for failures raised outside the route bodies
    # ──────────────────────────────────────────────────────────
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = _format_validation_errors(exc)
        log_with_context(logger, "WARNING", f"Validation failed: {message}",
                         extra_data={"path": request.url.path})
        return error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        log_with_context(logger, "WARNING", f"HTTP {exc.status_code}: {exc.detail}",
                         extra_data={"path": request.url.path, "method": request.method})
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        log_with_context(logger, "ERROR", f"Unhandled error: {exc}",
                         extra_data={"path": request.url.path}, exc_info=True)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    # ──────────────────────────────────────────────────────────
    # Register API routes
    # ──────────────────────────────────────────────────────────
    app.include_router(students.router, tags=["Students"])

    @app.get("/health", tags=["Health"])
    def health_check():
        """Health check endpoint for Docker health checks and monitoring."""
        return {"status": "healthy", "service": SERVICE_NAME, "version": VERSION}

    @app.get("/", tags=["Root"])
    def root():
        """Root endpoint with API information."""
        return {
            "service": "Student Records API",
            "version": VERSION,
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "create": "POST /api/v1/students/create",
                "create_bulk": "POST /api/v1/students/create/bulk",
                "list": "GET /api/v1/students/get",
                "detail": "GET /api/v1/students/get/{id}",
                "filter": "GET /api/v1/students/filter?minMarks=&courses=&city=",
                "search": "GET /api/v1/students/search/{name}",
                "update": "PUT /api/v1/students/update/{id}",
                "update_operators": "PUT /api/v1/students/update/{id}/operators",
                "delete": "DELETE /api/v1/students/delete/{id}",
                "stats": "GET /api/v1/students/stats"
            }
        }

    return app


app = create_app()
