import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from campus_lms.core.config import LOG_LEVEL
from campus_lms.core.errors import LmsError
from campus_lms.core.logging_middleware import LoggingMiddleware
from campus_lms.db.init_db import init_db

from campus_lms.routers.auth import router as auth_router
from campus_lms.routers.courses import router as courses_router
from campus_lms.routers.enrollments import router as enrollments_router
from campus_lms.routers.grading import router as grading_router
from campus_lms.routers.modules import router as modules_router
from campus_lms.routers.publishing import router as publishing_router
from campus_lms.routers.submissions import router as submissions_router

logging.basicConfig(level=LOG_LEVEL)

logger = logging.getLogger(__name__)

app = FastAPI(title="Campus LMS")

# Middleware
app.add_middleware(LoggingMiddleware)


@app.exception_handler(LmsError)
def handle_lms_error(request: Request, exc: LmsError):
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Startup event
@app.on_event("startup")
def on_startup():
    init_db()


# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(courses_router, prefix="/courses", tags=["courses"])

# Routers below define full paths
app.include_router(enrollments_router, tags=["enrollments"])
app.include_router(modules_router, tags=["modules"])
app.include_router(publishing_router, tags=["publishing"])
app.include_router(submissions_router, tags=["submissions"])
app.include_router(grading_router, tags=["grading"])
