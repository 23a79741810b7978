import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from app.config import settings
from app.contracts.errors import ProblemDetails
from app.exceptions import (
    AuthorizationError,
    NotFoundError,
    StateError,
    ValidationError,
    WorkflowError,
)
from app.middleware.correlation import correlation_id_var, correlation_middleware, setup_logging
from app.routers.proposal_types import router as proposal_types_router
from app.routers.proposals import router as proposals_router
from app.routers.users import router as users_router

logger = logging.getLogger(__name__)

_ERROR_STATUS: tuple[tuple[type[WorkflowError], int, str], ...] = (
    (AuthorizationError, status.HTTP_403_FORBIDDEN, "Forbidden"),
    (StateError, status.HTTP_409_CONFLICT, "Conflict"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "Unprocessable Entity"),
)


@asynccontextmanager
async def _app_lifespan(application: FastAPI):
    application.state.is_draining = False
    yield
    application.state.is_draining = True


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=_app_lifespan)
setup_logging()
app.middleware("http")(correlation_middleware)
Instrumentator().instrument(app).expose(app)
app.include_router(proposals_router)
app.include_router(proposal_types_router)
app.include_router(users_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/live")
async def health_live() -> dict[str, str]:
    return {"status": "live"}


@app.get("/health/ready")
async def health_ready(response: Response) -> dict[str, str]:
    if bool(getattr(app.state, "is_draining", False)):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "draining"}
    return {"status": "ready"}


def _problem_response(
    request: Request,
    status_code: int,
    title: str,
    detail: str,
    error_code: str,
    context: dict | None = None,
) -> JSONResponse:
    problem = ProblemDetails(
        title=title,
        status=status_code,
        detail=detail,
        instance=str(request.url.path),
        correlation_id=correlation_id_var.get() or "",
        error_code=error_code,
        context=context or {},
    )
    return JSONResponse(
        status_code=status_code,
        media_type="application/problem+json",
        content=problem.model_dump(),
    )


@app.exception_handler(WorkflowError)
async def workflow_exception_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    for error_type, status_code, title in _ERROR_STATUS:
        if isinstance(exc, error_type):
            if exc.code == "UNAUTHENTICATED":
                status_code, title = status.HTTP_401_UNAUTHORIZED, "Unauthorized"
            return _problem_response(
                request, status_code, title, exc.message, exc.code, exc.context()
            )
    return _problem_response(
        request, status.HTTP_400_BAD_REQUEST, "Bad Request", exc.message, exc.code, exc.context()
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _problem_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal Server Error",
        "An unexpected error occurred.",
        "INTERNAL_ERROR",
    )
