from fastapi import FastAPI, Request, status
from fastapi.responses import ORJSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from pixpen.api.v1.routes import router as v1_router
from pixpen.core.config import Settings
from pixpen.core.errors import (
    AlignmentFailure,
    AppError,
    BadRequest,
    CompositeFailure,
    DependencyError,
    DimensionUnavailable,
    EditRefused,
    EditSuperseded,
    NoObjectsDetected,
    SegmentationFailed,
    SessionBusy,
    SessionNotFound,
    TransportFailure,
)
from pixpen.core.lifespan import build_lifespan
from pixpen.core.logging import configure_logging
from pixpen.services.gemini import GeminiClient

# Most specific first; the first isinstance match wins
_STATUS_BY_ERROR: list[tuple[type[AppError], int]] = [
    (BadRequest, status.HTTP_400_BAD_REQUEST),
    (SessionNotFound, status.HTTP_404_NOT_FOUND),
    (SessionBusy, status.HTTP_409_CONFLICT),
    (EditSuperseded, status.HTTP_409_CONFLICT),
    (NoObjectsDetected, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (DimensionUnavailable, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AlignmentFailure, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (CompositeFailure, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (EditRefused, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (TransportFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
    (DependencyError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (SegmentationFailed, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def error_content(exc: AppError) -> dict:
    content = {"detail": str(exc), "error": type(exc).__name__}
    for attr in ("object_id", "service", "reason"):
        value = getattr(exc, attr, None)
        if value is not None:
            content[attr] = value
    return content


def create_app(settings: Settings | None = None, gemini: GeminiClient | None = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        default_response_class=ORJSONResponse,
        lifespan=build_lifespan(settings, gemini=gemini),
    )

    # Allow the browser front end to call the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        code = next(
            (c for err, c in _STATUS_BY_ERROR if isinstance(exc, err)),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        return ORJSONResponse(status_code=code, content=error_content(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return ORJSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Format validation errors into a readable message
        errors = exc.errors()
        if errors:
            first_error = errors[0]
            field = ".".join(str(loc) for loc in first_error.get("loc", []))
            error_msg = first_error.get("msg", "Validation error")
            detail = f"Validation error for field '{field}': {error_msg}"
            if len(errors) > 1:
                detail += f" (and {len(errors) - 1} more error(s))"
        else:
            detail = "Validation error"

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": detail},
        )

    app.include_router(v1_router, prefix="/api/v1")
    return app


app = create_app()
